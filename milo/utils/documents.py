"""
Document and extraction result types shared by the readers
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ExtractionStatus(str, Enum):
    """Outcome of one extraction pass"""
    FOUND = "found"
    NOT_FOUND = "not_found"   # parsed fine, nothing readable inside
    ERROR = "error"           # parse/render/recognition failed


@dataclass
class Document:
    """Raw upload, lives only for the duration of one request"""
    data: bytes
    media_type: str
    filename: Optional[str] = None

    @property
    def extension(self) -> str:
        if not self.filename or "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[1].lower()

    @property
    def is_pdf(self) -> bool:
        return self.media_type == "application/pdf" or self.extension == "pdf"

    @property
    def is_plain_text(self) -> bool:
        return self.media_type.startswith("text/plain") or self.extension == "txt"


@dataclass
class ExtractedText:
    """Text produced by one of the extraction paths"""
    text: str = ""
    pages: List[str] = field(default_factory=list)
    method: str = "text_layer"  # 'text_layer', 'ocr', 'plain_text'
    error: Optional[str] = None
    ocr_reasons: List[str] = field(default_factory=list)

    @property
    def status(self) -> ExtractionStatus:
        if self.error:
            return ExtractionStatus.ERROR
        if not self.text.strip():
            return ExtractionStatus.NOT_FOUND
        return ExtractionStatus.FOUND


class UnsupportedDocumentError(ValueError):
    """Raised for uploads that are neither plain text nor PDF"""
