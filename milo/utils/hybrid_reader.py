"""
Hybrid text extraction: PDF text layer first, OCR only when the text
layer looks like it came from a scanned image.
"""
import logging
from typing import List

from milo.config import CLINICAL_MARKERS, SCANNER_HEADER
from milo.utils import ocr_reader, pdf_reader
from milo.utils.documents import Document, ExtractedText, UnsupportedDocumentError

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 100
DEGENERATE_TEXT_LENGTH = 20
MAX_HEADER_REPEATS = 2


def ocr_reasons(text: str) -> List[str]:
    """
    List every heuristic that says the text layer is unusable.

    Pure function of the extracted text; an empty list means the text
    layer can be trusted.
    """
    reasons = []
    stripped = text.strip()

    if len(stripped) < MIN_TEXT_LENGTH:
        reasons.append("too_short")
    if len(stripped) <= DEGENERATE_TEXT_LENGTH:
        reasons.append("degenerate")
    if text.count(SCANNER_HEADER) > MAX_HEADER_REPEATS:
        reasons.append("repeated_header")

    lowered = text.lower()
    if not any(marker.lower() in lowered for marker in CLINICAL_MARKERS):
        reasons.append("no_clinical_markers")

    return reasons


def needs_ocr(text: str) -> bool:
    """True if any heuristic trips"""
    return bool(ocr_reasons(text))


def extract_text_hybrid(data: bytes) -> ExtractedText:
    """
    Run the cheap text layer, then decide once whether to replace it
    with the OCR result. The two sources are never combined.
    """
    layer = pdf_reader.extract_text_layer(data)
    reasons = ocr_reasons(layer.text)

    if not reasons:
        logger.info("Using PDF text layer")
        return layer

    logger.warning(f"PDF appears to be image-based or invalid ({', '.join(reasons)}), switching to OCR")
    result = ocr_reader.extract_text_ocr(data)
    result.ocr_reasons = reasons
    return result


def extract_document_text(document: Document) -> ExtractedText:
    """
    Turn an uploaded document into plain text.

    Raises:
        UnsupportedDocumentError: for anything but plain text or PDF
    """
    if document.is_pdf:
        logger.info(f"PDF upload detected: {document.filename} ({len(document.data)} bytes)")
        return extract_text_hybrid(document.data)

    if document.is_plain_text:
        text = document.data.decode("utf-8", errors="replace")
        logger.info(f"Plain text upload: {document.filename} ({len(text)} chars)")
        return ExtractedText(text=text, pages=[text], method="plain_text")

    raise UnsupportedDocumentError(
        f"Unsupported file type '{document.media_type}'. Please upload .txt or .pdf only."
    )
