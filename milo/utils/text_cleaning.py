"""
Cleanup for file-derived text before it becomes a chat message
"""
import re

from milo.config import settings

# Control characters except tab/newline/carriage return
_NON_PRINTABLE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_EXCESS_BLANK_LINES = re.compile(r"\n\s*\n(\s*\n)+")


def clean_document_text(text: str, max_chars: int = None) -> str:
    """Strip control bytes, collapse runs of blank lines, truncate"""
    limit = max_chars if max_chars is not None else settings.MAX_DOCUMENT_CHARS

    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _NON_PRINTABLE.sub("", cleaned)
    cleaned = _EXCESS_BLANK_LINES.sub("\n\n", cleaned)
    cleaned = cleaned.strip()

    return cleaned[:limit]
