"""
OCR extraction for scanned PDFs

Renders each page with pypdfium2 and recognizes it with Tesseract.
Much slower than the text layer, so it only runs when the hybrid
reader decides the text layer can't be trusted.
"""
import logging

import pypdfium2
import pytesseract

from milo.config import settings
from milo.utils.documents import ExtractedText

logger = logging.getLogger(__name__)


def page_delimiter(page_number: int) -> str:
    return f"<!-- OCR page {page_number} -->"


def extract_text_ocr(data: bytes) -> ExtractedText:
    """
    Rasterize every page and run OCR on it.

    Any failure discards the whole document: the result is empty text
    with ``error`` set, never a partial transcript.

    Args:
        data: Raw PDF bytes

    Returns:
        ExtractedText with method 'ocr'
    """
    pages = []
    try:
        pdf = pypdfium2.PdfDocument(data)
        try:
            for page_index in range(len(pdf)):
                page = pdf[page_index]
                bitmap = page.render(scale=settings.OCR_RENDER_SCALE)
                image = bitmap.to_pil()
                page_text = pytesseract.image_to_string(image, lang=settings.OCR_LANGUAGE)
                pages.append(page_text.strip())
                logger.debug(f"OCR page {page_index + 1}: {len(page_text)} chars")
                page.close()
        finally:
            pdf.close()
    except Exception as e:
        logger.error(f"OCR extraction failed: {e}")
        return ExtractedText(method="ocr", error=str(e))

    if any(pages):
        full_text = "\n\n".join(
            f"{page_delimiter(number)}\n{text}" for number, text in enumerate(pages, start=1)
        )
    else:
        full_text = ""
    logger.info(f"OCR extracted {len(full_text)} chars from {len(pages)} pages")

    return ExtractedText(text=full_text, pages=pages, method="ocr")
