"""
PDF text layer extraction (pypdfium2)
"""
import logging

import pypdfium2

from milo.utils.documents import ExtractedText

logger = logging.getLogger(__name__)


def extract_text_layer(data: bytes) -> ExtractedText:
    """
    Extract the embedded text layer of a PDF, page by page.

    Pages are joined with a blank line in document order. A PDF that
    cannot be parsed yields empty text with ``error`` set instead of
    raising.

    Args:
        data: Raw PDF bytes

    Returns:
        ExtractedText with method 'text_layer'
    """
    try:
        pdf = pypdfium2.PdfDocument(data)
    except Exception as e:
        logger.error(f"PDF text extraction failed: {e}")
        return ExtractedText(method="text_layer", error=str(e))

    pages = []
    try:
        for page_index in range(len(pdf)):
            page = pdf[page_index]
            textpage = page.get_textpage()
            page_text = textpage.get_text_range() or ""
            pages.append(page_text.strip())
            textpage.close()
            page.close()
    except Exception as e:
        logger.error(f"PDF text extraction failed on page {len(pages) + 1}: {e}")
        return ExtractedText(method="text_layer", error=str(e))
    finally:
        pdf.close()

    full_text = "\n\n".join(pages).strip()
    logger.info(f"Extracted text layer: {len(pages)} pages, {len(full_text)} chars")
    logger.debug(f"Text layer preview: {full_text[:500]}")

    return ExtractedText(text=full_text, pages=pages, method="text_layer")
