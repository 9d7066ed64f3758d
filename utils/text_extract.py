"""
Narrative document import: PDF or plain text into story text.
"""

import io
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from utils.errors import ExtractionError


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text of every page of a PDF."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as e:
        raise ExtractionError(f"Could not read PDF: {e}") from e
    return "\n".join(p.strip() for p in pages if p.strip())


def extract_story_text(data: bytes, filename: Optional[str] = None) -> str:
    """
    Extract narrative text from an uploaded document.

    Args:
        data: Raw file bytes
        filename: Original file name, used to pick the reader

    Returns:
        Extracted text (stripped)

    Raises:
        ExtractionError: unreadable document or no text found
    """
    if not data:
        raise ExtractionError("Document is empty")

    is_pdf = data[:5] == b"%PDF-" or (filename or "").lower().endswith(".pdf")
    if is_pdf:
        text = extract_pdf_text(data)
    else:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(f"Document is not UTF-8 text: {e}") from e

    text = text.strip()
    if not text:
        raise ExtractionError("No text found in document")
    return text
