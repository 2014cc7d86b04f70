import io
import logging
import os
from typing import Optional

import docx
import fitz  # PyMuPDF for PDF processing
from docx.table import Table

from legal_clarify.llm_integration.exceptions import (
    EmptyDocumentError, ExtractionError, UnsupportedFileTypeError
)

logger = logging.getLogger(__name__)

TEXT_PLAIN = "text/plain"
PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
LEGACY_DOC = "application/msword"

EXTENSION_MEDIA_TYPES = {
    ".txt": TEXT_PLAIN,
    ".pdf": PDF,
    ".docx": DOCX,
    ".doc": LEGACY_DOC,
}

GENERIC_MEDIA_TYPES = {"", "application/octet-stream"}

def resolve_media_type(media_type: Optional[str], filename: Optional[str] = None) -> str:
    """
    Normalizes the declared media type, dropping parameters such as charset.
    Falls back to the filename extension when the type is missing or generic.
    """
    resolved = (media_type or "").split(";", 1)[0].strip().lower()
    if resolved in GENERIC_MEDIA_TYPES and filename:
        ext = os.path.splitext(filename)[1].lower()
        resolved = EXTENSION_MEDIA_TYPES.get(ext, resolved)
    return resolved or "application/octet-stream"

def _extract_plain_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")

def _extract_pdf_text(data: bytes) -> str:
    """Joins each page's words with a space and the pages with newlines."""
    pdf_error = ExtractionError(
        "Failed to extract text from PDF. The file might be corrupted or password-protected."
    )
    if not data:
        raise pdf_error
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.needs_pass:
                raise pdf_error
            pages = []
            for page in doc:
                words = page.get_text("words")
                pages.append(" ".join(word[4] for word in words))
    except ExtractionError:
        raise
    except Exception as e:
        raise pdf_error from e

    text = "\n".join(pages).strip()
    if not text:
        raise EmptyDocumentError("No text content found in PDF")
    return text

def _docx_blocks(document):
    """Yields the text of body paragraphs and table cells in reading order."""
    for block in document.iter_inner_content():
        if not isinstance(block, Table):
            yield block.text
            continue
        seen = []
        for row in block.rows:
            for cell in row.cells:
                # Merged cells repeat across the span.
                if any(cell._tc is tc for tc in seen):
                    continue
                seen.append(cell._tc)
                yield cell.text

def _extract_docx_text(data: bytes) -> str:
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:
        raise ExtractionError(
            "Failed to extract text from DOCX file. The file might be corrupted or in an unsupported format."
        ) from e
    text = "\n".join(_docx_blocks(document))
    if not text.strip():
        raise EmptyDocumentError("No text content found in the document.")
    return text

def extract_text(data: bytes, media_type: Optional[str], filename: Optional[str] = None) -> str:
    """
    Converts an uploaded file into document text.

    Supports plain text (returned verbatim), PDF and DOCX. Legacy .doc files
    and any other type fail with UnsupportedFileTypeError. The upload size
    limit is the caller's job.
    """
    resolved = resolve_media_type(media_type, filename)
    logger.info("Extracting text from %s (%s, %d bytes)", filename or "upload", resolved, len(data))

    if resolved == TEXT_PLAIN:
        return _extract_plain_text(data)
    if resolved == PDF:
        return _extract_pdf_text(data)
    if resolved == DOCX:
        return _extract_docx_text(data)
    if resolved == LEGACY_DOC:
        raise UnsupportedFileTypeError(
            "Legacy DOC files are not supported. Please convert to DOCX format or copy and paste the text."
        )
    raise UnsupportedFileTypeError(
        f"Unsupported file type: {resolved}. Please use PDF, DOCX, or TXT files, or paste the text directly."
    )
