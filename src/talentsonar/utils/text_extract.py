"""
Resume Text Extraction.

Turns an uploaded resume file into plain text for the parser:

- PDF via PyMuPDF
- DOCX via python-docx (paragraphs and table cells)
- HTML via BeautifulSoup
- text / markdown, and anything unknown, decoded as UTF-8

The extracted text is normalized (line endings, NULs, trailing whitespace,
runs of blank lines) and returned with the SHA-256 of the original bytes so
repeated uploads can be recognized.
"""

import hashlib
import io
import re
from typing import NamedTuple

import fitz  # PyMuPDF
from bs4 import BeautifulSoup
from docx import Document

from talentsonar.utils.exceptions import InvalidInputError
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
HTML_MIME = "text/html"


class ExtractedText(NamedTuple):
    text: str
    sha256: str
    bytes: int


def normalize_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\x00", "")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _pdf_to_text(data: bytes) -> str:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return "\n".join(page.get_text("text") for page in doc)
    finally:
        doc.close()


def _docx_to_text(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    lines = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines)


def _html_to_text(data: bytes) -> str:
    soup = BeautifulSoup(data.decode("utf-8", errors="replace"), "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text("\n")


def extract_text_from_file(data: bytes, filename: str, mime_type: str = "") -> ExtractedText:
    """Extract normalized text from an uploaded resume.

    Args:
        data: Raw file bytes.
        filename: Original file name (its extension is used when the MIME type is vague).
        mime_type: Declared content type.

    Raises:
        InvalidInputError: The file is empty or the document cannot be read.
    """
    if not data:
        raise InvalidInputError("TextExtract", "Uploaded file is empty.")

    lower = (filename or "").lower()
    mime_type = (mime_type or "").split(";")[0].strip().lower()

    try:
        if mime_type == PDF_MIME or lower.endswith(".pdf"):
            raw = _pdf_to_text(data)
        elif mime_type == DOCX_MIME or lower.endswith(".docx"):
            raw = _docx_to_text(data)
        elif mime_type == HTML_MIME or lower.endswith((".html", ".htm")):
            raw = _html_to_text(data)
        else:
            # text/*, .txt, .md and unknown types
            raw = data.decode("utf-8", errors="replace")
    except Exception as e:
        logger.warning(
            "Failed to extract text from upload",
            extra={"extra_fields": {"filename": filename, "mime_type": mime_type, "error": str(e)}},
        )
        raise InvalidInputError(
            "TextExtract",
            f"Could not read '{filename}'. Upload a PDF, DOCX, HTML or plain-text resume.",
            details={"error_type": type(e).__name__},
        ) from e

    return ExtractedText(
        text=normalize_text(raw),
        sha256=hashlib.sha256(data).hexdigest(),
        bytes=len(data),
    )
