from io import BytesIO
from zipfile import BadZipFile

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .base import ExtractedText, TextExtractor
from .errors import ExtractionFailure
from .logging_config import logger

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def read_text_from_pdf(data: bytes) -> str:
    pdf = PdfReader(BytesIO(data))
    parts = []
    for page in pdf.pages:
        parts.append(page.extract_text() or "")
    return "\n".join(parts)


def read_text_from_docx(data: bytes) -> str:
    """
    Extract text from a DOCX file including both paragraphs and tables.
    Tables are converted to readable text format.
    """
    doc = DocxDocument(BytesIO(data))
    parts = [para.text.strip() for para in doc.paragraphs if para.text.strip()]

    for table in doc.tables:
        table_text = extract_table_text(table)
        if table_text:
            parts.append("\n" + table_text)

    return "\n\n".join(parts)


def extract_table_text(table) -> str:
    """One line per non-empty row, cells joined with pipes."""
    lines = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        if any(cells):
            lines.append(" | ".join(cells))
    return "\n".join(lines)


def read_text_from_txt(data: bytes, encoding: str = "utf-8") -> str:
    return data.decode(encoding, errors="ignore")


def detect_kind(media_type: str, filename: str) -> str:
    name = (filename or "").lower()
    if name.endswith(".pdf") or media_type == PDF_MEDIA_TYPE:
        return "pdf"
    if name.endswith(".docx") or media_type == DOCX_MEDIA_TYPE:
        return "docx"
    # default to txt
    return "txt"


class FileTextExtractor(TextExtractor):
    """PDF, DOCX and plain-text extraction."""

    readers = {
        "pdf": read_text_from_pdf,
        "docx": read_text_from_docx,
        "txt": read_text_from_txt,
    }

    def extract(self, data: bytes, media_type: str, filename: str) -> ExtractedText:
        kind = detect_kind(media_type or "", filename)
        try:
            text = self.readers[kind](data)
        except (PdfReadError, PackageNotFoundError, BadZipFile, ValueError, KeyError, OSError) as e:
            logger.error("Error extracting text", filename=filename, kind=kind, error=str(e))
            raise ExtractionFailure(f"Failed to extract text from {filename}: {e}", filename=filename) from e
        logger.info("Extracted text", filename=filename, kind=kind, chars=len(text))
        return ExtractedText(text, kind)
