"""Extract text from uploaded contracts (PDF, DOCX, TXT), with OCR fallback for PDFs."""
import io
import logging
from dataclasses import dataclass
from enum import Enum as PyEnum
from pathlib import Path
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from revrec.config import Settings, get_settings
from revrec.services.ocr import AzureReadClient, OCRError, ocr_pdf

logger = logging.getLogger(__name__)

NATIVE = "native"
OCR = "ocr"


class ExtractionErrorKind(str, PyEnum):
    UNSUPPORTED_TYPE = "unsupported_type"
    LEGACY_DOC = "legacy_doc"
    PARSE_FAILED = "parse_failed"
    SCANNED_REQUIRES_OCR = "scanned_requires_ocr"
    OCR_FAILED = "ocr_failed"
    EMPTY = "empty"


class DocumentExtractionError(ValueError):
    """Text could not be extracted; `kind` says why."""

    def __init__(self, kind: ExtractionErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class ExtractionResult:
    text: str
    method: str
    page_count: int | None = None


def extract_text_from_file(
    file_content: bytes,
    filename: str,
    ocr_client: AzureReadClient | None = None,
    settings: Settings | None = None,
) -> ExtractionResult:
    """Extract plain text from PDF, DOCX, or TXT file."""
    settings = settings or get_settings()
    ext = Path(filename).suffix.lower()
    if ext == ".pdf":
        result = _extract_pdf_with_fallback(file_content, ocr_client, settings)
    elif ext == ".docx":
        result = ExtractionResult(_extract_docx(file_content), NATIVE)
    elif ext == ".doc":
        raise DocumentExtractionError(
            ExtractionErrorKind.LEGACY_DOC,
            "Legacy .doc format is not supported. Please save as .docx (Word 2007+) or export as PDF.",
        )
    elif ext == ".txt":
        result = ExtractionResult(file_content.decode("utf-8", errors="replace"), NATIVE)
    else:
        raise DocumentExtractionError(
            ExtractionErrorKind.UNSUPPORTED_TYPE,
            f"Unsupported file type: {ext or 'none'}. Use PDF, DOCX, or TXT.",
        )
    if not result.text.strip():
        raise DocumentExtractionError(ExtractionErrorKind.EMPTY, "Could not extract text from document")
    logger.info("Extracted %d characters from %s via %s", len(result.text), filename, result.method)
    return result


def _ocr_reason(text: str, settings: Settings) -> str | None:
    """'scanned' when there is (almost) no native text, 'truncated' when the parser cut it off."""
    if len(text.strip()) < settings.ocr_min_text_length:
        return "scanned"
    if abs(len(text) - settings.ocr_truncation_length) <= settings.ocr_truncation_tolerance:
        return "truncated"
    return None


def _extract_pdf_with_fallback(
    content: bytes,
    ocr_client: AzureReadClient | None,
    settings: Settings,
) -> ExtractionResult:
    text, page_count = _extract_pdf(content)
    reason = _ocr_reason(text, settings)
    if reason is None:
        return ExtractionResult(text, NATIVE, page_count)

    if ocr_client is None:
        if reason == "scanned":
            raise DocumentExtractionError(
                ExtractionErrorKind.SCANNED_REQUIRES_OCR,
                "This appears to be a scanned PDF that requires OCR. Configure Azure Computer Vision, "
                "convert the PDF to a Word document (.docx), or paste the contract text directly.",
            )
        logger.warning("PDF text looks truncated at %d characters and OCR is not configured", len(text))
        return ExtractionResult(text, NATIVE, page_count)

    logger.info("PDF looks %s (%d characters native); running OCR", reason, len(text))
    try:
        ocr_text = ocr_pdf(
            ocr_client,
            content,
            tier=settings.azure_ocr_tier,
            chunk_delay=settings.ocr_chunk_delay_seconds,
        )
    except OCRError as exc:
        if reason == "truncated":
            logger.warning("OCR failed, keeping truncated native text: %s", exc)
            return ExtractionResult(text, NATIVE, page_count)
        raise DocumentExtractionError(ExtractionErrorKind.OCR_FAILED, f"OCR processing failed: {exc}") from exc

    if not ocr_text.strip():
        if reason == "truncated":
            return ExtractionResult(text, NATIVE, page_count)
        raise DocumentExtractionError(
            ExtractionErrorKind.OCR_FAILED,
            "OCR completed but no text was extracted from the scanned PDF",
        )
    return ExtractionResult(ocr_text.strip(), OCR, page_count)


def _extract_pdf(content: bytes) -> tuple[str, int]:
    try:
        reader = PdfReader(io.BytesIO(content))
        parts = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                parts.append(text)
        return ("\n\n".join(parts) if parts else "", len(reader.pages))
    except (PyPdfError, ValueError) as exc:
        raise DocumentExtractionError(
            ExtractionErrorKind.PARSE_FAILED,
            f"PDF text extraction failed: {exc}. Password-protected or corrupted PDFs are not supported.",
        ) from exc


def _extract_docx(content: bytes) -> str:
    try:
        doc = Document(io.BytesIO(content))
    except (PackageNotFoundError, BadZipFile, KeyError, ValueError) as exc:
        raise DocumentExtractionError(
            ExtractionErrorKind.PARSE_FAILED,
            f"Failed to parse Word document: {exc}",
        ) from exc
    return "\n".join(p.text for p in doc.paragraphs if p.text.strip())
