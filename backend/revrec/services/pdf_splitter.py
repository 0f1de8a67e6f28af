"""Split PDFs into small page ranges for OCR tiers with page limits."""
import io
import logging

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)


def count_pdf_pages(content: bytes) -> int:
    """Page count, or 0 when the PDF cannot be read."""
    try:
        return len(PdfReader(io.BytesIO(content)).pages)
    except (PyPdfError, ValueError) as exc:
        logger.warning("Could not count PDF pages: %s", exc)
        return 0


def split_pdf(content: bytes, pages_per_chunk: int = 2) -> list[bytes]:
    """Split into chunks of `pages_per_chunk` pages. Returns [content] if no split is needed or it fails."""
    try:
        reader = PdfReader(io.BytesIO(content))
        total_pages = len(reader.pages)
        if total_pages <= pages_per_chunk:
            return [content]
        chunks = []
        for start in range(0, total_pages, pages_per_chunk):
            end = min(start + pages_per_chunk, total_pages)
            writer = PdfWriter()
            for i in range(start, end):
                writer.add_page(reader.pages[i])
            buffer = io.BytesIO()
            writer.write(buffer)
            chunks.append(buffer.getvalue())
            logger.debug("Created chunk for pages %d-%d (%d bytes)", start + 1, end, len(chunks[-1]))
        logger.info("Split %d-page PDF into %d chunks", total_pages, len(chunks))
        return chunks
    except (PyPdfError, ValueError) as exc:
        logger.warning("PDF split failed, using original document: %s", exc)
        return [content]
