"""Azure Computer Vision Read API client for scanned or truncated PDFs."""
import logging
import time
from typing import Any, Callable

import requests

from revrec.config import Settings
from revrec.services.pdf_splitter import count_pdf_pages, split_pdf

logger = logging.getLogger(__name__)

READ_PATH = "/vision/v3.2/read/analyze"
CHUNK_SEPARATOR = "\n\n--- Next Chunk ---\n\n"

# F0 (free) tier: 2 pages max, 4 MB; S1 (paid): 2000 pages, 500 MB
FREE_TIER_MAX_PAGES = 2
FREE_TIER_MAX_BYTES = 4 * 1024 * 1024

_STATUS_DIAGNOSIS = {
    401: "API key is invalid. Check AZURE_COMPUTER_VISION_KEY.",
    403: "Subscription quota exceeded or region not supported.",
    404: "Endpoint URL is incorrect. Check AZURE_COMPUTER_VISION_ENDPOINT.",
    413: "File too large (max 50MB).",
    429: "Rate limit exceeded. Wait and try again.",
}


class OCRError(RuntimeError):
    """Raised when the Read API cannot return text for a document."""


def diagnose_status(status_code: int) -> str:
    return _STATUS_DIAGNOSIS.get(status_code, f"HTTP {status_code} error")


def needs_pdf_splitting(file_size: int, page_count: int, tier: str) -> bool:
    """Whether a PDF must be sent in page chunks for the given Azure tier."""
    tier = (tier or "unknown").upper()
    if tier == "F0":
        return page_count > FREE_TIER_MAX_PAGES or file_size > FREE_TIER_MAX_BYTES
    if tier == "S1":
        return False
    return page_count > FREE_TIER_MAX_PAGES


def _read_results_text(result: dict[str, Any]) -> str:
    pages = (result.get("analyzeResult") or {}).get("readResults") or []
    page_texts = []
    for page in pages:
        lines = [line.get("text", "") for line in page.get("lines") or []]
        page_texts.append("\n".join(lines))
    return "\n\n".join(t for t in page_texts if t)


class AzureReadClient:
    """Submit a document to the Read API and poll the operation until it finishes."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        poll_attempts: int = 10,
        poll_interval: float = 1.0,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    @property
    def read_url(self) -> str:
        return f"{self.endpoint}{READ_PATH}"

    def read_text(self, content: bytes) -> str:
        try:
            response = self.session.post(
                self.read_url,
                headers={
                    "Ocp-Apim-Subscription-Key": self.api_key,
                    "Content-Type": "application/octet-stream",
                },
                data=content,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise OCRError(f"Azure Read request failed: {exc}") from exc
        if not response.ok:
            raise OCRError(
                f"Azure API rejected request ({response.status_code}): {diagnose_status(response.status_code)}"
            )
        operation_location = response.headers.get("Operation-Location")
        if not operation_location:
            raise OCRError("No operation location returned")
        logger.info("Document submitted to Azure Read (%d bytes), polling for results", len(content))
        return _read_results_text(self._poll(operation_location))

    def _poll(self, operation_location: str) -> dict[str, Any]:
        last_status = None
        for _ in range(self.poll_attempts):
            self._sleep(self.poll_interval)
            try:
                response = self.session.get(
                    operation_location,
                    headers={"Ocp-Apim-Subscription-Key": self.api_key},
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise OCRError(f"Failed to get results: {exc}") from exc
            if not response.ok:
                raise OCRError(f"Failed to get results ({response.status_code})")
            result = response.json()
            last_status = result.get("status")
            if last_status == "succeeded":
                return result
            if last_status == "failed":
                raise OCRError("OCR processing failed")
        raise OCRError(f"OCR processing timed out (last status: {last_status})")


def ocr_pdf(
    client: AzureReadClient,
    content: bytes,
    tier: str = "unknown",
    chunk_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """OCR a PDF, splitting into 2-page chunks when the tier requires it.

    A chunk that fails is replaced by a placeholder so the remaining pages
    still come through.
    """
    page_count = count_pdf_pages(content)
    if not needs_pdf_splitting(len(content), page_count, tier):
        return client.read_text(content)
    chunks = split_pdf(content, pages_per_chunk=FREE_TIER_MAX_PAGES)
    if len(chunks) == 1:
        return client.read_text(chunks[0])

    logger.info("Processing %d chunks with Azure OCR", len(chunks))
    results = []
    failed = 0
    for i, chunk in enumerate(chunks):
        try:
            results.append(client.read_text(chunk))
        except OCRError as exc:
            failed += 1
            first_page = i * FREE_TIER_MAX_PAGES + 1
            logger.warning("OCR failed for chunk %d/%d: %s", i + 1, len(chunks), exc)
            results.append(f"[Error processing pages {first_page}-{first_page + FREE_TIER_MAX_PAGES - 1}]")
        if i < len(chunks) - 1 and chunk_delay > 0:
            sleep(chunk_delay)
    if failed == len(chunks):
        raise OCRError(f"OCR failed for all {failed} chunks")
    return CHUNK_SEPARATOR.join(results)


def build_ocr_client(settings: Settings) -> AzureReadClient | None:
    """Read API client from settings, or None when Azure is not configured."""
    if not settings.ocr_configured:
        return None
    return AzureReadClient(
        endpoint=settings.azure_computer_vision_endpoint,
        api_key=settings.azure_computer_vision_key,
        poll_attempts=settings.ocr_poll_attempts,
        poll_interval=settings.ocr_poll_interval_seconds,
        timeout=settings.ocr_request_timeout_seconds,
    )
