"""PDF download and raw text extraction."""

from __future__ import annotations

import logging
import os
import re
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path

import requests
from pypdf import PdfReader

PDF_CACHE_DIR = os.getenv("PDF_CACHE_DIR", os.path.join("cache", "pdfs"))
PDF_DOWNLOAD_TIMEOUT_SECONDS = int(os.getenv("PDF_DOWNLOAD_TIMEOUT_SECONDS", "60"))
PDF_DOWNLOAD_DEADLINE_SECONDS = float(os.getenv("PDF_DOWNLOAD_DEADLINE_SECONDS", "180"))
MAX_PDF_BYTES = int(os.getenv("MAX_PDF_BYTES", str(25 * 1024 * 1024)))
PDF_PARSE_TIMEOUT_SECONDS = float(os.getenv("PDF_PARSE_TIMEOUT_SECONDS", "60"))
MAX_PDF_PAGES = int(os.getenv("MAX_PDF_PAGES", "60"))
KEEP_DOWNLOADED_PDFS = os.getenv("KEEP_DOWNLOADED_PDFS", "0") == "1"
_CHUNK_SIZE = 64 * 1024

LOGGER = logging.getLogger(__name__)


class PdfParseError(RuntimeError):
    """A downloaded document could not be read as a PDF."""


class PdfDownloadError(RuntimeError):
    """A download broke its overall deadline or size cap."""


def download_pdf(
    url: str, source_name: str, year: int, dest_dir: str | Path | None = None
) -> Path | None:
    """Download url into the PDF cache directory and return the local path.

    Each download gets a unique filename so concurrent refreshes never write
    to the same file. The socket timeout only bounds each read, so the body
    loop also enforces PDF_DOWNLOAD_DEADLINE_SECONDS and MAX_PDF_BYTES.
    Returns None on any failure; partial files are removed.
    """
    directory = Path(dest_dir or PDF_CACHE_DIR)
    path = directory / f"{_safe_name(source_name)}_{year}_{uuid.uuid4().hex}.pdf"
    deadline = time.monotonic() + PDF_DOWNLOAD_DEADLINE_SECONDS
    received = 0

    try:
        directory.mkdir(parents=True, exist_ok=True)
        with requests.get(url, stream=True, timeout=PDF_DOWNLOAD_TIMEOUT_SECONDS) as response:
            response.raise_for_status()
            with path.open("wb") as fh:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if not chunk:
                        continue
                    received += len(chunk)
                    if received > MAX_PDF_BYTES:
                        raise PdfDownloadError(f"exceeded max_bytes={MAX_PDF_BYTES}")
                    if time.monotonic() > deadline:
                        raise PdfDownloadError(
                            f"exceeded deadline={PDF_DOWNLOAD_DEADLINE_SECONDS}s"
                        )
                    fh.write(chunk)
    except (requests.RequestException, OSError, PdfDownloadError) as exc:
        LOGGER.warning("PDF download failed for url=%s: %s", url, exc)
        path.unlink(missing_ok=True)
        return None

    LOGGER.info("Downloaded PDF url=%s to %s bytes=%s", url, path, received)
    return path


def extract_text(path: str | Path) -> str:
    """Return the text of a PDF, or an empty string if it cannot be read.

    Parsing runs on a worker thread and is abandoned after
    PDF_PARSE_TIMEOUT_SECONDS. pypdf cannot be interrupted, so an abandoned
    parse finishes in the background and its result is discarded.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdf-parse")
    try:
        future = executor.submit(_read_pdf_text, Path(path))
        return future.result(timeout=PDF_PARSE_TIMEOUT_SECONDS)
    except FuturesTimeoutError:
        LOGGER.warning(
            "PDF text extraction timed out for %s after %ss", path, PDF_PARSE_TIMEOUT_SECONDS
        )
        return ""
    except PdfParseError as exc:
        LOGGER.warning("PDF text extraction failed for %s: %s", path, exc)
        return ""
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def ingest_document(url: str, source_name: str, year: int) -> str:
    """Download one document and return its text ("" when anything fails)."""
    path = download_pdf(url, source_name, year)
    if path is None:
        return ""

    try:
        return extract_text(path)
    finally:
        if not KEEP_DOWNLOADED_PDFS:
            path.unlink(missing_ok=True)


def _read_pdf_text(path: Path) -> str:
    deadline = time.monotonic() + PDF_PARSE_TIMEOUT_SECONDS
    pages: list[str] = []
    try:
        reader = PdfReader(path)
        for index, page in enumerate(reader.pages):
            if index >= MAX_PDF_PAGES:
                LOGGER.info("Stopping at page cap for %s: max_pages=%s", path, MAX_PDF_PAGES)
                break
            # An abandoned parse stops at the next page boundary.
            if time.monotonic() > deadline:
                break
            pages.append(page.extract_text() or "")
    except Exception as exc:  # pypdf raises a wide range of errors on damaged files
        raise PdfParseError(f"Could not read PDF {path}: {exc}") from exc

    text = "\n".join(pages)
    # pypdf can produce lone surrogates on symbol-heavy pages.
    return text.encode("utf-8", "replace").decode("utf-8")


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", value).strip("-") or "source"
