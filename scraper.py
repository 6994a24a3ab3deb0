"""Past-paper link discovery for static and script-rendered source pages."""

from __future__ import annotations

import logging
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Callable, Iterable, TypeVar
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from models import (
    CHEMISTRY_PAPER,
    PHYSICS_PAPER,
    RENDER_DYNAMIC,
    RENDER_STATIC,
    PaperLink,
    SourceDescriptor,
)

SCRAPE_TIMEOUT_SECONDS = int(os.getenv("SCRAPE_TIMEOUT_SECONDS", "20"))
RENDER_TIMEOUT_MS = int(os.getenv("RENDER_TIMEOUT_MS", "30000"))
SCRAPE_MAX_WORKERS = int(os.getenv("SCRAPE_MAX_WORKERS", "4"))
SCRAPE_DEADLINE_SECONDS = float(os.getenv("SCRAPE_DEADLINE_SECONDS", "60"))
MAX_PAGE_BYTES = int(os.getenv("MAX_PAGE_BYTES", str(5 * 1024 * 1024)))
MIN_PAPER_YEAR = 2000

_REQUEST_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; past-paper-scout/1.0)"}
_YEAR_RE = re.compile(r"(20\d{2})")
_DOCUMENT_EXTENSIONS = (".pdf",)
_CHUNK_SIZE = 64 * 1024

# Runs inside the rendered page; mirrors what BeautifulSoup collects for static pages.
_ANCHOR_SCRIPT = (
    "els => els.map(el => ({href: el.href, text: (el.textContent || '').trim()}))"
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class SourceFetchError(RuntimeError):
    """A source page could not be fetched, rendered or parsed."""


def scrape_sources(
    sources: Iterable[SourceDescriptor], max_workers: int | None = None
) -> list[PaperLink]:
    """Scrape every source concurrently and return the union of their links."""
    return run_per_source(sources, scrape_source, max_workers=max_workers)


def run_per_source(
    sources: Iterable[SourceDescriptor],
    task: Callable[[SourceDescriptor], list[T]],
    max_workers: int | None = None,
) -> list[T]:
    """Run task once per source in a thread pool and concatenate the results.

    A source whose task raises is logged and skipped without cancelling the
    others. Results keep registry order.
    """
    sources = list(sources)
    if not sources:
        return []

    workers = max(1, min(max_workers or SCRAPE_MAX_WORKERS, len(sources)))
    results: list[T] = []
    failed = 0

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [(source, executor.submit(task, source)) for source in sources]
        for source, future in futures:
            try:
                items = future.result()
            except Exception as exc:  # one bad source must not sink the others
                failed += 1
                LOGGER.warning("Source failed: source=%s, skipping: %s", source.name, exc)
                continue
            LOGGER.info("Source done: source=%s items=%s", source.name, len(items))
            results.extend(items)

    LOGGER.info(
        "Per-source run complete: sources=%s failed=%s items=%s",
        len(sources),
        failed,
        len(results),
    )
    return results


def scrape_source(source: SourceDescriptor) -> list[PaperLink]:
    """Fetch one source with the strategy its render mode calls for."""
    if source.render_mode == RENDER_STATIC:
        anchors = _fetch_static_anchors(source)
    elif source.render_mode == RENDER_DYNAMIC:
        anchors = _fetch_dynamic_anchors(source)
    else:
        raise SourceFetchError(
            f"Unknown render_mode={source.render_mode!r} for source={source.name}"
        )
    return links_from_anchors(anchors, source)


def parse_pdf_links(html: str, source: SourceDescriptor) -> list[PaperLink]:
    """Parse static HTML and return the past-paper links it contains."""
    return links_from_anchors(_anchors_from_html(html), source)


def links_from_anchors(
    anchors: Iterable[tuple[str, str]], source: SourceDescriptor
) -> list[PaperLink]:
    """Turn (href, link text) pairs into PaperLinks.

    Only document links are kept, and only when the link text carries a
    plausible exam year.
    """
    links: list[PaperLink] = []
    for href, text in anchors:
        if not href or not _is_document_url(href):
            continue

        year = parse_year(text)
        if year is None:
            continue

        links.append(
            PaperLink(
                year=year,
                paper=provisional_paper(text),
                url=urljoin(source.base_url, href),
                source=source.name,
                link_text=text,
            )
        )
    return links


def parse_year(text: str) -> int | None:
    """Return the first 20xx token in text if it is a plausible exam year."""
    match = _YEAR_RE.search(text or "")
    if not match:
        return None

    year = int(match.group(1))
    if year < MIN_PAPER_YEAR or year > datetime.now(UTC).year + 1:
        return None
    return year


def provisional_paper(link_text: str) -> str:
    lowered = (link_text or "").lower()
    if "p1" in lowered or "physics" in lowered:
        return PHYSICS_PAPER
    return CHEMISTRY_PAPER


def _is_document_url(href: str) -> bool:
    path = urlparse(href).path.lower()
    return path.endswith(_DOCUMENT_EXTENSIONS)


def _anchors_from_html(html: str) -> list[tuple[str, str]]:
    soup = BeautifulSoup(html, "html.parser")
    return [
        (anchor.get("href", "").strip(), anchor.get_text(" ", strip=True))
        for anchor in soup.find_all("a", href=True)
    ]


def _fetch_static_anchors(source: SourceDescriptor) -> list[tuple[str, str]]:
    try:
        with requests.get(
            source.base_url,
            headers=_REQUEST_HEADERS,
            stream=True,
            timeout=SCRAPE_TIMEOUT_SECONDS,
        ) as response:
            response.raise_for_status()
            html = _read_body(response, source)
    except requests.RequestException as exc:
        raise SourceFetchError(f"Fetch failed for source={source.name}: {exc}") from exc

    try:
        return _anchors_from_html(html)
    except Exception as exc:
        raise SourceFetchError(f"HTML parse failed for source={source.name}: {exc}") from exc


def _read_body(response: requests.Response, source: SourceDescriptor) -> str:
    """Read a streamed page body within SCRAPE_DEADLINE_SECONDS and MAX_PAGE_BYTES."""
    deadline = time.monotonic() + SCRAPE_DEADLINE_SECONDS
    body = bytearray()
    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
        body.extend(chunk or b"")
        if len(body) > MAX_PAGE_BYTES:
            raise SourceFetchError(
                f"Page too large for source={source.name}: max_bytes={MAX_PAGE_BYTES}"
            )
        if time.monotonic() > deadline:
            raise SourceFetchError(
                f"Fetch deadline exceeded for source={source.name}: "
                f"deadline={SCRAPE_DEADLINE_SECONDS}s"
            )
    return bytes(body).decode(response.encoding or "utf-8", errors="replace")


def _fetch_dynamic_anchors(source: SourceDescriptor) -> list[tuple[str, str]]:
    """Render the page headlessly and read anchors from the live DOM.

    The browser and page live only for this call: both are closed on every
    exit path, including navigation timeouts and evaluation errors.
    """
    try:
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(
                headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"]
            )
            try:
                page = browser.new_page()
                try:
                    page.set_default_timeout(RENDER_TIMEOUT_MS)
                    page.goto(
                        source.base_url, wait_until="networkidle", timeout=RENDER_TIMEOUT_MS
                    )
                    raw_anchors = page.eval_on_selector_all("a[href]", _ANCHOR_SCRIPT)
                finally:
                    page.close()
            finally:
                browser.close()
    except PlaywrightError as exc:
        raise SourceFetchError(f"Render failed for source={source.name}: {exc}") from exc
    except Exception as exc:
        raise SourceFetchError(
            f"Render or DOM read failed for source={source.name}: {exc}"
        ) from exc

    LOGGER.debug("Rendered source=%s anchors=%s", source.name, len(raw_anchors or []))
    return [
        (str(item.get("href") or ""), str(item.get("text") or "").strip())
        for item in raw_anchors or []
        if isinstance(item, dict)
    ]
