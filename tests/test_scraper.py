"""Tests for link discovery from static and rendered source pages."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
import requests
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

import scraper
from models import CHEMISTRY_PAPER, PHYSICS_PAPER, RENDER_DYNAMIC, RENDER_STATIC, SourceDescriptor
from scraper import (
    SourceFetchError,
    parse_pdf_links,
    parse_year,
    provisional_paper,
    scrape_source,
    scrape_sources,
)

_STATIC = SourceDescriptor(
    name="StaticSite",
    base_url="https://static.example.com/grade-12/",
    render_mode=RENDER_STATIC,
)
_OTHER_STATIC = SourceDescriptor(
    name="BrokenSite",
    base_url="https://broken.example.com/papers/",
    render_mode=RENDER_STATIC,
)
_DYNAMIC = SourceDescriptor(
    name="DynamicSite",
    base_url="https://dynamic.example.com/physics",
    render_mode=RENDER_DYNAMIC,
)

_HTML = """
<html><body>
  <a href="/files/nov-2023-p1.pdf">Physical Sciences P1 November 2023</a>
  <a href="https://cdn.example.com/2022/chem.PDF">Physical Sciences P2 2022</a>
  <a href="memos/physics-2021.pdf">Physics memo 2021</a>
  <a href="/notes.html">Study notes 2021</a>
  <a href="/files/memo.pdf">Memorandum</a>
  <a href="/files/ancient.pdf">Exam 1999</a>
  <a>Anchor without href 2020</a>
</body></html>
"""


def _mock_response(text: str, chunk_size: int = 64) -> MagicMock:
    """Mock streamed requests.Response usable as a context manager."""
    body = text.encode("utf-8")
    mock = MagicMock()
    mock.__enter__.return_value = mock
    mock.__exit__.return_value = False
    mock.encoding = "utf-8"
    mock.iter_content.return_value = [
        body[i:i + chunk_size] for i in range(0, len(body), chunk_size)
    ]
    return mock


# ---------------------------------------------------------------------------
# Link parsing
# ---------------------------------------------------------------------------

def test_parse_pdf_links_keeps_only_dated_documents() -> None:
    links = parse_pdf_links(_HTML, _STATIC)

    assert [link.year for link in links] == [2023, 2022, 2021]
    assert all(link.source == "StaticSite" for link in links)


def test_parse_pdf_links_resolves_relative_urls() -> None:
    links = parse_pdf_links(_HTML, _STATIC)

    assert links[0].url == "https://static.example.com/files/nov-2023-p1.pdf"
    assert links[1].url == "https://cdn.example.com/2022/chem.PDF"
    assert links[2].url == "https://static.example.com/grade-12/memos/physics-2021.pdf"


def test_parse_pdf_links_assigns_provisional_paper() -> None:
    links = parse_pdf_links(_HTML, _STATIC)

    assert links[0].paper == PHYSICS_PAPER
    assert links[1].paper == CHEMISTRY_PAPER
    assert links[2].paper == PHYSICS_PAPER


@pytest.mark.parametrize("text, expected", [
    ("November 2023 P1", 2023),
    ("2019 and 2020 papers", 2019),
    ("Paper 1999", None),
    ("No year here", None),
    ("", None),
])
def test_parse_year(text: str, expected: int | None) -> None:
    assert parse_year(text) == expected


def test_parse_year_rejects_future_years() -> None:
    too_far = datetime.now(UTC).year + 2
    assert parse_year(f"Paper {too_far}") is None


@pytest.mark.parametrize("text, expected", [
    ("Gr12 P1 2023", PHYSICS_PAPER),
    ("PHYSICS November", PHYSICS_PAPER),
    ("Physical Sciences P2", CHEMISTRY_PAPER),
    ("Chemistry memo", CHEMISTRY_PAPER),
])
def test_provisional_paper(text: str, expected: str) -> None:
    assert provisional_paper(text) == expected


# ---------------------------------------------------------------------------
# Static fetch
# ---------------------------------------------------------------------------

def test_scrape_source_static_fetches_and_parses() -> None:
    with patch("scraper.requests.get", return_value=_mock_response(_HTML)) as mock_get:
        links = scrape_source(_STATIC)

    assert len(links) == 3
    assert mock_get.call_args.args[0] == _STATIC.base_url
    assert "timeout" in mock_get.call_args.kwargs
    assert mock_get.call_args.kwargs["stream"] is True


def test_scrape_source_static_network_error_raises_source_fetch_error() -> None:
    with patch("scraper.requests.get", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(SourceFetchError, match="StaticSite"):
            scrape_source(_STATIC)


def test_scrape_source_static_oversized_page_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(scraper, "MAX_PAGE_BYTES", 100)

    with patch("scraper.requests.get", return_value=_mock_response(_HTML)):
        with pytest.raises(SourceFetchError, match="too large"):
            scrape_source(_STATIC)


def test_scrape_source_static_trickling_page_hits_deadline(monkeypatch: pytest.MonkeyPatch) -> None:
    """A server that keeps sending small chunks is cut off by the overall deadline."""
    monkeypatch.setattr(scraper, "SCRAPE_DEADLINE_SECONDS", 0.05)

    def trickle():
        while True:
            time.sleep(0.02)
            yield b"<a href='/x.pdf'>2023</a>"

    response = _mock_response("")
    response.iter_content.return_value = trickle()

    started = time.monotonic()
    with patch("scraper.requests.get", return_value=response):
        with pytest.raises(SourceFetchError, match="deadline"):
            scrape_source(_STATIC)

    assert time.monotonic() - started < 2


def test_scrape_source_unknown_render_mode() -> None:
    source = SourceDescriptor(name="Odd", base_url="https://odd.example.com", render_mode="ftp")
    with pytest.raises(SourceFetchError, match="render_mode"):
        scrape_source(source)


# ---------------------------------------------------------------------------
# Dynamic fetch
# ---------------------------------------------------------------------------

def _mock_playwright(page: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Return (sync_playwright factory mock, browser mock) wired to page."""
    browser = MagicMock()
    browser.new_page.return_value = page
    playwright = MagicMock()
    playwright.chromium.launch.return_value = browser
    factory = MagicMock()
    factory.return_value.__enter__.return_value = playwright
    factory.return_value.__exit__.return_value = False
    return factory, browser


def test_scrape_source_dynamic_reads_rendered_anchors() -> None:
    page = MagicMock()
    page.eval_on_selector_all.return_value = [
        {"href": "https://dynamic.example.com/files/p1-2024.pdf", "text": " Physics P1 2024 "},
        {"href": "https://dynamic.example.com/about", "text": "About 2024"},
    ]
    factory, browser = _mock_playwright(page)

    with patch("scraper.sync_playwright", factory):
        links = scrape_source(_DYNAMIC)

    assert len(links) == 1
    assert links[0].year == 2024
    assert links[0].paper == PHYSICS_PAPER
    assert page.goto.call_args.kwargs["wait_until"] == "networkidle"
    page.close.assert_called_once()
    browser.close.assert_called_once()


def test_scrape_source_dynamic_timeout_still_closes_browser() -> None:
    page = MagicMock()
    page.goto.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
    factory, browser = _mock_playwright(page)

    with patch("scraper.sync_playwright", factory):
        with pytest.raises(SourceFetchError, match="DynamicSite"):
            scrape_source(_DYNAMIC)

    page.close.assert_called_once()
    browser.close.assert_called_once()


def test_scrape_source_dynamic_unexpected_error_is_wrapped_and_closes_browser() -> None:
    page = MagicMock()
    page.eval_on_selector_all.side_effect = ValueError("bad DOM")
    factory, browser = _mock_playwright(page)

    with patch("scraper.sync_playwright", factory):
        with pytest.raises(SourceFetchError, match="DynamicSite") as excinfo:
            scrape_source(_DYNAMIC)

    assert isinstance(excinfo.value.__cause__, ValueError)
    page.close.assert_called_once()
    browser.close.assert_called_once()


# ---------------------------------------------------------------------------
# Multi-source scrape
# ---------------------------------------------------------------------------

def test_scrape_sources_isolates_failing_source() -> None:
    """One source raising does not stop the other source's links."""

    def fake_get(url: str, **kwargs) -> MagicMock:
        if url == _OTHER_STATIC.base_url:
            raise requests.Timeout("timed out")
        return _mock_response(_HTML)

    with patch("scraper.requests.get", side_effect=fake_get):
        links = scrape_sources([_OTHER_STATIC, _STATIC], max_workers=2)

    assert len(links) == 3
    assert {link.source for link in links} == {"StaticSite"}


def test_scrape_sources_empty() -> None:
    assert scrape_sources([]) == []
