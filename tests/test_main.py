"""Tests for the CLI command dispatch (main.run)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from backup_data import BACKUP_QUESTIONS
from cache import QuestionCache
from main import parse_args, run
from models import PHYSICS_PAPER, PaperLink
from search import PastPaperSearch


def _searcher(**kwargs) -> PastPaperSearch:
    kwargs.setdefault("collector", MagicMock(return_value=[]))
    return PastPaperSearch(cache=QuestionCache(), sources=[], refresh_on_miss=False, **kwargs)


def test_search_command_returns_caller_shape() -> None:
    result = run(parse_args(["search", "acceleration"]), _searcher())

    assert result["query"] == "acceleration"
    assert result["results"] == [BACKUP_QUESTIONS[0].to_dict()]
    assert set(result["results"][0]) == {
        "year", "paper", "question", "topic", "subtopic", "answer", "source",
    }


def test_refresh_command_reports_record_count() -> None:
    searcher = _searcher(collector=MagicMock(return_value=list(BACKUP_QUESTIONS)))

    result = run(parse_args(["refresh", "--topic", "mechanics"]), searcher)

    assert result == {"topic": "mechanics", "records": 2}


def test_papers_command_lists_links() -> None:
    link = PaperLink(year=2023, paper=PHYSICS_PAPER, url="https://example.com/p1.pdf", source="DBE")
    searcher = _searcher(link_scraper=MagicMock(return_value=[link]))

    result = run(parse_args(["papers", "--topic", "physics"]), searcher)

    assert result["papers"][0]["url"] == "https://example.com/p1.pdf"
    assert result["papers"][0]["year"] == 2023


def test_ask_command_passes_search_results_to_tutor() -> None:
    with patch("main.generate_tutor_response", return_value="a = F/m") as mock_tutor:
        result = run(parse_args(["ask", "acceleration", "--topic", "mechanics"]), _searcher())

    assert result["answer"] == "a = F/m"
    mock_tutor.assert_called_once_with("acceleration", "mechanics", [BACKUP_QUESTIONS[0]])


def test_refresh_first_flag_runs_refresh_before_search() -> None:
    collector = MagicMock(return_value=[])
    run(parse_args(["search", "velocity", "--refresh-first"]), _searcher(collector=collector))
    collector.assert_called_once()
