"""Shared typed models for the past-paper pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

PHYSICS_PAPER = "Physical Sciences P1 (Physics)"
CHEMISTRY_PAPER = "Physical Sciences P2 (Chemistry)"

RENDER_STATIC = "static"
RENDER_DYNAMIC = "dynamic"

ALL_TOPICS_KEY = "all"


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """One external site that publishes past exam papers."""

    name: str
    base_url: str
    render_mode: str


@dataclass(frozen=True, slots=True)
class PaperLink:
    """A document link discovered on a source page."""

    year: int
    paper: str
    url: str
    source: str
    link_text: str = ""


@dataclass(frozen=True, slots=True)
class QuestionCandidate:
    question: str
    context: str


@dataclass(frozen=True, slots=True)
class QuestionRecord:
    """Normalized exam question used across extraction, caching and search."""

    year: int
    paper: str
    question: str
    topic: str
    subtopic: str
    answer: str
    source: str
    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the stable shape handed to callers outside the pipeline."""
        return {
            "year": self.year,
            "paper": self.paper,
            "question": self.question,
            "topic": self.topic,
            "subtopic": self.subtopic,
            "answer": self.answer,
            "source": self.source,
        }


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    payload: tuple[QuestionRecord, ...]
    fetched_at: datetime
