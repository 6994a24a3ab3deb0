"""Keyword heuristics for topic, paper type and answer extraction (no LLM)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from models import CHEMISTRY_PAPER, PHYSICS_PAPER, QuestionCandidate, QuestionRecord

UNRESOLVED_ANSWER = "Answer needs to be extracted from the provided PDF"

TOPIC_OTHER = "other"
SUBTOPIC_GENERAL = "general"


@dataclass(frozen=True, slots=True)
class TopicRule:
    topic: str
    keywords: tuple[str, ...]
    subtopic: str
    # (keyword, subtopic) pairs checked before falling back to `subtopic`.
    subtopic_overrides: tuple[tuple[str, str], ...] = ()


# Evaluated in order; the first rule with any keyword hit wins. A question that
# mentions both "force" and "acid" is therefore mechanics.
TOPIC_RULES: tuple[TopicRule, ...] = (
    TopicRule(
        topic="mechanics",
        keywords=("force", "newton", "acceleration", "velocity", "momentum"),
        subtopic="kinematics",
        subtopic_overrides=(("newton", "newton's laws"),),
    ),
    TopicRule(
        topic="electricity & magnetism",
        keywords=("circuit", "current", "voltage", "resistance", "ohm"),
        subtopic="electric circuits",
    ),
    TopicRule(
        topic="chemical change",
        keywords=("acid", "base", "ph", "equilibrium"),
        subtopic="acids and bases",
    ),
    TopicRule(
        topic="organic chemistry",
        keywords=("alcohol", "alkane", "functional group", "organic"),
        subtopic="functional groups",
    ),
)

_PHYSICS_KEYWORDS: tuple[str, ...] = (
    "force",
    "motion",
    "velocity",
    "current",
    "voltage",
    "circuit",
    "wave",
    "doppler",
    "momentum",
    "newton",
)

_CHEMISTRY_KEYWORDS: tuple[str, ...] = (
    "reaction",
    "acid",
    "base",
    "equilibrium",
    "organic",
    "molecule",
    "compound",
    "bond",
    "oxidation",
    "reduction",
)

# Tried in order; the first marker found anywhere in the text wins.
_ANSWER_MARKERS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Answer:\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"Solution:\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"A\.\s*([^\n]+)"),
)
_EQUATION_PATTERN = re.compile(r"[A-Za-z]\s*=\s*[\d.]+\s*[A-Za-z/²³]*")


def classify_topic(text: str) -> tuple[str, str]:
    """Return (topic, subtopic) for text using the ordered TOPIC_RULES table."""
    lowered = (text or "").lower()
    for rule in TOPIC_RULES:
        if any(keyword in lowered for keyword in rule.keywords):
            for keyword, subtopic in rule.subtopic_overrides:
                if keyword in lowered:
                    return rule.topic, subtopic
            return rule.topic, rule.subtopic
    return TOPIC_OTHER, SUBTOPIC_GENERAL


def classify_paper(text: str) -> str:
    """Return the paper label for a question.

    Counts distinct physics and chemistry keywords. Ties go to Physics.
    """
    lowered = (text or "").lower()
    physics_score = sum(1 for keyword in _PHYSICS_KEYWORDS if keyword in lowered)
    chemistry_score = sum(1 for keyword in _CHEMISTRY_KEYWORDS if keyword in lowered)
    return PHYSICS_PAPER if physics_score >= chemistry_score else CHEMISTRY_PAPER


def extract_answer(text: str) -> str:
    """Pull a likely answer out of the text that follows a question.

    Explicit markers ("Answer:", "Solution:", "A.") win over a bare equation
    such as "a = 5 m/s"; with neither, UNRESOLVED_ANSWER is returned.
    """
    text = text or ""
    for pattern in _ANSWER_MARKERS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    equation = _EQUATION_PATTERN.search(text)
    if equation:
        return equation.group(0).strip()

    return UNRESOLVED_ANSWER


def classify_candidate(
    candidate: QuestionCandidate, year: int, url: str, source: str
) -> QuestionRecord:
    """Build a QuestionRecord from a segmented candidate."""
    topic, subtopic = classify_topic(f"{candidate.question} {candidate.context}")
    return QuestionRecord(
        year=year,
        paper=classify_paper(candidate.question),
        question=candidate.question.strip(),
        topic=topic,
        subtopic=subtopic,
        answer=extract_answer(candidate.context),
        source=source,
        url=url,
    )
