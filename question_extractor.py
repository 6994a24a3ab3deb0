"""Best-effort segmentation of exam-paper text into question candidates."""

from __future__ import annotations

import re

from models import QuestionCandidate

DEFAULT_CONTEXT_CHARS = 500

# "3.2 Calculate the ...?" - a numeric label with optional sub-number, a
# capitalized clause, and a closing question mark on the same line.
QUESTION_PATTERN = re.compile(r"\d+\.(?:\d+)? [A-Z][^\n]+\?")


def extract_candidates(
    text: str, context_chars: int = DEFAULT_CONTEXT_CHARS
) -> list[QuestionCandidate]:
    """Return every question-like match with the text window that follows it.

    The window is where an answer or memo line is most likely to appear.
    False positives and misses are expected.
    """
    if not text:
        return []

    candidates: list[QuestionCandidate] = []
    for match in QUESTION_PATTERN.finditer(text):
        question = match.group(0).strip()
        if not question:
            continue
        context = text[match.end(): match.end() + context_chars]
        candidates.append(QuestionCandidate(question=question, context=context))
    return candidates
