"""OpenAI tutor that answers a student question using past-paper context."""

from __future__ import annotations

import json
import logging
import os
from typing import Iterable

from openai import OpenAI

from models import QuestionRecord

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4-turbo")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "1000"))
MAX_ATTEMPTS = 2

LOGGER = logging.getLogger(__name__)

_BASE_SYSTEM_PROMPT = """You are a helpful AI tutor specializing in South African Grade 12 Physical Science.
Your goal is to help students understand concepts and solve problems according to the CAPS curriculum.
Always provide step-by-step explanations with relevant formulas and diagrams when appropriate.
Use South African curriculum-specific terminology and examples."""


def build_system_prompt(topic: str = "", past_papers: Iterable[QuestionRecord] = ()) -> str:
    """Compose the tutor system prompt with optional topic and past-paper context."""
    parts = [_BASE_SYSTEM_PROMPT]
    if topic:
        parts.append(f"This question relates to the topic: {topic}.")

    papers = [record.to_dict() for record in past_papers]
    if papers:
        parts.append(
            "Reference relevant questions from past papers: "
            + json.dumps(papers, ensure_ascii=False)
        )
    return "\n\n".join(parts)


def generate_tutor_response(
    question: str, topic: str = "", past_papers: Iterable[QuestionRecord] = ()
) -> str:
    """Ask OpenAI for a step-by-step tutor answer to question.

    Raises RuntimeError if OPENAI_API_KEY is missing or every attempt fails.
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is required")

    system_prompt = build_system_prompt(topic, past_papers)
    client = OpenAI(api_key=api_key)
    LOGGER.info("Generating tutor response with model=%s topic=%r", OPENAI_MODEL, topic)
    last_error: Exception | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            response = client.chat.completions.create(
                model=OPENAI_MODEL,
                temperature=OPENAI_TEMPERATURE,
                max_tokens=OPENAI_MAX_TOKENS,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": question},
                ],
            )
            if not response.choices:
                raise RuntimeError("OpenAI returned no choices")
            content = response.choices[0].message.content
            if not content:
                raise RuntimeError("OpenAI returned an empty response")
            return content
        except Exception as exc:
            last_error = exc
            LOGGER.warning(
                "Tutor response failed on attempt %s/%s: %s", attempt, MAX_ATTEMPTS, exc
            )

    raise RuntimeError(f"Tutor response failed: {last_error}")
