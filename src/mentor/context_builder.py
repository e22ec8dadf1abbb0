"""
Context Builder: render a DKB into the context block the model answers from.

The block is bounded by the DKB's concept cap. Overflow past the soft token
budget is logged but never truncated, since the model is told to answer only
from this context.
"""

from __future__ import annotations

import math

from loguru import logger

from src.mentor.dkb import DayKnowledgeBase

CONTEXT_HEADER = "CONTEXT:"

# One token is roughly 0.75 words.
WORDS_PER_TOKEN = 0.75


def count_words(text: str | None) -> int:
    return len(text.split()) if text else 0


def estimate_tokens(text: str | None) -> int:
    """Rough token estimate: ceil(words / 0.75)."""
    return math.ceil(count_words(text) / WORDS_PER_TOKEN)


def build_context(
    dkb: DayKnowledgeBase | None,
    soft_budget_tokens: int = 500,
) -> str | None:
    """
    Render topic, subtasks and concepts under a fixed header.

    Returns:
        The context block, or None when the DKB has no usable topic.
    """
    if dkb is None or not dkb.topic or not dkb.topic.strip():
        return None

    lines = [CONTEXT_HEADER, f"Today's Topic: {dkb.topic.strip()}"]

    subtasks = [s.strip() for s in dkb.subtasks if s and s.strip()]
    if subtasks:
        lines.append("Subtasks:")
        lines.extend(f"- {subtask}" for subtask in subtasks)

    if dkb.concepts:
        lines.append("Concepts learned today:")
        lines.extend(f"- {concept}" for concept in dkb.concepts)

    context = "\n".join(lines)

    tokens = estimate_tokens(context)
    if tokens > soft_budget_tokens:
        logger.warning(
            f"Context for '{dkb.topic}' is ~{tokens} tokens "
            f"(soft budget {soft_budget_tokens}); sending untruncated"
        )

    return context
