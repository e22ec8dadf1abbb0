"""Suggested follow-up questions, scoped to today's topic and the mentor's last answer."""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from src.core.ai_limits import CallType
from src.core.errors import InfrastructureFailure, ModelContractViolation
from src.llm.completion_client import CompletionClient, parse_json_payload

MAX_SUGGESTIONS = 3

SUGGESTION_SYSTEM_PROMPT = (
    "You are a learning assistant that generates focused follow-up questions. "
    "Return only a JSON array of exactly 3 question strings. "
    "No explanations, no markdown, no other text."
)

SUGGESTION_INSTRUCTION = (
    "Using ONLY the context provided above, generate exactly 3 short, clear follow-up "
    "questions that a learner could naturally ask next. Do NOT introduce new concepts "
    "or future topics. Do NOT include explanations. Return ONLY the questions as a "
    "JSON array of strings."
)


def mock_suggestions(topic: str) -> list[str]:
    return [
        f"Can you explain more about {topic}?",
        f"What are the key concepts related to {topic}?",
        "How does this relate to what we're learning today?",
    ]


class SuggestionService:
    """Generates up to three follow-up questions from the last mentor answer."""

    def __init__(self, client: CompletionClient):
        self.client = client

    async def suggest(
        self,
        topic: str,
        subtasks: Sequence[str],
        last_answer: str | None,
    ) -> list[str]:
        if not last_answer or not last_answer.strip():
            return []

        lines = [f"Today's topic: {topic}"]
        if subtasks:
            lines.append(f"Subtasks: {', '.join(subtasks)}")
        lines.append(f"Mentor's last answer: {last_answer}")
        user_prompt = "\n".join(lines) + "\n\n" + SUGGESTION_INSTRUCTION

        try:
            text = await self.client.complete(
                CallType.SUGGESTIONS, SUGGESTION_SYSTEM_PROMPT, user_prompt
            )
            parsed = parse_json_payload(text)
        except InfrastructureFailure as e:
            logger.warning(f"Suggested questions unavailable ({e}) - using mock questions")
            return mock_suggestions(topic)
        except ModelContractViolation as e:
            logger.warning(f"Suggested questions output unusable: {e}")
            return []

        if not isinstance(parsed, list):
            logger.warning("Suggested questions output is not a JSON array")
            return []

        return [
            q.strip() for q in parsed if isinstance(q, str) and q.strip()
        ][:MAX_SUGGESTIONS]
