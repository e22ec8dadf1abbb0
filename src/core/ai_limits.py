"""
AI call budgets.

Every completion call declares a call type; its token ceiling and temperature
come from here so cost limits live in one place.
"""

from __future__ import annotations

from enum import Enum

from src.core.errors import ValidationFailure


class CallType(str, Enum):
    """Kinds of completion calls the service makes."""
    SYLLABUS = "syllabus"
    CHAT = "chat"
    SUGGESTIONS = "suggestions"
    EVALUATION = "evaluation"
    CONCEPTS = "concepts"


AI_LIMITS: dict[CallType, int] = {
    CallType.SYLLABUS: 450,     # JSON-only syllabus
    CallType.CHAT: 300,
    CallType.SUGGESTIONS: 250,
    CallType.EVALUATION: 300,
    CallType.CONCEPTS: 150,
}

AI_TEMPERATURES: dict[CallType, float] = {
    CallType.SYLLABUS: 0.2,
    CallType.CHAT: 0.3,
    CallType.SUGGESTIONS: 0.3,
    CallType.EVALUATION: 0.2,   # conservative grading
    CallType.CONCEPTS: 0.1,
}


def validate_token_limit(call_type: CallType, max_tokens: int) -> None:
    """Reject a request whose token budget exceeds the call type's ceiling."""
    limit = AI_LIMITS.get(call_type)
    if limit is None:
        raise ValidationFailure(f"Unknown call type: {call_type}")
    if max_tokens > limit:
        raise ValidationFailure(
            f"max_tokens ({max_tokens}) exceeds limit for {call_type.value} ({limit})"
        )
