"""
Syllabus Generator: plan a learning goal as a sequence of days.

The model returns JSON ({"days": [...]} or a bare array). Days are
normalised and dated consecutively from the start date. When the model is
unavailable, its output is unparsable, or it returns the wrong number of
days, a deterministic mock plan is used instead. There is no repair call.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import date, timedelta
from typing import Any

from loguru import logger

from config import Settings, get_settings
from src.core.ai_limits import CallType
from src.core.errors import ModelContractViolation, ValidationFailure
from src.core.sanitize import sanitize_input
from src.curriculum.models import (
    DayStatus,
    EvaluationVerdict,
    RecommendedAction,
    Syllabus,
    SyllabusDay,
)
from src.llm.completion_client import CompletionClient, parse_json_payload, with_mock_fallback
from src.mentor.prefilter import is_allowed_learning_domain

UNSAFE_DOMAIN_MESSAGE = "This learning topic is not supported."

GENERATOR_SYSTEM_PROMPT = (
    "You are a learning curriculum generator. Return only valid JSON. No explanations."
)

GENERATOR_PROMPT = """You are a system that generates structured learning syllabi.

STRICT RULES:
- Respond with VALID JSON ONLY
- Do NOT include explanations, comments, or markdown
- Keep all text concise
- Each topic title must be <= 6 words
- Each subtask must be <= 8 words
- expertPrompt must be <= 20 words

OUTPUT FORMAT (JSON ONLY):

{{
  "days": [
    {{
      "dayNumber": 1,
      "topic": "Topic title",
      "subtasks": ["task one", "task two"],
      "expertPrompt": "You are an expert in this topic"
    }}
  ]
}}

INPUT:
Goal: {goal}
Days: {total_days}
Hours per day: {hours_per_day}
{adaptation}
Generate exactly {total_days} days."""

ADAPTATION_PROMPT = """
ADAPTATION:
The learner's last reflection was rated "{level}" with recommended action "{action}".
{instruction}
Gaps to cover first: {gaps}
"""

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_syllabus_id() -> str:
    """syl_<milliseconds>_<7 random chars>"""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"syl_{int(time.time() * 1000)}_{suffix}"


def mock_days(
    goal: str,
    total_days: int,
    start_date: date,
    first_day_number: int = 1,
) -> list[SyllabusDay]:
    """Deterministic plan used whenever the model cannot produce one."""
    days = []
    for offset in range(total_days):
        n = first_day_number + offset
        days.append(SyllabusDay(
            day_number=n,
            date=start_date + timedelta(days=offset),
            topic=f"{goal} - Day {n} Fundamentals",
            subtasks=[
                f"Introduction to Day {n} concepts",
                f"Practice exercises for Day {n}",
                f"Review Day {n} materials",
            ],
            status=DayStatus.ACTIVE if offset == 0 else DayStatus.PENDING,
            expert_prompt=(
                f"You are an expert in {goal}. Focus specifically on Day {n} topics. "
                f"Only answer questions related to Day {n} content."
            ),
        ))
    return days


def _adaptation_text(adaptation: EvaluationVerdict | None) -> str:
    if adaptation is None:
        return ""
    if adaptation.recommended_action == RecommendedAction.REPEAT:
        instruction = "Revisit the previous material before moving on; repeat coverage where needed."
    else:
        instruction = "Use simpler explanations and smaller steps for the upcoming days."
    gaps = ", ".join(adaptation.gaps_detected) if adaptation.gaps_detected else "none identified"
    return ADAPTATION_PROMPT.format(
        level=adaptation.understanding_level.value,
        action=adaptation.recommended_action.value,
        instruction=instruction,
        gaps=gaps,
    )


class SyllabusGenerator:
    """
    Generates syllabus days with the model, falling back to a mock plan.

    Example:
        >>> generator = SyllabusGenerator(generation_client)
        >>> syllabus = await generator.create_syllabus("Learn Python", 2, 5)
        >>> syllabus.days[0].status
        <DayStatus.ACTIVE: 'active'>
    """

    def __init__(self, client: CompletionClient, settings: Settings | None = None):
        settings = settings or get_settings()
        self.client = client
        self.max_total_days = settings.max_total_days
        self.max_input_chars = settings.max_input_chars

    async def generate(
        self,
        goal: str,
        hours_per_day: float,
        total_days: int,
        start_date: date,
        adaptation: EvaluationVerdict | None = None,
        first_day_number: int = 1,
    ) -> list[SyllabusDay]:
        """Days numbered from first_day_number, dated from start_date, first one active."""
        return await with_mock_fallback(
            lambda: self._generate_with_model(
                goal, hours_per_day, total_days, start_date, adaptation, first_day_number
            ),
            lambda: mock_days(goal, total_days, start_date, first_day_number),
            label="Syllabus generation",
        )

    async def _generate_with_model(
        self,
        goal: str,
        hours_per_day: float,
        total_days: int,
        start_date: date,
        adaptation: EvaluationVerdict | None,
        first_day_number: int,
    ) -> list[SyllabusDay]:
        prompt = GENERATOR_PROMPT.format(
            goal=goal,
            total_days=total_days,
            hours_per_day=hours_per_day,
            adaptation=_adaptation_text(adaptation),
        )
        text = await self.client.complete(CallType.SYLLABUS, GENERATOR_SYSTEM_PROMPT, prompt)
        parsed = parse_json_payload(text)

        raw_days: Any = parsed.get("days") if isinstance(parsed, dict) else parsed
        if not isinstance(raw_days, list):
            raise ModelContractViolation("Syllabus output has no days array", raw=text)
        if len(raw_days) != total_days:
            raise ModelContractViolation(
                f"Syllabus output has {len(raw_days)} days, expected {total_days}", raw=text
            )

        days = []
        for offset, raw in enumerate(raw_days):
            raw = raw if isinstance(raw, dict) else {}
            n = first_day_number + offset
            topic = raw.get("topic")
            subtasks = raw.get("subtasks")
            expert_prompt = raw.get("expertPrompt") or raw.get("expert_prompt")
            days.append(SyllabusDay(
                day_number=n,
                date=start_date + timedelta(days=offset),
                topic=topic.strip() if isinstance(topic, str) and topic.strip() else f"{goal} - Day {n}",
                subtasks=[
                    s.strip() for s in subtasks if isinstance(s, str) and s.strip()
                ] if isinstance(subtasks, list) else [],
                status=DayStatus.ACTIVE if offset == 0 else DayStatus.PENDING,
                expert_prompt=(
                    expert_prompt if isinstance(expert_prompt, str) and expert_prompt
                    else f"You are an expert in {goal}. Focus on Day {n} topics."
                ),
            ))

        logger.info(f"Generated {len(days)} syllabus days for '{goal[:100]}'")
        return days

    async def create_syllabus(
        self,
        goal: str,
        hours_per_day: float,
        total_days: int,
        start_date: date | None = None,
    ) -> Syllabus:
        """
        Validate the request, apply the domain gate, and build a new syllabus.

        Raises:
            ValidationFailure: invalid goal, pacing or length (code invalid_request),
                or a blocked learning domain (code unsafe_domain).
        """
        goal = sanitize_input(goal, self.max_input_chars)
        if not goal:
            raise ValidationFailure("Goal is required and must be a non-empty string")
        if hours_per_day <= 0:
            raise ValidationFailure("hours_per_day must be a positive number")
        if not 1 <= total_days <= self.max_total_days:
            raise ValidationFailure(
                f"total_days must be between 1 and {self.max_total_days}"
            )

        if not is_allowed_learning_domain(goal):
            logger.warning(f"Syllabus generation blocked (unsafe domain): {goal[:100]!r}")
            raise ValidationFailure(UNSAFE_DOMAIN_MESSAGE, code="unsafe_domain")

        start_date = start_date or date.today()
        days = await self.generate(goal, hours_per_day, total_days, start_date)
        syllabus = Syllabus(
            id=generate_syllabus_id(),
            goal=goal,
            hours_per_day=hours_per_day,
            total_days=total_days,
            start_date=start_date,
            days=days,
        )
        logger.info(f"Created syllabus {syllabus.id} ({total_days} days)")
        return syllabus
