"""Data models for the day-by-day curriculum."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from loguru import logger

from src.core.errors import ModelContractViolation, ValidationFailure


class DayStatus(str, Enum):
    """Lifecycle of a syllabus day."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    LEAVE = "leave"


class UnderstandingLevel(str, Enum):
    LOW = "low"
    BASIC = "basic"
    GOOD = "good"
    STRONG = "strong"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecommendedAction(str, Enum):
    REPEAT = "repeat"       # learner struggled
    CONTINUE = "continue"   # on track
    SIMPLIFY = "simplify"   # confused, needs an easier next step
    ADVANCE = "advance"     # strong understanding


REGENERATING_ACTIONS = frozenset({RecommendedAction.REPEAT, RecommendedAction.SIMPLIFY})


@dataclass
class EvaluationVerdict:
    """Coarse judgement of a learner's end-of-day reflection."""

    understanding_level: UnderstandingLevel = UnderstandingLevel.BASIC
    confidence: Confidence = Confidence.MEDIUM
    gaps_detected: list[str] = field(default_factory=list)
    recommended_action: RecommendedAction = RecommendedAction.CONTINUE

    @classmethod
    def default(cls) -> EvaluationVerdict:
        return cls()

    @property
    def requires_regeneration(self) -> bool:
        return self.recommended_action in REGENERATING_ACTIONS

    @classmethod
    def from_model_payload(cls, payload: Any) -> EvaluationVerdict:
        """
        Build a verdict from parsed model JSON, defaulting each invalid field.

        Raises:
            ModelContractViolation: payload is not a JSON object.
        """
        if not isinstance(payload, dict):
            raise ModelContractViolation("Evaluation output is not a JSON object")

        verdict = cls()
        invalid: list[str] = []

        for name, enum_type in (
            ("understanding_level", UnderstandingLevel),
            ("confidence", Confidence),
            ("recommended_action", RecommendedAction),
        ):
            try:
                setattr(verdict, name, enum_type(payload.get(name)))
            except (ValueError, TypeError):
                invalid.append(name)

        gaps = payload.get("gaps_detected")
        if isinstance(gaps, list):
            verdict.gaps_detected = [g.strip() for g in gaps if isinstance(g, str) and g.strip()]
        else:
            invalid.append("gaps_detected")

        if invalid:
            logger.warning(f"Evaluation output had invalid fields {invalid}; defaults substituted")
        return verdict

    def to_dict(self) -> dict:
        return {
            "understanding_level": self.understanding_level.value,
            "confidence": self.confidence.value,
            "gaps_detected": list(self.gaps_detected),
            "recommended_action": self.recommended_action.value,
        }


@dataclass
class SyllabusDay:
    """One day of the syllabus. day_number is its stable identity."""

    day_number: int
    date: date
    topic: str
    subtasks: list[str] = field(default_factory=list)
    status: DayStatus = DayStatus.PENDING
    learning_input: str | None = None
    completed_at: datetime | None = None
    expert_prompt: str | None = None

    def to_dict(self) -> dict:
        return {
            "day_number": self.day_number,
            "date": self.date.isoformat(),
            "topic": self.topic,
            "subtasks": list(self.subtasks),
            "status": self.status.value,
            "learning_input": self.learning_input,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "expert_prompt": self.expert_prompt,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SyllabusDay:
        completed_at = data.get("completed_at")
        return cls(
            day_number=int(data["day_number"]),
            date=_as_date(data["date"]),
            topic=data["topic"],
            subtasks=list(data.get("subtasks") or []),
            status=DayStatus(data.get("status", DayStatus.PENDING.value)),
            learning_input=data.get("learning_input"),
            completed_at=(
                completed_at if isinstance(completed_at, datetime) or completed_at is None
                else datetime.fromisoformat(completed_at)
            ),
            expert_prompt=data.get("expert_prompt"),
        )


@dataclass
class Syllabus:
    """A learner's full plan: goal, pacing and ordered days."""

    id: str
    goal: str
    hours_per_day: float
    total_days: int
    start_date: date
    days: list[SyllabusDay] = field(default_factory=list)

    @property
    def active_day(self) -> SyllabusDay | None:
        return next((d for d in self.days if d.status == DayStatus.ACTIVE), None)

    def find_day(self, day_number: int) -> SyllabusDay:
        for day in self.days:
            if day.day_number == day_number:
                return day
        raise ValidationFailure(f"Day {day_number} not found in syllabus")

    def validate(self) -> None:
        """Check the at-most-one-active-day and unique day_number invariants."""
        active = [d.day_number for d in self.days if d.status == DayStatus.ACTIVE]
        if len(active) > 1:
            raise ValidationFailure(f"Syllabus has more than one active day: {active}")
        numbers = [d.day_number for d in self.days]
        if len(numbers) != len(set(numbers)):
            raise ValidationFailure("Syllabus day numbers must be unique")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goal": self.goal,
            "hours_per_day": self.hours_per_day,
            "total_days": self.total_days,
            "start_date": self.start_date.isoformat(),
            "days": [d.to_dict() for d in self.days],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Syllabus:
        days = sorted(
            (SyllabusDay.from_dict(d) for d in data.get("days") or []),
            key=lambda d: d.day_number,
        )
        return cls(
            id=data["id"],
            goal=data["goal"],
            hours_per_day=float(data["hours_per_day"]),
            total_days=int(data.get("total_days") or len(days)),
            start_date=_as_date(data.get("start_date") or (days[0].date if days else date.today())),
            days=days,
        )


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)
