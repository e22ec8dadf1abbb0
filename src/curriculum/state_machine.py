"""
Curriculum State Machine: day-by-day lifecycle of the current syllabus.

    pending -> active -> completed | skipped | leave

At most one day is active. Only the active day can be transitioned; the
next lowest-numbered pending day then becomes active. Skip and leave push
every later day's date back; completion may regenerate every later day when
the reflection verdict asks for it and the goal passes the learning-domain
gate. Whenever a day stops being active its day knowledge base is evicted,
so concepts never carry over to another day, even when a later day reuses
the same topic string.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from loguru import logger

from config import Settings, get_settings
from src.core.errors import ValidationFailure
from src.curriculum.evaluation import EvaluationEngine
from src.curriculum.generator import SyllabusGenerator
from src.curriculum.models import DayStatus, EvaluationVerdict, Syllabus, SyllabusDay
from src.mentor.dkb import DKBStore
from src.mentor.prefilter import is_allowed_learning_domain


def activate_next_pending(syllabus: Syllabus) -> SyllabusDay | None:
    """Make the lowest-numbered pending day active, if there is one."""
    pending = [d for d in syllabus.days if d.status == DayStatus.PENDING]
    if not pending:
        return None
    nxt = min(pending, key=lambda d: d.day_number)
    nxt.status = DayStatus.ACTIVE
    return nxt


def later_days(syllabus: Syllabus, day: SyllabusDay) -> list[SyllabusDay]:
    return sorted(
        (d for d in syllabus.days if d.day_number > day.day_number),
        key=lambda d: d.day_number,
    )


class CurriculumStateMachine:
    """
    Owns the current syllabus and applies day transitions to it.

    All transitions are serialised by one asyncio.Lock.
    """

    def __init__(
        self,
        store: DKBStore,
        evaluator: EvaluationEngine,
        generator: SyllabusGenerator,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.evaluator = evaluator
        self.generator = generator
        self.max_leave_days = settings.max_leave_days
        self.syllabus: Syllabus | None = None
        self._lock = asyncio.Lock()

    def current(self) -> Syllabus:
        if self.syllabus is None:
            raise ValidationFailure("No syllabus found", code="no_syllabus")
        return self.syllabus

    async def replace(self, syllabus: Syllabus) -> Syllabus:
        """
        Adopt a syllabus document (newly created or persisted elsewhere).

        If the active day changes, the previous active day's DKB is evicted.
        """
        syllabus.validate()
        async with self._lock:
            previous = self.syllabus.active_day if self.syllabus else None
            incoming = syllabus.active_day
            if previous is not None and (
                incoming is None
                or incoming.day_number != previous.day_number
                or incoming.topic != previous.topic
            ):
                self.store.reset_at_boundary(previous.topic)
            self.syllabus = syllabus
            logger.info(f"Syllabus {syllabus.id} loaded ({len(syllabus.days)} days)")
            return syllabus

    async def skip(self, day_number: int) -> Syllabus:
        """active -> skipped; later days move back one day."""
        async with self._lock:
            syllabus = self.current()
            day = self._require_active(syllabus, day_number, "skip")
            day.status = DayStatus.SKIPPED
            self._shift(syllabus, day, 1)
            self._close_day(syllabus, day)
            return syllabus

    async def leave(self, day_number: int, days: int) -> Syllabus:
        """active -> leave; later days move back by `days`."""
        if not 1 <= days <= self.max_leave_days:
            raise ValidationFailure(f"Leave must be between 1 and {self.max_leave_days} days")
        async with self._lock:
            syllabus = self.current()
            day = self._require_active(syllabus, day_number, "leave")
            day.status = DayStatus.LEAVE
            self._shift(syllabus, day, days)
            self._close_day(syllabus, day)
            return syllabus

    async def complete(
        self,
        day_number: int,
        reflection: str,
    ) -> tuple[Syllabus, EvaluationVerdict]:
        """
        Evaluate the reflection, regenerate later days if needed, close the day.

        Raises:
            ValidationFailure: no syllabus, day not active, or reflection too short.
        """
        async with self._lock:
            syllabus = self.current()
            day = self._require_active(syllabus, day_number, "complete")

            verdict = await self.evaluator.evaluate(day.topic, day.subtasks, reflection)

            remaining = later_days(syllabus, day)
            if verdict.requires_regeneration and remaining:
                await self._regenerate(syllabus, day, remaining, verdict)

            day.status = DayStatus.COMPLETED
            day.learning_input = reflection.strip()
            day.completed_at = datetime.now(timezone.utc)
            self._close_day(syllabus, day)
            return syllabus, verdict

    async def _regenerate(
        self,
        syllabus: Syllabus,
        day: SyllabusDay,
        remaining: list[SyllabusDay],
        verdict: EvaluationVerdict,
    ) -> None:
        if not is_allowed_learning_domain(syllabus.goal):
            logger.warning(
                f"Regeneration skipped for syllabus {syllabus.id} (unsafe domain): "
                f"{syllabus.goal[:100]!r}"
            )
            return

        fresh = await self.generator.generate(
            syllabus.goal,
            syllabus.hours_per_day,
            len(remaining),
            start_date=day.date + timedelta(days=1),
            adaptation=verdict,
            first_day_number=day.day_number + 1,
        )
        for new_day in fresh:
            new_day.status = DayStatus.PENDING

        replaced = {d.day_number for d in remaining}
        syllabus.days = [d for d in syllabus.days if d.day_number not in replaced] + fresh
        syllabus.days.sort(key=lambda d: d.day_number)
        logger.info(
            f"Regenerated days {fresh[0].day_number}-{fresh[-1].day_number} "
            f"after day {day.day_number} ({verdict.recommended_action.value})"
        )

    @staticmethod
    def _require_active(syllabus: Syllabus, day_number: int, action: str) -> SyllabusDay:
        day = syllabus.find_day(day_number)
        if day.status != DayStatus.ACTIVE:
            raise ValidationFailure(
                f"Cannot {action} day {day_number}: it is {day.status.value}, not active",
                code="invalid_transition",
            )
        return day

    @staticmethod
    def _shift(syllabus: Syllabus, day: SyllabusDay, by_days: int) -> None:
        for later in later_days(syllabus, day):
            later.date = later.date + timedelta(days=by_days)

    def _close_day(self, syllabus: Syllabus, day: SyllabusDay) -> None:
        """Evict the outgoing day's DKB and activate the next pending day."""
        self.store.reset_at_boundary(day.topic)
        nxt = activate_next_pending(syllabus)
        logger.info(
            f"Day {day.day_number} -> {day.status.value}; "
            f"active day now {nxt.day_number if nxt else 'none'}"
        )
