"""
Curriculum router: syllabus creation and day transitions.

Endpoints:
- POST /syllabus: generate a new syllabus for a learning goal
- GET /syllabus: current syllabus
- PUT /syllabus: replace the current syllabus with a persisted copy
- POST /days/{day_number}/skip | /leave | /complete: transition the active day
"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path
from loguru import logger
from pydantic import BaseModel, Field

from src.api.dependencies import MentorRuntime, get_runtime
from src.api.routers.mentor_router import EvaluationVerdictResponse
from src.core.errors import ValidationFailure
from src.curriculum.models import DayStatus, Syllabus

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class SyllabusDayModel(BaseModel):
    day_number: int = Field(..., ge=1)
    date: dt.date
    topic: str
    subtasks: List[str] = Field(default_factory=list)
    status: DayStatus = DayStatus.PENDING
    learning_input: Optional[str] = None
    completed_at: Optional[dt.datetime] = None
    expert_prompt: Optional[str] = None


class SyllabusModel(BaseModel):
    id: str
    goal: str
    hours_per_day: float = Field(..., gt=0)
    total_days: int = Field(..., ge=1)
    start_date: dt.date
    days: List[SyllabusDayModel]

    @classmethod
    def from_syllabus(cls, syllabus: Syllabus) -> SyllabusModel:
        return cls.model_validate(syllabus.to_dict())

    def to_syllabus(self) -> Syllabus:
        return Syllabus.from_dict(self.model_dump())


class CreateSyllabusRequest(BaseModel):
    goal: str = Field(..., description="What the learner wants to learn")
    hours_per_day: float = Field(..., description="Study hours per day")
    total_days: int = Field(..., description="Number of days (1-365)")
    start_date: Optional[dt.date] = Field(None, description="Defaults to today")


class LeaveRequest(BaseModel):
    days: int = Field(..., description="Number of days of leave")


class CompleteDayRequest(BaseModel):
    reflection: str = Field(..., description="What the learner learned today")


class CompleteDayResponse(BaseModel):
    syllabus: SyllabusModel
    verdict: EvaluationVerdictResponse


# ========================================
# Syllabus Endpoints
# ========================================


@router.post("/syllabus", response_model=SyllabusModel, summary="Generate syllabus")
async def create_syllabus(
    request: CreateSyllabusRequest,
    runtime: MentorRuntime = Depends(get_runtime),
) -> SyllabusModel:
    """
    Generate a day-by-day syllabus and make it the current one.

    Unsafe learning goals are rejected before any model call.
    """
    try:
        syllabus = await runtime.generator.create_syllabus(
            request.goal, request.hours_per_day, request.total_days, request.start_date
        )
        await runtime.curriculum.replace(syllabus)
        return SyllabusModel.from_syllabus(syllabus)
    except ValidationFailure:
        raise
    except Exception as exc:
        logger.exception("Syllabus generation failed")
        raise HTTPException(status_code=500, detail="Syllabus generation failed") from exc


@router.get("/syllabus", response_model=SyllabusModel, summary="Get current syllabus")
async def get_syllabus(runtime: MentorRuntime = Depends(get_runtime)) -> SyllabusModel:
    return SyllabusModel.from_syllabus(runtime.curriculum.current())


@router.put("/syllabus", response_model=SyllabusModel, summary="Replace syllabus")
async def replace_syllabus(
    body: SyllabusModel,
    runtime: MentorRuntime = Depends(get_runtime),
) -> SyllabusModel:
    """Accept a syllabus document persisted by the client."""
    syllabus = await runtime.curriculum.replace(body.to_syllabus())
    return SyllabusModel.from_syllabus(syllabus)


# ========================================
# Day Transition Endpoints
# ========================================


@router.post("/days/{day_number}/skip", response_model=SyllabusModel, summary="Skip the active day")
async def skip_day(
    day_number: int = Path(..., ge=1),
    runtime: MentorRuntime = Depends(get_runtime),
) -> SyllabusModel:
    syllabus = await runtime.curriculum.skip(day_number)
    return SyllabusModel.from_syllabus(syllabus)


@router.post("/days/{day_number}/leave", response_model=SyllabusModel, summary="Take leave")
async def leave_day(
    request: LeaveRequest,
    day_number: int = Path(..., ge=1),
    runtime: MentorRuntime = Depends(get_runtime),
) -> SyllabusModel:
    syllabus = await runtime.curriculum.leave(day_number, request.days)
    return SyllabusModel.from_syllabus(syllabus)


@router.post(
    "/days/{day_number}/complete",
    response_model=CompleteDayResponse,
    summary="Complete the active day",
)
async def complete_day(
    request: CompleteDayRequest,
    day_number: int = Path(..., ge=1),
    runtime: MentorRuntime = Depends(get_runtime),
) -> CompleteDayResponse:
    """
    Evaluate the reflection and close the day.

    A repeat or simplify verdict regenerates every later day.
    """
    syllabus, verdict = await runtime.curriculum.complete(day_number, request.reflection)
    return CompleteDayResponse(
        syllabus=SyllabusModel.from_syllabus(syllabus),
        verdict=EvaluationVerdictResponse(**verdict.to_dict()),
    )
