"""Day-by-day curriculum: syllabus models, generation, evaluation and transitions."""

from .evaluation import EvaluationEngine
from .generator import SyllabusGenerator, generate_syllabus_id, mock_days
from .models import (
    Confidence,
    DayStatus,
    EvaluationVerdict,
    RecommendedAction,
    Syllabus,
    SyllabusDay,
    UnderstandingLevel,
)
from .state_machine import CurriculumStateMachine, activate_next_pending

__all__ = [
    "EvaluationEngine",
    "SyllabusGenerator",
    "generate_syllabus_id",
    "mock_days",
    "Confidence",
    "DayStatus",
    "EvaluationVerdict",
    "RecommendedAction",
    "Syllabus",
    "SyllabusDay",
    "UnderstandingLevel",
    "CurriculumStateMachine",
    "activate_next_pending",
]
