"""
Mentor router: scope-restricted chat and reflection evaluation.

Endpoints:
- POST /topic-chat: answer a question within today's topic, or refuse
- POST /suggested-questions: follow-ups to the mentor's last answer
- POST /evaluate-learning: verdict for an end-of-day reflection
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from src.api.dependencies import MentorRuntime, get_runtime
from src.core.errors import ValidationFailure
from src.core.sanitize import sanitize_input, sanitize_list
from src.curriculum.models import Confidence, RecommendedAction, UnderstandingLevel
from src.mentor.orchestrator import error_answer

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class TopicChatRequest(BaseModel):
    """A learner question about today's topic."""

    question: str = Field(..., description="Learner's question")
    topic: str = Field("", description="Today's topic")
    subtasks: List[str] = Field(default_factory=list, description="Today's subtasks")


class TopicChatResponse(BaseModel):
    """Either an answer or a refusal."""

    refused: bool
    reason: Optional[str] = Field(None, description="out_of_scope or no_context")
    message: Optional[str] = None
    response: Optional[str] = None


class SuggestedQuestionsRequest(BaseModel):
    """Context for follow-up suggestions."""

    topic: str
    subtasks: List[str] = Field(default_factory=list)
    last_answer: Optional[str] = Field(
        None,
        description="Mentor answer to follow up on (defaults to the last stored answer)",
    )


class SuggestedQuestionsResponse(BaseModel):
    questions: List[str]


class EvaluateLearningRequest(BaseModel):
    """End-of-day reflection."""

    topic: str
    subtasks: List[str] = Field(default_factory=list)
    reflection: str = Field(..., description="What the learner says they learned today")


class EvaluationVerdictResponse(BaseModel):
    understanding_level: UnderstandingLevel
    confidence: Confidence
    gaps_detected: List[str]
    recommended_action: RecommendedAction


# ========================================
# Mentor Endpoints
# ========================================


@router.post(
    "/topic-chat",
    response_model=TopicChatResponse,
    response_model_exclude_none=True,
    summary="Ask the mentor",
)
async def topic_chat(
    request: TopicChatRequest,
    runtime: MentorRuntime = Depends(get_runtime),
) -> TopicChatResponse:
    """
    Answer a question using only today's topic, subtasks and learned concepts.

    Out-of-scope questions are refused with a fixed message. If anything
    fails after the scope checks the response is a mock answer, never an error.
    """
    try:
        reply = await runtime.orchestrator.handle(request.question, request.topic, request.subtasks)
        return TopicChatResponse(**reply.to_dict())
    except ValidationFailure:
        raise
    except Exception:
        logger.exception("Unexpected error in topic chat")
        return TopicChatResponse(refused=False, response=error_answer(request.topic))


@router.post(
    "/suggested-questions",
    response_model=SuggestedQuestionsResponse,
    summary="Suggest follow-up questions",
)
async def suggested_questions(
    request: SuggestedQuestionsRequest,
    runtime: MentorRuntime = Depends(get_runtime),
) -> SuggestedQuestionsResponse:
    """Up to three follow-ups scoped to today's topic and the last mentor answer."""
    max_chars = runtime.settings.max_input_chars
    topic = sanitize_input(request.topic, max_chars)
    if not topic:
        raise ValidationFailure("topic is required and must be a non-empty string")

    last_answer = sanitize_input(request.last_answer, max_chars) or None
    if last_answer is None:
        dkb = runtime.store.get(topic)
        last_answer = dkb.last_answer if dkb else None

    try:
        questions = await runtime.suggestions.suggest(
            topic, sanitize_list(request.subtasks, max_chars), last_answer
        )
    except Exception:
        logger.exception("Failed to generate suggested questions")
        questions = []
    return SuggestedQuestionsResponse(questions=questions)


@router.post(
    "/evaluate-learning",
    response_model=EvaluationVerdictResponse,
    summary="Evaluate a reflection",
)
async def evaluate_learning(
    request: EvaluateLearningRequest,
    runtime: MentorRuntime = Depends(get_runtime),
) -> EvaluationVerdictResponse:
    """Coarse verdict on the learner's understanding; never teaches."""
    try:
        verdict = await runtime.evaluator.evaluate(request.topic, request.subtasks, request.reflection)
        return EvaluationVerdictResponse(**verdict.to_dict())
    except ValidationFailure:
        raise
    except Exception as exc:
        logger.exception("Failed to evaluate learning")
        raise HTTPException(status_code=500, detail="Failed to evaluate learning") from exc
