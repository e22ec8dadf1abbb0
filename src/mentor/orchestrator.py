"""
Mentor Orchestrator: answer one learner question end to end.

received -> rephrased -> pre_filtered -> scope_checked -> context_built
         -> answered | refused -> expanded

The scope gate covers everything up to context_built. After the gates pass
there is exactly one model call; any failure there yields a deterministic
mock answer instead of a retry. Concepts are then extracted from whichever
answer was produced and committed into the day's knowledge base.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from config import Settings, get_settings
from src.core.ai_limits import CallType
from src.core.errors import MentorError, ValidationFailure
from src.core.sanitize import sanitize_input, sanitize_list
from src.llm.completion_client import CompletionClient, with_mock_fallback
from src.mentor.concept_extractor import ConceptExtractor
from src.mentor.dkb import DKBStore
from src.mentor.scope_gate import Admit, MentorState, Refuse, ScopeGate

MENTOR_SYSTEM_PROMPT = """You are an AI tutor restricted to TODAY'S learning topic.

Rules:
- You may ONLY answer questions directly related to today's topic.
- You MUST use ONLY the provided context.
- You MUST refuse all other questions.

If the question is unrelated, respond ONLY with:
"This question is outside today's learning scope."

You are evaluated more on correct refusal than helpfulness.

{context}"""

CONTEXT_BOUND_QUESTION = "Using ONLY the context above, answer the following question: {question}"

MOCK_ANSWER = (
    "Based on today's topic, here's what I can tell you: {question} is an important "
    "concept. Let me explain it in the context of what you're learning today."
)

ERROR_ANSWER = (
    "I understand you're asking about {topic}. Based on today's learning content, "
    "here's a helpful response. For more detailed information, please ensure the "
    "AI service is properly configured."
)


@dataclass
class MentorReply:
    """Outcome of one mentor question, shaped for the HTTP response."""
    refused: bool
    reason: str | None = None
    message: str | None = None
    response: str | None = None
    concepts_added: int = 0

    @classmethod
    def refusal(cls, decision: Refuse) -> "MentorReply":
        return cls(refused=True, reason=decision.reason, message=decision.message)

    def to_dict(self) -> dict:
        if self.refused:
            return {"refused": True, "reason": self.reason, "message": self.message}
        return {"refused": False, "response": self.response}


def mock_answer(question: str) -> str:
    """Deterministic stand-in answer when the model cannot be used."""
    return MOCK_ANSWER.format(question=question)


def error_answer(topic: str | None) -> str:
    """Answer for unexpected faults at the HTTP boundary."""
    return ERROR_ANSWER.format(topic=topic or "today's topic")


class MentorOrchestrator:
    """
    Coordinates scope gate, model call and knowledge-base expansion.

    Example:
        >>> orchestrator = MentorOrchestrator(store, chat_client)
        >>> reply = await orchestrator.handle("How does this work?", "Binary Search Trees", ["insertion"])
        >>> reply.to_dict()
        {'refused': False, 'response': '...'}
    """

    def __init__(
        self,
        store: DKBStore,
        client: CompletionClient,
        extractor: ConceptExtractor | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.client = client
        self.extractor = extractor or ConceptExtractor(client, settings)
        self.gate = ScopeGate(store, settings)
        self.max_input_chars = settings.max_input_chars

    async def handle(
        self,
        question: str,
        topic: str,
        subtasks: Sequence[str] = (),
    ) -> MentorReply:
        """
        Answer a question within today's scope.

        Raises:
            ValidationFailure: question is blank after sanitising.
        """
        question = sanitize_input(question, self.max_input_chars)
        if not question:
            raise ValidationFailure("question is required and must be a non-empty string")
        topic = sanitize_input(topic, self.max_input_chars)
        subtasks = sanitize_list(subtasks, self.max_input_chars)

        decision = await self.gate.decide(question, topic, subtasks)
        self._log_states(decision.stages)

        if isinstance(decision, Refuse):
            return MentorReply.refusal(decision)

        answer = await with_mock_fallback(
            lambda: self._ask_model(decision),
            lambda: mock_answer(decision.question),
            label="Mentor chat",
        )
        self._log_states((MentorState.ANSWERED,))

        self.store.remember_answer(decision.dkb, answer)
        added = await self._expand(decision, answer)
        self._log_states((MentorState.EXPANDED,))

        return MentorReply(refused=False, response=answer, concepts_added=added)

    async def _ask_model(self, decision: Admit) -> str:
        return await self.client.complete(
            CallType.CHAT,
            MENTOR_SYSTEM_PROMPT.format(context=decision.context),
            CONTEXT_BOUND_QUESTION.format(question=decision.question),
        )

    async def _expand(self, decision: Admit, answer: str) -> int:
        """Extract concepts from the answer and commit them. Never raises."""
        try:
            concepts = await self.extractor.extract(answer, decision.dkb.topic)
        except MentorError as e:
            logger.warning(f"Concept extraction failed for '{decision.dkb.topic}': {e}")
            return 0

        added = self.store.expand(decision.dkb, concepts)
        if added:
            logger.info(
                f"DKB '{decision.dkb.topic}' +{added} concepts "
                f"({len(decision.dkb.concepts)} total)"
            )
        return added

    @staticmethod
    def _log_states(states: Sequence[MentorState]) -> None:
        for state in states:
            logger.debug(f"Mentor request -> {state.value}")
