"""
Scope Decision Gate: decide whether a question may be answered today.

Stages run in strict order and any of them may short-circuit to a refusal,
in which case no model call is made:

1. Rephrase deictic questions so they name the topic.
2. Pre-filter the learner's original question for harmful intent.
   No embedding call is made for a refused question.
3. Semantic gate: cosine similarity between the rephrased question and the
   DKB embedding must reach scope_similarity_threshold. If embeddings are
   unavailable the gate fails open (the topic is already known non-empty).
4. Render the DKB context and require a minimum size.
5. Lexical overlap between the question and the context, to catch embedding
   false positives. The original question is checked first; a rephrased
   question is checked only when the original has no overlap.

Refusals are returned as values, never raised.
"""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence, Union

from loguru import logger

from config import Settings, get_settings
from src.core.errors import EmbeddingUnavailable
from src.mentor.context_builder import build_context, count_words, estimate_tokens
from src.mentor.dkb import DayKnowledgeBase, DKBStore
from src.mentor.prefilter import prefilter_question
from src.mentor.rephraser import rephrase_question
from src.semantic.similarity import cosine_similarity

TOPIC_ONLY_MESSAGE = "I can only help with questions related to today's learning topic."
OUT_OF_SCOPE_MESSAGE = "This question is outside today's learning scope."

REASON_OUT_OF_SCOPE = "out_of_scope"
REASON_NO_CONTEXT = "no_context"

MIN_OVERLAP_WORD_CHARS = 3


class MentorState(str, Enum):
    """Per-request lifecycle of a mentor question."""
    RECEIVED = "received"
    REPHRASED = "rephrased"
    PRE_FILTERED = "pre_filtered"
    SCOPE_CHECKED = "scope_checked"
    CONTEXT_BUILT = "context_built"
    ANSWERED = "answered"
    REFUSED = "refused"
    EXPANDED = "expanded"


class ScopeOutcome(str, Enum):
    """Result of the scope gate."""
    ADMIT = "admit"
    REFUSE_HARMFUL = "refuse_harmful"
    REFUSE_OUT_OF_SCOPE = "refuse_out_of_scope"
    REFUSE_NO_CONTEXT = "refuse_no_context"


@dataclass(frozen=True)
class Admit:
    """Question is in scope; context is what the model must answer from."""
    question: str
    original_question: str
    context: str
    dkb: DayKnowledgeBase
    similarity: float | None = None
    stages: tuple[MentorState, ...] = field(default=())

    outcome = ScopeOutcome.ADMIT

    @property
    def refused(self) -> bool:
        return False


@dataclass(frozen=True)
class Refuse:
    """Question is refused; message is safe to show the learner."""
    outcome: ScopeOutcome
    reason: str
    message: str
    question: str
    stages: tuple[MentorState, ...] = field(default=())

    @property
    def refused(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {"refused": True, "reason": self.reason, "message": self.message}


ScopeDecision = Union[Admit, Refuse]


def _significant_words(text: str) -> list[str]:
    words = (w.strip(string.punctuation) for w in text.lower().split())
    return [w for w in words if len(w) >= MIN_OVERLAP_WORD_CHARS]


def has_context_overlap(question: str, context: str | None) -> bool:
    """True if any 3+ char question word is a substring of a context word, or vice versa."""
    if not question or not context:
        return False
    context_words = _significant_words(context)
    return any(
        q in c or c in q
        for q in _significant_words(question)
        for c in context_words
    )


class ScopeGate:
    """
    Runs the ordered scope checks for one question against one DKB store.

    Example:
        >>> gate = ScopeGate(store)
        >>> decision = await gate.decide("How does this work?", "Binary Search Trees", ["insertion"])
        >>> decision.outcome
        <ScopeOutcome.ADMIT: 'admit'>
    """

    def __init__(self, store: DKBStore, settings: Settings | None = None):
        settings = settings or get_settings()
        self.store = store
        self.threshold = settings.scope_similarity_threshold
        self.min_context_words = settings.min_context_words
        self.min_context_tokens = settings.min_context_tokens
        self.soft_budget_tokens = settings.context_soft_budget_tokens

    async def decide(
        self,
        question: str,
        topic: str,
        subtasks: Sequence[str] = (),
    ) -> ScopeDecision:
        stages = [MentorState.RECEIVED]

        def refuse(outcome: ScopeOutcome, reason: str, message: str, asked: str) -> Refuse:
            stages.append(MentorState.REFUSED)
            logger.warning(
                f"Question refused ({outcome.value}) for topic '{topic}': {question[:100]!r}"
            )
            return Refuse(outcome, reason, message, asked, tuple(stages))

        if not topic or not topic.strip():
            return refuse(
                ScopeOutcome.REFUSE_NO_CONTEXT, REASON_NO_CONTEXT, OUT_OF_SCOPE_MESSAGE, question
            )

        # 1. Rephrase
        rephrased = rephrase_question(question, topic, subtasks)
        stages.append(MentorState.REPHRASED)

        # 2. Pre-filter (original question, no embedding call)
        if prefilter_question(question):
            return refuse(
                ScopeOutcome.REFUSE_HARMFUL, REASON_OUT_OF_SCOPE, TOPIC_ONLY_MESSAGE, rephrased
            )
        stages.append(MentorState.PRE_FILTERED)

        # 3. Semantic gate
        dkb = self.store.get_or_create(topic, subtasks)
        similarity = await self._similarity(rephrased, dkb)
        if similarity is not None and similarity < self.threshold:
            logger.debug(f"Similarity {similarity:.3f} below threshold {self.threshold}")
            return refuse(
                ScopeOutcome.REFUSE_OUT_OF_SCOPE, REASON_OUT_OF_SCOPE, OUT_OF_SCOPE_MESSAGE, rephrased
            )
        stages.append(MentorState.SCOPE_CHECKED)

        # 4. Context assembly + minimum size
        context = build_context(dkb, self.soft_budget_tokens)
        if (
            context is None
            or count_words(context) < self.min_context_words
            or estimate_tokens(context) < self.min_context_tokens
        ):
            return refuse(
                ScopeOutcome.REFUSE_NO_CONTEXT, REASON_NO_CONTEXT, OUT_OF_SCOPE_MESSAGE, rephrased
            )
        stages.append(MentorState.CONTEXT_BUILT)

        # 5. Lexical overlap
        if not has_context_overlap(question, context):
            if rephrased == question or not has_context_overlap(rephrased, context):
                return refuse(
                    ScopeOutcome.REFUSE_OUT_OF_SCOPE, REASON_OUT_OF_SCOPE, TOPIC_ONLY_MESSAGE, rephrased
                )
            logger.debug("Overlap satisfied by rephrased question")

        return Admit(
            question=rephrased,
            original_question=question,
            context=context,
            dkb=dkb,
            similarity=similarity,
            stages=tuple(stages),
        )

    async def _similarity(self, question: str, dkb: DayKnowledgeBase) -> float | None:
        """Cosine similarity, or None when embeddings are unavailable."""
        try:
            question_vector = await self.store.gateway.embed(question)
            dkb_vector = await self.store.get_embedding(dkb)
        except EmbeddingUnavailable as e:
            logger.warning(f"Semantic gate degraded, admitting on topic alone: {e}")
            return None

        score = cosine_similarity(question_vector, dkb_vector)
        logger.debug(f"Scope similarity for '{dkb.topic}': {score:.3f}")
        return score
