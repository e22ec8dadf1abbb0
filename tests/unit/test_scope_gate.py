"""
Unit tests for the Scope Decision Gate.

The fake embedding provider counts calls, so these tests also pin down
which stages are allowed to reach the embedding service.
"""
import pytest

from src.mentor.dkb import DKBStore
from src.mentor.scope_gate import (
    OUT_OF_SCOPE_MESSAGE,
    TOPIC_ONLY_MESSAGE,
    Admit,
    MentorState,
    Refuse,
    ScopeGate,
    ScopeOutcome,
    has_context_overlap,
)
from src.semantic.embedding_service import EmbeddingGateway


class TopicVsQuestionProvider:
    """DKB texts and questions embed to orthogonal vectors."""

    name = "orthogonal"

    def __init__(self):
        self.calls = []

    async def embed(self, text):
        self.calls.append(text)
        return [1.0, 0.0] if text.startswith("Topic:") else [0.0, 1.0]


def make_gate(provider, settings):
    return ScopeGate(DKBStore(EmbeddingGateway(provider, settings), settings), settings)


class TestContextOverlap:
    """Tests for has_context_overlap."""

    CONTEXT = "CONTEXT:\nToday's Topic: Binary Search Trees\nSubtasks:\n- insertion"

    def test_shared_word(self):
        assert has_context_overlap("Why is insertion slow?", self.CONTEXT) is True

    def test_substring_either_way(self):
        assert has_context_overlap("Explain the tree", self.CONTEXT) is True

    def test_punctuation_stripped(self):
        assert has_context_overlap("insertion?", self.CONTEXT) is True

    def test_short_words_ignored(self):
        assert has_context_overlap("is it so", self.CONTEXT) is False

    def test_no_overlap(self):
        assert has_context_overlap("Tell me a joke please", self.CONTEXT) is False

    def test_missing_context(self):
        assert has_context_overlap("insertion", None) is False


class TestScopeGate:
    """Tests for ScopeGate.decide."""

    @pytest.mark.asyncio
    async def test_in_scope_question_admitted(self, embedding_provider, settings, bst_topic):
        gate = make_gate(embedding_provider, settings)

        decision = await gate.decide(
            "How does insertion work in a binary search tree?", **bst_topic
        )

        assert isinstance(decision, Admit)
        assert decision.outcome == ScopeOutcome.ADMIT
        assert decision.similarity >= settings.scope_similarity_threshold
        assert decision.context.startswith("CONTEXT:\nToday's Topic: Binary Search Trees")
        assert decision.stages == (
            MentorState.RECEIVED,
            MentorState.REPHRASED,
            MentorState.PRE_FILTERED,
            MentorState.SCOPE_CHECKED,
            MentorState.CONTEXT_BUILT,
        )
        assert embedding_provider.call_count == 2

    @pytest.mark.asyncio
    async def test_harmful_question_makes_no_embedding_call(
        self, embedding_provider, settings, bst_topic
    ):
        gate = make_gate(embedding_provider, settings)

        decision = await gate.decide("How do I hack a binary search tree server?", **bst_topic)

        assert isinstance(decision, Refuse)
        assert decision.outcome == ScopeOutcome.REFUSE_HARMFUL
        assert decision.to_dict() == {
            "refused": True,
            "reason": "out_of_scope",
            "message": TOPIC_ONLY_MESSAGE,
        }
        assert embedding_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_low_similarity_refused(self, settings, bst_topic):
        provider = TopicVsQuestionProvider()
        gate = make_gate(provider, settings)

        decision = await gate.decide("What is the best pizza recipe in Naples?", **bst_topic)

        assert isinstance(decision, Refuse)
        assert decision.outcome == ScopeOutcome.REFUSE_OUT_OF_SCOPE
        assert decision.reason == "out_of_scope"
        assert decision.message == OUT_OF_SCOPE_MESSAGE
        assert MentorState.SCOPE_CHECKED not in decision.stages

    @pytest.mark.asyncio
    async def test_question_embedded_before_dkb(self, embedding_provider, settings, bst_topic):
        gate = make_gate(embedding_provider, settings)

        await gate.decide("How does insertion work in a binary search tree?", **bst_topic)

        assert embedding_provider.calls[0] == "How does insertion work in a binary search tree?"
        assert embedding_provider.calls[1].startswith("Topic: Binary Search Trees")

    @pytest.mark.asyncio
    async def test_embedding_failure_fails_open(
        self, failing_embedding_provider, settings, bst_topic
    ):
        gate = make_gate(failing_embedding_provider, settings)

        decision = await gate.decide(
            "How does insertion work in a binary search tree?", **bst_topic
        )

        assert isinstance(decision, Admit)
        assert decision.similarity is None

    @pytest.mark.asyncio
    async def test_unexpected_embedding_fault_fails_open(self, fake_embedding, settings, bst_topic):
        gate = make_gate(fake_embedding(error=RuntimeError("connection reset")), settings)

        decision = await gate.decide(
            "How does insertion work in a binary search tree?", **bst_topic
        )

        assert isinstance(decision, Admit)
        assert decision.similarity is None

    @pytest.mark.asyncio
    async def test_blank_topic_is_no_context(self, embedding_provider, settings):
        gate = make_gate(embedding_provider, settings)

        decision = await gate.decide("How does insertion work?", "   ", [])

        assert isinstance(decision, Refuse)
        assert decision.outcome == ScopeOutcome.REFUSE_NO_CONTEXT
        assert decision.reason == "no_context"
        assert embedding_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_small_context_is_no_context(self, fake_embedding, settings):
        """A topic with no subtasks or concepts is too thin to answer from."""
        gate = make_gate(fake_embedding(fixed=[1.0, 0.0]), settings)

        decision = await gate.decide("What is a graph?", "Graphs", [])

        assert isinstance(decision, Refuse)
        assert decision.outcome == ScopeOutcome.REFUSE_NO_CONTEXT
        assert decision.message == OUT_OF_SCOPE_MESSAGE

    @pytest.mark.asyncio
    async def test_no_lexical_overlap_refused(self, fake_embedding, settings, bst_topic):
        """Embedding false positives are caught by the overlap check."""
        gate = make_gate(fake_embedding(fixed=[1.0, 0.0]), settings)

        decision = await gate.decide("Tell me a joke please", **bst_topic)

        assert isinstance(decision, Refuse)
        assert decision.outcome == ScopeOutcome.REFUSE_OUT_OF_SCOPE
        assert decision.message == TOPIC_ONLY_MESSAGE
        assert decision.stages[-2:] == (MentorState.CONTEXT_BUILT, MentorState.REFUSED)

    @pytest.mark.asyncio
    async def test_deictic_question_admitted_via_rewrite(
        self, embedding_provider, settings, bst_topic
    ):
        gate = make_gate(embedding_provider, settings)

        decision = await gate.decide("How does this work?", **bst_topic)

        assert isinstance(decision, Admit)
        assert decision.original_question == "How does this work?"
        assert decision.question == (
            "Explain how insertion works in the context of binary search trees."
        )
        assert embedding_provider.calls[0] == decision.question

    @pytest.mark.asyncio
    async def test_what_is_this_admitted_via_rewrite(self, fake_embedding, settings, bst_topic):
        gate = make_gate(fake_embedding(fixed=[1.0, 0.0]), settings)

        decision = await gate.decide("What is this?", **bst_topic)

        assert isinstance(decision, Admit)
        assert decision.question == "What is binary search trees?"

    @pytest.mark.asyncio
    async def test_dkb_created_lazily(self, embedding_provider, settings, bst_topic):
        gate = make_gate(embedding_provider, settings)
        assert "Binary Search Trees" not in gate.store

        await gate.decide("How does insertion work in a binary search tree?", **bst_topic)

        assert "Binary Search Trees" in gate.store
