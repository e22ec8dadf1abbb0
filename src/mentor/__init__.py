"""
Mentor Module - Scope-restricted question answering for the active day.

Components:
- dkb: Day Knowledge Base store with shared embedding cache
- rephraser / prefilter / scope_gate: ordered admit-or-refuse checks
- context_builder: renders a DKB into the model's context block
- concept_extractor: grows the DKB from mentor answers
- orchestrator: end-to-end handling of one question
- suggestions: follow-up questions from the last answer
"""

from src.mentor.concept_extractor import ConceptExtractor
from src.mentor.context_builder import build_context, estimate_tokens
from src.mentor.dkb import DayKnowledgeBase, DKBStore, normalize_topic
from src.mentor.orchestrator import MentorOrchestrator, MentorReply
from src.mentor.prefilter import is_allowed_learning_domain, prefilter_question
from src.mentor.rephraser import rephrase_question
from src.mentor.scope_gate import (
    Admit,
    MentorState,
    Refuse,
    ScopeDecision,
    ScopeGate,
    ScopeOutcome,
    has_context_overlap,
)
from src.mentor.suggestions import SuggestionService

__all__ = [
    "ConceptExtractor",
    "build_context",
    "estimate_tokens",
    "DayKnowledgeBase",
    "DKBStore",
    "normalize_topic",
    "MentorOrchestrator",
    "MentorReply",
    "is_allowed_learning_domain",
    "prefilter_question",
    "rephrase_question",
    "Admit",
    "MentorState",
    "Refuse",
    "ScopeDecision",
    "ScopeGate",
    "ScopeOutcome",
    "has_context_overlap",
    "SuggestionService",
]
