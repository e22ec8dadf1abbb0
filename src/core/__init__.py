"""
Core Module - Shared primitives used across the mentor and curriculum packages.

Components:
- errors: error taxonomy (infrastructure, validation, model contract)
- ai_limits: per-call token ceilings and temperatures
- sanitize: input/error sanitisation for the HTTP boundary
"""

from src.core.ai_limits import AI_LIMITS, AI_TEMPERATURES, CallType, validate_token_limit
from src.core.errors import (
    CompletionUnavailable,
    EmbeddingUnavailable,
    InfrastructureFailure,
    MentorError,
    ModelContractViolation,
    ValidationFailure,
)

__all__ = [
    "AI_LIMITS",
    "AI_TEMPERATURES",
    "CallType",
    "validate_token_limit",
    "MentorError",
    "InfrastructureFailure",
    "EmbeddingUnavailable",
    "CompletionUnavailable",
    "ValidationFailure",
    "ModelContractViolation",
]
