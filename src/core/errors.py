"""
Error taxonomy for the mentor service.

- InfrastructureFailure: a provider is unreachable; callers degrade gracefully.
- ValidationFailure: malformed input, rejected before any external call.
- ModelContractViolation: model output that cannot be used as-is; corrected
  with defaults by the component that parsed it.

Scope refusals are not errors; see src.mentor.scope_gate.
"""

from __future__ import annotations


class MentorError(Exception):
    """Base class for all service errors."""


class InfrastructureFailure(MentorError):
    """An external provider could not be reached or answered with an error."""


class EmbeddingUnavailable(InfrastructureFailure):
    """The embedding provider is absent, timed out or failed."""


class CompletionUnavailable(InfrastructureFailure):
    """The completion provider is absent, timed out or failed."""


class ValidationFailure(MentorError):
    """Raised when request input is malformed."""

    def __init__(self, message: str, code: str = "invalid_request"):
        super().__init__(message)
        self.message = message
        self.code = code


class ModelContractViolation(MentorError):
    """Raised when model output does not match the expected shape."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw
