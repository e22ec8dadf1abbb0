"""Input and error-message sanitisation for the HTTP boundary."""

from __future__ import annotations

from typing import Iterable

DEFAULT_MAX_LENGTH = 10000


def sanitize_input(value: object, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """
    Normalise untrusted text.

    Non-strings become "", null bytes are removed, surrounding whitespace is
    trimmed and the result is capped at max_length characters.
    """
    if not isinstance(value, str):
        return ""
    cleaned = value.replace("\0", "").strip()
    return cleaned[:max_length]


def sanitize_list(values: Iterable[object] | None, max_length: int = DEFAULT_MAX_LENGTH) -> list[str]:
    """Sanitise a list of strings, dropping entries that end up empty."""
    if not values:
        return []
    result = []
    for value in values:
        cleaned = sanitize_input(value, max_length)
        if cleaned:
            result.append(cleaned)
    return result


def sanitize_error(error: BaseException | None, development: bool = False) -> str:
    """Map an exception to a client-safe message."""
    if error is None:
        return "An error occurred"
    if development:
        return str(error) or "An error occurred"

    message = str(error).lower()
    if "timeout" in message or "timed out" in message:
        return "Request timeout. Please try again."
    if "network" in message or "connect" in message:
        return "Network error. Please check your connection."
    if "api" in message:
        return "External service error. Please try again later."
    return "An error occurred. Please try again."
