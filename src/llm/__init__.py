"""Language-model access: budgeted completion client and JSON helpers."""

from src.llm.completion_client import (
    CompletionClient,
    CompletionProvider,
    OpenAIChatProvider,
    build_completion_provider,
    parse_json_payload,
    strip_code_fences,
    with_mock_fallback,
)

__all__ = [
    "CompletionClient",
    "CompletionProvider",
    "OpenAIChatProvider",
    "build_completion_provider",
    "parse_json_payload",
    "strip_code_fences",
    "with_mock_fallback",
]
