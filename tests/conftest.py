"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
isolated settings and counting fake providers.
"""
import json
import re
import sys
import zlib
from pathlib import Path
from typing import Callable

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings
from src.core.errors import CompletionUnavailable, EmbeddingUnavailable

EMBEDDING_DIM = 256
_WORD = re.compile(r"[a-z0-9]+")


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (HTTP layer with fake providers)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ========================================
# Fake providers
# ========================================


class FakeEmbeddingProvider:
    """
    Deterministic bag-of-words embeddings with call counting.

    Texts sharing words get positive cosine similarity; texts with no
    shared words are (nearly) orthogonal. `fixed` makes every text embed to
    the same vector; `error` makes every call fail.
    """

    name = "fake"

    def __init__(self, fixed: list[float] | None = None, error: Exception | None = None):
        self.fixed = fixed
        self.error = error
        self.calls: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        if self.fixed is not None:
            return list(self.fixed)
        vector = [0.0] * EMBEDDING_DIM
        for word in _WORD.findall(text.lower()):
            vector[zlib.crc32(word.encode()) % EMBEDDING_DIM] += 1.0
        return vector


class FakeCompletionProvider:
    """
    Completion provider driven by a handler, recording every call.

    handler may be a fixed string or a callable (system_prompt, user_prompt) -> str.
    """

    name = "fake"

    def __init__(
        self,
        handler: str | Callable[[str, str], str] | None = None,
        error: Exception | None = None,
    ):
        self.handler = handler
        self.error = error
        self.calls: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def complete(self, system_prompt, user_prompt, max_tokens, temperature) -> str:
        self.calls.append({
            "system": system_prompt,
            "user": user_prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        if callable(self.handler):
            return self.handler(system_prompt, user_prompt)
        if self.handler is None:
            raise CompletionUnavailable("No scripted reply")
        return self.handler


def mentor_handler(answer: str, concepts: list[str]) -> Callable[[str, str], str]:
    """Route concept-extraction prompts to a JSON list and everything else to answer."""

    def handle(system_prompt: str, user_prompt: str) -> str:
        if "extract key concepts" in system_prompt:
            return json.dumps(concepts)
        return answer

    return handle


# ========================================
# Fixtures
# ========================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Isolated settings: no .env, no API key, no log file."""
    return Settings(
        _env_file=None,
        openai_api_key=None,
        embedding_provider="none",
        environment="test",
        log_file=None,
        llm_timeout_seconds=2,
        embedding_timeout_seconds=2,
    )


@pytest.fixture
def embedding_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def failing_embedding_provider():
    return FakeEmbeddingProvider(error=EmbeddingUnavailable("embedding service down"))


@pytest.fixture
def bst_topic():
    """The Binary Search Trees day used across scope tests."""
    return {
        "topic": "Binary Search Trees",
        "subtasks": ["insertion", "deletion"],
    }


@pytest.fixture
def reflection():
    """A reflection long enough to be evaluated."""
    return (
        "Today I learned how insertion works in a binary search tree and why "
        "deletion of a node with two children needs the in-order successor."
    )


@pytest.fixture
def fake_completion():
    """Factory for scripted completion providers."""
    return FakeCompletionProvider


@pytest.fixture
def fake_embedding():
    """Factory for fake embedding providers."""
    return FakeEmbeddingProvider


@pytest.fixture
def scripted_mentor():
    """Factory for a handler answering chat prompts and concept prompts differently."""
    return mentor_handler
