"""
Embedding Gateway - Turn text into semantic vectors for scope checks.

The gateway wraps exactly one provider and makes a single, time-bounded
attempt per call. Any failure surfaces as EmbeddingUnavailable so the scope
gate can degrade instead of crashing. Caching is not done here; the DKB
store owns it.

Providers:
- OpenAIEmbeddingProvider: text-embedding-3-small over HTTP (httpx)
- SentenceTransformerEmbeddingProvider: all-MiniLM-L6-v2 run locally (384-dim)

References:
- https://platform.openai.com/docs/api-reference/embeddings
- https://www.sbert.net/docs/pretrained_models.html
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import httpx
import numpy as np
from loguru import logger

from config import Settings, get_settings
from src.core.errors import EmbeddingUnavailable, MentorError, ValidationFailure

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer


class EmbeddingProvider(Protocol):
    """Anything that can embed a single text."""

    name: str

    async def embed(self, text: str) -> list[float]:
        ...


class OpenAIEmbeddingProvider:
    """Remote embeddings through an OpenAI-compatible /embeddings endpoint."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        client: httpx.AsyncClient | None = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._client = client

    async def embed(self, text: str) -> list[float]:
        payload = {"model": self.model, "input": text}
        try:
            if self._client is not None:
                response = await self._client.post(
                    f"{self.base_url}/embeddings", json=payload, headers=self._headers
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        f"{self.base_url}/embeddings", json=payload, headers=self._headers
                    )
            response.raise_for_status()
            data = response.json()
            return [float(x) for x in data["data"][0]["embedding"]]
        except httpx.HTTPError as e:
            raise EmbeddingUnavailable(f"Embedding request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingUnavailable(f"Malformed embedding response: {e}") from e


class SentenceTransformerEmbeddingProvider:
    """
    Local embeddings with sentence-transformers.

    The model is lazy-loaded on first use to avoid startup delays and is
    encoded in a worker thread so the event loop stays free.
    """

    name = "local"

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """
        Lazy load the model on first use.

        The model is downloaded from HuggingFace Hub on first run (~90MB).
        """
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    async def embed(self, text: str) -> list[float]:
        try:
            vector = await asyncio.to_thread(self.model.encode, text, convert_to_numpy=True)
        except (ImportError, OSError, RuntimeError) as e:
            raise EmbeddingUnavailable(f"Local embedding failed: {e}") from e
        return vector.tolist()


def build_embedding_provider(settings: Settings | None = None) -> EmbeddingProvider | None:
    """Create the provider selected by settings, or None when embeddings are off."""
    settings = settings or get_settings()
    choice = settings.resolved_embedding_provider()

    if choice == "openai":
        if not settings.openai_api_key:
            logger.warning("embedding_provider=openai but no API key - semantic gate will fail open")
            return None
        return OpenAIEmbeddingProvider(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.openai_base_url,
        )
    if choice == "local":
        return SentenceTransformerEmbeddingProvider(settings.local_embedding_model)
    return None


class EmbeddingGateway:
    """
    Single point of embedding computation.

    Example:
        >>> gateway = EmbeddingGateway(OpenAIEmbeddingProvider(api_key="..."))
        >>> vector = await gateway.embed("What is a binary search tree?")
        >>> vector.shape  # (1536,)
    """

    def __init__(
        self,
        provider: EmbeddingProvider | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.provider = provider
        self.timeout_seconds = settings.embedding_timeout_seconds

    @property
    def is_available(self) -> bool:
        return self.provider is not None

    async def embed(self, text: str) -> np.ndarray:
        """
        Embed one text with a single, time-bounded attempt.

        Raises:
            ValidationFailure: text is blank.
            EmbeddingUnavailable: no provider, timeout or provider error.
        """
        if not text or not text.strip():
            raise ValidationFailure("Text is required for embedding generation")
        if self.provider is None:
            raise EmbeddingUnavailable("No embedding provider configured")

        try:
            vector = await asyncio.wait_for(
                self.provider.embed(text.strip()), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailable(
                f"Embedding timed out after {self.timeout_seconds}s"
            ) from e
        except MentorError:
            raise
        except Exception as e:
            logger.error(f"Embedding provider fault: {e!r}")
            raise EmbeddingUnavailable(f"Embedding failed: {e}") from e

        return np.asarray(vector, dtype=np.float32)

    def get_provider_info(self) -> dict:
        """Describe the configured provider for health reporting."""
        return {
            "provider": self.provider.name if self.provider else "none",
            "available": self.is_available,
            "timeout_seconds": self.timeout_seconds,
        }
