"""
Semantic layer for embedding-based scope checks.

- EmbeddingGateway: single, time-bounded embedding call per text
- cosine_similarity: stateless vector comparison

Technology:
- text-embedding-3-small over HTTP, or sentence-transformers locally
- numpy for vector math
"""

from src.semantic.embedding_service import (
    EmbeddingGateway,
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    SentenceTransformerEmbeddingProvider,
    build_embedding_provider,
)
from src.semantic.similarity import cosine_similarity

__all__ = [
    "EmbeddingGateway",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "build_embedding_provider",
    "cosine_similarity",
]
