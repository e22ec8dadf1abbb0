"""
Day Knowledge Base (DKB) store.

A DKB is the sanctioned knowledge for one day: the day's topic, its subtasks,
and the concepts the mentor has introduced so far. It is used both to gate
scope (through its embedding) and to build answer context.

Lifecycle:
- created lazily on the first question for a topic
- expanded after every answer
- evicted at the day boundary, or when the store overflows (oldest first)

Only a handful of days are ever warm at once, so eviction is plain
insertion order rather than LRU.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

import numpy as np
from loguru import logger

from config import Settings, get_settings
from src.core.errors import ValidationFailure
from src.semantic.embedding_service import EmbeddingGateway


def normalize_topic(topic: str | None) -> str:
    """Store key for a topic: lower-case, trimmed, whitespace collapsed."""
    if not topic:
        return ""
    return " ".join(topic.lower().split())


@dataclass
class DayKnowledgeBase:
    """Sanctioned knowledge for one day."""

    topic: str
    subtasks: tuple[str, ...]
    concepts: list[str] = field(default_factory=list)
    embedding: np.ndarray | None = None
    embedding_dirty: bool = True
    last_answer: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> str:
        return normalize_topic(self.topic)

    def embedding_text(self) -> str:
        """Text whose embedding represents this DKB's scope."""
        parts = [f"Topic: {self.topic}"]
        if self.subtasks:
            parts.append(f"Subtasks: {', '.join(self.subtasks)}")
        if self.concepts:
            parts.append(f"Concepts: {', '.join(self.concepts)}")
        return ". ".join(parts)


class DKBStore:
    """
    Process-local store of day knowledge bases plus a shared embedding cache.

    Owned by the request-handling runtime and passed to the scope gate and
    orchestrator; tests build a fresh store per case.
    """

    def __init__(
        self,
        gateway: EmbeddingGateway,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.gateway = gateway
        self.concept_cap = settings.dkb_concept_cap
        self.max_entries = settings.dkb_max_entries
        self.cache_max_entries = settings.embedding_cache_max_entries

        self._entries: OrderedDict[str, DayKnowledgeBase] = OrderedDict()
        self._embedding_cache: OrderedDict[str, np.ndarray] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, topic: str) -> bool:
        return normalize_topic(topic) in self._entries

    def get(self, topic: str) -> DayKnowledgeBase | None:
        return self._entries.get(normalize_topic(topic))

    def get_or_create(self, topic: str, subtasks: Iterable[str] = ()) -> DayKnowledgeBase:
        """
        Return the DKB for topic, creating it on first access.

        Subtasks are fixed at creation; later calls with different subtasks
        return the existing record unchanged.
        """
        key = normalize_topic(topic)
        if not key:
            raise ValidationFailure("Topic is required to build a day knowledge base")

        existing = self._entries.get(key)
        if existing is not None:
            return existing

        clean_subtasks = tuple(
            s.strip() for s in subtasks if isinstance(s, str) and s.strip()
        )
        dkb = DayKnowledgeBase(topic=topic.strip(), subtasks=clean_subtasks)
        self._entries[key] = dkb
        logger.debug(f"Created DKB for '{dkb.topic}' ({len(clean_subtasks)} subtasks)")

        while len(self._entries) > self.max_entries:
            evicted_key, evicted = self._entries.popitem(last=False)
            self._locks.pop(evicted_key, None)
            logger.info(f"Evicted DKB '{evicted.topic}' (store capacity {self.max_entries})")

        return dkb

    def expand(self, dkb: DayKnowledgeBase, concepts: Iterable[str]) -> int:
        """
        Append new concepts, case-insensitively deduplicated and capped.

        Returns:
            Number of concepts added. The embedding is marked dirty only when
            this is non-zero.
        """
        seen = {c.lower() for c in dkb.concepts}
        added = 0
        dropped = 0

        for raw in concepts or ():
            if not isinstance(raw, str):
                continue
            concept = " ".join(raw.split())
            if not concept or concept.lower() in seen:
                continue
            if len(dkb.concepts) >= self.concept_cap:
                dropped += 1
                continue
            dkb.concepts.append(concept)
            seen.add(concept.lower())
            added += 1

        if added:
            dkb.embedding_dirty = True
        if dropped:
            logger.debug(f"DKB '{dkb.topic}' at cap ({self.concept_cap}); dropped {dropped} concepts")
        return added

    def remember_answer(self, dkb: DayKnowledgeBase, answer: str) -> None:
        """Keep the latest mentor answer for follow-up suggestions."""
        dkb.last_answer = answer

    async def get_embedding(self, dkb: DayKnowledgeBase) -> np.ndarray:
        """
        Embedding of the DKB's current text.

        Recomputed only when dirty or absent. A shared text cache lets
        identical DKB text skip the provider call.

        Raises:
            EmbeddingUnavailable: propagated from the gateway.
        """
        lock = self._locks.setdefault(dkb.key, asyncio.Lock())
        async with lock:
            if dkb.embedding is not None and not dkb.embedding_dirty:
                return dkb.embedding

            text = dkb.embedding_text()
            cache_key = text.lower()
            vector = self._embedding_cache.get(cache_key)
            if vector is None:
                vector = await self.gateway.embed(text)
                self._cache_put(cache_key, vector)

            dkb.embedding = vector
            # An expand() during the await makes this vector stale; stay dirty.
            dkb.embedding_dirty = dkb.embedding_text() != text
            return vector

    def reset_at_boundary(self, topic: str) -> bool:
        """Hard-delete a day's DKB. Returns True if one existed."""
        key = normalize_topic(topic)
        removed = self._entries.pop(key, None)
        self._locks.pop(key, None)
        if removed is not None:
            logger.info(
                f"Reset DKB for '{removed.topic}' at day boundary "
                f"({len(removed.concepts)} concepts discarded)"
            )
            return True
        return False

    def _cache_put(self, key: str, vector: np.ndarray) -> None:
        self._embedding_cache[key] = vector
        while len(self._embedding_cache) > self.cache_max_entries:
            self._embedding_cache.popitem(last=False)

    def stats(self) -> dict[str, int]:
        return {
            "dkb_entries": len(self._entries),
            "dkb_max_entries": self.max_entries,
            "embedding_cache_entries": len(self._embedding_cache),
            "embedding_cache_max_entries": self.cache_max_entries,
        }
