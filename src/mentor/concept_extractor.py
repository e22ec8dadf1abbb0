"""
Concept Extractor: derive short concept phrases from a mentor answer.

Primary path asks the model for the concepts the answer explains or
introduces. When the model is unavailable or its output cannot be parsed,
a deterministic heuristic scans the answer for technical-looking terms.

Both paths are side-effect free; the orchestrator decides whether the
result is committed into the day knowledge base.
"""

from __future__ import annotations

import re

from loguru import logger

from config import Settings, get_settings
from src.core.ai_limits import CallType
from src.core.errors import ModelContractViolation
from src.llm.completion_client import CompletionClient, parse_json_payload, with_mock_fallback

MIN_CONCEPT_CHARS = 2
MAX_CONCEPT_CHARS = 50


CONCEPT_SYSTEM_PROMPT = (
    "You extract key concepts from tutoring answers. "
    "Return only a JSON array of strings. No explanations, no markdown."
)

CONCEPT_USER_PROMPT = """TOPIC: {topic}

ANSWER:
{answer}

List up to {limit} short concept phrases (2-5 words each) that are explained or
introduced in the answer above and belong to the topic "{topic}".
Do not include concepts that the answer does not mention.
Return ONLY a JSON array of strings."""


# Abbreviations that count as concepts even when written in lower case.
TECHNICAL_ABBREVIATIONS = frozenset({
    "api", "ast", "avl", "bfs", "bst", "cli", "cpu", "css", "dfs", "dns",
    "dom", "gpu", "html", "http", "https", "ide", "jit", "json", "jwt", "lru",
    "oop", "orm", "ram", "rest", "sdk", "sql", "ssd", "tcp", "udp", "url",
    "vm", "xml", "yaml",
})


def normalize_concept(raw: str) -> str | None:
    """Lower-case, trim and length-check one concept; None if unusable."""
    concept = " ".join(raw.split()).strip(" \t.,;:!?()[]{}\"'`").lower()
    if MIN_CONCEPT_CHARS <= len(concept) <= MAX_CONCEPT_CHARS:
        return concept
    return None


def _finalize(candidates: list[str], topic: str, limit: int) -> list[str]:
    """Normalise, drop the topic itself, dedupe, cap."""
    topic_key = " ".join(topic.lower().split())
    result: list[str] = []
    for raw in candidates:
        concept = normalize_concept(raw)
        if concept is None or concept == topic_key or concept in result:
            continue
        result.append(concept)
        if len(result) >= limit:
            break
    return result


class ConceptExtractor:
    """
    Extracts concept phrases from answers, model first and heuristic second.

    Example:
        >>> extractor = ConceptExtractor(completion_client)
        >>> await extractor.extract("A BST keeps a balance factor ...", "Binary Search Trees")
        ['balance factor', 'rotation']
    """

    # ==========================================================================
    # HEURISTIC PATTERNS (re.VERBOSE for readability)
    # ==========================================================================

    CAMEL_CASE = re.compile(r"""
        \b
        [A-Za-z][a-z0-9]+               # Leading word (Java, binary)
        (?: [A-Z][a-z0-9]+ )+           # One or more capitalised humps
        \b
    """, re.VERBOSE)

    ACRONYM = re.compile(r"""
        \b
        [A-Z]{2,6}                      # 2-6 capitals (BST, HTTP)
        s?                              # Optional plural (APIs)
        \b
    """, re.VERBOSE)

    HYPHENATED = re.compile(r"""
        \b
        [A-Za-z]{2,}                    # First part
        (?: - [A-Za-z0-9]{2,} )+        # -second(-third)
        \b
    """, re.VERBOSE)

    WORD = re.compile(r"\b[A-Za-z]{2,5}\b")

    QUOTED = re.compile(r"""
        ["“`]                      # Opening quote or backtick
        ( [^"”`\n]{2,50} )         # Quoted term
        ["”`]                      # Closing quote or backtick
    """, re.VERBOSE)

    def __init__(
        self,
        client: CompletionClient,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.client = client
        self.limit = settings.max_concepts_per_answer

    async def extract(self, answer_text: str, topic: str) -> list[str]:
        """Concepts explained or introduced in answer_text, at most self.limit."""
        if not answer_text or not answer_text.strip():
            return []

        return await with_mock_fallback(
            lambda: self._extract_with_model(answer_text, topic),
            lambda: self.extract_heuristic(answer_text, topic),
            label="Concept extraction",
        )

    async def _extract_with_model(self, answer_text: str, topic: str) -> list[str]:
        text = await self.client.complete(
            CallType.CONCEPTS,
            CONCEPT_SYSTEM_PROMPT,
            CONCEPT_USER_PROMPT.format(topic=topic, answer=answer_text, limit=self.limit),
        )
        parsed = parse_json_payload(text)
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ModelContractViolation("Concept output is not a JSON array of strings", raw=text)

        concepts = _finalize(parsed, topic, self.limit)
        logger.debug(f"Model extracted {len(concepts)} concepts for '{topic}'")
        return concepts

    def extract_heuristic(self, answer_text: str, topic: str) -> list[str]:
        """Deterministic fallback: technical-looking terms in order of appearance."""
        found: list[tuple[int, str]] = []

        for pattern in (self.CAMEL_CASE, self.ACRONYM, self.HYPHENATED):
            for match in pattern.finditer(answer_text):
                found.append((match.start(), match.group(0)))

        for match in self.WORD.finditer(answer_text):
            if match.group(0).lower() in TECHNICAL_ABBREVIATIONS:
                found.append((match.start(), match.group(0)))

        for match in self.QUOTED.finditer(answer_text):
            found.append((match.start(1), match.group(1)))

        found.sort(key=lambda item: item[0])
        return _finalize([term for _, term in found], topic, self.limit)
