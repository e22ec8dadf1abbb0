"""
Question Rephraser: rewrite deictic questions to name today's topic.

Learners ask "How does this work?" without saying what "this" is. Before the
scope gate runs, such phrasings are rewritten from fixed templates so they
reference the topic (or the first subtask). The rewrite never adds concepts
beyond the topic and subtasks. Questions that already name the topic, or
that match no template, pass through unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from loguru import logger


@dataclass(frozen=True)
class RephraseRule:
    """One template: a pattern plus the rewrite with and without a subtask."""
    name: str
    pattern: re.Pattern
    topic_template: str
    subtask_template: str | None = None

    def apply(self, topic: str, first_subtask: str | None) -> str:
        if first_subtask and self.subtask_template:
            return self.subtask_template.format(topic=topic, subtask=first_subtask)
        return self.topic_template.format(topic=topic)


# ==========================================================================
# DEICTIC QUESTION PATTERNS (re.VERBOSE for readability)
# ==========================================================================

GENERIC_TERMS = r"(?: computer | system | process | mechanism | component | device | machine )"

REPHRASE_RULES: tuple[RephraseRule, ...] = (
    RephraseRule(
        name="how_does_this_work",
        pattern=re.compile(r"""
            ^ how \s+ does \s+ (?: this | it | that ) \s+ work
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Explain how {topic} works.",
        subtask_template="Explain how {subtask} works in the context of {topic}.",
    ),
    RephraseRule(
        name="what_is_this",
        pattern=re.compile(r"""
            ^ what \s+ is \s+ (?: this | it | that ) $
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="What is {topic}?",
    ),
    RephraseRule(
        name="how_do_i_use_this",
        pattern=re.compile(r"""
            ^ how \s+ do \s+ i \s+
            (?: do | use | apply | implement | work \s+ with ) \s+
            (?: this | it | that )
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="How do I work with {topic}?",
        subtask_template="How do I {subtask}?",
    ),
    RephraseRule(
        name="why_does_this_matter",
        pattern=re.compile(r"""
            ^ why \s+ (?: is | does ) \s+ (?: this | it | that ) \s+
            (?: important | matter | relevant )
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Why is {topic} important?",
    ),
    RephraseRule(
        name="explain_this",
        pattern=re.compile(r"""
            ^ can \s+ you \s+ (?: explain | tell \s+ me \s+ about | describe ) \s+
            (?: this | it | that )
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Explain {topic}.",
    ),
    RephraseRule(
        name="tell_me_more",
        pattern=re.compile(r"""
            ^ (?: what \s+ about | tell \s+ me \s+ more \s+ about ) \s+
            (?: this | it | that )
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Tell me more about {topic}.",
    ),
    RephraseRule(
        name="how_does_the_system_work",
        pattern=re.compile(rf"""
            how \s+ does \s+ (?: the \s+ )? {GENERIC_TERMS} \s+ work
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Explain how the components in {topic} work together.",
        subtask_template="Explain how {subtask} works in {topic}.",
    ),
    RephraseRule(
        name="what_are_the_basics",
        pattern=re.compile(r"""
            ^ what \s+ are \s+ (?: the \s+ )?
            (?: basics | fundamentals | key \s+ concepts | main \s+ points )
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="What are the basics of {topic}?",
    ),
    RephraseRule(
        name="show_me_an_example",
        pattern=re.compile(r"""
            ^ (?: show | give | provide ) \s+ me \s+ (?: an \s+ )? example
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Give me an example of {topic}.",
    ),
    RephraseRule(
        name="this_is_confusing",
        pattern=re.compile(r"""
            ^ (?: this | it ) \s+ (?: is | seems | appears | looks )
        """, re.VERBOSE | re.IGNORECASE),
        topic_template="Explain {topic} more clearly.",
    ),
)

_TRAILING_PUNCTUATION = " \t?!.,;:"


def rephrase_question(
    question: str,
    topic: str,
    subtasks: Sequence[str] = (),
) -> str:
    """
    Rewrite a deictic question to reference the topic.

    Args:
        question: Learner's original question
        topic: Today's topic
        subtasks: Today's subtasks; the first one is used where a template
            can be more specific

    Returns:
        The rewritten question, or the original when it already names the
        topic or matches no template.
    """
    if not question or not topic or not topic.strip():
        return question

    topic_lower = " ".join(topic.lower().split())
    if topic_lower in question.lower():
        return question

    probe = question.strip().rstrip(_TRAILING_PUNCTUATION)
    first_subtask = next(
        (s.strip().lower() for s in subtasks if isinstance(s, str) and s.strip()),
        None,
    )

    for rule in REPHRASE_RULES:
        if rule.pattern.search(probe):
            rewritten = rule.apply(topic_lower, first_subtask)
            logger.debug(f"Rephrased question via '{rule.name}': {question[:100]!r} -> {rewritten!r}")
            return rewritten

    return question
