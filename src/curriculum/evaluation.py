"""
Evaluation Engine: judge an end-of-day reflection.

The model is told to evaluate only, never to teach. Its JSON is validated
field by field against the verdict enums; anything it gets wrong is replaced
by the conservative default (basic / medium / [] / continue). A missing
provider, timeout or unparsable reply yields the full default verdict.
"""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from config import Settings, get_settings
from src.core.ai_limits import CallType
from src.core.errors import ValidationFailure
from src.core.sanitize import sanitize_input, sanitize_list
from src.curriculum.models import EvaluationVerdict
from src.llm.completion_client import CompletionClient, parse_json_payload, with_mock_fallback

EVALUATION_SYSTEM_PROMPT = (
    "You are an internal learning evaluation engine. Your task is to evaluate the "
    "learner's understanding based ONLY on today's syllabus and the learner's written "
    "reflection. Return ONLY valid JSON with no explanations, no feedback text, no "
    "other content outside the JSON."
)

EVALUATION_INSTRUCTION = """You are an internal learning evaluation engine.

Your task is NOT to teach or explain.
Your task is to evaluate the learner's understanding based ONLY on today's syllabus
and the learner's written reflection.

EVALUATION RULES (STRICT):
- Evaluate ONLY against today's topic and subtasks
- Do NOT introduce new concepts
- Do NOT provide explanations or advice
- Do NOT grade or score numerically
- Be conservative in judgments

WHAT TO DETERMINE:

1. Understanding level: "low" | "basic" | "good" | "strong"
2. Confidence level: "low" | "medium" | "high"
3. Gaps detected: specific missing or confused concepts (empty list if none)
4. Recommended action:
   - "repeat"   (learner struggled)
   - "continue" (learner is on track)
   - "simplify" (learner is confused, needs easier next step)
   - "advance"  (learner shows strong understanding)

OUTPUT FORMAT (RETURN ONLY THIS JSON):

{
  "understanding_level": "",
  "confidence": "",
  "gaps_detected": [],
  "recommended_action": ""
}

If information is insufficient, default to:
understanding_level = "basic"
confidence = "medium"
recommended_action = "continue"
"""


def build_evaluation_prompt(topic: str, subtasks: Sequence[str], reflection: str) -> str:
    lines = [f"Today's topic: {topic}"]
    if subtasks:
        lines.append("Today's subtasks:")
        lines.extend(f"{i}. {subtask}" for i, subtask in enumerate(subtasks, start=1))
    lines.append(f'Learner\'s response to "What did you learn today?": {reflection}')
    return "\n".join(lines) + "\n\n" + EVALUATION_INSTRUCTION


class EvaluationEngine:
    """
    Scores a learner reflection against today's topic and subtasks.

    Example:
        >>> engine = EvaluationEngine(generation_client)
        >>> verdict = await engine.evaluate("Binary Search Trees", ["insertion"], reflection)
        >>> verdict.requires_regeneration
        False
    """

    def __init__(self, client: CompletionClient, settings: Settings | None = None):
        settings = settings or get_settings()
        self.client = client
        self.min_chars = settings.reflection_min_chars
        self.max_input_chars = settings.max_input_chars

    async def evaluate(
        self,
        topic: str,
        subtasks: Sequence[str],
        reflection: str,
    ) -> EvaluationVerdict:
        """
        Raises:
            ValidationFailure: topic blank or reflection shorter than reflection_min_chars.
        """
        topic = sanitize_input(topic, self.max_input_chars)
        reflection = sanitize_input(reflection, self.max_input_chars)
        subtasks = sanitize_list(subtasks, self.max_input_chars)

        if not topic:
            raise ValidationFailure("topic is required and must be a non-empty string")
        if len(reflection) < self.min_chars:
            raise ValidationFailure(
                f"reflection is required and must be at least {self.min_chars} characters"
            )

        verdict = await with_mock_fallback(
            lambda: self._evaluate_with_model(topic, subtasks, reflection),
            EvaluationVerdict.default,
            label="Evaluation",
        )
        logger.info(
            f"Evaluated reflection for '{topic}': "
            f"{verdict.understanding_level.value}/{verdict.recommended_action.value}"
        )
        return verdict

    async def _evaluate_with_model(
        self,
        topic: str,
        subtasks: list[str],
        reflection: str,
    ) -> EvaluationVerdict:
        text = await self.client.complete(
            CallType.EVALUATION,
            EVALUATION_SYSTEM_PROMPT,
            build_evaluation_prompt(topic, subtasks, reflection),
        )
        return EvaluationVerdict.from_model_payload(parse_json_payload(text))
