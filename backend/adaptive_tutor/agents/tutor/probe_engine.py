"""Socratic probing: one guiding question with a three-hint ladder."""

import logging
from typing import List, Optional

from pydantic import Field

from ...core.exceptions import ProbeEvaluationFailure, ProbeGenerationFailure
from ..base.llm import TextGenerator
from ..base.utils import parse_json_response, truncate_text
from .prompts import (
    PROBE_EVALUATION_SYSTEM,
    PROBE_EVALUATION_TEMPLATE,
    PROBE_SYSTEM,
    PROBE_TEMPLATE,
)
from .schemas import BloomLevel, ProbeEvaluation, ProbeQuestion, ProbeResponse, ProbeScaffolding, _CamelModel

logger = logging.getLogger(__name__)

DEFAULT_HINTS = [
    "Think about the key concepts",
    "Consider what you already know",
    "Break it down step by step",
]

FALLBACK_HINTS = [
    "Think about what you've learned",
    "Consider the main concepts",
    "Try breaking it into smaller parts",
]

HINT_LADDER_SIZE = 3


class _GeneratedProbe(_CamelModel):
    """Probe as generated, before the hint ladder is normalized."""

    question: str = ""
    bloom_level: Optional[BloomLevel] = Field(default=None, alias="bloomLevel")
    hints: List[str] = Field(default_factory=list)
    expected_answer: str = Field(default="", alias="expectedAnswer")
    scaffolding_type: Optional[ProbeScaffolding] = Field(default=None, alias="scaffoldingType")
    reasoning: str = ""


def _normalize_hints(hints: List[str]) -> List[str]:
    """Keep the first three non-empty hints, padding from the default ladder."""
    ladder = [hint.strip() for hint in hints if hint and hint.strip()][:HINT_LADDER_SIZE]
    for default_hint in DEFAULT_HINTS[len(ladder):]:
        ladder.append(default_hint)
    return ladder


def fallback_probe(topic: str, bloom_level: str) -> ProbeResponse:
    """Deterministic probe used whenever generation fails."""
    return ProbeResponse(
        probe=ProbeQuestion(
            question=f"Can you tell me what you understand about {topic}?",
            bloom_level=bloom_level,
            hints=list(FALLBACK_HINTS),
            expected_answer="Student understanding of topic",
            scaffolding_type="clarifying",
        ),
        reasoning="Fallback probe due to generation error",
    )


class ProbeEngine:
    """Generates Socratic probes and evaluates responses to them.

    Both operations recover locally: callers always receive a non-empty
    probe and a usable evaluation.
    """

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    async def generate_probe(
        self,
        topic: str,
        current_bloom_level: str,
        last_learner_response: Optional[str] = None,
        learning_goal: Optional[str] = None,
        previous_tutor_message: Optional[str] = None,
    ) -> ProbeResponse:
        """
        Generate exactly one guiding question for the current Bloom level.

        Args:
            topic: Topic being studied
            current_bloom_level: Bloom level the question should target
            last_learner_response: What the learner just said, if anything
            learning_goal: Goal the question should serve
            previous_tutor_message: Last thing the tutor said, for continuity

        Returns:
            ProbeResponse; a fallback question when generation fails
        """
        last_response_block = ""
        if last_learner_response:
            last_response_block += f"STUDENT'S LAST RESPONSE: \"{last_learner_response}\"\n"
        if previous_tutor_message:
            last_response_block += f"TUTOR'S PREVIOUS MESSAGE: \"{truncate_text(previous_tutor_message, 600)}\"\n"

        prompt = PROBE_TEMPLATE.format(
            topic=topic,
            bloom_level=current_bloom_level,
            learning_goal=learning_goal or "General understanding",
            last_response_block=last_response_block,
        )

        try:
            return await self._generate(prompt, topic, current_bloom_level)
        except ProbeGenerationFailure as e:
            logger.warning(f"Probe generation failed for {topic}, using fallback: {e}")
            return fallback_probe(topic, current_bloom_level)

    async def _generate(self, prompt: str, topic: str, current_bloom_level: str) -> ProbeResponse:
        try:
            response_text = await self.generator.generate(
                PROBE_SYSTEM, prompt, json_mode=True, max_tokens=1000, temperature=0.7
            )
            generated = parse_json_response(response_text, _GeneratedProbe)
        except Exception as e:
            raise ProbeGenerationFailure(str(e)) from e

        question = generated.question.strip() or f"Can you explain your understanding of {topic}?"

        return ProbeResponse(
            probe=ProbeQuestion(
                question=question,
                bloom_level=generated.bloom_level or current_bloom_level,
                hints=_normalize_hints(generated.hints),
                expected_answer=generated.expected_answer.strip() or "Student discovers through guided questioning",
                scaffolding_type=generated.scaffolding_type or "probing",
            ),
            reasoning=generated.reasoning or "Guiding student through Socratic questioning",
        )

    async def evaluate_probe_response(
        self,
        probe_question: str,
        expected_answer: str,
        learner_answer: str,
        hints_used: int,
    ) -> ProbeEvaluation:
        """Judge a reply to a probe and pick the next move; falls back to hint 0."""
        prompt = PROBE_EVALUATION_TEMPLATE.format(
            probe_question=probe_question,
            expected_answer=expected_answer,
            learner_answer=learner_answer,
            hints_used=hints_used,
        )

        try:
            return await self._evaluate(prompt)
        except ProbeEvaluationFailure as e:
            logger.warning(f"Probe evaluation failed, giving first hint: {e}")
            return ProbeEvaluation(
                is_correct=False,
                quality="poor",
                should_give_hint=True,
                hint_index=0,
                should_move_on=False,
                next_action="hint",
                reasoning="Evaluation failed, providing hint",
            )

    async def _evaluate(self, prompt: str) -> ProbeEvaluation:
        try:
            response_text = await self.generator.generate(
                PROBE_EVALUATION_SYSTEM, prompt, json_mode=True, max_tokens=300, temperature=0.3
            )
            return parse_json_response(response_text, ProbeEvaluation)
        except Exception as e:
            raise ProbeEvaluationFailure(str(e)) from e
