"""Answer assessment for the Tutor agents.

These assessors decide whether a learner's answer to the last probe is
correct, and how confident that judgement is:
- LengthHeuristicAssessor: substantive-length check, no model call
- LLMCorrectnessAssessor: grades against the expected answer with the LLM
"""

import logging
from typing import Optional, Protocol

from ...base.llm import TextGenerator
from ...base.utils import parse_json_response
from ..prompts import GRADING_SYSTEM, GRADING_TEMPLATE
from ..schemas import CorrectnessAssessment

logger = logging.getLogger(__name__)

MIN_ANSWER_LENGTH = 10
DEFAULT_CONFIDENCE = 0.7


class CorrectnessAssessor(Protocol):
    async def assess(
        self,
        question: str,
        learner_answer: str,
        expected_answer: Optional[str] = None,
    ) -> CorrectnessAssessment:
        ...


class LengthHeuristicAssessor:
    """Treats any answer longer than ``min_length`` characters as correct."""

    def __init__(self, min_length: int = MIN_ANSWER_LENGTH, confidence: float = DEFAULT_CONFIDENCE):
        self.min_length = min_length
        self.confidence = confidence

    async def assess(
        self,
        question: str,
        learner_answer: str,
        expected_answer: Optional[str] = None,
    ) -> CorrectnessAssessment:
        is_correct = len(learner_answer.strip()) > self.min_length
        return CorrectnessAssessment(is_correct=is_correct, confidence=self.confidence)


class LLMCorrectnessAssessor:
    """
    Grade an answer against the probe's expected answer using the LLM.

    Uses the LLM to:
    1. Compare the learner's answer to the expected answer
    2. Judge whether it is accurate and addresses the question
    3. Report a confidence (0-1) for that judgement

    Any generation or parse failure falls back to ``fallback``, so grading
    never blocks a turn.
    """

    def __init__(self, generator: TextGenerator, fallback: Optional[CorrectnessAssessor] = None):
        self.generator = generator
        self.fallback = fallback or LengthHeuristicAssessor()

    async def assess(
        self,
        question: str,
        learner_answer: str,
        expected_answer: Optional[str] = None,
    ) -> CorrectnessAssessment:
        prompt = GRADING_TEMPLATE.format(
            question=question,
            expected_answer=expected_answer or "Not specified",
            learner_answer=learner_answer,
        )

        try:
            response_text = await self.generator.generate(
                GRADING_SYSTEM, prompt, json_mode=True, max_tokens=200, temperature=0.3
            )
            return parse_json_response(response_text, CorrectnessAssessment)
        except Exception as e:
            logger.warning(f"LLM grading failed, using heuristic: {e}")
            return await self.fallback.assess(question, learner_answer, expected_answer)
