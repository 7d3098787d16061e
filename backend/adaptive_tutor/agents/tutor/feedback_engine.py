"""Layered feedback and worked examples.

Feedback follows Hattie's levels, most to least effective:
1. SELF-REGULATION - how to self-monitor and adjust strategies
2. PROCESS - which steps were right or wrong
3. TASK - what is right or wrong about the answer
Praise of the person is deliberately left out.
"""

import logging
from typing import Optional

from ...core.exceptions import FeedbackGenerationFailure, WorkedExampleGenerationFailure
from ..base.llm import TextGenerator
from ..base.utils import parse_json_response
from .prompts import (
    FEEDBACK_SYSTEM,
    FEEDBACK_TEMPLATE,
    WORKED_EXAMPLE_SYSTEM,
    WORKED_EXAMPLE_TEMPLATE,
    format_context_block,
)
from .schemas import StructuredFeedback, WorkedExample

logger = logging.getLogger(__name__)


class FeedbackEngine:
    """Generates feedback and worked examples; failures always propagate."""

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    async def generate_feedback(
        self,
        question: str,
        learner_answer: str,
        expected_answer: str,
        is_correct: bool,
        bloom_level: str,
        topic: Optional[str] = None,
        attempt_number: Optional[int] = None,
        hints_used: Optional[int] = None,
    ) -> StructuredFeedback:
        """
        Produce task, process and self-regulation feedback for one answer.

        Raises:
            FeedbackGenerationFailure: When the feedback cannot be generated or parsed
        """
        prompt = FEEDBACK_TEMPLATE.format(
            question=question,
            learner_answer=learner_answer,
            expected_answer=expected_answer or "Not specified",
            correctness="CORRECT" if is_correct else "INCORRECT",
            bloom_level=bloom_level,
            context_block=format_context_block(topic, attempt_number, hints_used),
        )

        try:
            response_text = await self.generator.generate(
                FEEDBACK_SYSTEM, prompt, json_mode=True, max_tokens=2500, temperature=0.7
            )
            return parse_json_response(response_text, StructuredFeedback)
        except Exception as e:
            logger.error(f"Feedback generation failed: {e}")
            raise FeedbackGenerationFailure("Failed to generate structured feedback") from e

    async def generate_worked_example(
        self,
        topic: str,
        concept: str,
        bloom_level: str,
        grade_level: str,
    ) -> WorkedExample:
        prompt = WORKED_EXAMPLE_TEMPLATE.format(
            topic=topic,
            concept=concept,
            bloom_level=bloom_level,
            grade_level=grade_level,
        )

        try:
            response_text = await self.generator.generate(
                WORKED_EXAMPLE_SYSTEM, prompt, json_mode=True, max_tokens=2000, temperature=0.7
            )
            return parse_json_response(response_text, WorkedExample)
        except Exception as e:
            logger.error(f"Worked example generation failed: {e}")
            raise WorkedExampleGenerationFailure("Failed to generate worked example") from e
