"""Lesson planning with Bloom-ordered micro-steps."""

import logging
from typing import Optional

from ...core.exceptions import PlanGenerationFailure
from ...db.tutor.models import LessonPlanRecord
from ..base.llm import TextGenerator
from ..base.utils import parse_json_response
from .prompts import (
    LESSON_PLAN_SYSTEM,
    LESSON_PLAN_TEMPLATE,
    PRIOR_KNOWLEDGE_SYSTEM,
    PRIOR_KNOWLEDGE_TEMPLATE,
)
from .schemas import LessonPlanData, PriorKnowledgeAssessment

logger = logging.getLogger(__name__)


def plan_from_record(record: LessonPlanRecord) -> LessonPlanData:
    """Rebuild a stored session plan."""
    return LessonPlanData(
        learning_goals=list(record.learning_goals or []),
        target_bloom_level=record.target_bloom_level,
        prior_knowledge_check=record.prior_knowledge_check,
        steps=list(record.steps or []),
        resources=list(record.resources or []),
        estimated_duration=record.estimated_duration or 0,
    )


class LessonPlanner:
    """
    Builds lesson plans and assesses prior knowledge.

    A plan is generated at most once per session; callers check the store
    for an existing plan before calling ``create_lesson_plan``. There is no
    safe synthetic plan, so generation failures raise ``PlanGenerationFailure``.
    """

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    async def create_lesson_plan(
        self,
        topic: str,
        subject: str,
        grade_level: str,
        prior_knowledge_signal: Optional[str] = None,
        target_bloom_level: str = "understand",
    ) -> LessonPlanData:
        prompt = LESSON_PLAN_TEMPLATE.format(
            topic=topic,
            subject=subject,
            grade_level=grade_level,
            prior_knowledge=prior_knowledge_signal or "Unknown - need to check",
            target_bloom_level=target_bloom_level,
        )

        try:
            response_text = await self.generator.generate(
                LESSON_PLAN_SYSTEM, prompt, json_mode=True, max_tokens=4000, temperature=0.7
            )
            plan = parse_json_response(response_text, LessonPlanData)
        except Exception as e:
            logger.error(f"Lesson planning failed for {subject}/{topic}: {e}")
            raise PlanGenerationFailure(f"Failed to create lesson plan for {topic}") from e

        logger.info(
            f"Created lesson plan for {subject}/{topic}: {len(plan.steps)} steps, "
            f"target {plan.target_bloom_level}"
        )
        return plan

    async def assess_prior_knowledge(
        self,
        student_response: str,
        expected_knowledge: str,
    ) -> PriorKnowledgeAssessment:
        """Classify prior knowledge as none/partial/good; never raises."""
        prompt = PRIOR_KNOWLEDGE_TEMPLATE.format(
            expected_knowledge=expected_knowledge,
            student_response=student_response,
        )

        try:
            response_text = await self.generator.generate(
                PRIOR_KNOWLEDGE_SYSTEM, prompt, json_mode=True, max_tokens=1500, temperature=0.3
            )
            return parse_json_response(response_text, PriorKnowledgeAssessment)
        except Exception as e:
            logger.warning(f"Prior knowledge assessment failed: {e}")
            return PriorKnowledgeAssessment(
                has_knowledge=False,
                knowledge_level="none",
                gaps=["Unable to assess"],
                recommendation="Start from basics",
            )
