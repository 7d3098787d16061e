"""Tutor workflow tools.

This module provides the stateful helpers behind the Tutor agents:
- Mastery: knowledge state tracking and learner profile upkeep
- Assessment: pluggable answer-correctness assessors
"""

from .assessment import (
    CorrectnessAssessor,
    LengthHeuristicAssessor,
    LLMCorrectnessAssessor,
)

from .mastery import (
    StudentModel,
    blended_mastery_score,
    build_knowledge_state,
    initial_mastery_score,
    recommend_next_bloom_level,
)

__all__ = [
    # Assessment
    "CorrectnessAssessor",
    "LengthHeuristicAssessor",
    "LLMCorrectnessAssessor",

    # Mastery
    "StudentModel",
    "blended_mastery_score",
    "build_knowledge_state",
    "initial_mastery_score",
    "recommend_next_bloom_level",
]
