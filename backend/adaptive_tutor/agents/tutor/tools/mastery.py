"""Mastery tracking for the Tutor agents.

These tools enable:
- Creating learner profiles on first contact
- Updating per-Bloom-level mastery after each graded answer
- Deriving the knowledge state (weighted score, weak/strong areas,
  recommended Bloom level) for a topic
- Recording recent errors and session statistics on the profile
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from ....core.config import Settings, get_settings
from ....db.tutor.models import LearnerProfile
from ....db.tutor.store import TutorStore
from ...base import KeyedLocks
from ..schemas import BLOOM_ORDER, BLOOM_WEIGHTS, KnowledgeState, MasteryLevel

logger = logging.getLogger(__name__)

MASTERED_THRESHOLD = 70.0
WEAK_THRESHOLD = 60.0
STRONG_THRESHOLD = 80.0


# =============================================================================
# Scoring
# =============================================================================

def _clamp_confidence(confidence: Optional[float]) -> Optional[float]:
    if confidence is None:
        return None
    return min(max(confidence, 0.0), 1.0)


def initial_mastery_score(is_correct: bool, confidence: Optional[float] = None) -> float:
    """Score for the first observation of a Bloom level."""
    confidence = _clamp_confidence(confidence)
    if not is_correct:
        return 0.0
    return confidence * 100 if confidence is not None else 100.0


def blended_mastery_score(correct_count: int, attempts: int, confidence: Optional[float] = None) -> float:
    """
    Correctness ratio blended 70/30 with the confidence signal.

    Args:
        correct_count: Correct answers so far
        attempts: Total attempts so far (including this one)
        confidence: Optional confidence in [0, 1]

    Returns:
        Score in [0, 100]
    """
    correctness = (correct_count / attempts) * 100 if attempts > 0 else 0.0
    confidence = _clamp_confidence(confidence)
    if confidence is None:
        return round(correctness, 2)
    return round(correctness * 0.7 + confidence * 100 * 0.3, 2)


def _area_label(level: MasteryLevel) -> str:
    return f"{level.bloom_level} ({level.score:.0f}%)"


def recommend_next_bloom_level(mastery_levels: Sequence[MasteryLevel]) -> str:
    """
    Walk the Bloom order from ``remember`` and recommend the level after the
    last contiguously mastered one (score >= 70).
    """
    scores = {level.bloom_level: level.score for level in mastery_levels}

    highest_mastered = -1
    for index, bloom_level in enumerate(BLOOM_ORDER):
        score = scores.get(bloom_level)
        if score is None or score < MASTERED_THRESHOLD:
            break
        highest_mastered = index

    return BLOOM_ORDER[min(highest_mastered + 1, len(BLOOM_ORDER) - 1)]


def build_knowledge_state(subject: str, topic: str, mastery_levels: Iterable[MasteryLevel]) -> KnowledgeState:
    """Derive a KnowledgeState from a topic's mastery records."""
    levels = sorted(mastery_levels, key=lambda level: BLOOM_ORDER.index(level.bloom_level))

    total_weight = sum(BLOOM_WEIGHTS[level.bloom_level] for level in levels)
    weighted_sum = sum(level.score * BLOOM_WEIGHTS[level.bloom_level] for level in levels)
    overall_score = weighted_sum / total_weight if total_weight > 0 else 0.0

    return KnowledgeState(
        subject=subject,
        topic=topic,
        mastery_levels=levels,
        overall_score=overall_score,
        weak_areas=[_area_label(level) for level in levels if level.score < WEAK_THRESHOLD],
        strong_areas=[_area_label(level) for level in levels if level.score >= STRONG_THRESHOLD],
        recommended_bloom_level=recommend_next_bloom_level(levels),
    )


# =============================================================================
# Student model
# =============================================================================

class StudentModel:
    """Knowledge State Tracker backed by the tutor store."""

    def __init__(self, store: TutorStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self._locks = KeyedLocks()

    async def get_or_create_profile(self, learner_id: str) -> LearnerProfile:
        return await self.store.get_or_create_profile(
            learner_id, preferred_mode=self.settings.DEFAULT_TUTORING_MODE
        )

    async def update_mastery(
        self,
        learner_id: str,
        subject: str,
        topic: str,
        bloom_level: str,
        is_correct: bool,
        confidence: Optional[float] = None,
    ) -> MasteryLevel:
        """
        Record one graded attempt at a Bloom level.

        The first attempt scores on correctness and confidence alone; later
        ones blend the running correctness ratio with the confidence.

        Returns:
            The updated mastery level
        """

        def score_for(record) -> float:
            if record.attempts == 1:
                return initial_mastery_score(is_correct, confidence)
            return blended_mastery_score(record.correct_count, record.attempts, confidence)

        async with self._locks.hold((learner_id, subject, topic, bloom_level)):
            record = await self.store.record_mastery_attempt(
                learner_id,
                subject,
                topic,
                bloom_level,
                is_correct=is_correct,
                practiced_at=datetime.utcnow(),
                score_for=score_for,
            )

        logger.info(
            f"Mastery for {learner_id} {subject}/{topic}@{bloom_level}: "
            f"{record.score:.1f} after {record.attempts} attempts"
        )
        return MasteryLevel(
            bloom_level=record.bloom_level,
            score=record.score,
            attempts=record.attempts,
            last_practiced=record.last_practiced_at,
        )

    async def get_knowledge_state(self, learner_id: str, subject: str, topic: str) -> KnowledgeState:
        records = await self.store.list_mastery_by_topic(learner_id, subject, topic)
        levels: List[MasteryLevel] = [
            MasteryLevel(
                bloom_level=record.bloom_level,
                score=float(record.score or 0.0),
                attempts=record.attempts or 0,
                last_practiced=record.last_practiced_at,
            )
            for record in records
        ]
        return build_knowledge_state(subject, topic, levels)

    async def track_error(self, learner_id: str, error_type: str, context: str) -> None:
        """Append an error to the profile, keeping only the most recent ones."""
        async with self._locks.hold(("profile", learner_id)):
            profile = await self.get_or_create_profile(learner_id)

            error_history = list(profile.error_history or [])
            error_history.append({
                "errorType": error_type,
                "context": context,
                "timestamp": datetime.utcnow().isoformat(),
            })

            await self.store.update_profile(
                learner_id,
                error_history=error_history[-self.settings.ERROR_HISTORY_LIMIT:],
            )

    async def update_session_stats(self, learner_id: str, time_spent: int) -> None:
        """Count one more session and add its duration (seconds)."""
        async with self._locks.hold(("profile", learner_id)):
            profile = await self.get_or_create_profile(learner_id)

            await self.store.update_profile(
                learner_id,
                total_sessions=(profile.total_sessions or 0) + 1,
                total_time_spent=(profile.total_time_spent or 0) + max(time_spent, 0),
            )
