"""Persistence operations for the tutoring core.

``TutorStore`` is the contract the tutoring components depend on;
``SQLAlchemyTutorStore`` implements it on the async Tutor database.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import LearnerProfile, LessonPlanRecord, MasteryRecord, TutorAttempt, TutorMessage

logger = logging.getLogger(__name__)

# (learner_id, subject, topic, bloom_level)
MasteryKey = Tuple[str, str, str, str]
MasteryScorer = Callable[[MasteryRecord], float]


class TutorStore(Protocol):
    """Storage operations used by the tutoring components."""

    async def get_profile(self, learner_id: str) -> Optional[LearnerProfile]: ...

    async def get_or_create_profile(self, learner_id: str, preferred_mode: str) -> LearnerProfile: ...

    async def update_profile(self, learner_id: str, **fields: Any) -> Optional[LearnerProfile]: ...

    async def get_mastery(
        self, learner_id: str, subject: str, topic: str, bloom_level: str
    ) -> Optional[MasteryRecord]: ...

    async def list_mastery_by_topic(self, learner_id: str, subject: str, topic: str) -> List[MasteryRecord]: ...

    async def record_mastery_attempt(
        self,
        learner_id: str,
        subject: str,
        topic: str,
        bloom_level: str,
        is_correct: bool,
        practiced_at: datetime,
        score_for: MasteryScorer,
    ) -> MasteryRecord: ...

    async def get_lesson_plan(self, session_id: str) -> Optional[LessonPlanRecord]: ...

    async def create_lesson_plan_if_absent(
        self, session_id: str, plan: Dict[str, Any]
    ) -> Tuple[LessonPlanRecord, bool]: ...

    async def create_attempt(self, **fields: Any) -> TutorAttempt: ...

    async def count_attempts(self, session_id: str, question_text: str) -> int: ...

    async def add_message(
        self,
        session_id: str,
        role: str,
        content: str,
        message_type: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TutorMessage: ...

    async def list_recent_messages(self, session_id: str, limit: Optional[int] = None) -> List[TutorMessage]: ...


def _mastery_filter(key: MasteryKey) -> list:
    learner_id, subject, topic, bloom_level = key
    return [
        MasteryRecord.learner_id == learner_id,
        MasteryRecord.subject == subject,
        MasteryRecord.topic == topic,
        MasteryRecord.bloom_level == bloom_level,
    ]


class SQLAlchemyTutorStore:
    """``TutorStore`` on an async SQLAlchemy session factory."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    # =========================================================================
    # Learner profiles
    # =========================================================================

    async def get_profile(self, learner_id: str) -> Optional[LearnerProfile]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(LearnerProfile).where(LearnerProfile.learner_id == learner_id)
            )
            return result.scalar_one_or_none()

    async def get_or_create_profile(self, learner_id: str, preferred_mode: str) -> LearnerProfile:
        existing = await self.get_profile(learner_id)
        if existing is not None:
            return existing

        profile = LearnerProfile(
            learner_id=learner_id,
            preferred_mode=preferred_mode,
            learning_style=None,
            error_history=None,
            preferences=None,
            total_sessions=0,
            total_time_spent=0,
        )
        async with self.session_maker() as session:
            session.add(profile)
            try:
                await session.commit()
                logger.info(f"Created learner profile for {learner_id}")
                return profile
            except IntegrityError:
                await session.rollback()

        logger.info(f"Profile for {learner_id} created concurrently, reloading")
        return await self.get_profile(learner_id)

    async def update_profile(self, learner_id: str, **fields: Any) -> Optional[LearnerProfile]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(LearnerProfile).where(LearnerProfile.learner_id == learner_id)
            )
            profile = result.scalar_one_or_none()
            if profile is None:
                return None

            for key, value in fields.items():
                setattr(profile, key, value)
            profile.updated_at = datetime.utcnow()
            await session.commit()
            return profile

    # =========================================================================
    # Mastery records
    # =========================================================================

    async def get_mastery(
        self, learner_id: str, subject: str, topic: str, bloom_level: str
    ) -> Optional[MasteryRecord]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(MasteryRecord).where(*_mastery_filter((learner_id, subject, topic, bloom_level)))
            )
            return result.scalar_one_or_none()

    async def list_mastery_by_topic(self, learner_id: str, subject: str, topic: str) -> List[MasteryRecord]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(MasteryRecord)
                .where(
                    MasteryRecord.learner_id == learner_id,
                    MasteryRecord.subject == subject,
                    MasteryRecord.topic == topic,
                )
                .order_by(MasteryRecord.id)
            )
            return list(result.scalars().all())

    async def record_mastery_attempt(
        self,
        learner_id: str,
        subject: str,
        topic: str,
        bloom_level: str,
        is_correct: bool,
        practiced_at: datetime,
        score_for: MasteryScorer,
    ) -> MasteryRecord:
        """
        Count one graded attempt on a mastery record, creating it on first use.

        The counters move in a single ``UPDATE`` and ``score_for`` recomputes
        the score from the new counts inside the same transaction, so
        concurrent attempts by one learner are never lost. A concurrent first
        insert loses on the unique constraint and is retried as an update.
        """
        key = (learner_id, subject, topic, bloom_level)

        record = await self._increment_mastery(key, is_correct, practiced_at, score_for)
        if record is not None:
            return record

        record = await self._insert_mastery(key, is_correct, practiced_at, score_for)
        if record is not None:
            return record

        logger.info(f"Mastery record {key} created concurrently, counting as an update")
        record = await self._increment_mastery(key, is_correct, practiced_at, score_for)
        if record is None:
            raise LookupError(f"Mastery record {key} vanished after conflict")
        return record

    async def _increment_mastery(
        self,
        key: MasteryKey,
        is_correct: bool,
        practiced_at: datetime,
        score_for: MasteryScorer,
    ) -> Optional[MasteryRecord]:
        conditions = _mastery_filter(key)

        async with self.session_maker() as session:
            result = await session.execute(
                update(MasteryRecord)
                .where(*conditions)
                .values(
                    attempts=MasteryRecord.attempts + 1,
                    correct_count=MasteryRecord.correct_count + (1 if is_correct else 0),
                    incorrect_count=MasteryRecord.incorrect_count + (0 if is_correct else 1),
                    last_practiced_at=practiced_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                return None

            record = (await session.execute(select(MasteryRecord).where(*conditions))).scalar_one()
            record.score = score_for(record)
            await session.commit()
            return record

    async def _insert_mastery(
        self,
        key: MasteryKey,
        is_correct: bool,
        practiced_at: datetime,
        score_for: MasteryScorer,
    ) -> Optional[MasteryRecord]:
        learner_id, subject, topic, bloom_level = key
        record = MasteryRecord(
            learner_id=learner_id,
            subject=subject,
            topic=topic,
            bloom_level=bloom_level,
            attempts=1,
            correct_count=1 if is_correct else 0,
            incorrect_count=0 if is_correct else 1,
            last_practiced_at=practiced_at,
        )
        record.score = score_for(record)

        async with self.session_maker() as session:
            session.add(record)
            try:
                await session.commit()
                return record
            except IntegrityError:
                await session.rollback()
                return None

    # =========================================================================
    # Lesson plans
    # =========================================================================

    async def get_lesson_plan(self, session_id: str) -> Optional[LessonPlanRecord]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(LessonPlanRecord).where(LessonPlanRecord.session_id == session_id)
            )
            return result.scalar_one_or_none()

    async def create_lesson_plan_if_absent(
        self, session_id: str, plan: Dict[str, Any]
    ) -> Tuple[LessonPlanRecord, bool]:
        """
        Insert the session's lesson plan unless one is already stored.

        Relies on the unique constraint on ``session_id``: a concurrent insert
        loses with ``IntegrityError`` and the stored plan is returned instead.

        Returns:
            (record, created) where ``created`` is False when a plan already existed
        """
        record = LessonPlanRecord(
            session_id=session_id,
            target_bloom_level=plan["target_bloom_level"],
            learning_goals=plan["learning_goals"],
            prior_knowledge_check=plan["prior_knowledge_check"],
            steps=plan["steps"],
            resources=plan.get("resources") or [],
            estimated_duration=plan.get("estimated_duration") or 0,
        )

        async with self.session_maker() as session:
            session.add(record)
            try:
                await session.commit()
                return record, True
            except IntegrityError:
                await session.rollback()

        logger.info(f"Lesson plan for session {session_id} already exists, keeping stored plan")
        existing = await self.get_lesson_plan(session_id)
        if existing is None:
            raise LookupError(f"Lesson plan for session {session_id} vanished after conflict")
        return existing, False

    # =========================================================================
    # Attempts
    # =========================================================================

    async def create_attempt(self, **fields: Any) -> TutorAttempt:
        attempt = TutorAttempt(**fields)
        async with self.session_maker() as session:
            session.add(attempt)
            await session.commit()
            return attempt

    async def count_attempts(self, session_id: str, question_text: str) -> int:
        async with self.session_maker() as session:
            result = await session.execute(
                select(func.count(TutorAttempt.id)).where(
                    TutorAttempt.session_id == session_id,
                    TutorAttempt.question_text == question_text,
                )
            )
            return int(result.scalar_one())

    # =========================================================================
    # Messages
    # =========================================================================

    async def add_message(
        self,
        session_id: str,
        role: str,
        content: str,
        message_type: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TutorMessage:
        message = TutorMessage(
            session_id=session_id,
            role=role,
            content=content,
            message_type=message_type,
            metadata_json=metadata,
        )
        async with self.session_maker() as session:
            session.add(message)
            await session.commit()
            return message

    async def list_recent_messages(self, session_id: str, limit: Optional[int] = None) -> List[TutorMessage]:
        """Session turns ordered oldest to newest; ``limit`` keeps the last N."""
        query = (
            select(TutorMessage)
            .where(TutorMessage.session_id == session_id)
            .order_by(desc(TutorMessage.created_at), desc(TutorMessage.id))
        )
        if limit is not None:
            query = query.limit(limit)

        async with self.session_maker() as session:
            result = await session.execute(query)
            messages = list(result.scalars().all())

        messages.reverse()
        return messages
