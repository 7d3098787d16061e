"""Database models for the Tutor workflow.

This module defines SQLAlchemy ORM models for:
- Learner Profiles
- Mastery Records (per Bloom level)
- Lesson Plans (one per session)
- Tutor Attempts
- Tutor Messages (session turns)
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)

from ..base import Base

BLOOM_LEVEL_ENUM = Enum(
    "remember", "understand", "apply", "analyze", "evaluate", "create",
    name="bloom_level",
)


class LearnerProfile(Base):
    """Learner profile with tutoring preferences and statistics."""
    __tablename__ = "learner_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(64), nullable=False, unique=True, index=True)
    preferred_mode = Column(String(50), nullable=False, default="friendly_mentor")
    learning_style = Column(String(50), nullable=True)  # visual, auditory, kinesthetic, etc.
    error_history = Column(JSON, nullable=True)  # last N {errorType, context, timestamp}
    preferences = Column(JSON, nullable=True)
    total_sessions = Column(Integer, default=0, nullable=False)
    total_time_spent = Column(Integer, default=0, nullable=False)  # seconds
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MasteryRecord(Base):
    """Learner mastery per (subject, topic, Bloom level)."""
    __tablename__ = "mastery_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(64), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    topic = Column(String(255), nullable=False)
    bloom_level = Column(BLOOM_LEVEL_ENUM, nullable=False)
    score = Column(Float, default=0.0, nullable=False)  # 0 to 100
    attempts = Column(Integer, default=0, nullable=False)
    correct_count = Column(Integer, default=0, nullable=False)
    incorrect_count = Column(Integer, default=0, nullable=False)
    last_practiced_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("learner_id", "subject", "topic", "bloom_level", name="unique_mastery_level"),
        Index("idx_mastery_topic", "learner_id", "subject", "topic"),
    )


class LessonPlanRecord(Base):
    """The single lesson plan generated for a tutoring session."""
    __tablename__ = "lesson_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True, index=True)
    target_bloom_level = Column(BLOOM_LEVEL_ENUM, nullable=False)
    learning_goals = Column(JSON, nullable=False)
    prior_knowledge_check = Column(Text, nullable=False)
    steps = Column(JSON, nullable=False)
    resources = Column(JSON, nullable=True)
    estimated_duration = Column(Integer, default=0, nullable=False)  # minutes
    created_at = Column(DateTime, default=datetime.utcnow)


class TutorAttempt(Base):
    """One graded learner answer. Written once, never updated."""
    __tablename__ = "tutor_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(64), nullable=False, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    bloom_level = Column(BLOOM_LEVEL_ENUM, nullable=False)
    question_text = Column(Text, nullable=False)
    learner_answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    confidence = Column(Float, nullable=True)  # 0 to 1
    feedback_given = Column(Text, nullable=True)
    time_spent = Column(Integer, default=0, nullable=False)  # seconds
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class TutorMessage(Base):
    """A single turn in a tutoring session."""
    __tablename__ = "tutor_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    role = Column(Enum("learner", "tutor", name="message_role"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(50), nullable=True)  # lesson_plan, socratic_probe, feedback, ...
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_session_messages", "session_id", "created_at"),
    )
