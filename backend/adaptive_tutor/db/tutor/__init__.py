"""Tutor database models and store."""

from .models import LearnerProfile, LessonPlanRecord, MasteryRecord, TutorAttempt, TutorMessage
from .store import SQLAlchemyTutorStore, TutorStore

__all__ = [
    "LearnerProfile",
    "LessonPlanRecord",
    "MasteryRecord",
    "TutorAttempt",
    "TutorMessage",
    "SQLAlchemyTutorStore",
    "TutorStore",
]
