"""Database package for Adaptive Tutor."""

from .base import (
    Base,
    create_tutor_engine,
    create_tutor_session_maker,
    init_database,
)

__all__ = [
    "Base",
    "create_tutor_engine",
    "create_tutor_session_maker",
    "init_database",
]
