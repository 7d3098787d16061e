"""Core configuration, logging and errors for the Adaptive Tutor backend."""

from .config import Settings, get_settings
from .exceptions import (
    FeedbackGenerationFailure,
    GenerationParseError,
    PlanGenerationFailure,
    TextGenerationError,
    TutorError,
)
from .logging import configure_logging

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "TutorError",
    "TextGenerationError",
    "GenerationParseError",
    "PlanGenerationFailure",
    "FeedbackGenerationFailure",
]
