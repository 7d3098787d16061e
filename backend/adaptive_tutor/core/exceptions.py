"""Exception hierarchy for the tutoring core.

Recoverable failures (classification, probe generation and evaluation) are
caught by the component that raises them and replaced with a safe default.
Plan, feedback and worked-example failures propagate to the caller.
"""

from typing import Optional


class TutorError(Exception):
    """Base exception for all tutoring core errors."""


# =============================================================================
# Text generation
# =============================================================================

class TextGenerationError(TutorError):
    """Raised when the text-generation backend fails or times out."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class GenerationParseError(TutorError):
    """Raised when generated output is not valid JSON of the expected shape."""

    def __init__(self, schema_name: str, detail: str, raw_text: str = ""):
        self.schema_name = schema_name
        self.detail = detail
        self.raw_text = raw_text
        super().__init__(f"Could not parse {schema_name}: {detail}")


# =============================================================================
# Recovered locally
# =============================================================================

class ClassificationFailure(TutorError):
    """Intent classification failed; the classifier falls back to 'conceptual'."""


class ProbeGenerationFailure(TutorError):
    """Probe generation failed; the probe engine substitutes a fallback question."""


class ProbeEvaluationFailure(TutorError):
    """Probe evaluation failed; the probe engine falls back to giving hint 0."""


# =============================================================================
# Fatal, propagated
# =============================================================================

class PlanGenerationFailure(TutorError):
    """No lesson plan could be generated."""


class FeedbackGenerationFailure(TutorError):
    """No structured feedback could be generated."""


class WorkedExampleGenerationFailure(TutorError):
    """No worked example could be generated."""
