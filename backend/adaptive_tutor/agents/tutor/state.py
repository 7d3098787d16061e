"""State definitions for the Tutor workflow.

This module defines the TypedDict carried through one orchestrated turn.
"""

from typing import Any, List, Optional

from typing_extensions import TypedDict

from .schemas import IntentClassification, KnowledgeState, OrchestrationResult


class TurnState(TypedDict, total=False):
    """
    State for one learner turn.

    The input keys are set by the Session Orchestrator; each node adds the
    keys it derives. Nothing here outlives the turn: durable state lives in
    the tutor store.
    """

    # Turn input
    learner_id: str
    session_id: str
    message: str
    subject: str
    topic: str
    grade_level: str
    answer_attempt: Optional[bool]  # explicit signal from the caller, if any

    # Context
    recent_messages: List[Any]  # TutorMessage rows, oldest first

    # Decision state
    intent: IntentClassification
    is_answer_attempt: bool
    knowledge_state: KnowledgeState
    route: str  # "lesson_plan" | "socratic_probe" | "administrative" | "process_answer" | "fallback_probe"

    # Output
    result: OrchestrationResult


def create_turn_state(
    learner_id: str,
    session_id: str,
    message: str,
    subject: str,
    topic: str,
    grade_level: str,
    answer_attempt: Optional[bool] = None,
) -> TurnState:
    """Create the initial state for a turn."""
    return TurnState(
        learner_id=learner_id,
        session_id=session_id,
        message=message,
        subject=subject,
        topic=topic,
        grade_level=grade_level,
        answer_attempt=answer_attempt,
        recent_messages=[],
    )
