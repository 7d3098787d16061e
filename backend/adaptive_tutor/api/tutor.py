"""Tutor API endpoints for the adaptive tutoring workflow."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from ..agents.tutor.graph import SessionOrchestrator
from ..agents.tutor.schemas import BloomLevel
from ..core.config import Settings, get_settings
from ..core.exceptions import TutorError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tutor", tags=["Tutor"])


def get_orchestrator(request: Request) -> SessionOrchestrator:
    """The process-wide orchestrator built at start-up."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tutor service is not initialized",
        )
    return orchestrator


def _generation_unavailable(exc: TutorError) -> HTTPException:
    """Map a generation failure to a 503 the client can retry."""
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"AI service temporarily unavailable: {exc}",
    )


# ==============================================================================
# Pydantic Models
# ==============================================================================

class TurnRequest(BaseModel):
    """One learner message in a session."""
    learner_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    grade_level: Optional[str] = None
    answer_attempt: Optional[bool] = None


class SessionEndRequest(BaseModel):
    """Close a session and record its duration."""
    learner_id: str = Field(min_length=1)
    time_spent: int = Field(default=0, ge=0)  # seconds


class PriorKnowledgeRequest(BaseModel):
    student_response: str
    expected_knowledge: str


class WorkedExampleRequest(BaseModel):
    topic: str
    concept: str
    bloom_level: BloomLevel = "understand"
    grade_level: Optional[str] = None


class ProbeEvaluationRequest(BaseModel):
    probe_question: str
    expected_answer: str
    learner_answer: str
    hints_used: int = Field(default=0, ge=0)


# ==============================================================================
# Session Turns
# ==============================================================================

@router.post("/sessions/{session_id}/turns")
async def post_turn(
    session_id: str,
    request: TurnRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Send a learner message and get the tutor's response.

    The Session Orchestrator will:
    1. Load recent turns and classify the intent
    2. Derive the learner's knowledge state
    3. Plan a lesson, ask a probe, grade an answer or answer an admin question
    4. Persist both turns of the exchange
    """
    try:
        result = await orchestrator.handle_turn(
            learner_id=request.learner_id,
            session_id=session_id,
            message=request.message,
            subject=request.subject,
            topic=request.topic,
            grade_level=request.grade_level or settings.DEFAULT_GRADE_LEVEL,
            answer_attempt=request.answer_attempt,
        )
    except TutorError as e:
        logger.error(f"Turn failed for session {session_id}: {e}")
        raise _generation_unavailable(e)

    return {"session_id": session_id, **result.model_dump(mode="json")}


@router.post("/sessions/{session_id}/end")
async def end_session(
    session_id: str,
    request: SessionEndRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Record session statistics on the learner profile."""
    await orchestrator.update_session_metrics(request.learner_id, request.time_spent)
    return {"session_id": session_id, "status": "completed"}


# ==============================================================================
# Knowledge State
# ==============================================================================

@router.get("/learners/{learner_id}/knowledge-state")
async def get_knowledge_state(
    learner_id: str,
    subject: str = Query(..., min_length=1),
    topic: str = Query(..., min_length=1),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Mastery per Bloom level for a topic, with the suggested next activity."""
    knowledge_state = await orchestrator.student_model.get_knowledge_state(learner_id, subject, topic)
    recommendation = orchestrator.adaptation.recommend_next_activity(knowledge_state)

    return {
        "learner_id": learner_id,
        "knowledge_state": knowledge_state.model_dump(mode="json"),
        "recommendation": recommendation.model_dump(mode="json"),
    }


# ==============================================================================
# Standalone Tutoring Tools
# ==============================================================================

@router.post("/prior-knowledge")
async def assess_prior_knowledge(
    request: PriorKnowledgeRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    assessment = await orchestrator.lesson_planner.assess_prior_knowledge(
        request.student_response, request.expected_knowledge
    )
    return assessment.model_dump(mode="json")


@router.post("/worked-example")
async def create_worked_example(
    request: WorkedExampleRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    try:
        example = await orchestrator.feedback_engine.generate_worked_example(
            topic=request.topic,
            concept=request.concept,
            bloom_level=request.bloom_level,
            grade_level=request.grade_level or settings.DEFAULT_GRADE_LEVEL,
        )
    except TutorError as e:
        raise _generation_unavailable(e)

    return example.model_dump(mode="json")


@router.post("/probe-evaluation")
async def evaluate_probe_response(
    request: ProbeEvaluationRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Judge a reply to a Socratic probe and suggest the next move."""
    evaluation = await orchestrator.probe_engine.evaluate_probe_response(
        probe_question=request.probe_question,
        expected_answer=request.expected_answer,
        learner_answer=request.learner_answer,
        hints_used=request.hints_used,
    )
    return evaluation.model_dump(mode="json")
