"""Tutor Agents - Adaptive tutoring session agents.

This package provides the tutoring components:
- Intent Classifier: maps an utterance to a pedagogical intent
- Lesson Planner: Bloom-ordered lesson plans, generated once per session
- Probe Engine: Socratic questions with a three-hint ladder
- Feedback Engine: task, process and self-regulation feedback
- Adaptation Engine: deterministic difficulty and scaffolding decisions
- Session Orchestrator: the per-turn LangGraph composing all of the above

Key features:
- Per-Bloom-level mastery tracking with a weighted knowledge state
- Safe fallbacks for classification and probing; plan and feedback
  failures propagate
- Per-session serialization of turns
"""

from .adaptation import AdaptationEngine
from .feedback_engine import FeedbackEngine
from .graph import SessionOrchestrator, build_orchestrator
from .intent import IntentClassifier
from .lesson_planner import LessonPlanner
from .probe_engine import ProbeEngine
from .state import TurnState, create_turn_state

__all__ = [
    # Orchestration
    "SessionOrchestrator",
    "build_orchestrator",
    "TurnState",
    "create_turn_state",
    # Components
    "AdaptationEngine",
    "FeedbackEngine",
    "IntentClassifier",
    "LessonPlanner",
    "ProbeEngine",
]
