"""Session Orchestrator Graph for the Tutor workflow.

This module defines the LangGraph that runs one learner turn, and the
SessionOrchestrator wrapper that serializes turns per session.
"""

import logging
from typing import Any, Dict, Optional

from langgraph.graph import END, StateGraph

from ...core.config import Settings, get_settings
from ...db.base import create_tutor_engine, create_tutor_session_maker
from ...db.tutor.store import SQLAlchemyTutorStore, TutorStore
from ...observability.langsmith import build_turn_trace_config
from ..base.llm import ChatTextGenerator, TextGenerator
from ..base.locks import KeyedLocks
from ..base.message_utils import LEARNER_ROLE, TUTOR_ROLE
from .adaptation import AdaptationEngine
from .feedback_engine import FeedbackEngine
from .intent import IntentClassifier
from .lesson_planner import LessonPlanner
from .nodes import TurnNodes
from .probe_engine import ProbeEngine
from .schemas import OrchestrationResult
from .state import TurnState, create_turn_state
from .tools.assessment import CorrectnessAssessor, LengthHeuristicAssessor, LLMCorrectnessAssessor
from .tools.mastery import StudentModel

logger = logging.getLogger(__name__)

DISPATCH_NODES = ("lesson_plan", "socratic_probe", "administrative", "process_answer", "fallback_probe")


def _route_from_state(state: TurnState) -> str:
    return state.get("route", "fallback_probe")


class SessionOrchestrator:
    """
    Per-turn state machine composing the tutoring components.

    Turns of the same session run one at a time; different sessions run
    in parallel.
    """

    def __init__(self, nodes: TurnNodes):
        self.nodes = nodes
        self.store = nodes.store
        self.student_model = nodes.student_model
        self.adaptation = nodes.adaptation
        self.lesson_planner = nodes.lesson_planner
        self.probe_engine = nodes.probe_engine
        self.feedback_engine = nodes.feedback_engine
        self.graph = self._build_graph()
        self.session_locks = KeyedLocks()

    def _build_graph(self):
        """Build the turn graph."""
        graph = StateGraph(TurnState)

        graph.add_node("load_context", self.nodes.load_context)
        graph.add_node("classify_intent", self.nodes.classify_intent)
        graph.add_node("load_knowledge_state", self.nodes.load_knowledge_state)
        graph.add_node("lesson_plan", self.nodes.lesson_plan_node)
        graph.add_node("socratic_probe", self.nodes.socratic_probe_node)
        graph.add_node("administrative", self.nodes.administrative_node)
        graph.add_node("process_answer", self.nodes.process_answer_node)
        graph.add_node("fallback_probe", self.nodes.fallback_probe_node)

        graph.set_entry_point("load_context")
        graph.add_edge("load_context", "classify_intent")
        graph.add_edge("classify_intent", "load_knowledge_state")

        graph.add_conditional_edges(
            "load_knowledge_state",
            _route_from_state,
            {name: name for name in DISPATCH_NODES},
        )

        for name in DISPATCH_NODES:
            graph.add_edge(name, END)

        return graph.compile()

    async def orchestrate(
        self,
        learner_id: str,
        session_id: str,
        message: str,
        subject: str,
        topic: str,
        grade_level: str,
        answer_attempt: Optional[bool] = None,
    ) -> OrchestrationResult:
        """
        Run one learner turn and return the tutor's response.

        Args:
            learner_id: Learner identifier
            session_id: Session identifier
            message: The learner's utterance
            subject: Session subject
            topic: Session topic
            grade_level: Learner's grade level
            answer_attempt: Whether the utterance answers the open question;
                derived from the session history when None

        Returns:
            OrchestrationResult with the response text and metadata
        """
        async with self.session_locks.hold(session_id):
            return await self._run_turn(
                learner_id, session_id, message, subject, topic, grade_level, answer_attempt
            )

    async def handle_turn(
        self,
        learner_id: str,
        session_id: str,
        message: str,
        subject: str,
        topic: str,
        grade_level: str,
        answer_attempt: Optional[bool] = None,
    ) -> OrchestrationResult:
        """Run a turn and persist both sides of it as session messages."""
        async with self.session_locks.hold(session_id):
            result = await self._run_turn(
                learner_id, session_id, message, subject, topic, grade_level, answer_attempt
            )
            await self.store.add_message(
                session_id,
                LEARNER_ROLE,
                message,
                metadata={"intent": result.intent.intent} if result.intent else None,
            )
            await self.store.add_message(
                session_id,
                TUTOR_ROLE,
                result.response_text,
                message_type=result.message_type,
                metadata=_tutor_message_metadata(result),
            )
            return result

    async def process_answer(
        self,
        learner_id: str,
        session_id: str,
        answer: str,
        subject: str,
        topic: str,
    ) -> OrchestrationResult:
        """Grade an answer to the session's open question outside the graph."""
        async with self.session_locks.hold(session_id):
            return await self.nodes.process_answer(learner_id, session_id, answer, subject, topic)

    async def update_session_metrics(self, learner_id: str, time_spent: int) -> None:
        """Record a finished session's duration (seconds) on the learner profile."""
        await self.student_model.update_session_stats(learner_id, time_spent)

    async def _run_turn(
        self,
        learner_id: str,
        session_id: str,
        message: str,
        subject: str,
        topic: str,
        grade_level: str,
        answer_attempt: Optional[bool],
    ) -> OrchestrationResult:
        state = create_turn_state(
            learner_id=learner_id,
            session_id=session_id,
            message=message,
            subject=subject,
            topic=topic,
            grade_level=grade_level,
            answer_attempt=answer_attempt,
        )
        config = build_turn_trace_config(
            session_id=session_id,
            learner_id=learner_id,
            subject=subject,
            topic=topic,
        )

        final_state = await self.graph.ainvoke(state, config=config)
        return final_state["result"]


def _tutor_message_metadata(result: OrchestrationResult) -> Optional[Dict[str, Any]]:
    """Keep what answer processing needs from the tutor's turn."""
    metadata: Dict[str, Any] = {}
    if result.probe is not None:
        metadata["probe"] = result.probe.probe.model_dump(mode="json")
    if result.adaptation is not None:
        metadata["adaptation"] = result.adaptation.model_dump(mode="json")
    return metadata or None


def build_orchestrator(
    settings: Optional[Settings] = None,
    generator: Optional[TextGenerator] = None,
    store: Optional[TutorStore] = None,
    assessor: Optional[CorrectnessAssessor] = None,
) -> SessionOrchestrator:
    """
    Build a SessionOrchestrator with all services wired together.

    This is the main factory function; call it once at start-up.

    Args:
        settings: Settings to use (process settings by default)
        generator: Text generator (ChatOpenAI-backed by default)
        store: Tutor store (a new engine on settings.TUTOR_DB_URL by default)
        assessor: Answer correctness assessor (from USE_LLM_GRADING by default)

    Returns:
        Ready-to-use SessionOrchestrator
    """
    settings = settings or get_settings()
    generator = generator or ChatTextGenerator(settings)
    store = store or SQLAlchemyTutorStore(create_tutor_session_maker(create_tutor_engine(settings)))

    if assessor is None:
        heuristic = LengthHeuristicAssessor(
            min_length=settings.MIN_ANSWER_LENGTH,
            confidence=settings.DEFAULT_ANSWER_CONFIDENCE,
        )
        assessor = LLMCorrectnessAssessor(generator, fallback=heuristic) if settings.USE_LLM_GRADING else heuristic

    nodes = TurnNodes(
        store=store,
        settings=settings,
        student_model=StudentModel(store, settings),
        adaptation=AdaptationEngine(),
        intent_classifier=IntentClassifier(generator),
        lesson_planner=LessonPlanner(generator),
        probe_engine=ProbeEngine(generator),
        feedback_engine=FeedbackEngine(generator),
        assessor=assessor,
    )
    return SessionOrchestrator(nodes)
