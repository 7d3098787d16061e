"""Nodes for the Session Orchestrator graph.

These nodes handle one learner turn: load context, classify intent, derive
the knowledge state, then dispatch to lesson planning, Socratic probing,
answer processing or a fixed administrative reply.
"""

import logging
from typing import Any, Dict, List, Optional

from ...core.config import Settings
from ...db.tutor.store import TutorStore
from ..base.message_utils import (
    format_turns,
    has_open_probe,
    latest_tutor_message,
    message_content,
    message_metadata,
)
from ..base.utils import truncate_text
from .adaptation import AdaptationEngine
from .feedback_engine import FeedbackEngine
from .intent import IntentClassifier
from .lesson_planner import LessonPlanner, plan_from_record
from .probe_engine import ProbeEngine
from .prompts import (
    ADMINISTRATIVE_TEMPLATE,
    REENGAGEMENT_TEMPLATE,
    REORIENTATION_MESSAGE,
    format_lesson_plan,
)
from .schemas import BLOOM_ORDER, KnowledgeState, OrchestrationResult
from .state import TurnState
from .tools.assessment import CorrectnessAssessor
from .tools.mastery import StudentModel

logger = logging.getLogger(__name__)

# Classified intent -> graph node
INTENT_ROUTES = {
    "conceptual": "lesson_plan",
    "application": "socratic_probe",
    "confusion": "socratic_probe",
    "administrative": "administrative",
}

# Intents that mean the learner is not answering the open question
NON_ANSWER_INTENTS = ("confusion", "administrative")


# =============================================================================
# ROUTING
# =============================================================================

def route_turn(state: TurnState) -> str:
    """Pick the dispatch node for a classified turn."""
    if state.get("is_answer_attempt"):
        return "process_answer"

    intent = state.get("intent")
    if intent is None:
        return "fallback_probe"
    return INTENT_ROUTES.get(intent.intent, "fallback_probe")


def resolve_answer_attempt(
    explicit: Optional[bool],
    intent: Optional[str],
    recent_messages: List[Any],
) -> bool:
    """
    Decide whether the utterance answers the question still open in the session.

    An explicit signal from the caller wins. Otherwise the turn is an answer
    when the last turn is an unanswered tutor probe, unless the learner is
    confused or asking something administrative.
    """
    if explicit is not None:
        return explicit
    if intent in NON_ANSWER_INTENTS:
        return False
    return has_open_probe(recent_messages)


class TurnNodes:
    """
    Graph nodes bound to the services they use.

    Services are constructed once per process and injected here, so tests
    can substitute fakes for the text generator and the store.
    """

    def __init__(
        self,
        store: TutorStore,
        settings: Settings,
        student_model: StudentModel,
        adaptation: AdaptationEngine,
        intent_classifier: IntentClassifier,
        lesson_planner: LessonPlanner,
        probe_engine: ProbeEngine,
        feedback_engine: FeedbackEngine,
        assessor: CorrectnessAssessor,
    ):
        self.store = store
        self.settings = settings
        self.student_model = student_model
        self.adaptation = adaptation
        self.intent_classifier = intent_classifier
        self.lesson_planner = lesson_planner
        self.probe_engine = probe_engine
        self.feedback_engine = feedback_engine
        self.assessor = assessor

    # =========================================================================
    # CONTEXT NODES
    # =========================================================================

    async def load_context(self, state: TurnState) -> Dict[str, Any]:
        """Fetch the last few turns and make sure the learner has a profile."""
        recent_messages = await self.store.list_recent_messages(
            state["session_id"], limit=self.settings.RECENT_TURNS_LIMIT
        )
        await self.student_model.get_or_create_profile(state["learner_id"])
        return {"recent_messages": recent_messages}

    async def classify_intent(self, state: TurnState) -> Dict[str, Any]:
        recent_messages = state.get("recent_messages", [])
        intent = await self.intent_classifier.classify(
            state["message"],
            subject=state["subject"],
            topic=state["topic"],
            grade_level=state["grade_level"],
            recent_messages=format_turns(recent_messages),
        )
        is_answer_attempt = resolve_answer_attempt(
            state.get("answer_attempt"), intent.intent, recent_messages
        )

        logger.info(
            f"Session {state['session_id']}: intent={intent.intent} "
            f"({intent.confidence:.2f}), answer_attempt={is_answer_attempt}"
        )
        return {"intent": intent, "is_answer_attempt": is_answer_attempt}

    async def load_knowledge_state(self, state: TurnState) -> Dict[str, Any]:
        knowledge_state = await self.student_model.get_knowledge_state(
            state["learner_id"], state["subject"], state["topic"]
        )
        route = route_turn(state)

        logger.info(
            f"Session {state['session_id']}: route={route}, "
            f"overall={knowledge_state.overall_score:.1f}, "
            f"recommended={knowledge_state.recommended_bloom_level}, "
            f"weak={knowledge_state.weak_areas}"
        )
        return {"knowledge_state": knowledge_state, "route": route}

    # =========================================================================
    # DISPATCH NODES
    # =========================================================================

    async def lesson_plan_node(self, state: TurnState) -> Dict[str, Any]:
        """Return the session's lesson plan, generating it only on first request."""
        session_id = state["session_id"]
        knowledge_state = state["knowledge_state"]

        record = await self.store.get_lesson_plan(session_id)
        if record is not None:
            plan = plan_from_record(record)
        else:
            plan = await self.lesson_planner.create_lesson_plan(
                topic=state["topic"],
                subject=state["subject"],
                grade_level=state["grade_level"],
                prior_knowledge_signal=_prior_knowledge_signal(knowledge_state),
                target_bloom_level=_plan_target_level(knowledge_state),
            )
            record, created = await self.store.create_lesson_plan_if_absent(session_id, plan.model_dump())
            if not created:
                plan = plan_from_record(record)

        result = OrchestrationResult(
            response_text=format_lesson_plan(plan),
            message_type="lesson_plan",
            intent=state.get("intent"),
            lesson_plan=plan,
        )
        return {"result": result}

    async def socratic_probe_node(self, state: TurnState) -> Dict[str, Any]:
        probe = await self._generate_probe(state)
        result = OrchestrationResult(
            response_text=probe.probe.question,
            message_type="socratic_probe",
            intent=state.get("intent"),
            probe=probe,
        )
        return {"result": result}

    async def administrative_node(self, state: TurnState) -> Dict[str, Any]:
        result = OrchestrationResult(
            response_text=ADMINISTRATIVE_TEMPLATE.format(
                subject=state["subject"],
                topic=state["topic"],
                grade_level=state["grade_level"],
            ),
            message_type="administrative",
            intent=state.get("intent"),
        )
        return {"result": result}

    async def fallback_probe_node(self, state: TurnState) -> Dict[str, Any]:
        """Courtesy probe for unroutable turns; a fixed prompt if even that fails."""
        try:
            probe = await self._generate_probe(state)
        except Exception as e:
            logger.error(f"Fallback probe failed for session {state['session_id']}: {e}")
            result = OrchestrationResult(
                response_text=REENGAGEMENT_TEMPLATE.format(topic=state["topic"]),
                message_type="explanation",
                intent=state.get("intent"),
            )
            return {"result": result}

        result = OrchestrationResult(
            response_text=probe.probe.question,
            message_type="socratic_probe",
            intent=state.get("intent"),
            probe=probe,
        )
        return {"result": result}

    async def process_answer_node(self, state: TurnState) -> Dict[str, Any]:
        result = await self.process_answer(
            learner_id=state["learner_id"],
            session_id=state["session_id"],
            answer=state["message"],
            subject=state["subject"],
            topic=state["topic"],
            recent_messages=state.get("recent_messages"),
            knowledge_state=state.get("knowledge_state"),
        )
        result.intent = state.get("intent")
        return {"result": result}

    # =========================================================================
    # ANSWER PROCESSING
    # =========================================================================

    async def process_answer(
        self,
        learner_id: str,
        session_id: str,
        answer: str,
        subject: str,
        topic: str,
        recent_messages: Optional[List[Any]] = None,
        knowledge_state: Optional[KnowledgeState] = None,
        time_spent: int = 0,
    ) -> OrchestrationResult:
        """
        Grade an answer to the last tutor question and adapt.

        Flow:
        1. Treat the newest tutor turn as the question (re-orient if none)
        2. Assess correctness and generate feedback
        3. Update mastery, log the error and the attempt
        4. Pick the next difficulty from the updated knowledge state

        Raises:
            FeedbackGenerationFailure: Feedback could not be generated; nothing
                has been recorded for the attempt
        """
        if recent_messages is None:
            recent_messages = await self.store.list_recent_messages(
                session_id, limit=self.settings.RECENT_TURNS_LIMIT
            )

        question_message = latest_tutor_message(recent_messages)
        if question_message is None:
            logger.info(f"Session {session_id}: answer without an open question, re-orienting")
            return OrchestrationResult(response_text=REORIENTATION_MESSAGE, message_type="explanation")

        if knowledge_state is None:
            knowledge_state = await self.student_model.get_knowledge_state(learner_id, subject, topic)

        question = message_content(question_message)
        probe = message_metadata(question_message).get("probe") or {}
        expected_answer = probe.get("expected_answer") or ""
        bloom_level = probe.get("bloom_level") or knowledge_state.recommended_bloom_level
        attempt_number = await self.store.count_attempts(session_id, question) + 1

        assessment = await self.assessor.assess(question, answer, expected_answer)
        feedback = await self.feedback_engine.generate_feedback(
            question=question,
            learner_answer=answer,
            expected_answer=expected_answer,
            is_correct=assessment.is_correct,
            bloom_level=bloom_level,
            topic=topic,
            attempt_number=attempt_number,
        )
        response_text = feedback.process_feedback or feedback.task_feedback

        await self.student_model.update_mastery(
            learner_id, subject, topic, bloom_level, assessment.is_correct, assessment.confidence
        )
        if not assessment.is_correct:
            await self.student_model.track_error(
                learner_id, "incorrect_answer", f"{topic}: {truncate_text(question, 200)}"
            )

        await self.store.create_attempt(
            learner_id=learner_id,
            session_id=session_id,
            bloom_level=bloom_level,
            question_text=question,
            learner_answer=answer,
            is_correct=assessment.is_correct,
            confidence=assessment.confidence,
            feedback_given=response_text,
            time_spent=max(time_spent, 0),
        )

        updated_state = await self.student_model.get_knowledge_state(learner_id, subject, topic)
        decision = self.adaptation.adapt_difficulty(
            bloom_level,
            assessment.is_correct,
            attempt_number,
            confidence=assessment.confidence,
            knowledge_state=updated_state,
        )

        logger.info(
            f"Session {session_id}: graded attempt {attempt_number} at {bloom_level} "
            f"correct={assessment.is_correct}, next={decision.action}->{decision.new_bloom_level}"
        )
        return OrchestrationResult(
            response_text=response_text,
            message_type="feedback",
            feedback=feedback,
            adaptation=decision,
            mastery_updated=True,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _generate_probe(self, state: TurnState):
        knowledge_state = state["knowledge_state"]
        last_tutor = latest_tutor_message(state.get("recent_messages", []))

        learning_goal = None
        plan_record = await self.store.get_lesson_plan(state["session_id"])
        if plan_record is not None and plan_record.learning_goals:
            learning_goal = plan_record.learning_goals[0]

        return await self.probe_engine.generate_probe(
            topic=state["topic"],
            current_bloom_level=knowledge_state.recommended_bloom_level,
            last_learner_response=state["message"],
            learning_goal=learning_goal,
            previous_tutor_message=message_content(last_tutor) if last_tutor is not None else None,
        )


def _plan_target_level(knowledge_state: KnowledgeState) -> str:
    """Aim plans at least at ``understand``, higher once lower levels are mastered."""
    recommended = knowledge_state.recommended_bloom_level
    if BLOOM_ORDER.index(recommended) < BLOOM_ORDER.index("understand"):
        return "understand"
    return recommended


def _prior_knowledge_signal(knowledge_state: KnowledgeState) -> Optional[str]:
    if not knowledge_state.mastery_levels:
        return None
    signal = f"Overall mastery {knowledge_state.overall_score:.0f}%"
    if knowledge_state.strong_areas:
        signal += f"; strong: {', '.join(knowledge_state.strong_areas)}"
    if knowledge_state.weak_areas:
        signal += f"; weak: {', '.join(knowledge_state.weak_areas)}"
    return signal
