"""
Test the LLM-backed tutoring agents against a scripted text generator.

Covers the result validation and the fallback policy of each agent:
intent classification and probing recover locally, lesson plans and
feedback propagate their failures.
"""

import copy

import pytest

from adaptive_tutor.agents.base.utils import parse_json_response
from adaptive_tutor.agents.tutor.feedback_engine import FeedbackEngine
from adaptive_tutor.agents.tutor.intent import IntentClassifier
from adaptive_tutor.agents.tutor.lesson_planner import LessonPlanner
from adaptive_tutor.agents.tutor.probe_engine import FALLBACK_HINTS, ProbeEngine
from adaptive_tutor.agents.tutor.prompts import (
    FEEDBACK_SYSTEM,
    GRADING_SYSTEM,
    INTENT_SYSTEM,
    LESSON_PLAN_SYSTEM,
    PRIOR_KNOWLEDGE_SYSTEM,
    PROBE_EVALUATION_SYSTEM,
    PROBE_SYSTEM,
    WORKED_EXAMPLE_SYSTEM,
)
from adaptive_tutor.agents.tutor.schemas import IntentClassification
from adaptive_tutor.agents.tutor.tools.assessment import LengthHeuristicAssessor, LLMCorrectnessAssessor
from adaptive_tutor.core.exceptions import (
    FeedbackGenerationFailure,
    GenerationParseError,
    PlanGenerationFailure,
    TextGenerationError,
    WorkedExampleGenerationFailure,
)

from conftest import FEEDBACK, LESSON_PLAN, PROBE, FakeTextGenerator, intent_json


class TestParseJsonResponse:
    """Validation of generated JSON."""

    def test_strips_code_fences(self):
        text = '```json\n{"intent": "Application", "confidence": 0.8}\n```'
        result = parse_json_response(text, IntentClassification)

        assert result.intent == "application"
        assert result.confidence == 0.8

    def test_extracts_object_from_prose(self):
        text = 'Sure! {"intent": "confusion", "confidence": 0.6, "reasoning": "stuck"} Hope that helps.'
        assert parse_json_response(text, IntentClassification).intent == "confusion"

    def test_truncated_json_raises(self):
        with pytest.raises(GenerationParseError):
            parse_json_response('{"intent": "conceptual", "confid', IntentClassification)

    def test_wrong_shape_raises(self):
        with pytest.raises(GenerationParseError):
            parse_json_response('{"intent": "gossip", "confidence": 0.9}', IntentClassification)

    def test_non_object_raises(self):
        with pytest.raises(GenerationParseError):
            parse_json_response("[1, 2, 3]", IntentClassification)


@pytest.mark.asyncio
class TestIntentClassifier:
    """Intent classification never blocks a turn."""

    async def test_classifies_with_recent_context(self):
        generator = FakeTextGenerator({INTENT_SYSTEM: intent_json("application", 0.8)})
        classifier = IntentClassifier(generator)

        result = await classifier.classify(
            "How do I solve 2x = 4?", "Math", "Equations", "8th grade",
            recent_messages=["tutor: Hi", "learner: Let's start"],
        )

        assert result.intent == "application"
        assert result.confidence == 0.8
        prompt = generator.calls[0]["prompt"]
        assert "tutor: Hi | learner: Let's start" in prompt
        assert "How do I solve 2x = 4?" in prompt
        assert generator.calls[0]["json_mode"] is True

    async def test_generation_failure_defaults_to_conceptual(self):
        generator = FakeTextGenerator({INTENT_SYSTEM: TextGenerationError("timeout")})
        result = await IntentClassifier(generator).classify("hello", "Math", "Equations", "8th grade")

        assert result.intent == "conceptual"
        assert result.confidence == 0.5
        assert "failed" in result.reasoning

    async def test_malformed_output_defaults_to_conceptual(self):
        generator = FakeTextGenerator({INTENT_SYSTEM: "definitely conceptual"})
        result = await IntentClassifier(generator).classify("hello", "Math", "Equations", "8th grade")

        assert result.intent == "conceptual"
        assert result.confidence == 0.5


@pytest.mark.asyncio
class TestLessonPlanner:
    """Lesson plans and prior knowledge."""

    async def test_creates_validated_plan(self):
        generator = FakeTextGenerator({LESSON_PLAN_SYSTEM: LESSON_PLAN})
        planner = LessonPlanner(generator)

        plan = await planner.create_lesson_plan("Photosynthesis", "Biology", "high school", target_bloom_level="understand")

        assert len(plan.learning_goals) == 2
        assert len(plan.steps) == 4
        assert plan.steps[0].bloom_level == "remember"
        assert plan.estimated_duration == 25
        assert "TARGET BLOOM LEVEL: understand" in generator.calls[0]["prompt"]
        assert "Unknown - need to check" in generator.calls[0]["prompt"]

    async def test_plan_with_too_few_steps_fails(self):
        short_plan = copy.deepcopy(LESSON_PLAN)
        short_plan["steps"] = short_plan["steps"][:2]
        generator = FakeTextGenerator({LESSON_PLAN_SYSTEM: short_plan})

        with pytest.raises(PlanGenerationFailure):
            await LessonPlanner(generator).create_lesson_plan("Photosynthesis", "Biology", "high school")

    async def test_generation_failure_propagates(self):
        generator = FakeTextGenerator({LESSON_PLAN_SYSTEM: TextGenerationError("down")})

        with pytest.raises(PlanGenerationFailure) as exc_info:
            await LessonPlanner(generator).create_lesson_plan("Photosynthesis", "Biology", "high school")

        assert isinstance(exc_info.value.__cause__, TextGenerationError)

    async def test_prior_knowledge_fallback(self):
        generator = FakeTextGenerator({PRIOR_KNOWLEDGE_SYSTEM: "not json"})

        assessment = await LessonPlanner(generator).assess_prior_knowledge("no idea", "Basic cell structure")

        assert assessment.knowledge_level == "none"
        assert assessment.has_knowledge is False
        assert assessment.gaps == ["Unable to assess"]
        assert assessment.recommendation == "Start from basics"


@pytest.mark.asyncio
class TestProbeEngine:
    """Socratic probes and their evaluation."""

    async def test_generates_probe(self):
        generator = FakeTextGenerator({PROBE_SYSTEM: PROBE})
        engine = ProbeEngine(generator)

        response = await engine.generate_probe(
            "Photosynthesis", "remember",
            last_learner_response="Plants eat sunlight?",
            learning_goal="Explain what photosynthesis produces",
        )

        assert response.probe.question == PROBE["question"]
        assert response.probe.hints == PROBE["hints"]
        assert response.probe.scaffolding_type == "leading"
        prompt = generator.calls[0]["prompt"]
        assert "Plants eat sunlight?" in prompt
        assert "Explain what photosynthesis produces" in prompt

    async def test_hint_ladder_is_always_three(self):
        generator = FakeTextGenerator({PROBE_SYSTEM: {**PROBE, "hints": ["Only one hint"]}})
        response = await ProbeEngine(generator).generate_probe("Photosynthesis", "remember")

        assert len(response.probe.hints) == 3
        assert response.probe.hints[0] == "Only one hint"

        generator.script(PROBE_SYSTEM, {**PROBE, "hints": ["a", "b", "c", "d", "e"]})
        response = await ProbeEngine(generator).generate_probe("Photosynthesis", "remember")
        assert response.probe.hints == ["a", "b", "c"]

    async def test_empty_question_is_replaced(self):
        generator = FakeTextGenerator({PROBE_SYSTEM: {**PROBE, "question": "   "}})
        response = await ProbeEngine(generator).generate_probe("Photosynthesis", "apply")

        assert "Photosynthesis" in response.probe.question
        assert response.probe.question.strip()

    async def test_generation_failure_uses_fallback(self):
        generator = FakeTextGenerator({PROBE_SYSTEM: TextGenerationError("down")})
        response = await ProbeEngine(generator).generate_probe("Photosynthesis", "analyze")

        assert response.probe.question == "Can you tell me what you understand about Photosynthesis?"
        assert response.probe.bloom_level == "analyze"
        assert response.probe.hints == FALLBACK_HINTS
        assert response.probe.scaffolding_type == "clarifying"

    async def test_evaluates_response(self):
        generator = FakeTextGenerator({
            PROBE_EVALUATION_SYSTEM: {
                "isCorrect": True,
                "quality": "good",
                "shouldGiveHint": False,
                "hintIndex": 0,
                "shouldMoveOn": True,
                "nextAction": "advance",
                "reasoning": "Got it",
            }
        })
        evaluation = await ProbeEngine(generator).evaluate_probe_response(
            "What does a plant do with light?", "Makes glucose", "It makes sugar", hints_used=1
        )

        assert evaluation.quality == "good"
        assert evaluation.next_action == "advance"
        assert "HINTS ALREADY USED: 1" in generator.calls[0]["prompt"]

    async def test_evaluation_failure_gives_first_hint(self):
        generator = FakeTextGenerator()
        evaluation = await ProbeEngine(generator).evaluate_probe_response("Q?", "A", "B", hints_used=2)

        assert evaluation.quality == "poor"
        assert evaluation.should_give_hint is True
        assert evaluation.hint_index == 0
        assert evaluation.should_move_on is False
        assert evaluation.next_action == "hint"


@pytest.mark.asyncio
class TestFeedbackEngine:
    """Feedback and worked examples propagate failures."""

    async def test_generates_three_layer_feedback(self):
        generator = FakeTextGenerator({FEEDBACK_SYSTEM: FEEDBACK})
        feedback = await FeedbackEngine(generator).generate_feedback(
            "What does a plant do with light?", "makes food", "Makes glucose", False, "remember",
            topic="Photosynthesis", attempt_number=2, hints_used=1,
        )

        assert feedback.task_feedback == FEEDBACK["taskFeedback"]
        assert feedback.process_feedback == FEEDBACK["processFeedback"]
        assert feedback.self_regulation_feedback == FEEDBACK["selfRegulationFeedback"]
        prompt = generator.calls[0]["prompt"]
        assert "CORRECTNESS: INCORRECT" in prompt
        assert "ATTEMPT: 2" in prompt
        assert "HINTS USED: 1" in prompt
        assert generator.calls[0]["max_tokens"] == 2500

    async def test_hint_count_omitted_when_unknown(self):
        generator = FakeTextGenerator({FEEDBACK_SYSTEM: FEEDBACK})
        await FeedbackEngine(generator).generate_feedback(
            "Q?", "A", "B", True, "remember", topic="Photosynthesis", attempt_number=1,
        )

        prompt = generator.calls[0]["prompt"]
        assert "ATTEMPT: 1" in prompt
        assert "HINTS USED" not in prompt

    async def test_feedback_failure_propagates(self):
        generator = FakeTextGenerator({FEEDBACK_SYSTEM: {"taskFeedback": "only one layer"}})

        with pytest.raises(FeedbackGenerationFailure):
            await FeedbackEngine(generator).generate_feedback("Q?", "A", "B", True, "apply")

    async def test_worked_example_failure_propagates(self):
        generator = FakeTextGenerator({WORKED_EXAMPLE_SYSTEM: TextGenerationError("down")})

        with pytest.raises(WorkedExampleGenerationFailure):
            await FeedbackEngine(generator).generate_worked_example("Algebra", "Linear equations", "apply", "8th grade")


@pytest.mark.asyncio
class TestCorrectnessAssessors:
    """Pluggable answer grading."""

    async def test_length_heuristic(self):
        assessor = LengthHeuristicAssessor(min_length=10, confidence=0.7)

        long_answer = await assessor.assess("Q?", "Light becomes chemical energy")
        short_answer = await assessor.assess("Q?", "  sugar    ")

        assert long_answer.is_correct is True
        assert long_answer.confidence == 0.7
        assert short_answer.is_correct is False

    async def test_llm_grading(self):
        generator = FakeTextGenerator({GRADING_SYSTEM: {"isCorrect": False, "confidence": 0.95}})
        assessment = await LLMCorrectnessAssessor(generator).assess(
            "What does a plant make?", "A very long but wrong answer about rocks", "Glucose"
        )

        assert assessment.is_correct is False
        assert assessment.confidence == 0.95
        assert "Expected answer: Glucose" in generator.calls[0]["prompt"]

    async def test_llm_grading_falls_back_to_heuristic(self):
        generator = FakeTextGenerator({GRADING_SYSTEM: TextGenerationError("down")})
        assessment = await LLMCorrectnessAssessor(generator).assess("Q?", "A sufficiently long answer")

        assert assessment.is_correct is True
        assert assessment.confidence == 0.7
