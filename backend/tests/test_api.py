"""
Test the tutor HTTP API.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from adaptive_tutor.agents.tutor.prompts import (
    FEEDBACK_SYSTEM,
    INTENT_SYSTEM,
    LESSON_PLAN_SYSTEM,
    WORKED_EXAMPLE_SYSTEM,
)
from adaptive_tutor.core.config import Settings
from adaptive_tutor.core.exceptions import TextGenerationError
from adaptive_tutor.db.base import create_tutor_session_maker
from adaptive_tutor.db.tutor.store import SQLAlchemyTutorStore
from adaptive_tutor.main import create_app

from conftest import PRIOR_KNOWLEDGE, PROBE, PROBE_EVALUATION, WORKED_EXAMPLE, intent_json

API = "/api/v1/tutor"

TURN_BODY = {
    "learner_id": "learner-1",
    "message": "What is photosynthesis?",
    "subject": "Biology",
    "topic": "Photosynthesis",
    "grade_level": "high school",
}


@pytest.mark.asyncio
class TestHealth:
    """Service metadata endpoints."""

    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_root(self, async_client: AsyncClient):
        response = await async_client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"


@pytest.mark.asyncio
class TestTurnEndpoint:
    """POST /tutor/sessions/{session_id}/turns"""

    async def test_conceptual_turn_returns_plan(self, async_client: AsyncClient):
        response = await async_client.post(f"{API}/sessions/session-1/turns", json=TURN_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"] == "session-1"
        assert data["message_type"] == "lesson_plan"
        assert data["response_text"].startswith("# Learning Plan:")
        assert len(data["lesson_plan"]["steps"]) == 4
        assert data["mastery_updated"] is False

    async def test_turns_are_persisted(self, async_client: AsyncClient, generator, store):
        generator.script(INTENT_SYSTEM, intent_json("application"))

        response = await async_client.post(f"{API}/sessions/session-1/turns", json=TURN_BODY)

        assert response.status_code == 200
        assert response.json()["response_text"] == PROBE["question"]
        messages = await store.list_recent_messages("session-1")
        assert [message.role for message in messages] == ["learner", "tutor"]

    async def test_answer_turn_returns_feedback(self, async_client: AsyncClient, generator):
        generator.script(INTENT_SYSTEM, intent_json("application"))
        await async_client.post(f"{API}/sessions/session-1/turns", json=TURN_BODY)

        response = await async_client.post(
            f"{API}/sessions/session-1/turns",
            json={**TURN_BODY, "message": "Plants turn light into glucose", "answer_attempt": True},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message_type"] == "feedback"
        assert data["mastery_updated"] is True
        assert data["adaptation"]["new_bloom_level"] == "remember"

    async def test_default_grade_level(self, async_client: AsyncClient, generator):
        generator.script(INTENT_SYSTEM, intent_json("administrative"))
        body = {key: value for key, value in TURN_BODY.items() if key != "grade_level"}

        response = await async_client.post(f"{API}/sessions/session-1/turns", json=body)

        assert response.status_code == 200
        assert "high school" in response.json()["response_text"]

    async def test_plan_failure_is_503(self, async_client: AsyncClient, generator, store):
        generator.script(LESSON_PLAN_SYSTEM, TextGenerationError("down"))

        response = await async_client.post(f"{API}/sessions/session-1/turns", json=TURN_BODY)

        assert response.status_code == 503
        assert "temporarily unavailable" in response.json()["detail"]
        assert await store.list_recent_messages("session-1") == []

    async def test_feedback_failure_is_503(self, async_client: AsyncClient, generator):
        generator.script(INTENT_SYSTEM, intent_json("application"))
        await async_client.post(f"{API}/sessions/session-1/turns", json=TURN_BODY)
        generator.script(FEEDBACK_SYSTEM, TextGenerationError("down"))

        response = await async_client.post(
            f"{API}/sessions/session-1/turns",
            json={**TURN_BODY, "message": "Plants turn light into glucose"},
        )

        assert response.status_code == 503

    async def test_empty_message_is_rejected(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/sessions/session-1/turns", json={**TURN_BODY, "message": ""}
        )

        assert response.status_code == 422

    async def test_missing_topic_is_rejected(self, async_client: AsyncClient):
        body = {key: value for key, value in TURN_BODY.items() if key != "topic"}
        response = await async_client.post(f"{API}/sessions/session-1/turns", json=body)

        assert response.status_code == 422


@pytest.mark.asyncio
class TestSessionEnd:
    """POST /tutor/sessions/{session_id}/end"""

    async def test_end_session_updates_profile(self, async_client: AsyncClient, store):
        response = await async_client.post(
            f"{API}/sessions/session-1/end",
            json={"learner_id": "learner-1", "time_spent": 900},
        )

        assert response.status_code == 200
        assert response.json() == {"session_id": "session-1", "status": "completed"}
        profile = await store.get_profile("learner-1")
        assert profile.total_sessions == 1
        assert profile.total_time_spent == 900

    async def test_negative_time_is_rejected(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/sessions/session-1/end",
            json={"learner_id": "learner-1", "time_spent": -5},
        )

        assert response.status_code == 422


@pytest.mark.asyncio
class TestKnowledgeStateEndpoint:
    """GET /tutor/learners/{learner_id}/knowledge-state"""

    async def test_new_learner(self, async_client: AsyncClient):
        response = await async_client.get(
            f"{API}/learners/learner-1/knowledge-state",
            params={"subject": "Biology", "topic": "Photosynthesis"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["knowledge_state"]["recommended_bloom_level"] == "remember"
        assert data["knowledge_state"]["mastery_levels"] == []
        assert data["recommendation"]["activity"] == "mixed_review"

    async def test_reflects_recorded_mastery(self, async_client: AsyncClient, orchestrator):
        await orchestrator.student_model.update_mastery(
            "learner-1", "Biology", "Photosynthesis", "remember", False
        )

        response = await async_client.get(
            f"{API}/learners/learner-1/knowledge-state",
            params={"subject": "Biology", "topic": "Photosynthesis"},
        )

        data = response.json()
        assert data["knowledge_state"]["weak_areas"] == ["remember (0%)"]
        assert data["recommendation"]["activity"] == "review_gaps"

    async def test_requires_topic(self, async_client: AsyncClient):
        response = await async_client.get(
            f"{API}/learners/learner-1/knowledge-state", params={"subject": "Biology"}
        )

        assert response.status_code == 422


@pytest.mark.asyncio
class TestToolEndpoints:
    """Standalone prior-knowledge, worked-example and probe-evaluation tools."""

    async def test_prior_knowledge(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/prior-knowledge",
            json={"student_response": "Plants use sunlight", "expected_knowledge": "Basic plant biology"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["knowledge_level"] == PRIOR_KNOWLEDGE["knowledgeLevel"]
        assert data["gaps"] == PRIOR_KNOWLEDGE["gaps"]

    async def test_worked_example(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/worked-example",
            json={"topic": "Algebra", "concept": "Linear equations", "bloom_level": "apply"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["example"] == WORKED_EXAMPLE["example"]
        assert data["practice_prompt"] == WORKED_EXAMPLE["practicePrompt"]

    async def test_worked_example_failure_is_503(self, async_client: AsyncClient, generator):
        generator.script(WORKED_EXAMPLE_SYSTEM, TextGenerationError("down"))

        response = await async_client.post(
            f"{API}/worked-example",
            json={"topic": "Algebra", "concept": "Linear equations"},
        )

        assert response.status_code == 503

    async def test_worked_example_rejects_unknown_level(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/worked-example",
            json={"topic": "Algebra", "concept": "Linear equations", "bloom_level": "memorize"},
        )

        assert response.status_code == 422

    async def test_probe_evaluation(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/probe-evaluation",
            json={
                "probe_question": PROBE["question"],
                "expected_answer": PROBE["expectedAnswer"],
                "learner_answer": "It makes food",
                "hints_used": 0,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["quality"] == PROBE_EVALUATION["quality"]
        assert data["hint_index"] == PROBE_EVALUATION["hintIndex"]


@pytest.mark.asyncio
class TestStartup:
    """The app builds its store from the settings it was created with."""

    async def test_lifespan_uses_configured_database(self, tmp_path):
        database = tmp_path / "custom" / "tutor.db"
        settings = Settings(
            _env_file=None,
            TUTOR_DB_URL=f"sqlite+aiosqlite:///{database}",
            LANGSMITH_TRACING=False,
        )
        app = create_app(settings)

        async with app.router.lifespan_context(app):
            store = app.state.orchestrator.store
            await store.get_or_create_profile("learner-1", preferred_mode="friendly_mentor")

            assert database.exists()
            assert app.state.orchestrator.nodes.settings is settings

        engine = create_async_engine(f"sqlite+aiosqlite:///{database}")
        try:
            reopened = SQLAlchemyTutorStore(create_tutor_session_maker(engine))
            profile = await reopened.get_profile("learner-1")
        finally:
            await engine.dispose()

        assert profile is not None
