"""
Pytest configuration and fixtures for the tutoring core tests.
"""

import json
import sys
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from adaptive_tutor.agents.tutor.graph import SessionOrchestrator, build_orchestrator
from adaptive_tutor.agents.tutor.prompts import (
    FEEDBACK_SYSTEM,
    INTENT_SYSTEM,
    LESSON_PLAN_SYSTEM,
    PRIOR_KNOWLEDGE_SYSTEM,
    PROBE_EVALUATION_SYSTEM,
    PROBE_SYSTEM,
    WORKED_EXAMPLE_SYSTEM,
)
from adaptive_tutor.api.tutor import get_orchestrator
from adaptive_tutor.core.config import Settings, get_settings
from adaptive_tutor.core.exceptions import TextGenerationError
from adaptive_tutor.db.base import create_tutor_session_maker, init_database
from adaptive_tutor.db.tutor.store import SQLAlchemyTutorStore
from adaptive_tutor.main import create_app


TEST_DB_URL = "sqlite+aiosqlite://"


# =============================================================================
# Canned generator output
# =============================================================================

def intent_json(intent: str, confidence: float = 0.9) -> Dict[str, Any]:
    return {"intent": intent, "confidence": confidence, "reasoning": f"looks {intent}"}


LESSON_PLAN = {
    "learningGoals": ["Explain what photosynthesis produces", "Identify the inputs of photosynthesis"],
    "targetBloomLevel": "understand",
    "priorKnowledgeCheck": "What do plants need to grow?",
    "steps": [
        {
            "type": "explain",
            "content": "Plants turn light into chemical energy.",
            "bloomLevel": "remember",
            "checkpoints": ["Name the energy source"],
            "estimatedMinutes": 5,
        },
        {
            "type": "example",
            "content": "A leaf in sunlight producing glucose.",
            "bloomLevel": "understand",
            "checkpoints": ["Describe the output"],
            "estimatedMinutes": 5,
        },
        {
            "type": "practice",
            "content": "Predict what happens in the dark.",
            "bloomLevel": "apply",
            "checkpoints": [],
            "estimatedMinutes": 10,
        },
        {
            "type": "reflection",
            "content": "Why do plants need chlorophyll?",
            "bloomLevel": "analyze",
            "checkpoints": ["Connect pigment to light"],
            "estimatedMinutes": 5,
        },
    ],
    "resources": [],
    "estimatedDuration": 25,
}

PROBE = {
    "question": "What do you think a plant does with sunlight?",
    "bloomLevel": "remember",
    "hints": ["Think about energy", "Plants make their own food", "Light becomes sugar"],
    "expectedAnswer": "Plants convert light energy into chemical energy (glucose).",
    "scaffoldingType": "leading",
    "reasoning": "Starts from an observable idea",
}

FEEDBACK = {
    "taskFeedback": "You identified that light is the energy source.",
    "processFeedback": "You linked light to food production; next connect it to glucose.",
    "selfRegulationFeedback": "Check whether your answer names both the input and the output.",
    "nextMicroStep": "Write the word equation for photosynthesis.",
    "retrievalPrompt": "What gas do plants release?",
    "encouragement": "Your reasoning is getting sharper.",
    "bloomLevel": "remember",
}

WORKED_EXAMPLE = {
    "example": "Solve 2x + 3 = 7: subtract 3, then divide by 2, so x = 2.",
    "steps": ["Step 1: subtract 3", "Step 2: divide by 2"],
    "keyPoints": ["Undo operations in reverse order"],
    "practicePrompt": "Now you try: 3x + 1 = 10",
}

PRIOR_KNOWLEDGE = {
    "hasKnowledge": True,
    "knowledgeLevel": "partial",
    "gaps": ["chlorophyll"],
    "recommendation": "Review the role of pigments",
}

PROBE_EVALUATION = {
    "isCorrect": False,
    "quality": "partial",
    "shouldGiveHint": True,
    "hintIndex": 1,
    "shouldMoveOn": False,
    "nextAction": "hint",
    "reasoning": "On the right track",
}


# =============================================================================
# Fake text generator
# =============================================================================

class FakeTextGenerator:
    """
    Scripted ``TextGenerator`` keyed by system prompt.

    A scripted value may be a string, a dict (sent as JSON), an exception
    (raised) or a list of those (consumed in order, last one repeats).
    Unscripted system prompts fail like an unreachable backend.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Dict[str, Any]] = []

    def script(self, system: str, response: Any) -> None:
        self.responses[system] = response

    def calls_for(self, system: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["system"] == system]

    async def generate(
        self,
        system: str,
        prompt: str,
        *,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        self.calls.append({
            "system": system,
            "prompt": prompt,
            "json_mode": json_mode,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })

        if system not in self.responses:
            raise TextGenerationError("No scripted response")

        response = self.responses[system]
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]

        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        TUTOR_DB_URL=TEST_DB_URL,
        LANGSMITH_TRACING=False,
        USE_LLM_GRADING=False,
        DEBUG=True,
    )


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> SQLAlchemyTutorStore:
    return SQLAlchemyTutorStore(async_sessionmaker(bind=engine, expire_on_commit=False))


@pytest.fixture
async def file_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """On-disk SQLite engine whose sessions each get their own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tutor.db'}")
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_store(file_engine: AsyncEngine) -> SQLAlchemyTutorStore:
    return SQLAlchemyTutorStore(create_tutor_session_maker(file_engine))


@pytest.fixture
def generator() -> FakeTextGenerator:
    """Generator scripted for the happy path of every component."""
    return FakeTextGenerator({
        INTENT_SYSTEM: intent_json("conceptual"),
        LESSON_PLAN_SYSTEM: LESSON_PLAN,
        PRIOR_KNOWLEDGE_SYSTEM: PRIOR_KNOWLEDGE,
        PROBE_SYSTEM: PROBE,
        PROBE_EVALUATION_SYSTEM: PROBE_EVALUATION,
        FEEDBACK_SYSTEM: FEEDBACK,
        WORKED_EXAMPLE_SYSTEM: WORKED_EXAMPLE,
    })


@pytest.fixture
def orchestrator(
    settings: Settings,
    generator: FakeTextGenerator,
    store: SQLAlchemyTutorStore,
) -> SessionOrchestrator:
    return build_orchestrator(settings, generator=generator, store=store)


@pytest.fixture
async def async_client(
    settings: Settings,
    orchestrator: SessionOrchestrator,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client wired to the test orchestrator."""
    app = create_app(settings, orchestrator=orchestrator)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

