"""Typed results exchanged between the tutoring components.

Every structure the text-generation backend is asked to produce has a model
here; generated JSON is validated against it before use.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

BloomLevel = Literal["remember", "understand", "apply", "analyze", "evaluate", "create"]

BLOOM_ORDER: List[str] = ["remember", "understand", "apply", "analyze", "evaluate", "create"]

BLOOM_WEIGHTS: Dict[str, float] = {
    "remember": 1.0,
    "understand": 1.5,
    "apply": 2.0,
    "analyze": 2.5,
    "evaluate": 3.0,
    "create": 3.5,
}

IntentType = Literal["conceptual", "application", "administrative", "confusion"]
StepType = Literal["explain", "example", "practice", "reflection", "probe"]
ProbeScaffolding = Literal["leading", "clarifying", "refocusing", "probing"]
ScaffoldingType = Literal["full_support", "partial_support", "minimal_support", "independent"]
AdaptationAction = Literal["raise_difficulty", "lower_difficulty", "maintain", "reteach", "advance_topic"]
MessageType = Literal["lesson_plan", "socratic_probe", "feedback", "explanation", "administrative"]


class _CamelModel(BaseModel):
    """Accepts camelCase keys from generated JSON as well as snake_case."""

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Intent
# =============================================================================

class IntentClassification(_CamelModel):
    """Pedagogical intent behind a learner utterance."""

    intent: IntentType
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""

    @field_validator("intent", mode="before")
    @classmethod
    def _lower_intent(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


# =============================================================================
# Lesson plan
# =============================================================================

class LessonStep(_CamelModel):
    type: StepType
    content: str = Field(min_length=1)
    bloom_level: BloomLevel = Field(alias="bloomLevel")
    checkpoints: List[str] = Field(default_factory=list)
    estimated_minutes: int = Field(default=5, ge=0, alias="estimatedMinutes")


class LessonPlanData(_CamelModel):
    """A Bloom-ordered, multi-step lesson plan for one session."""

    learning_goals: List[str] = Field(alias="learningGoals", min_length=2, max_length=4)
    target_bloom_level: BloomLevel = Field(alias="targetBloomLevel")
    prior_knowledge_check: str = Field(alias="priorKnowledgeCheck", min_length=1)
    steps: List[LessonStep] = Field(min_length=4, max_length=6)
    resources: List[str] = Field(default_factory=list)
    estimated_duration: int = Field(alias="estimatedDuration", ge=0)


class PriorKnowledgeAssessment(_CamelModel):
    has_knowledge: bool = Field(default=False, alias="hasKnowledge")
    knowledge_level: Literal["none", "partial", "good"] = Field(alias="knowledgeLevel")
    gaps: List[str] = Field(default_factory=list)
    recommendation: str


# =============================================================================
# Socratic probes
# =============================================================================

class ProbeQuestion(_CamelModel):
    question: str
    bloom_level: BloomLevel = Field(alias="bloomLevel")
    hints: List[str] = Field(min_length=3, max_length=3)
    expected_answer: str = Field(alias="expectedAnswer")
    scaffolding_type: ProbeScaffolding = Field(alias="scaffoldingType")


class ProbeResponse(_CamelModel):
    probe: ProbeQuestion
    reasoning: str = ""


class ProbeEvaluation(_CamelModel):
    is_correct: bool = Field(default=False, alias="isCorrect")
    quality: Literal["excellent", "good", "partial", "poor"]
    should_give_hint: bool = Field(alias="shouldGiveHint")
    hint_index: int = Field(default=0, ge=0, le=2, alias="hintIndex")
    should_move_on: bool = Field(alias="shouldMoveOn")
    next_action: Literal["hint", "next_probe", "reteach", "advance"] = Field(alias="nextAction")
    reasoning: str = ""


# =============================================================================
# Feedback
# =============================================================================

class StructuredFeedback(_CamelModel):
    """Three-layer feedback (task, process, self-regulation) for one attempt."""

    task_feedback: str = Field(alias="taskFeedback", min_length=1)
    process_feedback: str = Field(alias="processFeedback", min_length=1)
    self_regulation_feedback: str = Field(alias="selfRegulationFeedback", min_length=1)
    next_micro_step: str = Field(alias="nextMicroStep")
    retrieval_prompt: str = Field(alias="retrievalPrompt")
    encouragement: str
    bloom_level: BloomLevel = Field(alias="bloomLevel")


class WorkedExample(_CamelModel):
    example: str = Field(min_length=1)
    steps: List[str] = Field(min_length=1)
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    practice_prompt: str = Field(alias="practicePrompt")


class CorrectnessAssessment(_CamelModel):
    is_correct: bool = Field(alias="isCorrect")
    confidence: float = Field(ge=0.0, le=1.0)


# =============================================================================
# Knowledge state and adaptation
# =============================================================================

class MasteryLevel(BaseModel):
    bloom_level: BloomLevel
    score: float = Field(ge=0.0, le=100.0)
    attempts: int = 0
    last_practiced: Optional[datetime] = None


class KnowledgeState(BaseModel):
    """Derived per (learner, subject, topic) summary; never persisted."""

    subject: str
    topic: str
    mastery_levels: List[MasteryLevel] = Field(default_factory=list)
    overall_score: float = 0.0
    weak_areas: List[str] = Field(default_factory=list)
    strong_areas: List[str] = Field(default_factory=list)
    recommended_bloom_level: BloomLevel = "remember"

    def score_for(self, bloom_level: str) -> Optional[float]:
        """Mastery score at one level, or None when never practiced."""
        for level in self.mastery_levels:
            if level.bloom_level == bloom_level:
                return level.score
        return None


class AdaptationDecision(BaseModel):
    action: AdaptationAction
    new_bloom_level: BloomLevel
    reasoning: str
    scaffolding_type: ScaffoldingType


class ActivityRecommendation(BaseModel):
    activity: Literal["practice_current", "review_gaps", "advance_topic", "mixed_review"]
    focus: str
    reasoning: str


# =============================================================================
# Orchestration
# =============================================================================

class OrchestrationResult(BaseModel):
    """Content and metadata returned to the chat-delivery layer for one turn."""

    response_text: str
    message_type: MessageType
    intent: Optional[IntentClassification] = None
    lesson_plan: Optional[LessonPlanData] = None
    feedback: Optional[StructuredFeedback] = None
    probe: Optional[ProbeResponse] = None
    adaptation: Optional[AdaptationDecision] = None
    mastery_updated: bool = False
