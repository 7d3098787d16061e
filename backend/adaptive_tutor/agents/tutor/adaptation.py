"""Adaptive difficulty decisions.

Pure functions of the learner's latest attempt and knowledge state: no store
access, no text generation, identical inputs always give identical decisions.
"""

from typing import Optional

from .schemas import (
    BLOOM_ORDER,
    ActivityRecommendation,
    AdaptationDecision,
    KnowledgeState,
    ScaffoldingType,
)

RAISE_THRESHOLD = 85.0
STRUGGLING_THRESHOLD = 40.0
CONFIDENT = 0.7
VERY_CONFIDENT = 0.8


def _format_score(score: Optional[float]) -> str:
    return f"{score:.0f}%" if score is not None else "no data"


class AdaptationEngine:
    """Decision matrix over correctness, attempt count, confidence and mastery."""

    def adapt_difficulty(
        self,
        current_bloom_level: str,
        is_correct: bool,
        attempt_number: int,
        confidence: Optional[float] = None,
        knowledge_state: Optional[KnowledgeState] = None,
    ) -> AdaptationDecision:
        """
        Decide how to adapt instruction after one attempt.

        Args:
            current_bloom_level: Bloom level the attempt was made at
            is_correct: Whether the attempt was correct
            attempt_number: 1-based attempt count for this item
            confidence: Optional confidence in [0, 1]
            knowledge_state: Learner's state for the topic, if known

        Returns:
            AdaptationDecision with the action, target level and scaffolding
        """
        current_index = BLOOM_ORDER.index(current_bloom_level)
        last_index = len(BLOOM_ORDER) - 1
        mastery = knowledge_state.score_for(current_bloom_level) if knowledge_state else None
        mastery_text = _format_score(mastery)

        # Correct on an early attempt without low confidence
        if is_correct and attempt_number <= 2 and (confidence is None or confidence >= CONFIDENT):
            if mastery is not None and mastery >= RAISE_THRESHOLD and current_index < last_index:
                next_level = BLOOM_ORDER[current_index + 1]
                return AdaptationDecision(
                    action="raise_difficulty",
                    new_bloom_level=next_level,
                    reasoning=(
                        f"Strong mastery ({mastery_text}) at {current_bloom_level}. "
                        f"Ready for {next_level} level challenges."
                    ),
                    scaffolding_type="partial_support",
                )

            scaffolding: ScaffoldingType = (
                "minimal_support" if confidence is not None and confidence >= VERY_CONFIDENT else "partial_support"
            )
            return AdaptationDecision(
                action="maintain",
                new_bloom_level=current_bloom_level,
                reasoning=(
                    f"Correct answer with mastery {mastery_text}; "
                    f"continuing to build mastery at {current_bloom_level}."
                ),
                scaffolding_type=scaffolding,
            )

        # Correct, but only after several attempts or with low confidence
        if is_correct:
            return AdaptationDecision(
                action="maintain",
                new_bloom_level=current_bloom_level,
                reasoning=(
                    f"Correct after {attempt_number} attempts or with low confidence "
                    f"(mastery {mastery_text}). More practice needed at {current_bloom_level}."
                ),
                scaffolding_type="full_support",
            )

        # Incorrect on a first or second attempt
        if attempt_number <= 2:
            if mastery is not None and mastery < STRUGGLING_THRESHOLD:
                if current_index > 0:
                    previous_level = BLOOM_ORDER[current_index - 1]
                    return AdaptationDecision(
                        action="lower_difficulty",
                        new_bloom_level=previous_level,
                        reasoning=(
                            f"Struggling at {current_bloom_level} (mastery {mastery_text}). "
                            f"Dropping to {previous_level} to rebuild the foundation."
                        ),
                        scaffolding_type="full_support",
                    )
                return AdaptationDecision(
                    action="reteach",
                    new_bloom_level=current_bloom_level,
                    reasoning=(
                        f"Struggling at the foundational {current_bloom_level} level "
                        f"(mastery {mastery_text}). Reteaching with new examples."
                    ),
                    scaffolding_type="full_support",
                )

            return AdaptationDecision(
                action="maintain",
                new_bloom_level=current_bloom_level,
                reasoning=(
                    f"Incorrect attempt {attempt_number} (mastery {mastery_text}). "
                    f"Giving hints and scaffolding at {current_bloom_level}."
                ),
                scaffolding_type="full_support",
            )

        # Repeated incorrect attempts
        if current_index > 0:
            previous_level = BLOOM_ORDER[current_index - 1]
            return AdaptationDecision(
                action="lower_difficulty",
                new_bloom_level=previous_level,
                reasoning=(
                    f"{attempt_number} incorrect attempts at {current_bloom_level} (mastery {mastery_text}). "
                    f"Dropping to {previous_level} to strengthen prerequisites."
                ),
                scaffolding_type="full_support",
            )
        return AdaptationDecision(
            action="reteach",
            new_bloom_level="remember",
            reasoning=(
                f"{attempt_number} incorrect attempts on fundamentals (mastery {mastery_text}). "
                "Reteaching remember level from the basics with worked examples."
            ),
            scaffolding_type="full_support",
        )

    def determine_scaffolding(
        self,
        correct_streak: int,
        total_attempts: int,
        avg_confidence: float,
    ) -> ScaffoldingType:
        """Support level from the recent success rate and average confidence."""
        success_rate = correct_streak / max(total_attempts, 1)

        if success_rate >= 0.9 and avg_confidence >= 0.8:
            return "independent"
        if success_rate >= 0.7 and avg_confidence >= 0.6:
            return "minimal_support"
        if success_rate >= 0.5:
            return "partial_support"
        return "full_support"

    def recommend_next_activity(self, knowledge_state: KnowledgeState) -> ActivityRecommendation:
        overall = knowledge_state.overall_score
        recommended = knowledge_state.recommended_bloom_level

        if knowledge_state.weak_areas:
            return ActivityRecommendation(
                activity="review_gaps",
                focus=knowledge_state.weak_areas[0],
                reasoning=(
                    f"Knowledge gaps in: {', '.join(knowledge_state.weak_areas)}. "
                    "Prioritizing the weakest area first."
                ),
            )

        if overall >= 80:
            return ActivityRecommendation(
                activity="advance_topic",
                focus=recommended,
                reasoning=f"Strong overall mastery ({overall:.0f}%). Ready to advance to {recommended} or a new topic.",
            )

        if overall >= 60:
            return ActivityRecommendation(
                activity="practice_current",
                focus=recommended,
                reasoning=f"Moderate mastery ({overall:.0f}%). More practice needed at {recommended}.",
            )

        return ActivityRecommendation(
            activity="mixed_review",
            focus="foundational concepts",
            reasoning=f"Lower mastery ({overall:.0f}%). Mixed review of foundational concepts recommended.",
        )
