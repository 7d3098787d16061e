"""Intent classification for learner utterances."""

import logging
from typing import List, Optional

from ...core.exceptions import ClassificationFailure
from ..base.llm import TextGenerator
from ..base.utils import parse_json_response
from .prompts import INTENT_SYSTEM, INTENT_TEMPLATE, format_recent_messages
from .schemas import IntentClassification

logger = logging.getLogger(__name__)


class IntentClassifier:
    """Maps an utterance to conceptual / application / administrative / confusion.

    Never raises: a failed classification must not block the turn, so any
    generation or parse error yields a ``conceptual`` default.
    """

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    async def classify(
        self,
        utterance: str,
        subject: str,
        topic: str,
        grade_level: str,
        recent_messages: Optional[List[str]] = None,
    ) -> IntentClassification:
        prompt = INTENT_TEMPLATE.format(
            grade_level=grade_level,
            subject=subject,
            topic=topic,
            recent_messages=format_recent_messages(recent_messages or []),
            utterance=utterance,
        )

        try:
            return await self._classify(prompt)
        except ClassificationFailure as e:
            logger.warning(f"Intent classification failed, defaulting to conceptual: {e}")
            return IntentClassification(
                intent="conceptual",
                confidence=0.5,
                reasoning=f"Classification failed, defaulting to conceptual ({e})",
            )

    async def _classify(self, prompt: str) -> IntentClassification:
        try:
            response_text = await self.generator.generate(
                INTENT_SYSTEM, prompt, json_mode=True, max_tokens=200, temperature=0.3
            )
            return parse_json_response(response_text, IntentClassification)
        except Exception as e:
            raise ClassificationFailure(str(e)) from e
