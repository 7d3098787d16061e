"""Shared utilities for agent implementations."""

import json
import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ...core.exceptions import GenerationParseError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_json_text(response_text: str) -> str:
    """Strip markdown code fences and surrounding prose from a JSON reply."""
    text = response_text.strip()

    if "```json" in text:
        json_start = text.find("```json") + 7
        json_end = text.find("```", json_start)
        text = text[json_start:json_end if json_end != -1 else None].strip()
    elif "```" in text:
        json_start = text.find("```") + 3
        json_end = text.find("```", json_start)
        text = text[json_start:json_end if json_end != -1 else None].strip()

    if not text.startswith("{"):
        brace_start = text.find("{")
        brace_end = text.rfind("}")
        if brace_start != -1 and brace_end > brace_start:
            text = text[brace_start:brace_end + 1]

    return text


def parse_json_response(response_text: str, schema: Type[ModelT]) -> ModelT:
    """
    Parse generated text into a validated pydantic model.

    Args:
        response_text: Raw text returned by the text generator
        schema: Model class the JSON must satisfy

    Returns:
        Validated model instance

    Raises:
        GenerationParseError: On malformed or truncated JSON, or a shape mismatch
    """
    try:
        payload: Any = json.loads(extract_json_text(response_text))
    except (json.JSONDecodeError, TypeError) as e:
        raise GenerationParseError(schema.__name__, f"invalid JSON ({e})", response_text) from e

    if not isinstance(payload, dict):
        raise GenerationParseError(schema.__name__, "expected a JSON object", response_text)

    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise GenerationParseError(schema.__name__, str(e), response_text) from e


def truncate_text(text: str, max_length: int = 1000, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length (default 1000)
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
