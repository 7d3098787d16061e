"""Base infrastructure for all agents."""

from .llm import ChatTextGenerator, TextGenerator, get_llm
from .locks import KeyedLocks
from .utils import parse_json_response

__all__ = [
    "ChatTextGenerator",
    "TextGenerator",
    "get_llm",
    "KeyedLocks",
    "parse_json_response",
]
