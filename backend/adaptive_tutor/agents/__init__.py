"""Adaptive Tutor - LangGraph Agents Package.

This package contains the tutoring agents and their shared infrastructure:
- base: text-generation client, JSON parsing and message helpers
- tutor: intent, lesson, probe and feedback agents plus the Session Orchestrator
"""

from .base import ChatTextGenerator, TextGenerator, get_llm
from .tutor import SessionOrchestrator, build_orchestrator

__all__ = [
    "ChatTextGenerator",
    "TextGenerator",
    "get_llm",
    "SessionOrchestrator",
    "build_orchestrator",
]
