"""LangSmith tracing setup and helper utilities."""

import logging
import os
from typing import Any, Dict, Iterable, Optional

from ..core.config import Settings

logger = logging.getLogger(__name__)

TURN_TAGS = ("tutor", "turn")


def initialize_langsmith(settings: Settings) -> bool:
    """
    Export LangSmith settings to the environment LangChain reads.

    Returns:
        True when tracing is enabled and an API key is present, else False.
    """
    tracing_enabled = bool(settings.LANGSMITH_TRACING) and bool(settings.LANGSMITH_API_KEY.strip())

    os.environ["LANGSMITH_TRACING"] = "true" if tracing_enabled else "false"
    os.environ["LANGCHAIN_TRACING_V2"] = "true" if tracing_enabled else "false"

    exported = {
        "API_KEY": settings.LANGSMITH_API_KEY,
        "ENDPOINT": settings.LANGSMITH_ENDPOINT,
        "PROJECT": settings.LANGSMITH_PROJECT,
    }
    for suffix, value in exported.items():
        if value:
            os.environ[f"LANGSMITH_{suffix}"] = value
            # Older LangChain integrations read the LANGCHAIN_ prefix.
            os.environ[f"LANGCHAIN_{suffix}"] = value

    if tracing_enabled:
        logger.info(f"LangSmith tracing enabled (project={settings.LANGSMITH_PROJECT})")
    elif settings.LANGSMITH_TRACING:
        logger.warning("LANGSMITH_TRACING is set but LANGSMITH_API_KEY is empty; tracing disabled")
    else:
        logger.info("LangSmith tracing disabled")

    return tracing_enabled


def build_trace_config(
    thread_id: str,
    tags: Optional[Iterable[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a LangGraph runnable config with tags/metadata merged into ``config``."""
    config = dict(config or {})

    merged_tags = list(config.get("tags", []))
    merged_tags.extend(tags or [])
    merged_metadata = {**config.get("metadata", {}), **(metadata or {})}

    config["configurable"] = {**config.get("configurable", {}), "thread_id": thread_id}
    if merged_tags:
        config["tags"] = merged_tags
    if merged_metadata:
        config["metadata"] = merged_metadata

    return config


def build_turn_trace_config(session_id: str, learner_id: str, subject: str, topic: str) -> Dict[str, Any]:
    """Trace config for one orchestrated turn, threaded by session."""
    return build_trace_config(
        thread_id=session_id,
        tags=TURN_TAGS,
        metadata={
            "session_id": session_id,
            "learner_id": learner_id,
            "subject": subject,
            "topic": topic,
        },
    )
