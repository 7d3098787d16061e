"""Utilities for handling stored session turns as rows or plain dicts."""

from typing import Any, Dict, Iterable, List, Optional

LEARNER_ROLE = "learner"
TUTOR_ROLE = "tutor"


def _field(message: Any, name: str, default: Any = None) -> Any:
    if isinstance(message, dict):
        return message.get(name, default)
    return getattr(message, name, default)


def message_content(message: Any) -> str:
    """Extract plain-text content from a stored turn."""
    if message is None:
        return ""
    content = _field(message, "content", "")
    return content if isinstance(content, str) else str(content)


def message_role(message: Any) -> str:
    return str(_field(message, "role", LEARNER_ROLE) or LEARNER_ROLE).lower()


def message_type(message: Any) -> Optional[str]:
    return _field(message, "message_type")


def message_metadata(message: Any) -> Dict[str, Any]:
    """Metadata stored with a turn (``metadata_json`` on ORM rows)."""
    if isinstance(message, dict):
        metadata = message.get("metadata")
    else:
        metadata = getattr(message, "metadata_json", None)
    return dict(metadata) if isinstance(metadata, dict) else {}


def is_tutor_message(message: Any) -> bool:
    return message_role(message) == TUTOR_ROLE


def latest_tutor_message(messages: Iterable[Any]) -> Optional[Any]:
    """Return the newest non-empty tutor turn, if any."""
    for message in reversed(list(messages)):
        if is_tutor_message(message) and message_content(message).strip():
            return message
    return None


def has_open_probe(messages: Iterable[Any]) -> bool:
    """True when the last turn is a tutor probe still waiting for an answer."""
    messages = list(messages)
    if not messages:
        return False
    last = messages[-1]
    return is_tutor_message(last) and message_type(last) == "socratic_probe"


def format_turns(messages: Iterable[Any]) -> List[str]:
    """Render turns as ``role: content`` lines for prompt context."""
    return [
        f"{message_role(message)}: {message_content(message)}"
        for message in messages
        if message_content(message).strip()
    ]
