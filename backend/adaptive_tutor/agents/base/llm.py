"""Text-generation client for OpenAI-compatible chat backends.

Provides the ``TextGenerator`` contract every tutoring component depends on,
and the LangChain-backed implementation used in production.
"""

import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ...core.config import Settings, get_settings
from ...core.exceptions import TextGenerationError

logger = logging.getLogger(__name__)


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that turns a system instruction and a prompt into text."""

    async def generate(
        self,
        system: str,
        prompt: str,
        *,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        ...


def _resolve_api_key(base_url: str, api_key: str) -> str:
    """Provide a safe API key value for local OpenAI-compatible servers."""
    if api_key:
        return api_key
    base = (base_url or "").lower()
    if "127.0.0.1" in base or "localhost" in base:
        return "lm-studio"
    return ""


def get_llm(
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
    json_mode: bool = False,
    settings: Optional[Settings] = None,
) -> ChatOpenAI:
    """
    Get a configured chat model client.

    Args:
        temperature: Override default temperature (0.0-1.0)
        model: Override default model name
        max_tokens: Override default max tokens
        json_mode: Ask the backend for a JSON object response
        settings: Settings to read defaults from

    Returns:
        Configured ChatOpenAI instance
    """
    settings = settings or get_settings()

    model_kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}

    return ChatOpenAI(
        base_url=settings.LLM_BASE_URL,
        api_key=_resolve_api_key(settings.LLM_BASE_URL, settings.LLM_API_KEY),
        model=model or settings.LLM_MODEL,
        temperature=temperature if temperature is not None else settings.LLM_TEMPERATURE,
        max_tokens=max_tokens or settings.LLM_MAX_TOKENS,
        model_kwargs=model_kwargs,
    )


class ChatTextGenerator:
    """``TextGenerator`` backed by LangChain's ``ChatOpenAI``.

    Each call is bounded by ``LLM_TIMEOUT_SECONDS``; expiry and any client
    error surface as ``TextGenerationError`` so callers apply their own
    fallback policy.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.timeout = self.settings.LLM_TIMEOUT_SECONDS

    async def generate(
        self,
        system: str,
        prompt: str,
        *,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        llm = get_llm(
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
            settings=self.settings,
        )
        messages = [SystemMessage(content=system), HumanMessage(content=prompt)]

        try:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"LLM call timed out after {self.timeout}s")
            raise TextGenerationError(f"Generation timed out after {self.timeout}s", e) from e
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            raise TextGenerationError(f"Generation failed: {e}", e) from e

        content = response.content if hasattr(response, "content") else str(response)
        return content if isinstance(content, str) else str(content)
