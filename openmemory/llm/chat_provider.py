"""OpenAI-compatible chat provider.

Works against OpenAI and any vendor exposing the same API (set
``llm_base_url``).
"""

import time
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger()


@dataclass
class ChatResponse:
    """Response from a chat completion."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


class ChatProvider:
    """Thin async wrapper over ``chat.completions``."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
    ) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> ChatResponse:
        """Send chat completion request."""
        used_model = model or self.model
        start = time.monotonic()

        response = await self.client.chat.completions.create(
            model=used_model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        duration_ms = int((time.monotonic() - start) * 1000)
        usage = response.usage

        result = ChatResponse(
            content=response.choices[0].message.content or "",
            model=response.model or used_model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            duration_ms=duration_ms,
        )
        logger.debug(
            "Chat completion finished",
            model=result.model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            duration_ms=duration_ms,
        )
        return result


def create_chat_provider(settings: Any) -> Optional[ChatProvider]:
    """Build a provider from settings, or None when no API key is set."""
    api_key = getattr(settings, "llm_api_key_str", None)
    if not api_key:
        logger.warning("No API key for abstract model", model=settings.llm_model)
        return None
    return ChatProvider(
        model=settings.llm_model,
        api_key=api_key,
        base_url=settings.llm_base_url,
    )
