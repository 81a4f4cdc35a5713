"""Republic integration helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any, Protocol

from loguru import logger
from republic import LLM

from slackr.assistant.types import Turn
from slackr.config import Settings
from slackr.errors import ModelNotConfiguredError

MODEL_NOT_CONFIGURED_ERROR = "Model not configured. Set SLACKR_MODEL (e.g., 'openai:gpt-4-turbo-preview')."


class ChatModel(Protocol):
    """Hosted language model taking the full ordered turn sequence."""

    async def invoke(self, turns: Sequence[Turn]) -> str: ...


class RepublicChatModel:
    """``ChatModel`` over a Republic ``LLM`` client."""

    def __init__(self, llm: LLM, *, max_tokens: int, timeout_seconds: float | None = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    async def invoke(self, turns: Sequence[Turn]) -> str:
        messages = [turn.to_message() for turn in turns]
        logger.debug("model.call.start turns={}", len(messages))
        async with asyncio.timeout(self._timeout_seconds):
            response = await asyncio.to_thread(self._llm.chat.raw, messages=messages, max_tokens=self._max_tokens)
        return _extract_text(response)


def _extract_text(response: Any) -> str:
    if isinstance(response, str):
        return response
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    if message is None:
        return ""
    return getattr(message, "content", "") or ""


def build_llm(settings: Settings) -> LLM:
    """Build Republic LLM client configured for Slackr."""

    if not settings.model:
        raise ModelNotConfiguredError(MODEL_NOT_CONFIGURED_ERROR)
    return LLM(
        model=settings.model,
        api_key=settings.api_key,
        api_base=settings.api_base,
    )


def build_chat_model(settings: Settings) -> RepublicChatModel:
    return RepublicChatModel(
        build_llm(settings),
        max_tokens=settings.max_tokens,
        timeout_seconds=settings.model_timeout_seconds,
    )
