"""Embedding service backed by the OpenAI embeddings API."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from loguru import logger
from openai import AsyncOpenAI

from slackr.config import Settings


class Embedder(Protocol):
    async def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


class OpenAIEmbedder:
    """Compute passage embeddings, one vector per input text, in input order."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        response = await self._client.embeddings.create(model=self._model, input=list(texts))
        ordered = sorted(response.data, key=lambda item: item.index)
        logger.debug("embeddings.done model={} count={}", self._model, len(ordered))
        return [list(item.embedding) for item in ordered]


def build_embedder(settings: Settings) -> OpenAIEmbedder:
    """Build the embedding client configured for Slackr."""

    client = AsyncOpenAI(
        api_key=settings.embedding_api_key or settings.api_key,
        base_url=settings.embedding_api_base,
    )
    return OpenAIEmbedder(client, settings.embedding_model)
