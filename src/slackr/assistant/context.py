"""Semantic context retrieval for assistant exchanges."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from slackr.assistant.types import Requester
from slackr.errors import EmbeddingError
from slackr.integrations.embeddings import Embedder
from slackr.integrations.vector_index import VectorIndex, VectorMatch
from slackr.store import DataStore


@dataclass(frozen=True)
class ContextSnippet:
    """One historical message (or thread) relevant to the user's question."""

    id: str
    score: float
    content: str
    user_name: str
    channel_name: str
    created_at: str

    def render(self) -> str:
        return f"[[Message]] From {self.user_name} in #{self.channel_name} at {self.created_at}:\n{self.content}"


class ContextRetriever:
    """Embed the question and fetch the closest messages the requester may read."""

    def __init__(self, embedder: Embedder, index: VectorIndex, store: DataStore, *, top_k: int = 5) -> None:
        self._embedder = embedder
        self._index = index
        self._store = store
        self._top_k = top_k

    async def retrieve(self, text: str, requester: Requester) -> list[ContextSnippet]:
        vector = await self._embed(text)
        channel_ids = await self._store.accessible_channel_ids(
            requester.user_id, workspace_id=requester.workspace_id
        )
        if not channel_ids:
            logger.info("assistant.context.no_channels user={}", requester.user_id)
            return []

        matches = await self._index.query(vector, top_k=self._top_k, filter={"channel_id": {"$in": channel_ids}})
        snippets = [snippet for match in matches if (snippet := _snippet_from_match(match)) is not None]
        logger.info("assistant.context.done matches={} snippets={}", len(matches), len(snippets))
        return snippets

    async def _embed(self, text: str) -> list[float]:
        try:
            vectors = await self._embedder.embed([text])
        except Exception as exc:
            raise EmbeddingError(f"Failed to generate embedding for query: {exc!s}") from exc
        if not vectors or not vectors[0]:
            raise EmbeddingError("Failed to generate embedding for query")
        return vectors[0]


def render_context(snippets: list[ContextSnippet]) -> str:
    return "\n\n".join(snippet.render() for snippet in snippets)


def _snippet_from_match(match: VectorMatch) -> ContextSnippet | None:
    metadata: dict[str, Any] | None = match.metadata
    if not metadata:
        return None
    return ContextSnippet(
        id=match.id,
        score=match.score,
        content=str(metadata.get("content", "")),
        user_name=str(metadata.get("user_name", "Unknown User")),
        channel_name=str(metadata.get("channel_name", "unknown")),
        created_at=str(metadata.get("created_at", "")),
    )
