from __future__ import annotations

from collections.abc import Sequence

import pytest
from conftest import FakeEmbedder

from slackr.assistant.context import ContextRetriever, render_context
from slackr.assistant.types import Requester
from slackr.errors import EmbeddingError
from slackr.integrations.vector_index import InMemoryVectorIndex, VectorRecord
from slackr.store import SQLiteStore


def _record(record_id: str, channel_id: str, values: list[float], **extra: object) -> VectorRecord:
    metadata = {
        "channel_id": channel_id,
        "channel_name": channel_id.removeprefix("c-"),
        "user_name": "Bob Jones",
        "created_at": "2024-05-01T09:00:00+00:00",
        "content": f"Bob Jones: message {record_id}",
        **extra,
    }
    return VectorRecord(id=record_id, values=values, metadata=metadata)


class BrokenEmbedder:
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        raise RuntimeError("quota exceeded")


class EmptyEmbedder:
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        return [[]]


@pytest.mark.asyncio
async def test_retrieve_filters_to_accessible_channels(store: SQLiteStore) -> None:
    index = InMemoryVectorIndex()
    await index.upsert(
        [
            _record("r-general", "c-general", [1.0, 0.0, 0.0]),
            _record("r-random", "c-random", [1.0, 0.0, 0.0]),
            _record("r-secret", "c-secret", [1.0, 0.0, 0.0]),
            _record("r-general-far", "c-general", [0.0, 1.0, 0.0]),
        ]
    )
    embedder = FakeEmbedder([1.0, 0.0, 0.0])
    retriever = ContextRetriever(embedder, index, store, top_k=5)

    snippets = await retriever.retrieve("what's new?", Requester(user_id="u-alice"))

    assert embedder.calls == [["what's new?"]]
    assert [snippet.id for snippet in snippets] == ["r-general", "r-general-far"]
    assert snippets[0].render() == (
        "[[Message]] From Bob Jones in #general at 2024-05-01T09:00:00+00:00:\nBob Jones: message r-general"
    )


@pytest.mark.asyncio
async def test_retrieve_respects_top_k(store: SQLiteStore) -> None:
    index = InMemoryVectorIndex()
    await index.upsert([_record(f"r{i}", "c-general", [1.0, float(i), 0.0]) for i in range(8)])
    retriever = ContextRetriever(FakeEmbedder(), index, store, top_k=3)

    snippets = await retriever.retrieve("hi", Requester(user_id="u-alice"))

    assert [snippet.id for snippet in snippets] == ["r0", "r1", "r2"]
    assert render_context(snippets).count("[[Message]]") == 3


@pytest.mark.asyncio
async def test_requester_without_channels_gets_no_context(store: SQLiteStore) -> None:
    index = InMemoryVectorIndex()
    await index.upsert([_record("r-general", "c-general", [1.0, 0.0, 0.0])])
    embedder = FakeEmbedder()
    retriever = ContextRetriever(embedder, index, store)

    assert await retriever.retrieve("hello", Requester(user_id="u-drifter")) == []
    assert len(embedder.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("embedder", [BrokenEmbedder(), EmptyEmbedder()])
async def test_embedding_failure_is_raised(store: SQLiteStore, embedder: object) -> None:
    retriever = ContextRetriever(embedder, InMemoryVectorIndex(), store)  # type: ignore[arg-type]

    with pytest.raises(EmbeddingError, match="Failed to generate embedding"):
        await retriever.retrieve("hello", Requester(user_id="u-alice"))
