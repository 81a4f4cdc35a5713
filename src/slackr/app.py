"""Wiring of the assistant from settings."""

from __future__ import annotations

from slackr.assistant.actions import ActionExecutor
from slackr.assistant.context import ContextRetriever
from slackr.assistant.orchestrator import ChatOrchestrator
from slackr.config import Settings
from slackr.integrations.embeddings import Embedder, build_embedder
from slackr.integrations.republic_client import ChatModel, build_chat_model
from slackr.integrations.vector_index import VectorIndex
from slackr.store import DataStore
from slackr.stream import StreamPublisher


def build_orchestrator(
    settings: Settings,
    *,
    store: DataStore,
    index: VectorIndex,
    publisher: StreamPublisher,
    model: ChatModel | None = None,
    embedder: Embedder | None = None,
) -> ChatOrchestrator:
    """Assemble an orchestrator; model and embedder default to the hosted providers."""

    executor = ActionExecutor(
        store,
        message_limit=settings.message_limit,
        channel_limit=settings.channel_limit,
        member_limit=settings.member_limit,
    )
    retriever = ContextRetriever(
        embedder or build_embedder(settings),
        index,
        store,
        top_k=settings.context_top_k,
    )
    return ChatOrchestrator(
        model=model or build_chat_model(settings),
        retriever=retriever,
        executor=executor,
        publisher=publisher,
        assistant_name=settings.assistant_name,
        max_iterations=settings.max_iterations,
        exchange_timeout_seconds=settings.exchange_timeout_seconds,
    )
