"""Feed channel messages into the similarity index used for context retrieval."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from loguru import logger
from markdownify import markdownify

from slackr.errors import EmbeddingError
from slackr.integrations.embeddings import Embedder
from slackr.integrations.vector_index import VectorIndex, VectorRecord
from slackr.store import Channel, StoredMessage, UserProfile, display_name

MIN_TOKENS = 15


class MessageSource(Protocol):
    async def get_channel(self, channel_id: str) -> Channel | None: ...

    async def thread_messages(self, thread_id: str) -> list[StoredMessage]: ...

    async def previous_message(self, message: StoredMessage) -> StoredMessage | None: ...

    async def get_users(self, user_ids: list[str]) -> dict[str, UserProfile]: ...


@dataclass(frozen=True)
class IndexOutcome:
    record_id: str | None
    skipped: bool = False


def estimate_tokens(text: str) -> int:
    """Rough token count from whitespace-separated words."""
    return math.ceil(len(text.split()) * 1.3)


def has_mentions(text: str) -> bool:
    return "@" in text or "#" in text


def to_markdown(content: str) -> str:
    """Rich-text (HTML) message bodies become Markdown; plain text passes through."""
    if "<" not in content or ">" not in content:
        return content
    return markdownify(content, heading_style="ATX", escape_asterisks=False, escape_underscores=False).strip()


def format_line(user_name: str, content: str) -> str:
    return f"{user_name}: {to_markdown(content)}"


class MessageIndexer:
    """Embed messages, or whole threads for replies, with channel metadata."""

    def __init__(self, source: MessageSource, embedder: Embedder, index: VectorIndex) -> None:
        self._source = source
        self._embedder = embedder
        self._index = index

    async def index_message(self, message: StoredMessage) -> IndexOutcome:
        channel = await self._source.get_channel(message.channel_id)
        if channel is None:
            logger.warning("indexer.channel_missing message={} channel={}", message.id, message.channel_id)
            return IndexOutcome(record_id=None, skipped=True)

        if message.thread_id:
            return await self._index_thread(message.thread_id, channel, message)

        if estimate_tokens(message.content) < MIN_TOKENS and not has_mentions(message.content):
            logger.debug("indexer.skip_short message={}", message.id)
            return IndexOutcome(record_id=None, skipped=True)

        previous = await self._source.previous_message(message)
        user_ids = [message.user_id] + ([previous.user_id] if previous is not None else [])
        users = await self._source.get_users(user_ids)
        author = display_name(users.get(message.user_id))
        text = format_line(author, message.content)
        if previous is not None:
            text = f"{format_line(display_name(users.get(previous.user_id)), previous.content)}\n\n{text}"

        await self._upsert(message.id, text, channel, message, author=author, is_thread=False)
        return IndexOutcome(record_id=message.id)

    async def _index_thread(self, thread_id: str, channel: Channel, message: StoredMessage) -> IndexOutcome:
        messages = await self._source.thread_messages(thread_id)
        if not messages:
            return IndexOutcome(record_id=None, skipped=True)

        users = await self._source.get_users(list(dict.fromkeys(item.user_id for item in messages)))
        text = "\n\n".join(format_line(display_name(users.get(item.user_id)), item.content) for item in messages)
        author = display_name(users.get(message.user_id))
        await self._upsert(thread_id, text, channel, message, author=author, is_thread=True)
        return IndexOutcome(record_id=thread_id)

    async def _upsert(
        self,
        record_id: str,
        text: str,
        channel: Channel,
        message: StoredMessage,
        *,
        author: str,
        is_thread: bool,
    ) -> None:
        try:
            vectors = await self._embedder.embed([text])
        except Exception as exc:
            raise EmbeddingError(f"Failed to generate embedding: {exc!s}") from exc
        if not vectors or not vectors[0]:
            raise EmbeddingError("Failed to generate embedding")

        metadata = {
            "message_id": record_id,
            "channel_id": channel.id,
            "channel_name": channel.name,
            "workspace_id": channel.workspace_id,
            "user_id": message.user_id,
            "user_name": author,
            "created_at": message.created_at_iso,
            "content": text,
            "is_thread": is_thread,
        }
        await self._index.upsert([VectorRecord(id=record_id, values=vectors[0], metadata=metadata)])
        logger.info("indexer.upsert record={} thread={}", record_id, is_thread)
