"""Slackr command line."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from slackr.app import build_orchestrator
from slackr.assistant.directives import describe_directive, scan_directives, strip_directives
from slackr.assistant.indexer import MessageIndexer
from slackr.assistant.types import ExchangeRequest, Requester
from slackr.config import Settings, get_settings
from slackr.errors import SlackrError
from slackr.integrations.embeddings import Embedder, build_embedder
from slackr.integrations.vector_index import InMemoryVectorIndex
from slackr.logging_utils import configure_logging
from slackr.store import SQLiteStore
from slackr.stream import SignalStreamPublisher, StreamEvent, stream_channel_name

app = typer.Typer(name="slackr", help="Workspace assistant over a Slackr database", add_completion=False)
console = Console()


@app.command("ask")
def ask(
    message: str = typer.Argument(..., help="Question for the assistant"),
    user: str = typer.Option(..., "--user", "-u", help="Id of the asking user"),
    workspace: str | None = typer.Option(None, "--workspace", "-w", help="Workspace id to scope lookups"),
    database: Path | None = typer.Option(None, "--db", help="SQLite database path"),
    index_limit: int = typer.Option(50, help="Recent messages per channel to index for context (0 disables)"),
) -> None:
    """Run one assistant exchange and print every response until it finishes."""

    settings = get_settings()
    configure_logging(profile="chat", level=settings.log_level)
    db_path = str(database) if database is not None else settings.database_path
    try:
        asyncio.run(_ask(settings, db_path, Requester(user_id=user, workspace_id=workspace), message, index_limit))
    except SlackrError as exc:
        console.print(f"[red]error:[/red] {exc}")
        raise typer.Exit(1) from exc


async def _ask(settings: Settings, db_path: str, requester: Requester, message: str, index_limit: int) -> None:
    store = SQLiteStore(db_path)
    try:
        await _run_exchange(settings, store, requester, message, index_limit)
    finally:
        store.close()


async def _run_exchange(
    settings: Settings, store: SQLiteStore, requester: Requester, message: str, index_limit: int
) -> None:
    index = InMemoryVectorIndex()
    publisher = SignalStreamPublisher()
    embedder = build_embedder(settings)
    if index_limit > 0:
        await _index_recent(store, embedder, index, requester, index_limit)

    orchestrator = build_orchestrator(settings, store=store, index=index, publisher=publisher, embedder=embedder)
    result = await orchestrator.chat(ExchangeRequest(requester=requester, message=message))
    _render(result.content)
    if result.stream_id is None:
        return

    async def _on_event(event: StreamEvent) -> None:
        _render(event.content)

    unsubscribe = publisher.subscribe(stream_channel_name(result.stream_id), _on_event)
    try:
        await orchestrator.join(result.stream_id)
    finally:
        unsubscribe()


async def _index_recent(
    store: SQLiteStore, embedder: Embedder, index: InMemoryVectorIndex, requester: Requester, limit: int
) -> None:
    indexer = MessageIndexer(store, embedder, index)
    channel_ids = await store.accessible_channel_ids(requester.user_id, workspace_id=requester.workspace_id)
    for channel_id in channel_ids:
        for stored in reversed(await store.recent_messages(channel_id, limit=limit)):
            await indexer.index_message(stored)


def _render(content: str) -> None:
    visible = strip_directives(content)
    if visible:
        console.print(visible, markup=False)
    for directive in scan_directives(content).directives:
        console.print(f"[dim]{escape(describe_directive(directive))}[/dim]")
