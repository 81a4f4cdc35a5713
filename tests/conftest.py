from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from slackr.assistant.types import Turn
from slackr.store import Channel, SQLiteStore, StoredMessage, UserProfile, WorkspaceMember


class ScriptedModel:
    """Chat model replaying canned responses and recording every prompt."""

    def __init__(self, responses: Sequence[str] | Callable[[int], str]) -> None:
        self._responses = responses
        self.calls: list[list[Turn]] = []

    async def invoke(self, turns: Sequence[Turn]) -> str:
        self.calls.append(list(turns))
        step = len(self.calls)
        if callable(self._responses):
            return self._responses(step)
        return self._responses[step - 1]


class FailingModel:
    def __init__(self, *, fail_on: int, responses: Sequence[str] = ()) -> None:
        self._fail_on = fail_on
        self._responses = list(responses)
        self.calls = 0

    async def invoke(self, turns: Sequence[Turn]) -> str:
        self.calls += 1
        if self.calls == self._fail_on:
            raise RuntimeError("provider unavailable")
        return self._responses[self.calls - 1]


class FakeEmbedder:
    def __init__(self, vector: list[float] | None = None) -> None:
        self.vector = vector if vector is not None else [1.0, 0.0, 0.0]
        self.calls: list[list[str]] = []

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [list(self.vector) for _ in texts]


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        self.events.append((channel, event, payload))


def seed_store(store: SQLiteStore) -> None:
    store.add_user(UserProfile(id="u-alice", first_name="Alice", last_name="Smith", email="alice@example.com"))
    store.add_user(UserProfile(id="u-bob", first_name="Bob", last_name="Jones", email="bob@example.com"))
    store.add_user(UserProfile(id="u-carol", email="carol@example.com"))
    store.add_user(UserProfile(id="u-mallory", first_name="Mallory", last_name="Vance"))
    store.add_user(UserProfile(id="u-drifter", first_name="Drifter"))

    store.add_workspace("Acme", workspace_id="w-acme")
    store.add_workspace("Rival", workspace_id="w-rival")
    store.add_workspace_member(
        WorkspaceMember(user_id="u-alice", workspace_id="w-acme", role="owner", status_message="shipping v2")
    )
    store.add_workspace_member(
        WorkspaceMember(user_id="u-bob", workspace_id="w-acme", role="member", status_message="On vacation")
    )
    store.add_workspace_member(WorkspaceMember(user_id="u-carol", workspace_id="w-acme", role="admin"))
    store.add_workspace_member(
        WorkspaceMember(user_id="u-mallory", workspace_id="w-rival", role="member", status_message="on vacation too")
    )

    store.add_channel(
        Channel(id="c-general", workspace_id="w-acme", name="general", description="Company-wide chatter"),
        members=["u-alice", "u-bob", "u-carol"],
    )
    store.add_channel(
        Channel(id="c-random", workspace_id="w-acme", name="random", description="General nonsense"),
        members=["u-bob"],
    )
    store.add_channel(
        Channel(id="c-secret", workspace_id="w-rival", name="general-plans", description="Rival roadmap"),
        members=["u-mallory"],
    )

    store.add_message(StoredMessage(id="m1", channel_id="c-general", user_id="u-alice", content="hello", created_at=1000.0))
    store.add_message(StoredMessage(id="m2", channel_id="c-general", user_id="u-bob", content="hi alice", created_at=2000.0))
    store.add_message(
        StoredMessage(id="m3", channel_id="c-general", user_id="u-carol", content="standup in 5", created_at=3000.0)
    )
    store.add_message(StoredMessage(id="m4", channel_id="c-random", user_id="u-bob", content="cats", created_at=1500.0))
    store.add_message(
        StoredMessage(id="m5", channel_id="c-secret", user_id="u-mallory", content="launch friday", created_at=1700.0)
    )


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SQLiteStore]:
    db = SQLiteStore(str(tmp_path / "slackr.db"))
    seed_store(db)
    yield db
    db.close()
