"""Workspace data store used by the assistant."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

UNKNOWN_USER = "Unknown User"


@dataclass(frozen=True)
class UserProfile:
    """Directory entry for one user."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        if self.first_name:
            return f"{self.first_name} {self.last_name or ''}".strip()
        return self.email or UNKNOWN_USER


@dataclass(frozen=True)
class Channel:
    id: str
    workspace_id: str
    name: str
    description: str | None = None
    is_private: bool = False


@dataclass(frozen=True)
class ChannelSummary:
    channel: Channel
    member_count: int


@dataclass(frozen=True)
class StoredMessage:
    """One channel message."""

    id: str
    channel_id: str
    user_id: str
    content: str
    created_at: float
    thread_id: str | None = None

    @property
    def created_at_iso(self) -> str:
        return datetime.fromtimestamp(self.created_at, UTC).isoformat()


@dataclass(frozen=True)
class WorkspaceMember:
    user_id: str
    workspace_id: str
    role: str
    status_message: str | None = None


def display_name(user: UserProfile | None) -> str:
    """Resolve a printable name, falling back when the user is unknown."""
    if user is None:
        return UNKNOWN_USER
    return user.display_name


class DataStore(Protocol):
    """Read-only queries the assistant runs on behalf of one user."""

    async def find_member_channel(
        self, user_id: str, name: str, *, workspace_id: str | None = None
    ) -> Channel | None: ...

    async def recent_messages(self, channel_id: str, *, limit: int) -> list[StoredMessage]: ...

    async def member_channels(
        self,
        user_id: str,
        *,
        search: str | None = None,
        workspace_id: str | None = None,
        limit: int | None = None,
    ) -> list[ChannelSummary]: ...

    async def member_workspace(self, user_id: str, *, workspace_id: str | None = None) -> str | None: ...

    async def workspace_members(
        self, workspace_id: str, *, search: str | None = None, limit: int | None = None
    ) -> list[WorkspaceMember]: ...

    async def accessible_channel_ids(self, user_id: str, *, workspace_id: str | None = None) -> list[str]: ...

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, UserProfile]: ...


class SQLiteStore:
    """SQLite-based workspace store with thread-safe access.

    One connection is shared by the calling thread and the worker threads that
    serve async reads, so an in-memory database (`":memory:"`) stays visible to
    both. Every statement runs under `_lock`.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._lock = threading.RLock()
        self._connection: sqlite3.Connection | None = None

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._init_db(conn)
            self._connection = conn
        return self._connection

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def _locked[T](self, func: Callable[..., T], *args: Any) -> T:
        with self._lock:
            return func(*args)

    async def _read[T](self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, func, *args)

    def _init_db(self, conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                first_name TEXT,
                last_name TEXT,
                email TEXT
            );
            CREATE TABLE IF NOT EXISTS workspaces (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at REAL NOT NULL
            );
            CREATE TABLE IF NOT EXISTS workspace_members (
                user_id TEXT NOT NULL,
                workspace_id TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'member',
                status_message TEXT,
                joined_at REAL NOT NULL,
                PRIMARY KEY (user_id, workspace_id)
            );
            CREATE TABLE IF NOT EXISTS channels (
                id TEXT PRIMARY KEY,
                workspace_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                is_private INTEGER NOT NULL DEFAULT 0
            );
            CREATE TABLE IF NOT EXISTS channel_members (
                user_id TEXT NOT NULL,
                channel_id TEXT NOT NULL,
                PRIMARY KEY (user_id, channel_id)
            );
            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                channel_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                content TEXT NOT NULL,
                thread_id TEXT,
                created_at REAL NOT NULL
            );
            CREATE INDEX IF NOT EXISTS messages_channel_created ON messages (channel_id, created_at);
        """)
        conn.commit()

    # Writes

    def add_user(self, user: UserProfile) -> None:
        with self._lock, self._conn as conn:
            conn.execute(
                "INSERT OR REPLACE INTO users (id, first_name, last_name, email) VALUES (?, ?, ?, ?)",
                (user.id, user.first_name, user.last_name, user.email),
            )

    def add_workspace(self, name: str, *, workspace_id: str | None = None) -> str:
        workspace_id = workspace_id or uuid.uuid4().hex
        with self._lock, self._conn as conn:
            conn.execute(
                "INSERT INTO workspaces (id, name, created_at) VALUES (?, ?, ?)",
                (workspace_id, name, time.time()),
            )
        return workspace_id

    def add_workspace_member(self, member: WorkspaceMember) -> None:
        with self._lock, self._conn as conn:
            conn.execute(
                """INSERT OR REPLACE INTO workspace_members
                (user_id, workspace_id, role, status_message, joined_at) VALUES (?, ?, ?, ?, ?)""",
                (member.user_id, member.workspace_id, member.role, member.status_message, time.time()),
            )

    def add_channel(self, channel: Channel, *, members: Iterable[str] = ()) -> None:
        with self._lock, self._conn as conn:
            conn.execute(
                "INSERT INTO channels (id, workspace_id, name, description, is_private) VALUES (?, ?, ?, ?, ?)",
                (channel.id, channel.workspace_id, channel.name, channel.description, int(channel.is_private)),
            )
            conn.executemany(
                "INSERT OR IGNORE INTO channel_members (user_id, channel_id) VALUES (?, ?)",
                [(user_id, channel.id) for user_id in members],
            )

    def add_channel_member(self, channel_id: str, user_id: str) -> None:
        with self._lock, self._conn as conn:
            conn.execute(
                "INSERT OR IGNORE INTO channel_members (user_id, channel_id) VALUES (?, ?)",
                (user_id, channel_id),
            )

    def add_message(self, msg: StoredMessage) -> None:
        with self._lock, self._conn as conn:
            conn.execute(
                """INSERT OR REPLACE INTO messages
                (id, channel_id, user_id, content, thread_id, created_at) VALUES (?, ?, ?, ?, ?, ?)""",
                (msg.id, msg.channel_id, msg.user_id, msg.content, msg.thread_id, msg.created_at),
            )

    # Reads

    async def find_member_channel(
        self, user_id: str, name: str, *, workspace_id: str | None = None
    ) -> Channel | None:
        return await self._read(self._find_member_channel, user_id, name, workspace_id)

    async def recent_messages(self, channel_id: str, *, limit: int) -> list[StoredMessage]:
        return await self._read(self._recent_messages, channel_id, limit)

    async def member_channels(
        self,
        user_id: str,
        *,
        search: str | None = None,
        workspace_id: str | None = None,
        limit: int | None = None,
    ) -> list[ChannelSummary]:
        return await self._read(self._member_channels, user_id, search, workspace_id, limit)

    async def member_workspace(self, user_id: str, *, workspace_id: str | None = None) -> str | None:
        return await self._read(self._member_workspace, user_id, workspace_id)

    async def workspace_members(
        self, workspace_id: str, *, search: str | None = None, limit: int | None = None
    ) -> list[WorkspaceMember]:
        return await self._read(self._workspace_members, workspace_id, search, limit)

    async def accessible_channel_ids(self, user_id: str, *, workspace_id: str | None = None) -> list[str]:
        summaries = await self.member_channels(user_id, workspace_id=workspace_id)
        return [summary.channel.id for summary in summaries]

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        return await self._read(self._get_users, list(dict.fromkeys(user_ids)))

    async def get_channel(self, channel_id: str) -> Channel | None:
        return await self._read(self._get_channel, channel_id)

    async def thread_messages(self, thread_id: str) -> list[StoredMessage]:
        return await self._read(self._thread_messages, thread_id)

    async def previous_message(self, message: StoredMessage) -> StoredMessage | None:
        return await self._read(self._previous_message, message)

    def _find_member_channel(self, user_id: str, name: str, workspace_id: str | None) -> Channel | None:
        query = """SELECT c.* FROM channels c
            JOIN channel_members cm ON cm.channel_id = c.id AND cm.user_id = ?
            WHERE c.name = ?"""
        params: list[object] = [user_id, name]
        if workspace_id is not None:
            query += " AND c.workspace_id = ?"
            params.append(workspace_id)
        row = self._conn.execute(query + " LIMIT 1", params).fetchone()
        return _channel_from_row(row) if row is not None else None

    def _recent_messages(self, channel_id: str, limit: int) -> list[StoredMessage]:
        rows = self._conn.execute(
            "SELECT * FROM messages WHERE channel_id = ? ORDER BY created_at DESC LIMIT ?",
            (channel_id, limit),
        ).fetchall()
        return [_message_from_row(row) for row in rows]

    def _member_channels(
        self, user_id: str, search: str | None, workspace_id: str | None, limit: int | None
    ) -> list[ChannelSummary]:
        query = """SELECT c.*, (SELECT COUNT(*) FROM channel_members m WHERE m.channel_id = c.id) AS member_count
            FROM channels c
            JOIN channel_members cm ON cm.channel_id = c.id AND cm.user_id = ?"""
        clauses: list[str] = []
        params: list[object] = [user_id]
        if workspace_id is not None:
            clauses.append("c.workspace_id = ?")
            params.append(workspace_id)
        if search:
            clauses.append("(instr(lower(c.name), lower(?)) > 0 OR instr(lower(coalesce(c.description, '')), lower(?)) > 0)")
            params.extend([search, search])
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY c.name"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = self._conn.execute(query, params).fetchall()
        return [ChannelSummary(channel=_channel_from_row(row), member_count=row["member_count"]) for row in rows]

    def _member_workspace(self, user_id: str, workspace_id: str | None) -> str | None:
        if workspace_id is not None:
            row = self._conn.execute(
                "SELECT workspace_id FROM workspace_members WHERE user_id = ? AND workspace_id = ?",
                (user_id, workspace_id),
            ).fetchone()
            if row is not None:
                return row["workspace_id"]  # type: ignore[no-any-return]
        row = self._conn.execute(
            "SELECT workspace_id FROM workspace_members WHERE user_id = ? ORDER BY joined_at LIMIT 1",
            (user_id,),
        ).fetchone()
        return row["workspace_id"] if row is not None else None

    def _workspace_members(self, workspace_id: str, search: str | None, limit: int | None) -> list[WorkspaceMember]:
        query = "SELECT * FROM workspace_members WHERE workspace_id = ?"
        params: list[object] = [workspace_id]
        if search:
            query += " AND (instr(lower(coalesce(status_message, '')), lower(?)) > 0 OR instr(lower(role), lower(?)) > 0)"
            params.extend([search, search])
        query += " ORDER BY joined_at"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = self._conn.execute(query, params).fetchall()
        return [
            WorkspaceMember(
                user_id=row["user_id"],
                workspace_id=row["workspace_id"],
                role=row["role"],
                status_message=row["status_message"],
            )
            for row in rows
        ]

    def _get_users(self, user_ids: list[str]) -> dict[str, UserProfile]:
        if not user_ids:
            return {}
        placeholders = ", ".join("?" for _ in user_ids)
        rows = self._conn.execute(f"SELECT * FROM users WHERE id IN ({placeholders})", user_ids).fetchall()  # noqa: S608
        return {
            row["id"]: UserProfile(
                id=row["id"], first_name=row["first_name"], last_name=row["last_name"], email=row["email"]
            )
            for row in rows
        }

    def _get_channel(self, channel_id: str) -> Channel | None:
        row = self._conn.execute("SELECT * FROM channels WHERE id = ?", (channel_id,)).fetchone()
        return _channel_from_row(row) if row is not None else None

    def _thread_messages(self, thread_id: str) -> list[StoredMessage]:
        rows = self._conn.execute(
            "SELECT * FROM messages WHERE id = ? OR thread_id = ? ORDER BY created_at ASC",
            (thread_id, thread_id),
        ).fetchall()
        return [_message_from_row(row) for row in rows]

    def _previous_message(self, message: StoredMessage) -> StoredMessage | None:
        row = self._conn.execute(
            """SELECT * FROM messages WHERE channel_id = ? AND created_at < ? AND thread_id IS NULL
            ORDER BY created_at DESC LIMIT 1""",
            (message.channel_id, message.created_at),
        ).fetchone()
        return _message_from_row(row) if row is not None else None


def _channel_from_row(row: sqlite3.Row) -> Channel:
    return Channel(
        id=row["id"],
        workspace_id=row["workspace_id"],
        name=row["name"],
        description=row["description"],
        is_private=bool(row["is_private"]),
    )


def _message_from_row(row: sqlite3.Row) -> StoredMessage:
    return StoredMessage(
        id=row["id"],
        channel_id=row["channel_id"],
        user_id=row["user_id"],
        content=row["content"],
        created_at=row["created_at"],
        thread_id=row["thread_id"],
    )
