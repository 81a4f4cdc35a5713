"""Shared assistant dataclasses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class QueryMessages:
    """Read the latest messages of one channel."""

    channel: str
    raw: str = ""

    kind: ClassVar[str] = "query-messages"


@dataclass(frozen=True)
class QueryChannels:
    """List channels visible to the requester."""

    search: str | None = None
    raw: str = ""

    kind: ClassVar[str] = "query-channels"


@dataclass(frozen=True)
class QueryUsers:
    """List members of the requester's workspace."""

    search: str | None = None
    raw: str = ""

    kind: ClassVar[str] = "query-users"


@dataclass(frozen=True)
class UnknownDirective:
    """A directive whose type is not supported by this runtime."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)
    raw: str = ""


type Directive = QueryMessages | QueryChannels | QueryUsers | UnknownDirective
type SupportedDirective = QueryMessages | QueryChannels | QueryUsers


@dataclass(frozen=True)
class Turn:
    """One ordered entry of the exchange sent to the model."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> Turn:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Turn:
        return cls(role="assistant", content=content)

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ActionResult:
    """Output of one resolved directive: records, or a note for the model."""

    directive: SupportedDirective
    records: list[dict[str, Any]] = field(default_factory=list)
    note: str | None = None

    @property
    def label(self) -> str:
        directive = self.directive
        if isinstance(directive, QueryMessages):
            return f'{directive.kind} in="{directive.channel}"'
        if directive.search:
            return f'{directive.kind} search="{directive.search}"'
        return directive.kind

    def render(self) -> str:
        if self.note is not None:
            body = self.note
        else:
            body = json.dumps(self.records, ensure_ascii=False, indent=2, default=str)
        return f"[[Action Result]] {self.label}\n{body}"

    def as_turn(self) -> Turn:
        return Turn.system(self.render())


@dataclass(frozen=True)
class Requester:
    """Authorization boundary of one exchange."""

    user_id: str
    workspace_id: str | None = None


@dataclass(frozen=True)
class HistoryEntry:
    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class ExchangeRequest:
    """Input of one assistant exchange."""

    requester: Requester
    message: str
    history: list[HistoryEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ExchangeResult:
    """First response of an exchange, with a stream id when follow-ups will be pushed."""

    content: str
    stream_id: str | None = None

    @property
    def streaming(self) -> bool:
        return self.stream_id is not None


@dataclass
class LoopState:
    """Mutable state owned by one exchange for its lifetime."""

    exchange_id: str
    requester: Requester
    turns: list[Turn]
    pending: list[SupportedDirective] = field(default_factory=list)
    iteration: int = 0
