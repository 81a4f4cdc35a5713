"""Side channel delivering assistant follow-ups to listening clients."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Protocol

from blinker import Signal

STREAM_RESPONSE = "stream-response"

StreamHandler = Callable[["StreamEvent"], Coroutine[Any, Any, None]]


def stream_channel_name(stream_id: str) -> str:
    return f"stream-{stream_id}"


@dataclass(frozen=True)
class StreamEvent:
    """One event pushed on an exchange's stream channel."""

    channel: str
    event: str
    payload: dict[str, Any]

    @property
    def content(self) -> str:
        return str(self.payload.get("content", ""))

    @property
    def finished(self) -> bool:
        return bool(self.payload.get("finished", False))


class StreamPublisher(Protocol):
    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None: ...


class SignalStreamPublisher:
    """In-process stream transport backed by a blinker signal keyed by channel name."""

    def __init__(self) -> None:
        self._signal = Signal("slackr.stream")

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        await self._signal.send_async(channel, event=StreamEvent(channel=channel, event=event, payload=payload))

    def subscribe(self, channel: str, handler: StreamHandler) -> Callable[[], None]:
        async def _receiver(sender: Any, *, event: StreamEvent) -> None:
            await handler(event)

        self._signal.connect(_receiver, sender=channel, weak=False)
        return lambda: self._signal.disconnect(_receiver, sender=channel)
