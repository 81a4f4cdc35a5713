"""Read-only action resolution for assistant directives."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import assert_never

from loguru import logger

from slackr.assistant.directives import normalize_channel_name
from slackr.assistant.types import (
    ActionResult,
    Directive,
    QueryChannels,
    QueryMessages,
    QueryUsers,
    Requester,
    SupportedDirective,
    UnknownDirective,
)
from slackr.store import DataStore, display_name

NO_WORKSPACE_NOTE = "You are not a member of any workspace"


class ActionExecutor:
    """Resolve directives against the data store inside the requester's scope.

    Directive fields only select *what* to look up. *Whose* data is visible is
    always taken from the requester, so a directive cannot widen its own scope.
    """

    def __init__(
        self,
        store: DataStore,
        *,
        message_limit: int = 10,
        channel_limit: int = 10,
        member_limit: int = 10,
    ) -> None:
        self._store = store
        self._message_limit = message_limit
        self._channel_limit = channel_limit
        self._member_limit = member_limit

    def supported(self, directives: Sequence[Directive]) -> list[SupportedDirective]:
        """Keep resolvable directives, in order, logging the rest."""
        resolvable: list[SupportedDirective] = []
        for directive in directives:
            if isinstance(directive, UnknownDirective):
                logger.warning("assistant.action.unknown kind={} raw={}", directive.kind, directive.raw)
                continue
            resolvable.append(directive)
        return resolvable

    async def execute(self, directive: Directive, requester: Requester) -> ActionResult | None:
        """Resolve one directive. Unknown kinds produce ``None``."""
        start = time.monotonic()
        match directive:
            case QueryMessages():
                result = await self._query_messages(directive, requester)
            case QueryChannels():
                result = await self._query_channels(directive, requester)
            case QueryUsers():
                result = await self._query_users(directive, requester)
            case UnknownDirective():
                logger.warning("assistant.action.unknown kind={} raw={}", directive.kind, directive.raw)
                return None
            case _:
                assert_never(directive)
        logger.info(
            "assistant.action.done kind={} records={} note={} duration={:.3f}ms",
            directive.kind,
            len(result.records),
            result.note is not None,
            (time.monotonic() - start) * 1000,
        )
        return result

    async def execute_all(self, directives: Sequence[Directive], requester: Requester) -> list[ActionResult]:
        """Resolve directives concurrently; results keep the directives' order."""
        pending = self.supported(directives)
        outcomes = await asyncio.gather(
            *(self.execute(directive, requester) for directive in pending),
            return_exceptions=True,
        )
        results: list[ActionResult] = []
        for directive, outcome in zip(pending, outcomes, strict=True):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, Exception):
                logger.opt(exception=outcome).error("assistant.action.error kind={}", directive.kind)
                results.append(ActionResult(directive=directive, note=f"error: {outcome!s}"))
                continue
            if outcome is not None:
                results.append(outcome)
        return results

    async def _query_messages(self, directive: QueryMessages, requester: Requester) -> ActionResult:
        name = normalize_channel_name(directive.channel)
        channel = await self._store.find_member_channel(
            requester.user_id, name, workspace_id=requester.workspace_id
        )
        if channel is None:
            return ActionResult(directive=directive, note=f"Channel #{name} not found")

        messages = await self._store.recent_messages(channel.id, limit=self._message_limit)
        senders = await self._store.get_users(message.user_id for message in messages)
        records = [
            {
                "id": message.id,
                "content": message.content,
                "sender": display_name(senders.get(message.user_id)),
                "created_at": message.created_at_iso,
            }
            for message in messages
        ]
        return ActionResult(directive=directive, records=records)

    async def _query_channels(self, directive: QueryChannels, requester: Requester) -> ActionResult:
        summaries = await self._store.member_channels(
            requester.user_id,
            search=directive.search,
            workspace_id=requester.workspace_id,
            limit=self._channel_limit,
        )
        records = [
            {
                "name": summary.channel.name,
                "description": summary.channel.description,
                "member_count": summary.member_count,
            }
            for summary in summaries
        ]
        return ActionResult(directive=directive, records=records)

    async def _query_users(self, directive: QueryUsers, requester: Requester) -> ActionResult:
        workspace_id = await self._store.member_workspace(requester.user_id, workspace_id=requester.workspace_id)
        if workspace_id is None:
            return ActionResult(directive=directive, note=NO_WORKSPACE_NOTE)

        members = await self._store.workspace_members(
            workspace_id, search=directive.search, limit=self._member_limit
        )
        profiles = await self._store.get_users(member.user_id for member in members)
        records = [
            {
                "id": member.user_id,
                "name": display_name(profiles.get(member.user_id)),
                "role": member.role,
                "status_message": member.status_message,
            }
            for member in members
        ]
        return ActionResult(directive=directive, records=records)
