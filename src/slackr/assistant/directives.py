"""Action directive detection in model output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from slackr.assistant.types import Directive, QueryChannels, QueryMessages, QueryUsers, UnknownDirective

ACTION_MARKER = "[[Action]]"
ACTION_RE = re.compile(r"\[\[Action\]\][ \t]*")
MAX_RAW_PREVIEW = 120

_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class ParseIssue:
    """A directive marker whose payload could not be used."""

    offset: int
    reason: str
    raw: str


@dataclass(frozen=True)
class DirectiveScan:
    """Directives found in one text, in order of appearance."""

    directives: tuple[Directive, ...] = ()
    issues: tuple[ParseIssue, ...] = field(default=())

    def __bool__(self) -> bool:
        return bool(self.directives)


def scan_directives(text: str) -> DirectiveScan:
    """Scan the whole text for action markers and decode each payload."""

    directives: list[Directive] = []
    issues: list[ParseIssue] = []
    position = 0
    while (match := ACTION_RE.search(text, position)) is not None:
        start = match.end()
        try:
            payload, end = _decode_payload(text, start)
            directive = _build_directive(payload, raw=text[start:end])
        except (json.JSONDecodeError, ValueError) as exc:
            issue = ParseIssue(offset=match.start(), reason=_reason(exc), raw=_preview(text, start))
            logger.warning("assistant.directive.malformed offset={} reason={} raw={}", issue.offset, issue.reason, issue.raw)
            issues.append(issue)
            position = start
            continue
        directives.append(directive)
        position = end

    return DirectiveScan(directives=tuple(directives), issues=tuple(issues))


def parse_directives(text: str) -> list[Directive]:
    """Return directives embedded in text; malformed ones are skipped."""

    return list(scan_directives(text).directives)


def strip_directives(text: str) -> str:
    """Drop directive lines, keeping what a reader should see."""

    lines = [line for line in text.splitlines() if not line.strip().startswith(ACTION_MARKER)]
    return "\n".join(lines).strip()


def describe_directive(directive: Directive) -> str:
    """Human progress label for a directive."""

    if isinstance(directive, QueryMessages):
        return f"Checking messages from #{normalize_channel_name(directive.channel)}..."
    if isinstance(directive, QueryChannels):
        if directive.search:
            return f'Searching for channels matching "{directive.search}"...'
        return "Listing available channels..."
    if isinstance(directive, QueryUsers):
        if directive.search:
            return f'Searching for users matching "{directive.search}"...'
        return "Listing workspace members..."
    return f"Performing {directive.kind}..."


def normalize_channel_name(reference: str) -> str:
    return reference.strip().removeprefix("#").strip()


def _decode_payload(text: str, start: int) -> tuple[dict[str, Any], int]:
    if not text.startswith("{", start):
        raise ValueError("payload must start with '{'")
    try:
        payload, end = _DECODER.raw_decode(text, start)
    except RecursionError:
        raise ValueError("payload nested too deeply") from None
    if not isinstance(payload, dict):
        raise ValueError("payload must be an object")
    return payload, end


def _build_directive(payload: dict[str, Any], *, raw: str) -> Directive:
    kind = payload.get("type")
    if not isinstance(kind, str) or not kind.strip():
        raise ValueError("missing directive type")

    if kind == QueryMessages.kind:
        channel = payload.get("in")
        if not isinstance(channel, str) or not normalize_channel_name(channel):
            raise ValueError("query-messages requires a channel in 'in'")
        return QueryMessages(channel=channel, raw=raw)
    if kind == QueryChannels.kind:
        return QueryChannels(search=_optional_search(payload), raw=raw)
    if kind == QueryUsers.kind:
        return QueryUsers(search=_optional_search(payload), raw=raw)
    return UnknownDirective(kind=kind, payload=payload, raw=raw)


def _optional_search(payload: dict[str, Any]) -> str | None:
    search = payload.get("search")
    if search is None:
        return None
    if not isinstance(search, str):
        raise ValueError("'search' must be a string")
    return search.strip() or None


def _reason(exc: Exception) -> str:
    if isinstance(exc, json.JSONDecodeError):
        return f"invalid json: {exc.msg}"
    return str(exc)


def _preview(text: str, start: int) -> str:
    line = text[start:].split("\n", 1)[0]
    if len(line) > MAX_RAW_PREVIEW:
        return line[: MAX_RAW_PREVIEW - 3] + "..."
    return line
