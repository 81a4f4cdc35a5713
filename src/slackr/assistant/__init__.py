"""Assistant action-resolution loop."""

from slackr.assistant.actions import ActionExecutor
from slackr.assistant.context import ContextRetriever, ContextSnippet
from slackr.assistant.directives import describe_directive, parse_directives, scan_directives, strip_directives
from slackr.assistant.indexer import MessageIndexer
from slackr.assistant.orchestrator import ChatOrchestrator
from slackr.assistant.types import (
    ActionResult,
    Directive,
    ExchangeRequest,
    ExchangeResult,
    HistoryEntry,
    QueryChannels,
    QueryMessages,
    QueryUsers,
    Requester,
    Turn,
    UnknownDirective,
)

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "ChatOrchestrator",
    "ContextRetriever",
    "ContextSnippet",
    "Directive",
    "ExchangeRequest",
    "ExchangeResult",
    "HistoryEntry",
    "MessageIndexer",
    "QueryChannels",
    "QueryMessages",
    "QueryUsers",
    "Requester",
    "Turn",
    "UnknownDirective",
    "describe_directive",
    "parse_directives",
    "scan_directives",
    "strip_directives",
]
