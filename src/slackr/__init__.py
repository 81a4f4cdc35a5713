"""Slackr - team chat assistant core."""

from slackr.assistant import ChatOrchestrator, ExchangeRequest, ExchangeResult, Requester

__version__ = "0.1.0"

__all__ = ["ChatOrchestrator", "ExchangeRequest", "ExchangeResult", "Requester"]
