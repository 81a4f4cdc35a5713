"""Assistant exchange loop: model turns, action resolution and follow-up delivery."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from slackr.assistant.actions import ActionExecutor
from slackr.assistant.context import ContextRetriever, ContextSnippet, render_context
from slackr.assistant.directives import scan_directives
from slackr.assistant.prompt import render_context_block, render_system_prompt
from slackr.assistant.types import (
    ExchangeRequest,
    ExchangeResult,
    LoopState,
    SupportedDirective,
    Turn,
)
from slackr.errors import ModelInvocationError
from slackr.integrations.republic_client import ChatModel
from slackr.logging_utils import bind_exchange, current_exchange
from slackr.stream import STREAM_RESPONSE, StreamPublisher, stream_channel_name

DEFAULT_MAX_ITERATIONS = 5


class ChatOrchestrator:
    """Run one exchange per request.

    The first model response is returned to the caller. When it asks for
    actions, the remaining iterations run in a detached task and each
    response is published on ``stream-<exchange id>`` with a ``finished`` flag.
    """

    def __init__(
        self,
        *,
        model: ChatModel,
        retriever: ContextRetriever,
        executor: ActionExecutor,
        publisher: StreamPublisher,
        assistant_name: str = "Slacker Supreme",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        exchange_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._model = model
        self._retriever = retriever
        self._executor = executor
        self._publisher = publisher
        self._assistant_name = assistant_name
        self._max_iterations = max_iterations
        self._exchange_timeout_seconds = exchange_timeout_seconds
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._continuations: dict[str, asyncio.Task[None]] = {}

    @property
    def active_streams(self) -> list[str]:
        return list(self._continuations)

    async def chat(self, request: ExchangeRequest) -> ExchangeResult:
        exchange_id = uuid.uuid4().hex
        previous = current_exchange()
        bind_exchange(exchange_id)
        try:
            return await self._start(exchange_id, request)
        finally:
            bind_exchange(previous)

    async def cancel(self, stream_id: str) -> bool:
        """Stop a detached continuation; no further events are published for it."""
        task = self._continuations.get(stream_id)
        if task is None:
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def join(self, stream_id: str) -> None:
        """Wait until a detached continuation ends, whatever its outcome."""
        task = self._continuations.get(stream_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        tasks = list(self._continuations.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _start(self, exchange_id: str, request: ExchangeRequest) -> ExchangeResult:
        requester = request.requester
        logger.info("assistant.exchange.start user={} history={}", requester.user_id, len(request.history))

        snippets = await self._retriever.retrieve(request.message, requester)
        state = LoopState(
            exchange_id=exchange_id,
            requester=requester,
            turns=self._initial_turns(request, snippets),
        )
        content = await self._invoke(state)
        pending = self._pending(content)
        if not pending:
            logger.info("assistant.exchange.done iterations={}", state.iteration)
            return ExchangeResult(content=content)
        if state.iteration >= self._max_iterations:
            logger.info("assistant.exchange.max_iterations max_iterations={}", self._max_iterations)
            return ExchangeResult(content=content)

        state.pending = pending
        task = asyncio.create_task(self._continue(state), name=f"slackr-exchange-{exchange_id}")
        self._continuations[exchange_id] = task
        task.add_done_callback(lambda _: self._continuations.pop(exchange_id, None))
        logger.info("assistant.exchange.detached pending={}", len(pending))
        return ExchangeResult(content=content, stream_id=exchange_id)

    def _initial_turns(self, request: ExchangeRequest, snippets: list[ContextSnippet]) -> list[Turn]:
        turns = [Turn.system(render_system_prompt(assistant_name=self._assistant_name, now=self._clock()))]
        if context := render_context_block(render_context(snippets)):
            turns.append(Turn.system(context))
        for entry in request.history:
            turns.append(Turn.user(entry.content) if entry.role == "user" else Turn.assistant(entry.content))
        turns.append(Turn.user(request.message))
        return turns

    async def _invoke(self, state: LoopState) -> str:
        state.iteration += 1
        logger.info("assistant.model.step step={} turns={}", state.iteration, len(state.turns))
        try:
            content = await self._model.invoke(list(state.turns))
        except Exception as exc:
            raise ModelInvocationError(f"model_call_error: {exc!s}") from exc
        state.turns.append(Turn.assistant(content))
        return content

    def _pending(self, content: str) -> list[SupportedDirective]:
        return self._executor.supported(scan_directives(content).directives)

    async def _continue(self, state: LoopState) -> None:
        channel = stream_channel_name(state.exchange_id)
        try:
            async with asyncio.timeout(self._exchange_timeout_seconds):
                while state.pending:
                    await self._iterate(state, channel)
        except asyncio.CancelledError:
            logger.info("assistant.exchange.cancelled iterations={}", state.iteration)
            raise
        except TimeoutError:
            logger.warning(
                "assistant.exchange.timeout iterations={} timeout={}s",
                state.iteration,
                self._exchange_timeout_seconds,
            )
        except Exception:
            logger.exception("assistant.exchange.error iterations={}", state.iteration)
        else:
            logger.info("assistant.exchange.done iterations={}", state.iteration)

    async def _iterate(self, state: LoopState, channel: str) -> None:
        results = await self._executor.execute_all(state.pending, state.requester)
        state.turns.extend(result.as_turn() for result in results)
        state.pending = []

        content = await self._invoke(state)
        pending = self._pending(content)
        finished = not pending or state.iteration >= self._max_iterations
        if pending and finished:
            logger.info("assistant.exchange.max_iterations max_iterations={}", self._max_iterations)
        await self._publisher.publish(channel, STREAM_RESPONSE, {"content": content, "finished": finished})
        if not finished:
            state.pending = pending
