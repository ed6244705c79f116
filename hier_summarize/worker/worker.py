"""Message-driven summarization worker with session reuse."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..backends.base import Capability, Loaded, LoadProgress, ModelLoader
from ..errors import BackendError, ProtocolError
from ..summarize.hierarchical import HierarchicalSummarizer, SummarizeOptions
from .protocol import (
    InboundMessage,
    LoadModel,
    ModelError,
    ModelProgress,
    ModelReady,
    OutboundMessage,
    Reset,
    Summarize,
    SummaryError,
    SummaryReady,
    parse_inbound,
)

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    IDLE = "idle"
    MODEL_PENDING = "model-pending"
    MODEL_RESOLVED = "model-resolved"
    MODEL_REJECTED = "model-rejected"
    SUMMARY_PENDING = "summary-pending"
    SUMMARY_RESOLVED = "summary-resolved"
    SUMMARY_REJECTED = "summary-rejected"


# States in which a loaded session is available
READY_STATES = frozenset(
    {WorkerState.MODEL_RESOLVED, WorkerState.SUMMARY_RESOLVED, WorkerState.SUMMARY_REJECTED}
)
PENDING_STATES = frozenset({WorkerState.MODEL_PENDING, WorkerState.SUMMARY_PENDING})


@dataclass(frozen=True)
class ModelSession:
    """The loaded capability and the source it was loaded from."""

    model_source: str
    capability: Capability


class SummarizerWorker:
    """
    Runs model loads and summaries in the background and reports over a queue.

    Requests go in through send() or post_message(); results come out of
    messages() or receive(). Each load produces zero or more ModelProgress
    messages followed by exactly one ModelReady or ModelError, and each
    summary produces exactly one SummaryReady or SummaryError, unless the
    worker is reset or closed first.

    Reset does not cancel work already in flight; it only stops that work
    from reporting back. Reset and close() both discard messages that were
    queued but not yet read.
    """

    def __init__(self, loader: ModelLoader, options: SummarizeOptions | None = None) -> None:
        self.loader = loader
        self.options = options or SummarizeOptions()
        self._state = WorkerState.IDLE
        self._session: ModelSession | None = None
        self._generation = 0
        self._outbox: asyncio.Queue[OutboundMessage | None] = asyncio.Queue()
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def session(self) -> ModelSession | None:
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    def post_message(self, data: dict[str, Any]) -> None:
        """Accept a raw wire message; unknown types are ignored."""
        message = parse_inbound(data)
        if message is not None:
            self.send(message)

    def send(self, message: InboundMessage) -> None:
        """
        Dispatch a request.

        Must be called from a running event loop.

        Raises:
            ProtocolError: If the request is not valid in the current state
        """
        if self._closed:
            raise ProtocolError("Worker has been closed")

        if isinstance(message, Reset):
            self._reset()
        elif isinstance(message, LoadModel):
            self._load_model(message.model_source)
        elif isinstance(message, Summarize):
            self._summarize(message.text)

    async def receive(self) -> OutboundMessage:
        """Wait for the next outbound message."""
        if self._closed:
            raise ProtocolError("Worker has been closed")
        message = await self._outbox.get()
        if message is None:
            raise ProtocolError("Worker has been closed")
        return message

    async def messages(self) -> AsyncIterator[OutboundMessage]:
        """Iterate over outbound messages until the worker is closed."""
        while not self._closed:
            message = await self._outbox.get()
            if message is None:
                return
            yield message

    async def close(self) -> None:
        """Tear down the worker; nothing is delivered afterwards."""
        if self._closed:
            return
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._discard_pending()
        self._outbox.put_nowait(None)

    def _reset(self) -> None:
        logger.debug("Reset from %s", self._state.value)
        self._generation += 1
        self._session = None
        self._state = WorkerState.IDLE
        self._discard_pending()

    def _discard_pending(self) -> None:
        """Drop queued messages the caller has not read yet."""
        dropped = 0
        while not self._outbox.empty():
            self._outbox.get_nowait()
            dropped += 1
        if dropped:
            logger.debug("Discarded %d undelivered messages", dropped)

    def _load_model(self, model_source: str) -> None:
        if self._state in PENDING_STATES:
            raise ProtocolError(f"Cannot load a model while {self._state.value}")

        if self._session is not None and self._session.model_source == model_source:
            logger.debug("Reusing session for %s", model_source)
            self._state = WorkerState.MODEL_RESOLVED
            self._emit(ModelReady())
            return

        self._state = WorkerState.MODEL_PENDING
        self._spawn(self._run_load(model_source, self._generation))

    def _summarize(self, text: str) -> None:
        if self._state not in READY_STATES or self._session is None:
            raise ProtocolError(f"Cannot summarize while {self._state.value}; load a model first")

        self._state = WorkerState.SUMMARY_PENDING
        self._spawn(self._run_summary(self._session, text, self._generation))

    async def _run_load(self, model_source: str, generation: int) -> None:
        session: ModelSession | None = None
        try:
            async with contextlib.aclosing(self.loader.load(model_source)) as events:
                async for event in events:
                    if generation != self._generation:
                        return
                    if isinstance(event, LoadProgress):
                        self._emit(ModelProgress(status=event.status, progress=event.progress))
                    elif isinstance(event, Loaded):
                        session = ModelSession(
                            model_source=model_source, capability=event.capability
                        )
                        break
            if session is None:
                logger.warning("Loader for %s finished without a model", model_source)
                raise BackendError("loader finished without producing a model")
        except Exception as e:
            if generation != self._generation:
                return
            self._session = None
            self._state = WorkerState.MODEL_REJECTED
            self._emit(ModelError(message=f"Failed to load model: {e}"))
            return

        if generation != self._generation:
            return
        self._session = session
        self._state = WorkerState.MODEL_RESOLVED
        self._emit(ModelReady())

    async def _run_summary(self, session: ModelSession, text: str, generation: int) -> None:
        summarizer = HierarchicalSummarizer(session.capability)
        try:
            result = await summarizer.summarize(text, self.options)
        except Exception as e:
            if generation != self._generation:
                return
            self._state = WorkerState.SUMMARY_REJECTED
            self._emit(SummaryError(message=f"Failed to summarize text: {e}"))
            return

        if generation != self._generation:
            return
        self._state = WorkerState.SUMMARY_RESOLVED
        self._emit(SummaryReady(summary=result.final))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _emit(self, message: OutboundMessage) -> None:
        if self._closed:
            return
        self._outbox.put_nowait(message)
