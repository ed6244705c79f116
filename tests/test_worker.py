"""Tests for the summarization worker and its wire protocol."""

import asyncio
from collections.abc import AsyncGenerator

import pytest

from hier_summarize.backends.base import GenerationOptions, LoadEvent, Loaded, LoadProgress
from hier_summarize.errors import ProtocolError
from hier_summarize.summarize import SummarizeOptions
from hier_summarize.worker import (
    LoadModel,
    ModelError,
    ModelProgress,
    ModelReady,
    Reset,
    Summarize,
    SummarizerWorker,
    SummaryError,
    SummaryReady,
    WorkerState,
    parse_inbound,
    parse_outbound,
)

TEXT = "The team profiled the checkout page. Script time fell by half."
REPLY = "- The team profiled the checkout page.\n- Script time fell by half."


async def echo_capability(prompt: str, options: GenerationOptions) -> str:
    return REPLY


async def failing_capability(prompt: str, options: GenerationOptions) -> str:
    raise RuntimeError("generation failed")


class FakeLoader:
    """Loader that emits two progress events, optionally gated or failing."""

    def __init__(self, capability=echo_capability, fail: bool = False, produce: bool = True) -> None:
        self.capability = capability
        self.fail = fail
        self.produce = produce
        self.loads: list[str] = []
        self.closed: list[str] = []
        self.gate: asyncio.Event | None = None

    async def load(self, model_source: str) -> AsyncGenerator[LoadEvent, None]:
        self.loads.append(model_source)
        try:
            yield LoadProgress(status="download", progress=0.0)
            if self.gate is not None:
                await self.gate.wait()
            yield LoadProgress(status="progress", progress=100.0)
            if self.fail:
                raise OSError("network unreachable")
            if self.produce:
                yield Loaded(capability=self.capability)
        finally:
            self.closed.append(model_source)


async def _drain(worker: SummarizerWorker, count: int) -> list:
    return [await asyncio.wait_for(worker.receive(), timeout=1) for _ in range(count)]


class TestProtocol:
    """Tests for message parsing."""

    def test_parse_inbound(self) -> None:
        message = parse_inbound({"type": "load-model", "model_source": "gpt-4o-mini"})
        assert message == LoadModel(model_source="gpt-4o-mini")

    def test_unknown_inbound_ignored(self) -> None:
        assert parse_inbound({"type": "generate-poem", "text": "hi"}) is None
        assert parse_inbound({}) is None

    def test_malformed_inbound(self) -> None:
        with pytest.raises(ProtocolError):
            parse_inbound({"type": "summarize"})

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ProtocolError):
            parse_inbound({"type": "reset", "force": True})

    def test_unknown_outbound_is_error(self) -> None:
        with pytest.raises(ProtocolError, match="Unknown outbound"):
            parse_outbound({"type": "model-exploded"})

    def test_outbound_wire_shape(self) -> None:
        assert ModelProgress(status="initiate").to_wire() == {
            "type": "model-progress",
            "status": "initiate",
        }
        wire = SummaryReady(summary="- done.").to_wire()
        assert wire == {"type": "summary-ready", "summary": "- done."}
        assert parse_outbound(wire) == SummaryReady(summary="- done.")


class TestSummarizerWorker:
    """Tests for the worker state machine."""

    @pytest.mark.asyncio
    async def test_load_then_summarize(self) -> None:
        worker = SummarizerWorker(FakeLoader())
        worker.send(LoadModel(model_source="stub-model"))
        assert worker.state == WorkerState.MODEL_PENDING

        messages = await _drain(worker, 3)
        assert messages == [
            ModelProgress(status="download", progress=0.0),
            ModelProgress(status="progress", progress=100.0),
            ModelReady(),
        ]
        assert worker.state == WorkerState.MODEL_RESOLVED

        worker.send(Summarize(text=TEXT))
        assert worker.state == WorkerState.SUMMARY_PENDING
        assert await _drain(worker, 1) == [SummaryReady(summary=REPLY)]
        assert worker.state == WorkerState.SUMMARY_RESOLVED
        await worker.close()

    @pytest.mark.asyncio
    async def test_summarize_during_load_is_protocol_error(self) -> None:
        loader = FakeLoader()
        loader.gate = asyncio.Event()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))

        with pytest.raises(ProtocolError):
            worker.send(Summarize(text=TEXT))
        with pytest.raises(ProtocolError):
            worker.send(LoadModel(model_source="other-model"))
        await worker.close()

    @pytest.mark.asyncio
    async def test_summarize_before_load_is_protocol_error(self) -> None:
        worker = SummarizerWorker(FakeLoader())
        with pytest.raises(ProtocolError):
            worker.post_message({"type": "summarize", "text": TEXT})
        assert worker.state == WorkerState.IDLE

    @pytest.mark.asyncio
    async def test_same_source_reuses_session(self) -> None:
        loader = FakeLoader()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 3)
        session = worker.session

        worker.send(LoadModel(model_source="stub-model"))
        assert worker.state == WorkerState.MODEL_RESOLVED
        assert await _drain(worker, 1) == [ModelReady()]
        assert loader.loads == ["stub-model"]
        assert worker.session is session
        await worker.close()

    @pytest.mark.asyncio
    async def test_different_source_reloads(self) -> None:
        loader = FakeLoader()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="model-a"))
        await _drain(worker, 3)

        worker.send(LoadModel(model_source="model-b"))
        messages = await _drain(worker, 3)
        assert messages[-1] == ModelReady()
        assert loader.loads == ["model-a", "model-b"]
        assert worker.session.model_source == "model-b"
        await worker.close()

    @pytest.mark.asyncio
    async def test_load_failure(self) -> None:
        worker = SummarizerWorker(FakeLoader(fail=True))
        worker.send(LoadModel(model_source="stub-model"))
        messages = await _drain(worker, 3)

        assert isinstance(messages[-1], ModelError)
        assert "network unreachable" in messages[-1].message
        assert worker.state == WorkerState.MODEL_REJECTED
        assert worker.session is None
        with pytest.raises(ProtocolError):
            worker.send(Summarize(text=TEXT))
        await worker.close()

    @pytest.mark.asyncio
    async def test_loader_without_model(self) -> None:
        worker = SummarizerWorker(FakeLoader(produce=False))
        worker.send(LoadModel(model_source="stub-model"))
        messages = await _drain(worker, 3)
        assert isinstance(messages[-1], ModelError)
        assert worker.state == WorkerState.MODEL_REJECTED
        await worker.close()

    @pytest.mark.asyncio
    async def test_summary_failure(self) -> None:
        worker = SummarizerWorker(FakeLoader(capability=failing_capability))
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 3)

        worker.send(Summarize(text=TEXT))
        [message] = await _drain(worker, 1)
        assert isinstance(message, SummaryError)
        assert "generation failed" in message.message
        assert worker.state == WorkerState.SUMMARY_REJECTED

        # The session survives a failed summary
        worker.send(LoadModel(model_source="stub-model"))
        assert await _drain(worker, 1) == [ModelReady()]
        await worker.close()

    @pytest.mark.asyncio
    async def test_empty_text_is_summary_error(self) -> None:
        worker = SummarizerWorker(FakeLoader())
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 3)

        worker.send(Summarize(text="   "))
        [message] = await _drain(worker, 1)
        assert isinstance(message, SummaryError)
        assert "enter some text" in message.message
        await worker.close()

    @pytest.mark.asyncio
    async def test_reset_silences_in_flight_load(self) -> None:
        loader = FakeLoader()
        loader.gate = asyncio.Event()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))
        assert await _drain(worker, 1) == [ModelProgress(status="download", progress=0.0)]

        worker.send(Reset())
        assert worker.state == WorkerState.IDLE
        loader.gate.set()
        await asyncio.sleep(0.01)

        assert worker.state == WorkerState.IDLE
        assert worker.session is None
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(worker.receive(), timeout=0.05)
        await worker.close()

    @pytest.mark.asyncio
    async def test_reset_discards_unread_messages(self) -> None:
        worker = SummarizerWorker(FakeLoader())
        worker.send(LoadModel(model_source="stub-model"))
        await asyncio.sleep(0.01)
        assert worker.state == WorkerState.MODEL_RESOLVED

        worker.send(Reset())
        assert worker.state == WorkerState.IDLE
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(worker.receive(), timeout=0.05)
        await worker.close()

    @pytest.mark.asyncio
    async def test_reset_drops_session(self) -> None:
        loader = FakeLoader()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 3)

        worker.post_message({"type": "reset"})
        assert worker.session is None
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 3)
        assert loader.loads == ["stub-model", "stub-model"]
        await worker.close()

    @pytest.mark.asyncio
    async def test_unknown_message_ignored(self) -> None:
        worker = SummarizerWorker(FakeLoader())
        worker.post_message({"type": "warm-cache"})
        assert worker.state == WorkerState.IDLE

    @pytest.mark.asyncio
    async def test_close_ends_stream(self) -> None:
        loader = FakeLoader()
        loader.gate = asyncio.Event()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))
        await asyncio.sleep(0.01)
        await worker.close()

        received = [message async for message in worker.messages()]
        assert received == []
        with pytest.raises(ProtocolError):
            worker.send(Reset())

    @pytest.mark.asyncio
    async def test_close_discards_finished_load(self) -> None:
        worker = SummarizerWorker(FakeLoader())
        worker.send(LoadModel(model_source="stub-model"))
        await asyncio.sleep(0.01)
        assert worker.state == WorkerState.MODEL_RESOLVED

        await worker.close()
        assert [message async for message in worker.messages()] == []
        with pytest.raises(ProtocolError):
            await worker.receive()

    @pytest.mark.asyncio
    async def test_loader_closed_after_model_arrives(self) -> None:
        loader = FakeLoader()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))
        messages = await _drain(worker, 3)

        assert messages[-1] == ModelReady()
        assert loader.closed == ["stub-model"]
        await worker.close()

    @pytest.mark.asyncio
    async def test_loader_closed_after_reset(self) -> None:
        loader = FakeLoader()
        loader.gate = asyncio.Event()
        worker = SummarizerWorker(loader)
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 1)

        worker.send(Reset())
        loader.gate.set()
        await asyncio.sleep(0.01)
        assert loader.closed == ["stub-model"]
        await worker.close()

    @pytest.mark.asyncio
    async def test_uses_worker_options(self) -> None:
        prompts: list[str] = []

        async def recording(prompt: str, options: GenerationOptions) -> str:
            prompts.append(prompt)
            return REPLY

        worker = SummarizerWorker(
            FakeLoader(capability=recording), SummarizeOptions(per_chunk_bullets=2)
        )
        worker.send(LoadModel(model_source="stub-model"))
        await _drain(worker, 3)
        worker.send(Summarize(text=TEXT))
        await _drain(worker, 1)
        assert "exactly 2 concise bullet points" in prompts[0]
        await worker.close()
