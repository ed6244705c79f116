"""Message-passing worker around the summarization pipeline."""

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
    parse_outbound,
)
from .worker import ModelSession, SummarizerWorker, WorkerState

__all__ = [
    "InboundMessage",
    "LoadModel",
    "ModelError",
    "ModelProgress",
    "ModelReady",
    "ModelSession",
    "OutboundMessage",
    "Reset",
    "Summarize",
    "SummarizerWorker",
    "SummaryError",
    "SummaryReady",
    "WorkerState",
    "parse_inbound",
    "parse_outbound",
]
