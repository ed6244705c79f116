"""Wire messages exchanged with a SummarizerWorker.

Every message serializes to a dict shaped {"type": ..., **payload}.
"""

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..errors import ProtocolError

logger = logging.getLogger(__name__)


class _Message(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# Inbound


class LoadModel(_Message):
    type: Literal["load-model"] = "load-model"
    model_source: str


class Summarize(_Message):
    type: Literal["summarize"] = "summarize"
    text: str


class Reset(_Message):
    type: Literal["reset"] = "reset"


# Outbound


class ModelProgress(_Message):
    type: Literal["model-progress"] = "model-progress"
    status: str
    progress: float | None = None


class ModelReady(_Message):
    type: Literal["model-ready"] = "model-ready"


class ModelError(_Message):
    type: Literal["model-error"] = "model-error"
    message: str


class SummaryReady(_Message):
    type: Literal["summary-ready"] = "summary-ready"
    summary: str


class SummaryError(_Message):
    type: Literal["summary-error"] = "summary-error"
    message: str


InboundMessage = Annotated[LoadModel | Summarize | Reset, Field(discriminator="type")]
OutboundMessage = Annotated[
    ModelProgress | ModelReady | ModelError | SummaryReady | SummaryError,
    Field(discriminator="type"),
]

_INBOUND: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)
_OUTBOUND: TypeAdapter[OutboundMessage] = TypeAdapter(OutboundMessage)

INBOUND_TYPES = frozenset({"load-model", "summarize", "reset"})
OUTBOUND_TYPES = frozenset(
    {"model-progress", "model-ready", "model-error", "summary-ready", "summary-error"}
)


def parse_inbound(data: dict[str, Any]) -> InboundMessage | None:
    """
    Validate a raw inbound message.

    Returns:
        The parsed message, or None when its type is not recognized

    Raises:
        ProtocolError: If a recognized message has a malformed payload
    """
    if data.get("type") not in INBOUND_TYPES:
        logger.debug("Ignoring inbound message of type %r", data.get("type"))
        return None
    try:
        return _INBOUND.validate_python(data)
    except ValidationError as e:
        raise ProtocolError(f"Malformed {data['type']} message: {e}") from e


def parse_outbound(data: dict[str, Any]) -> OutboundMessage:
    """
    Validate a raw outbound message.

    Raises:
        ProtocolError: If the type is unknown or the payload is malformed
    """
    if data.get("type") not in OUTBOUND_TYPES:
        raise ProtocolError(f"Unknown outbound message type: {data.get('type')!r}")
    try:
        return _OUTBOUND.validate_python(data)
    except ValidationError as e:
        raise ProtocolError(f"Malformed {data['type']} message: {e}") from e
