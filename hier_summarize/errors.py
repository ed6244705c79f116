"""Exception hierarchy for the summarization pipeline."""


class SummarizationError(Exception):
    """Base class for all pipeline errors."""


class InputError(SummarizationError):
    """Raised when the submitted text cannot be summarized."""


class PrimitiveError(SummarizationError):
    """Raised when the summarization capability fails."""

    def __init__(self, message: str, stage: str, index: int | None = None) -> None:
        super().__init__(message)
        self.stage = stage  # "chunk" | "distill"
        self.index = index


class ProtocolError(SummarizationError):
    """Raised when a worker is used out of order or receives a malformed message."""


class BackendError(SummarizationError):
    """Raised when a capability backend is misconfigured or its API call fails."""
