"""Contracts for summarization capabilities and their loaders."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options passed to every capability call."""

    max_new_tokens: int = 250
    temperature: float = 0.2
    repetition_penalty: float = 1.3
    do_sample: bool = True


class Capability(Protocol):
    """Opaque text-in/text-out summarization function."""

    async def __call__(self, prompt: str, options: GenerationOptions) -> str: ...


@dataclass(frozen=True)
class LoadProgress:
    """Progress event emitted while a model is being acquired."""

    status: str  # "initiate" | "download" | "progress" | "done"
    progress: float | None = None


@dataclass(frozen=True)
class Loaded:
    """Terminal event of a successful load."""

    capability: Capability


LoadEvent = LoadProgress | Loaded


class ModelLoader(Protocol):
    """Acquires a capability for a model source.

    load() yields zero or more LoadProgress events followed by exactly one
    Loaded event. Failures are raised from the iterator.
    """

    def load(self, model_source: str) -> AsyncGenerator[LoadEvent, None]: ...
