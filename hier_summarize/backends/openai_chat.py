"""OpenAI chat-completions summarization capability."""

import logging
import os
from collections.abc import AsyncGenerator
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from ..errors import BackendError
from .base import GenerationOptions, LoadEvent, Loaded, LoadProgress

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You condense source text into short factual bullet points.
Only restate what the text says. Never add commentary or headings."""


def _get_client() -> AsyncOpenAI:
    """Get OpenAI client, checking for API key."""
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise BackendError(
            "OPENAI_API_KEY environment variable not set. "
            "Set it with: export OPENAI_API_KEY='sk-...'"
        )
    return AsyncOpenAI(api_key=api_key)


class OpenAIChatCapability:
    """Calls a chat model with a single user prompt and returns the text reply."""

    def __init__(self, model: str, client: AsyncOpenAI | None = None) -> None:
        self.model = model
        self._client = client or _get_client()

    def _request_kwargs(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        # Chat models have no repetition_penalty; frequency_penalty is the closest knob
        frequency_penalty = min(2.0, max(0.0, options.repetition_penalty - 1.0))
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.max_new_tokens,
            "temperature": options.temperature if options.do_sample else 0.0,
            "frequency_penalty": frequency_penalty,
        }

    async def __call__(self, prompt: str, options: GenerationOptions) -> str:
        try:
            response = await self._client.chat.completions.create(
                **self._request_kwargs(prompt, options)
            )
        except OpenAIError as e:
            raise BackendError(f"API call failed: {e}") from e
        return response.choices[0].message.content or ""


class OpenAIModelLoader:
    """Resolves a model id against the API before handing out a capability."""

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self._client = client

    async def load(self, model_source: str) -> AsyncGenerator[LoadEvent, None]:
        yield LoadProgress(status="initiate")
        client = self._client or _get_client()
        try:
            await client.models.retrieve(model_source)
        except OpenAIError as e:
            raise BackendError(f"Model {model_source!r} is not available: {e}") from e
        logger.info("Model %s is available", model_source)
        yield LoadProgress(status="done", progress=100.0)
        yield Loaded(capability=OpenAIChatCapability(model_source, client=client))
