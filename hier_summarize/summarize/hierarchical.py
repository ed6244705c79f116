"""Two-tier summarization: per-chunk bullets, then an optional distillation pass."""

import asyncio
import logging
from dataclasses import dataclass

from ..backends.base import Capability, GenerationOptions
from ..backends.openai_chat import OpenAIChatCapability
from ..bullets import (
    BULLET_MARKER,
    CHUNK_PROFILE,
    FINAL_PROFILE,
    bullet_key,
    dedupe_bullets,
    filter_bullets,
    is_near_duplicate,
    score_bullet,
    split_lines,
    strip_marker,
    wrap_bullets,
)
from ..chunking import CHUNK_OVERLAP, MAX_CHUNK_CHARS, Chunk, count_tokens, split_text
from ..errors import InputError, PrimitiveError
from ..scheduler import run_bounded
from .prompts import chunk_prompt, final_prompt
from .schema import SummarizationResult

logger = logging.getLogger(__name__)

# Distill only when merged output is well above the target
DISTILL_RATIO = 1.5


@dataclass
class SummarizeOptions:
    """Options for summarization."""

    model: str = "gpt-4o-mini"
    max_chunk_chars: int = MAX_CHUNK_CHARS
    overlap: int = CHUNK_OVERLAP
    per_chunk_bullets: int = 3
    final_bullets: int = 3
    concurrency: int = 2

    def __post_init__(self) -> None:
        if self.max_chunk_chars < 1:
            raise ValueError("max_chunk_chars must be positive")
        if not 0 <= self.overlap < self.max_chunk_chars:
            raise ValueError("overlap must be non-negative and smaller than max_chunk_chars")
        if self.per_chunk_bullets < 1 or self.final_bullets < 1:
            raise ValueError("bullet counts must be at least 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")


class HierarchicalSummarizer:
    """Drives a capability over chunks of a long text."""

    def __init__(
        self,
        capability: Capability,
        generation: GenerationOptions | None = None,
    ) -> None:
        self.capability = capability
        self.generation = generation or GenerationOptions()

    async def _summarize_chunk(self, chunk: Chunk, total: int, options: SummarizeOptions) -> str:
        prompt = chunk_prompt(chunk.text.strip(), options.per_chunk_bullets)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Chunk %d/%d: %d chars, ~%d prompt tokens",
                chunk.index + 1,
                total,
                len(chunk),
                count_tokens(prompt, options.model),
            )
        try:
            raw = await self.capability(prompt, self.generation)
        except Exception as e:
            raise PrimitiveError(
                f"Failed on chunk {chunk.index + 1}/{total}: {e}",
                stage="chunk",
                index=chunk.index,
            ) from e
        return dedupe_bullets(filter_bullets(wrap_bullets(raw), CHUNK_PROFILE))

    async def _distill(self, merged: str, merged_lines: list[str], target: int) -> str:
        try:
            raw = await self.capability(final_prompt(merged, target), self.generation)
        except Exception as e:
            raise PrimitiveError(f"Distillation failed: {e}", stage="distill") from e

        candidates = split_lines(dedupe_bullets(filter_bullets(wrap_bullets(raw), FINAL_PROFILE)))
        if len(candidates) > target:
            # sorted() is stable, so equal scores keep model order
            candidates = sorted(candidates, key=score_bullet, reverse=True)[:target]
        elif len(candidates) < target:
            candidates = _backfill(candidates, merged_lines, target)
        return "\n".join(candidates)

    async def summarize(self, text: str, options: SummarizeOptions | None = None) -> SummarizationResult:
        """
        Summarize text into per-chunk, merged and final bullet blocks.

        Args:
            text: Full input text
            options: Chunking and bullet-count options

        Returns:
            SummarizationResult with at most options.final_bullets final lines

        Raises:
            InputError: If text is empty or whitespace-only
            PrimitiveError: If any capability call fails
        """
        options = options or SummarizeOptions()
        if not text.strip():
            raise InputError("Please enter some text to summarize.")

        chunks = split_text(text, options.max_chunk_chars, options.overlap)
        logger.info("Summarizing %d chars in %d chunks", len(text), len(chunks))

        tasks = [
            lambda chunk=chunk: self._summarize_chunk(chunk, len(chunks), options)
            for chunk in chunks
        ]
        per_chunk = await run_bounded(tasks, options.concurrency)

        merged = dedupe_bullets("\n".join(per_chunk))
        merged_lines = split_lines(merged)

        if len(merged_lines) > options.final_bullets * DISTILL_RATIO:
            logger.info("Distilling %d bullets into %d", len(merged_lines), options.final_bullets)
            final = await self._distill(merged, merged_lines, options.final_bullets)
        else:
            logger.info("Skipping distillation: %d merged bullets", len(merged_lines))
            final = "\n".join(merged_lines[: options.final_bullets])

        return SummarizationResult(per_chunk=per_chunk, merged=merged, final=final)


def _backfill(chosen: list[str], source: list[str], target: int) -> list[str]:
    """Top up chosen bullets from source lines that add a new fact."""
    out = list(chosen)
    keys = [bullet_key(line) for line in out]
    for line in source:
        if len(out) >= target:
            break
        body = strip_marker(line)
        if len(body) < FINAL_PROFILE.min_chars:
            continue
        key = bullet_key(body)
        if any(is_near_duplicate(key, existing) for existing in keys):
            continue
        keys.append(key)
        out.append(f"{BULLET_MARKER}{body}")
    return out


async def summarize_text(
    text: str,
    capability: Capability,
    options: SummarizeOptions | None = None,
    generation: GenerationOptions | None = None,
) -> SummarizationResult:
    """Summarize text with the given capability."""
    return await HierarchicalSummarizer(capability, generation).summarize(text, options)


def summarize_with_openai(text: str, options: SummarizeOptions) -> SummarizationResult:
    """
    Summarize text with an OpenAI chat model.

    Requires OPENAI_API_KEY in the environment.
    """
    capability = OpenAIChatCapability(options.model)
    return asyncio.run(summarize_text(text, capability, options))
