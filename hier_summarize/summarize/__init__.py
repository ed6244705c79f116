"""Hierarchical summarization."""

from .hierarchical import (
    HierarchicalSummarizer,
    SummarizeOptions,
    summarize_text,
    summarize_with_openai,
)
from .schema import SummarizationResult

__all__ = [
    "HierarchicalSummarizer",
    "SummarizationResult",
    "SummarizeOptions",
    "summarize_text",
    "summarize_with_openai",
]
