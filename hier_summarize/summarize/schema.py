"""Pydantic schemas for structured summary output."""

from pydantic import BaseModel

from ..bullets import split_lines, strip_marker


class SummarizationResult(BaseModel):
    """Result of a hierarchical summarization run.

    Each field is a bullet block: newline-separated lines starting with "- ".
    """

    per_chunk: list[str]
    merged: str
    final: str

    @property
    def final_bullets(self) -> list[str]:
        return [strip_marker(line) for line in split_lines(self.final)]

    @property
    def merged_bullets(self) -> list[str]:
        return [strip_marker(line) for line in split_lines(self.merged)]
