"""Summarization capability backends."""

from .base import Capability, GenerationOptions, LoadEvent, Loaded, LoadProgress, ModelLoader
from .openai_chat import OpenAIChatCapability, OpenAIModelLoader

__all__ = [
    "Capability",
    "GenerationOptions",
    "LoadEvent",
    "LoadProgress",
    "Loaded",
    "ModelLoader",
    "OpenAIChatCapability",
    "OpenAIModelLoader",
]
