"""LLM module for transcription gateway and prompt management."""

from .gateway import (
    TranscriptionGateway,
    ClaudeGateway,
    MockGateway,
    ScreenshotImage,
    TranscriptionResponse,
    TranscriptionError,
    create_gateway,
    load_schema
)
from .prompt_registry import PromptRegistry, PromptTemplate, PromptVersion

__all__ = [
    "TranscriptionGateway",
    "ClaudeGateway",
    "MockGateway",
    "ScreenshotImage",
    "TranscriptionResponse",
    "TranscriptionError",
    "create_gateway",
    "load_schema",
    "PromptRegistry",
    "PromptTemplate",
    "PromptVersion"
]
