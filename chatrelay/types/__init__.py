"""Type definitions for the gateway's wire formats."""

from .chat import (
    AssistantMessage,
    ChatCompletion,
    ChatCompletionChunk,
    ChatMessage,
    ChunkChoice,
    CompletionChoice,
    ContentPart,
    Delta,
    ModelCard,
    ModelList,
    Usage,
)

__all__ = [
    "AssistantMessage",
    "ChatCompletion",
    "ChatCompletionChunk",
    "ChatMessage",
    "ChunkChoice",
    "CompletionChoice",
    "ContentPart",
    "Delta",
    "ModelCard",
    "ModelList",
    "Usage",
]
