"""Wire types for the OpenAI-compatible chat completions surface.

Only the subset the gateway produces or reads is modelled: incoming
messages, streaming chunks, aggregated completions and the model list.
"""

from typing import Any, Optional
from typing_extensions import TypedDict


class ContentPart(TypedDict, total=False):
    """A content part of a multi-part message.

    Attributes:
        type: Part type; only ``"text"`` parts carry text the upstream can use.
        text: Text content for ``"text"`` parts.
    """
    type: str
    text: Optional[str]


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation.

    Attributes:
        role: ``"user"``, ``"assistant"``, ``"system"`` or ``"tool"``.
        content: A string or a list of content parts.
    """
    role: str
    content: Any


class Delta(TypedDict, total=False):
    """Incremental update carried by a streaming chunk.

    The first chunk of a turn carries only ``role``, content chunks only
    ``content`` and the terminal chunk is empty.
    """
    role: str
    content: str


class ChunkChoice(TypedDict):
    index: int
    delta: Delta
    finish_reason: Optional[str]


class ChatCompletionChunk(TypedDict):
    """One ``chat.completion.chunk`` object of a streamed turn."""
    id: str
    object: str
    created: int
    model: str
    choices: list[ChunkChoice]


class AssistantMessage(TypedDict):
    role: str
    content: str


class CompletionChoice(TypedDict):
    index: int
    message: AssistantMessage
    finish_reason: str


class Usage(TypedDict):
    """Token accounting. The upstream reports none, so every field is zero."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletion(TypedDict):
    """An aggregated ``chat.completion`` object."""
    id: str
    object: str
    created: int
    model: str
    choices: list[CompletionChoice]
    usage: Usage


class ModelCard(TypedDict, total=False):
    id: str
    object: str
    created: int
    owned_by: str


class ModelList(TypedDict):
    object: str
    data: list[ModelCard]
