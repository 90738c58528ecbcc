"""Shape classified upstream events into OpenAI chat completion output."""

import json
import time
import uuid
from typing import AsyncIterator, Callable, Optional

from ..types.chat import ChatCompletion, ChatCompletionChunk, Delta
from .classifier import EventKind, StreamEvent

DONE_FRAME = b"data: [DONE]\n\n"


def encode_sse(payload: dict) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


class ChunkEmitter:
    """Builds the output of one turn.

    The chunk id and creation time are fixed when the emitter is created and
    shared by every chunk. The last continuation id seen in the event stream
    is kept on ``continuation_id``; it is never sent to the caller.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        self.id = f"chatcmpl-{uuid.uuid4().hex}"
        self.created = int(time.time())
        self.continuation_id: Optional[str] = None

    def chunk(self, delta: Delta, finish_reason: Optional[str] = None) -> ChatCompletionChunk:
        return {
            "id": self.id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }

    def completion(self, content: str) -> ChatCompletion:
        return {
            "id": self.id,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
            "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
        }

    async def stream(
        self,
        events: AsyncIterator[StreamEvent],
        on_complete: Optional[Callable[[Optional[str]], None]] = None,
    ) -> AsyncIterator[bytes]:
        """Incremental mode: role chunk, one chunk per delta, stop chunk, [DONE].

        The next event is only pulled after the previous frame was consumed.
        ``on_complete`` receives the continuation id once the upstream stream
        is exhausted, before the stop chunk goes out.
        """
        yield encode_sse(self.chunk({"role": "assistant"}))
        async for event in events:
            if event.kind is EventKind.CONTENT_DELTA:
                yield encode_sse(self.chunk({"content": event.payload or ""}))
            elif event.kind is EventKind.CONTINUATION_ID:
                self.continuation_id = event.payload
        if on_complete is not None:
            on_complete(self.continuation_id)
        yield encode_sse(self.chunk({}, finish_reason="stop"))
        yield DONE_FRAME

    async def aggregate(self, events: AsyncIterator[StreamEvent]) -> ChatCompletion:
        """Aggregate mode: the whole turn as a single completion object."""
        parts: list[str] = []
        async for event in events:
            if event.kind is EventKind.CONTENT_DELTA:
                parts.append(event.payload or "")
            elif event.kind is EventKind.CONTINUATION_ID:
                self.continuation_id = event.payload
        return self.completion("".join(parts).strip())
