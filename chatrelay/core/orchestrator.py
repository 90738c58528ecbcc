"""Per-request coordination of session, handshake, stream and output shaping."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Awaitable, Callable, Mapping, Optional, Union

from ..settings import ModelCatalog
from ..types.chat import ChatCompletion, ChatMessage, ContentPart
from .emitter import ChunkEmitter, encode_sse
from .event_stream import EventStreamClient, UpstreamTurn
from .exceptions import GatewayError, ValidationError
from .handshake import HandshakeClient
from .sessions import ConversationSession, SessionStore

logger = logging.getLogger("chatrelay.orchestrator")

ERROR_PREFIX = "chat failed: "


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[ContentPart] = [part for part in content if isinstance(part, Mapping)]
        texts = [part.get("text") for part in parts if part.get("type") == "text"]
        return "\n".join(text for text in texts if isinstance(text, str))
    return ""


@dataclass(frozen=True)
class ChatTurnRequest:
    """One validated ``/v1/chat/completions`` request."""

    model: str
    messages: tuple[ChatMessage, ...]
    conversation_id: Optional[str] = None
    stream: bool = False
    web_search: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatTurnRequest":
        if not isinstance(payload, Mapping):
            raise ValidationError("request body must be a JSON object")
        messages = payload.get("messages")
        if not isinstance(messages, list) or not messages:
            raise ValidationError("you must provide a messages array")
        model = payload.get("model")
        if not isinstance(model, str) or not model:
            raise ValidationError("you must provide a model parameter")
        conversation_id = payload.get("conversation_id")
        if conversation_id is not None and not isinstance(conversation_id, str):
            raise ValidationError("conversation_id must be a string")
        return cls(
            model=model,
            messages=tuple(m for m in messages if isinstance(m, Mapping)),
            conversation_id=conversation_id or None,
            stream=bool(payload.get("stream")),
            web_search=bool(payload.get("web_search")),
        )

    @classmethod
    def from_body(cls, body: bytes) -> "ChatTurnRequest":
        try:
            payload = json.loads(body or b"{}")
        except ValueError as exc:
            raise ValidationError("invalid JSON payload") from exc
        return cls.from_payload(payload)

    def latest_user_message(self) -> str:
        """Text of the most recent user message; the only one sent upstream."""
        for message in reversed(self.messages):
            if message.get("role") == "user":
                text = _message_text(message.get("content"))
                if text:
                    return text
                break
        raise ValidationError("missing user message")


@dataclass
class TurnContext:
    """Mutable bookkeeping of one request, finished exactly once."""

    conversation_id: str
    session: ConversationSession
    bot_id: str
    message: str
    lock: Optional[asyncio.Lock] = None
    finished: bool = field(default=False, repr=False)

    @property
    def ephemeral(self) -> bool:
        return self.session.ephemeral


@dataclass
class StreamingTurn:
    """A turn whose upstream is open and whose frames are yet to be pulled.

    ``finish`` is idempotent and must run on the event loop. The HTTP layer
    awaits it after the response, so a client that disconnects mid-stream
    still gets the upstream closed and the turn released.
    """

    conversation_id: str
    frames: AsyncGenerator[bytes, None]
    finish: Callable[[], Awaitable[None]]


class ChatOrchestrator:
    """Runs RESOLVE_SESSION -> HANDSHAKE -> STREAM_AND_TRANSLATE -> CLEANUP."""

    def __init__(
        self,
        store: SessionStore,
        models: ModelCatalog,
        handshake: HandshakeClient,
        event_stream: EventStreamClient,
        serialize_turns: bool = False,
    ) -> None:
        self.store = store
        self.models = models
        self.handshake = handshake
        self.event_stream = event_stream
        self.serialize_turns = serialize_turns

    def create_conversation(self) -> str:
        conversation_id, _ = self.store.create()
        logger.info("Created conversation %s", conversation_id)
        return conversation_id

    async def complete(self, turn: ChatTurnRequest) -> Union[ChatCompletion, StreamingTurn]:
        """Run one chat turn.

        Returns the aggregated completion, or a ``StreamingTurn`` whose frames
        carry the rest of the turn when ``turn.stream`` is set. Every failure
        is raised as a ``GatewayError`` with the ``chat failed:`` prefix.
        """
        ctx = self._resolve(turn)
        try:
            upstream = await self._open_upstream(ctx, turn)
        except GatewayError as exc:
            logger.error("Chat error on %s: %s", ctx.conversation_id, exc.message)
            self._finish(ctx)
            raise exc.prefixed(ERROR_PREFIX) from exc
        except BaseException:
            self._finish(ctx)
            raise

        emitter = ChunkEmitter(turn.model)
        if turn.stream:
            frames = self._stream_frames(ctx, upstream, emitter)

            async def finish() -> None:
                await frames.aclose()
                await upstream.aclose()
                self._finish(ctx)

            return StreamingTurn(conversation_id=ctx.conversation_id, frames=frames, finish=finish)

        try:
            completion = await emitter.aggregate(upstream.events())
            self._commit(ctx, emitter.continuation_id)
        except GatewayError as exc:
            logger.error("Chat error on %s: %s", ctx.conversation_id, exc.message)
            raise exc.prefixed(ERROR_PREFIX) from exc
        finally:
            await upstream.aclose()
            self._finish(ctx)
        return completion

    def _resolve(self, turn: ChatTurnRequest) -> TurnContext:
        try:
            session = None
            if turn.conversation_id is not None:
                session = self.store.get(turn.conversation_id)
            bot_id = self.models.resolve(turn.model)
            message = turn.latest_user_message()
        except GatewayError as exc:
            logger.warning("Rejected chat request: %s", exc.message)
            raise exc.prefixed(ERROR_PREFIX) from exc
        if session is None:
            conversation_id, session = self.store.create(ephemeral=True)
            logger.debug("Created ephemeral session %s", conversation_id)
        else:
            conversation_id = turn.conversation_id
        logger.info("Conversation %s, model %s, stream=%s", conversation_id, turn.model, turn.stream)
        return TurnContext(
            conversation_id=conversation_id, session=session, bot_id=bot_id, message=message
        )

    async def _open_upstream(self, ctx: TurnContext, turn: ChatTurnRequest) -> UpstreamTurn:
        if self.serialize_turns and not ctx.ephemeral:
            lock = self.store.turn_lock(ctx.conversation_id)
            await lock.acquire()
            ctx.lock = lock
        cache_key = await self.handshake.negotiate(ctx.message, ctx.bot_id)
        return await self.event_stream.open(
            cache_key,
            ctx.bot_id,
            ctx.session.upstream_conversation_token,
            ctx.session.continuation_id,
            turn.web_search,
        )

    async def _stream_frames(
        self, ctx: TurnContext, upstream: UpstreamTurn, emitter: ChunkEmitter
    ) -> AsyncGenerator[bytes, None]:
        try:
            async for frame in emitter.stream(
                upstream.events(), on_complete=lambda continuation_id: self._commit(ctx, continuation_id)
            ):
                yield frame
        except GatewayError as exc:
            error = exc.prefixed(ERROR_PREFIX)
            logger.error("Chat stream error on %s: %s", ctx.conversation_id, error.message)
            yield encode_sse({"error": error.message})
        finally:
            await upstream.aclose()
            self._finish(ctx)

    def _commit(self, ctx: TurnContext, continuation_id: Optional[str]) -> None:
        if ctx.ephemeral or not continuation_id:
            return
        self.store.update(ctx.conversation_id, continuation_id)
        logger.debug("Conversation %s continues from %s", ctx.conversation_id, continuation_id)

    def _finish(self, ctx: TurnContext) -> None:
        if ctx.finished:
            return
        ctx.finished = True
        if ctx.ephemeral:
            self.store.delete(ctx.conversation_id)
            logger.debug("Cleaned up ephemeral session %s", ctx.conversation_id)
        if ctx.lock is not None:
            ctx.lock.release()
            ctx.lock = None
