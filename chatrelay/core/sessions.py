"""In-memory conversation session store."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import InvalidSessionError

logger = logging.getLogger("chatrelay.sessions")


@dataclass
class ConversationSession:
    """Continuation state of one conversation.

    Attributes:
        conversation_id: Caller-visible identifier.
        upstream_conversation_token: Sent upstream as ``conversation_uuid``;
            fixed at creation.
        continuation_id: Response id of the previous turn, ``None`` before
            the first successful turn.
        ephemeral: Created implicitly for a single request.
    """

    conversation_id: str
    upstream_conversation_token: str
    continuation_id: Optional[str] = None
    ephemeral: bool = False
    created_at: float = field(default_factory=time.time)


class SessionStore:
    """Process-wide mapping of conversation id to ``ConversationSession``.

    Operations are synchronous and never suspend, so within one event loop
    each of them is atomic. Concurrent turns on the same conversation can
    still interleave across their network awaits; ``turn_lock`` gives callers
    a per-conversation lock to serialize them.

    ``max_sessions`` bounds the number of explicit sessions by evicting the
    oldest one; ``None`` keeps them for the life of the process.
    """

    def __init__(self, max_sessions: Optional[int] = None) -> None:
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, ConversationSession] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, conversation_id: str) -> ConversationSession:
        try:
            return self._sessions[conversation_id]
        except KeyError:
            raise InvalidSessionError(conversation_id) from None

    def create(self, ephemeral: bool = False) -> tuple[str, ConversationSession]:
        conversation_id = str(uuid.uuid4())
        session = ConversationSession(
            conversation_id=conversation_id,
            upstream_conversation_token=str(uuid.uuid4()),
            ephemeral=ephemeral,
        )
        if not ephemeral:
            self._evict_for_capacity()
        self._sessions[conversation_id] = session
        logger.debug(
            "Created %s session %s", "ephemeral" if ephemeral else "explicit", conversation_id
        )
        return conversation_id, session

    def update(self, conversation_id: str, continuation_id: str) -> None:
        session = self._sessions.get(conversation_id)
        if session is None:
            logger.debug("Skipping update of vanished session %s", conversation_id)
            return
        session.continuation_id = continuation_id

    def delete(self, conversation_id: str) -> None:
        if self._sessions.pop(conversation_id, None) is not None:
            logger.debug("Deleted session %s", conversation_id)
        self._locks.pop(conversation_id, None)

    def turn_lock(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def _evict_for_capacity(self) -> None:
        if self.max_sessions is None:
            return
        explicit = [cid for cid, session in self._sessions.items() if not session.ephemeral]
        while len(explicit) >= self.max_sessions:
            oldest = explicit.pop(0)
            logger.info("Session limit %d reached, evicting %s", self.max_sessions, oldest)
            self.delete(oldest)
