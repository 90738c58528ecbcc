"""Core module initialization.

Only settings-independent pieces are re-exported here; the upstream clients,
relay and orchestrator are imported from their own modules.
"""

from .classifier import EventKind, StreamEvent, classify_record, classify_records
from .emitter import ChunkEmitter
from .exceptions import (
    AuthError,
    GatewayError,
    HandshakeError,
    InvalidSessionError,
    UpstreamError,
    ValidationError,
)
from .sessions import ConversationSession, SessionStore
from .sse import SSERecord, SSERecordDecoder, aiter_sse_records

__all__ = [
    "AuthError",
    "ChunkEmitter",
    "ConversationSession",
    "EventKind",
    "GatewayError",
    "HandshakeError",
    "InvalidSessionError",
    "SSERecord",
    "SSERecordDecoder",
    "SessionStore",
    "StreamEvent",
    "UpstreamError",
    "ValidationError",
    "aiter_sse_records",
    "classify_record",
    "classify_records",
]
