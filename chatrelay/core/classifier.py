"""Classify upstream SSE records into typed stream events."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional

from .sse import SSERecord

logger = logging.getLogger("chatrelay.classifier")

CONTINUATION_EVENT = "openai_response_id"
CONTINUATION_FIELD = "id"
DELTA_FIELD = "delta"
DONE_SENTINEL = "[DONE]"


class EventKind(str, Enum):
    CONTENT_DELTA = "content-delta"
    CONTINUATION_ID = "continuation-id"
    IGNORABLE = "ignorable"


@dataclass(frozen=True)
class StreamEvent:
    kind: EventKind
    payload: Optional[str] = None


IGNORABLE = StreamEvent(EventKind.IGNORABLE)


def _load_object(data: str) -> Optional[dict]:
    try:
        parsed = json.loads(data)
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def classify_record(record: SSERecord) -> StreamEvent:
    """Map one record to a ``StreamEvent``. Never raises.

    The upstream interleaves keep-alive and control records with content, so
    anything that does not parse into a known shape is ``IGNORABLE``.
    """
    data = record.data
    if record.event == CONTINUATION_EVENT:
        if not data:
            return IGNORABLE
        parsed = _load_object(data)
        if parsed is None:
            return IGNORABLE
        identifier = parsed.get(CONTINUATION_FIELD)
        if isinstance(identifier, str) and identifier:
            return StreamEvent(EventKind.CONTINUATION_ID, identifier)
        return IGNORABLE

    if not data or data == DONE_SENTINEL:
        return IGNORABLE
    parsed = _load_object(data)
    if parsed is None:
        return IGNORABLE
    delta = parsed.get(DELTA_FIELD)
    if isinstance(delta, str):
        return StreamEvent(EventKind.CONTENT_DELTA, delta)
    return IGNORABLE


async def classify_records(records: AsyncIterator[SSERecord]) -> AsyncIterator[StreamEvent]:
    """Yield the meaningful events of a record stream, dropping ignorable ones."""
    async for record in records:
        event = classify_record(record)
        if event.kind is EventKind.IGNORABLE:
            logger.debug("Ignoring upstream record event=%s", record.event)
            continue
        yield event
