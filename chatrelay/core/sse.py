"""SSE (Server-Sent Events) record tokenizer for upstream event streams."""

import codecs
import logging
from dataclasses import dataclass
from typing import AsyncIterator

logger = logging.getLogger("chatrelay.sse")

DEFAULT_EVENT_NAME = "message"
RECORD_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class SSERecord:
    """One blank-line-terminated record: its event name and joined data lines."""

    event: str = DEFAULT_EVENT_NAME
    data: str = ""


class SSERecordDecoder:
    """Incrementally decode raw bytes into ``SSERecord`` objects.

    Bytes go through a stateful UTF-8 decoder so multi-byte characters split
    across network chunks survive. Text without a terminating blank line stays
    buffered until more bytes arrive.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._after_cr = False

    def feed(self, chunk: bytes) -> list[SSERecord]:
        text = self._decoder.decode(chunk) if chunk else ""
        if not text:
            return []
        # A chunk that ended in "\r" may have cut a CRLF in half; the "\n"
        # opening this chunk then belongs to the line already ended.
        if self._after_cr and text.startswith("\n"):
            text = text[1:]
        self._after_cr = text.endswith("\r")
        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")
        records: list[SSERecord] = []

        while True:
            sep_index = self._buffer.find(RECORD_SEPARATOR)
            if sep_index == -1:
                break
            raw_record = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + len(RECORD_SEPARATOR):]
            record = self._parse_record(raw_record)
            if record is not None:
                records.append(record)

        return records

    def close(self) -> int:
        """Finish decoding and discard any unterminated trailing record.

        Returns the number of characters dropped.
        """
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        self._after_cr = False
        dropped = len(leftover.strip())
        if dropped:
            logger.debug("Discarding %d chars of unterminated SSE record", dropped)
        return dropped

    @staticmethod
    def _parse_record(raw: str):
        event = DEFAULT_EVENT_NAME
        data_lines: list[str] = []
        seen_field = False
        for line in raw.split("\n"):
            if line.startswith("event:"):
                event = line[6:].strip() or DEFAULT_EVENT_NAME
                seen_field = True
            elif line.startswith("data:"):
                data_lines.append(line[5:].strip())
                seen_field = True
        if not seen_field:
            return None
        return SSERecord(event=event, data="".join(data_lines))


async def aiter_sse_records(chunks: AsyncIterator[bytes]) -> AsyncIterator[SSERecord]:
    """Lazily yield records from an async byte iterator, in arrival order."""
    decoder = SSERecordDecoder()
    async for chunk in chunks:
        for record in decoder.feed(chunk):
            yield record
    decoder.close()
