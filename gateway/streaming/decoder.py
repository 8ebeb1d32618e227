"""Event-stream decoder — turns raw upstream bytes into StreamEvents.

The inference provider streams OpenAI-style server-sent events:

    data: {"choices": [{"delta": {"content": "Hel"}}]}
    data: {"choices": [{"delta": {"content": "lo"}}]}
    data: [DONE]

Network reads carry no alignment with event boundaries, so a line (or a
multi-byte character) may arrive split across two chunks. The decoder keeps
the unfinished tail in a buffer until the rest of the line shows up.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import TYPE_CHECKING

from gateway.streaming.events import ContentDelta, Done

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator

    from gateway.streaming.events import StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
END_MARKER = "[DONE]"


def _extract_delta(payload: object) -> str | None:
    """Pull choices[0].delta.content out of a decoded chunk, if present."""
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


class EventStreamDecoder:
    """Incremental decoder. Feed it chunks, collect events.

    Once a terminal event has been produced, further input is ignored.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.finished = False

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume one raw chunk and return the events it completed."""
        if self.finished:
            return []

        self._buffer += self._utf8.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")

        events: list[StreamEvent] = []
        for line in lines:
            event = self._parse_line(line)
            if event is None:
                continue
            events.append(event)
            if event.terminal:
                self.finished = True
                break
        return events

    def close(self) -> list[StreamEvent]:
        """Signal end of input. Emits Done if the upstream never sent one.

        An unterminated trailing fragment is not a complete line and is dropped.
        """
        if self.finished:
            return []
        self.finished = True
        if self._buffer.strip():
            logger.debug(f"Discarding unterminated stream fragment ({len(self._buffer)} chars)")
        self._buffer = ""
        return [Done()]

    def _parse_line(self, line: str) -> StreamEvent | None:
        # Comments, keepalives and other SSE fields are not data lines
        if not line.startswith(DATA_PREFIX):
            return None

        data = line[len(DATA_PREFIX):].strip()
        if data == END_MARKER:
            return Done()

        try:
            payload = json.loads(data)
        except ValueError:
            return None

        text = _extract_delta(payload)
        if not text:
            return None
        return ContentDelta(text)


async def decode_event_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Lazily decode an async byte stream into StreamEvents.

    Stops pulling from ``chunks`` as soon as the end marker arrives, and
    always finishes with a terminal event.
    """
    decoder = EventStreamDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.finished:
            return
    for event in decoder.close():
        yield event
