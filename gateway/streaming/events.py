"""Stream events — the normalized units the relay forwards to clients.

A stream is a sequence of ContentDelta events closed by exactly one terminal
event (Done or StreamError). Nothing follows a terminal event.
"""

from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class ContentDelta:
    """An incremental piece of generated text. Never empty."""

    text: str

    terminal = False


@dataclass(frozen=True)
class Done:
    """The stream completed normally."""

    terminal = True


@dataclass(frozen=True)
class StreamError:
    """The stream failed; carries a human-readable message."""

    message: str

    terminal = True


StreamEvent = ContentDelta | Done | StreamError


def encode_sse(event: StreamEvent) -> str:
    """Frame one event in the gateway's server-sent-event wire format.

    ContentDelta -> data: {"content": "..."}
    Done         -> data: [DONE]
    StreamError  -> data: {"error": "..."}
    """
    if isinstance(event, ContentDelta):
        payload = json.dumps({"content": event.text}, ensure_ascii=False)
    elif isinstance(event, StreamError):
        payload = json.dumps({"error": event.message}, ensure_ascii=False)
    else:
        payload = "[DONE]"
    return f"data: {payload}\n\n"
