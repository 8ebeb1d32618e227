"""Chat relay — forwards a provider token stream to the client as SSE.

The relay owns exactly one outbound streaming call. Each decoded event is
handed to the sink (yielded) before the next upstream read, so the client sees
events in the order the decoder produced them. Whatever happens, the stream
closes with a terminal event unless the sink itself has gone away.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.responses import StreamingResponse

from gateway.schemas import ChatTurn
from gateway.streaming.decoder import decode_event_stream
from gateway.streaming.events import ContentDelta, Done, StreamError, encode_sse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

    from gateway.llm import ProviderClient
    from gateway.schemas import ChatMessage
    from gateway.streaming.events import StreamEvent

logger = logging.getLogger(__name__)

CHAT_MAX_TOKENS = 2048

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def build_conversation(system_prompt: str, messages: Sequence[ChatMessage]) -> list[ChatTurn]:
    """Prepend the synthesized system turn to the caller's messages."""
    return [ChatTurn(role="system", content=system_prompt)] + [
        ChatTurn(role=m.role, content=m.content) for m in messages
    ]


async def relay_chat(
    provider: ProviderClient,
    model: str,
    turns: Sequence[ChatTurn],
    max_tokens: int = CHAT_MAX_TOKENS,
    *,
    demo_text: str,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[StreamEvent]:
    """Stream one chat completion as normalized events.

    Demo mode (no provider key) yields ``demo_text`` then Done without any
    network call. A non-2xx upstream yields a single StreamError. Exceptions
    after streaming began become a terminal StreamError.
    """
    if provider.demo_mode:
        yield ContentDelta(demo_text)
        yield Done()
        return

    try:
        async with provider.open_stream(model, turns, max_tokens) as response:
            if not response.is_success:
                body = (await response.aread()).decode(errors="replace")
                logger.warning(f"LLM stream rejected: status={response.status_code} model={model}")
                yield StreamError(f"LLM API error {response.status_code}: {body}")
                return

            async for event in decode_event_stream(response.aiter_bytes()):
                yield event
                if event.terminal:
                    return
                if is_disconnected is not None and await is_disconnected():
                    logger.info(f"Client disconnected mid-stream, closing upstream (model={model})")
                    return
    except Exception as e:
        logger.error(f"LLM stream failed for model={model}: {e}", exc_info=True)
        yield StreamError(str(e) or type(e).__name__)


def sse_response(events: AsyncIterator[StreamEvent]) -> StreamingResponse:
    """Wrap an event stream in a text/event-stream response."""

    async def stream():
        async for event in events:
            yield encode_sse(event)

    return StreamingResponse(stream(), media_type="text/event-stream", headers=SSE_HEADERS)
