"""Generic paid chat — POST /api/v1/chat.

Any persona, any model, caller-chosen price (never below the floor). The body
is validated first so the price is known before the payment gate runs; on
GRANT the response streams exactly like an agent's chat route.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from x402.http import X_PAYMENT_HEADER

from gateway.schemas import GenericChatRequest
from gateway.streaming.relay import CHAT_MAX_TOKENS, build_conversation, relay_chat, sse_response

logger = logging.getLogger(__name__)

DEMO_TEXT = "[Demo mode] No API key configured. The agent would respond to your message here."

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


@router.post("")
async def generic_chat(request: Request, body: GenericChatRequest):
    gate = request.app.state.gate
    requirements = gate.requirements(
        resource=str(request.url),
        description="Chat with AI agent",
        mime_type="text/event-stream",
        price=body.price,
    )
    gate.enforce(requirements, request.headers.get(X_PAYMENT_HEADER))

    logger.info(f"Paid chat granted: model={body.model}, amount={requirements[0].max_amount_required}")
    events = relay_chat(
        request.app.state.provider,
        body.model,
        build_conversation(body.persona, body.messages),
        CHAT_MAX_TOKENS,
        demo_text=DEMO_TEXT,
        is_disconnected=request.is_disconnected,
    )
    return sse_response(events)
