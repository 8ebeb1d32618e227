"""Per-agent router — the routes every agent shares, parameterized by descriptor.

    GET  /agents/{slug}/health    free
    GET  /agents/{slug}/info      free
    POST /agents/{slug}/chat      paid, SSE
    POST /agents/{slug}{action}   paid, JSON
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from gateway.agents.actions import resolve_action
from gateway.payment import payment_required
from gateway.schemas import ChatRequest
from gateway.streaming.relay import CHAT_MAX_TOKENS, build_conversation, relay_chat, sse_response

if TYPE_CHECKING:
    from gateway.agents.registry import AgentDescriptor

logger = logging.getLogger(__name__)

REGISTRATION_TYPE = "https://eips.ethereum.org/EIPS/eip-8004#registration-v1"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_agent_router(agent: AgentDescriptor) -> APIRouter:
    """Mount health, info, chat and the agent's action under /agents/{slug}."""
    router = APIRouter(prefix=agent.endpoint, tags=[agent.name])

    @router.get("/health")
    async def health() -> dict:
        return {"status": "ok", "agent": agent.name, "timestamp": utc_timestamp()}

    @router.get("/info")
    async def info(request: Request) -> dict:
        x402 = request.app.state.gate.settings
        return {
            "data": {
                "agentId": agent.agent_id,
                "name": agent.name,
                "description": agent.description,
                "model": agent.model,
                "skills": list(agent.skills),
                "endpoint": agent.endpoint,
                "type": REGISTRATION_TYPE,
                "x402": {
                    "enabled": x402.enabled,
                    "network": x402.network,
                    "facilitator": x402.facilitator_url,
                    "payTo": x402.pay_to,
                },
            }
        }

    @router.post(
        "/chat",
        dependencies=[Depends(payment_required(f"Chat with {agent.name}", "text/event-stream"))],
    )
    async def chat(request: Request, body: ChatRequest):
        events = relay_chat(
            request.app.state.provider,
            agent.model,
            build_conversation(agent.chat_prompt, body.messages),
            CHAT_MAX_TOKENS,
            demo_text=f"[Demo mode] {agent.name} would respond to this conversation.",
            is_disconnected=request.is_disconnected,
        )
        return sse_response(events)

    router.add_api_route(
        agent.action.path,
        resolve_action(agent),
        methods=["POST"],
        dependencies=[Depends(payment_required(agent.action.description, "application/json"))],
    )

    logger.info(f"Mounted agent {agent.name} at {agent.endpoint} (action={agent.action.path})")
    return router
