"""Specialised agent actions — the one extra route each agent exposes.

Each factory takes an AgentDescriptor and returns the FastAPI endpoint for
its action. The router builder looks factories up by ``action.name``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from fastapi import Request

from gateway.schemas import AuditRequest, ExecuteRequest, SummarizeRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from gateway.agents.registry import AgentDescriptor

logger = logging.getLogger(__name__)

AUDIT_MAX_TOKENS = 4096


def make_summarize_handler(agent: AgentDescriptor) -> Callable:
    async def summarize(request: Request, body: SummarizeRequest) -> dict:
        system_prompt = (
            f"You are {agent.name}, an AI text summarization agent.\n"
            f"Summarize the provided text concisely in {body.max_length} characters or less.\n"
            "Focus on key points and maintain factual accuracy."
        )
        summary = await request.app.state.provider.complete(
            agent.model,
            system_prompt,
            body.text,
            math.ceil(body.max_length / 3),  # rough token estimate
            caller=agent.name,
        )
        return {
            "data": {
                "agentId": agent.agent_id,
                "summary": summary,
                "inputLength": len(body.text),
                "model": agent.model,
            }
        }

    return summarize


def make_audit_handler(agent: AgentDescriptor) -> Callable:
    async def audit(request: Request, body: AuditRequest) -> dict:
        system_prompt = (
            f"You are {agent.name}, an AI security auditing agent.\n"
            "Analyze the provided code for security vulnerabilities, bugs, and best practice violations.\n"
            "Provide a structured audit report with:\n"
            "1. CRITICAL issues (security vulnerabilities)\n"
            "2. WARNINGS (potential bugs or risks)\n"
            "3. INFORMATIONAL (style, gas optimization, best practices)\n"
            "Rate overall security: SAFE / LOW RISK / MEDIUM RISK / HIGH RISK / CRITICAL"
        )
        report = await request.app.state.provider.complete(
            agent.model,
            system_prompt,
            f"Language: {body.language}\n\n```\n{body.code}\n```",
            AUDIT_MAX_TOKENS,
            caller=agent.name,
        )
        return {
            "data": {
                "agentId": agent.agent_id,
                "audit": report,
                "language": body.language,
                "codeLength": len(body.code),
                "model": agent.model,
            }
        }

    return audit


def make_execute_handler(agent: AgentDescriptor) -> Callable:
    async def execute(request: Request, body: ExecuteRequest) -> dict:
        result = await request.app.state.pipeline.run(body.task)
        logger.info(f"{agent.name} finished task with {len(result.steps)} step(s)")
        return {"data": result.model_dump(by_alias=True)}

    return execute


ACTION_HANDLERS: dict[str, Callable[[AgentDescriptor], Callable]] = {
    "summarize": make_summarize_handler,
    "audit": make_audit_handler,
    "execute": make_execute_handler,
}


def resolve_action(agent: AgentDescriptor) -> Callable:
    """Build the endpoint for ``agent``'s action. Raises ValueError if unknown."""
    factory = ACTION_HANDLERS.get(agent.action.name)
    if factory is None:
        raise ValueError(
            f"Agent '{agent.slug}' references unknown action '{agent.action.name}'. "
            f"Available: {sorted(ACTION_HANDLERS)}"
        )
    return factory(agent)
