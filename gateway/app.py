"""Agent gateway — FastAPI app factory.

Mounts every registered agent under /agents/{slug}, plus the generic paid
chat route and the token-metadata lookup. Shared collaborators (HTTP client,
provider, payment gate, dispatcher, orchestration pipeline, metadata cache)
live on ``app.state``; the scheduler sweeping the cache runs for the app's
lifetime.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from x402.http import PAYMENT_REQUIRED_HEADER, X_PAYMENT_RESPONSE_HEADER

from gateway import chat, tokens
from gateway.agents.dispatcher import SubAgentDispatcher
from gateway.agents.pipeline import OrchestrationPipeline
from gateway.agents.registry import AGENT_REGISTRY, ORCHESTRATOR_SLUG, sub_agents
from gateway.agents.router import build_agent_router, utc_timestamp
from gateway.cache import TTLCache
from gateway.errors import register_error_handlers
from gateway.llm import ProviderClient
from gateway.payment import PaymentGate
from gateway.scheduler import setup_scheduler

if TYPE_CHECKING:
    from gateway.config import GatewayConfig

logger = logging.getLogger(__name__)

__version__ = "1.0.0"


def create_app(config: GatewayConfig, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the gateway app for ``config``.

    ``transport`` replaces the network layer of the shared HTTP client, so
    provider, sub-agent and metadata calls can be served in-process.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = setup_scheduler(app.state.metadata_cache, config.metadata.sweep_interval_seconds)
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info(
            f"Agent gateway started (agents={len(AGENT_REGISTRY)}, "
            f"provider={'demo mode' if app.state.provider.demo_mode else 'configured'}, "
            f"x402={'enabled' if config.x402.enabled else 'disabled'}, "
            f"network={config.x402.network})"
        )
        yield
        scheduler.shutdown(wait=False)
        await app.state.http.aclose()
        logger.info("Agent gateway shutting down")

    app = FastAPI(title="Agent Gateway", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[PAYMENT_REQUIRED_HEADER, X_PAYMENT_RESPONSE_HEADER],
    )
    register_error_handlers(app)

    http = httpx.AsyncClient(transport=transport, timeout=config.provider.timeout)
    provider = ProviderClient(http, config.provider)
    dispatcher = SubAgentDispatcher(http, config.agent_endpoints(), timeout=config.dispatch_timeout)

    app.state.config = config
    app.state.http = http
    app.state.provider = provider
    app.state.gate = PaymentGate(config.x402)
    app.state.dispatcher = dispatcher
    app.state.pipeline = OrchestrationPipeline(
        provider, dispatcher, AGENT_REGISTRY[ORCHESTRATOR_SLUG], sub_agents()
    )
    app.state.metadata_cache = TTLCache(config.metadata.cache_ttl_seconds)

    @app.get("/health")
    async def health() -> dict:
        """Liveness check."""
        return {"status": "ok", "version": __version__, "timestamp": utc_timestamp()}

    for agent in AGENT_REGISTRY.values():
        app.include_router(build_agent_router(agent))
    app.include_router(chat.router)
    app.include_router(tokens.router)

    return app
