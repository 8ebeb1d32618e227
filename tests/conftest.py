"""Shared fixtures for gateway tests.

Every outbound HTTP call (inference provider, sibling agents, metadata
service) goes through a scripted ``FakeUpstream`` mounted as an
``httpx.MockTransport``. Apps are always built from in-memory config, never
from config.yaml.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.app import create_app
from gateway.config import GatewayConfig, ProviderSettings, X402Settings

PAY_TO = "0xa8aE0c6E4D8f3f1bF3c1A4f5d6bE6f7A8b9C0d1E"
ASSET = "0x534b2f3A21130d7a60830c2Df862319e593943A3"
FACILITATOR = "https://facilitator.example.test"
PROVIDER_URL = "https://provider.example.test/api/v1"
COMPLETIONS_URL = f"{PROVIDER_URL}/chat/completions"


def build_config(*, api_key: str | None = None, x402_enabled: bool = True, **overrides) -> GatewayConfig:
    return GatewayConfig(
        provider=ProviderSettings(base_url=PROVIDER_URL, api_key=api_key),
        x402=X402Settings(
            enabled=x402_enabled,
            pay_to=PAY_TO,
            facilitator_url=FACILITATOR,
            asset=ASSET,
        ),
        **overrides,
    )


async def _byte_stream(chunks: list[bytes], error: Exception | None):
    for chunk in chunks:
        yield chunk
    if error is not None:
        raise error


class FakeUpstream:
    """Scripted stand-in for every outbound HTTP call the gateway makes.

    - Non-streaming completions are answered from a FIFO of texts.
    - Streaming completions replay a fixed list of raw chunks, optionally
      followed by an exception, or a fixed error status.
    - Any other URL is answered by a handler registered with ``route``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._completions: list[str | tuple[int, str]] = []
        self._stream_chunks: list[bytes] = []
        self._stream_error: Exception | None = None
        self._stream_status: tuple[int, str] | None = None
        self._routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def provider_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == COMPLETIONS_URL]

    def queue_completion(self, *items: str | tuple[int, str]) -> None:
        """Queue completion texts, or (status, body) pairs for failed calls."""
        self._completions.extend(items)

    def stream(self, *chunks: bytes, error: Exception | None = None) -> None:
        self._stream_chunks = list(chunks)
        self._stream_error = error

    def stream_rejected(self, status: int, body: str) -> None:
        self._stream_status = (status, body)

    def route(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._routes[url] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url in self._routes:
            return self._routes[url](request)

        if url == COMPLETIONS_URL:
            body = json.loads(request.content)
            if body.get("stream"):
                if self._stream_status is not None:
                    status, text = self._stream_status
                    return httpx.Response(status, text=text)
                return httpx.Response(
                    200,
                    headers={"Content-Type": "text/event-stream"},
                    content=_byte_stream(self._stream_chunks, self._stream_error),
                )
            if not self._completions:
                return httpx.Response(500, text="no scripted completion left")
            item = self._completions.pop(0)
            if isinstance(item, tuple):
                status, text = item
                return httpx.Response(status, text=text)
            text = item
            return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})

        return httpx.Response(404, text=f"unrouted: {url}")


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def http(upstream):
    async with httpx.AsyncClient(transport=upstream.transport) as client:
        yield client


@pytest.fixture
def make_client(upstream):
    """Factory: build an app from ``build_config(**kwargs)`` and start it."""
    clients: list[TestClient] = []

    def factory(**config_kwargs) -> TestClient:
        app = create_app(build_config(**config_kwargs), transport=upstream.transport)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def payment_proof() -> str:
    """A well-formed X-PAYMENT header value."""
    proof = {
        "x402Version": 1,
        "scheme": "exact",
        "network": "eip155:143",
        "payload": {"signature": "0xdeadbeef", "authorization": {"from": "0x01", "to": PAY_TO}},
    }
    return base64.b64encode(json.dumps(proof).encode()).decode()
