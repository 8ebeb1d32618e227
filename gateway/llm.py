"""Inference provider client — OpenAI-compatible chat completions over httpx.

One shared ``httpx.AsyncClient`` is injected at start-up. With no API key
configured the client runs in demo mode and never touches the network.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from gateway.errors import UpstreamError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from contextlib import AbstractAsyncContextManager

    from gateway.config import ProviderSettings
    from gateway.schemas import ChatTurn

logger = logging.getLogger(__name__)


class ProviderClient:
    """Thin wrapper around the provider's /chat/completions endpoint."""

    def __init__(self, http: httpx.AsyncClient, settings: ProviderSettings) -> None:
        self._http = http
        self._settings = settings
        self._url = f"{settings.base_url.rstrip('/')}/chat/completions"

    @property
    def demo_mode(self) -> bool:
        return not self._settings.api_key

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._settings.referer,
            "X-Title": self._settings.title,
        }

    async def complete(
        self,
        model: str,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 2048,
        *,
        caller: str = "Agent",
    ) -> str:
        """Single-shot completion. Returns the assistant text.

        Raises UpstreamError on transport failures, non-2xx responses, and
        payloads without a choices[0].message.
        """
        if self.demo_mode:
            return f'[Demo mode] {caller} would process: "{user_message[:100]}..."'

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
        }

        try:
            response = await self._http.post(
                self._url,
                json=payload,
                headers=self._headers(),
                timeout=self._settings.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"LLM request failed for model={model}: {e}")
            raise UpstreamError(f"LLM API request failed: {e}") from e

        if not response.is_success:
            logger.warning(f"LLM API error {response.status_code} for model={model}")
            raise UpstreamError(
                f"LLM API error {response.status_code}: {response.text}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"] if data["choices"] else ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamError(
                f"Malformed LLM API response: {e}", upstream_status=response.status_code
            ) from e
        return content or ""

    def open_stream(
        self, model: str, turns: Sequence[ChatTurn], max_tokens: int
    ) -> AbstractAsyncContextManager[httpx.Response]:
        """Open a streaming completion. Use as ``async with``; status is unchecked."""
        payload = {
            "model": model,
            "messages": [turn.model_dump() for turn in turns],
            "max_tokens": max_tokens,
            "stream": True,
        }
        return self._http.stream(
            "POST",
            self._url,
            json=payload,
            headers=self._headers(),
            timeout=self._settings.timeout,
        )
