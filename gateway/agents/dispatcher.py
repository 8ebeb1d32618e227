"""Sub-agent dispatcher — synchronous agent-to-agent calls over HTTP.

Every call returns text. Failures are folded into short bracketed strings
so a broken sibling never takes the caller down with it.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

logger = logging.getLogger(__name__)

# Primary output fields of agent responses, tried in order
OUTPUT_FIELDS = ("summary", "audit")


def extract_output(payload: Any) -> str:
    """Pick an agent's primary text output out of its JSON response."""
    data = payload.get("data", payload) if isinstance(payload, dict) else payload
    if isinstance(data, dict):
        for name in OUTPUT_FIELDS:
            if data.get(name) is not None:
                value = data[name]
                return value if isinstance(value, str) else json.dumps(value)
    return json.dumps(data)


class SubAgentDispatcher:
    """Calls sibling agents by name using a fixed name -> base URL mapping."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        endpoints: Mapping[str, str],
        timeout: float = 60.0,
    ) -> None:
        self._http = http
        self._endpoints = MappingProxyType(dict(endpoints))
        self._timeout = timeout

    @property
    def endpoints(self) -> Mapping[str, str]:
        return self._endpoints

    async def dispatch(self, agent: str, path: str, body: dict) -> str:
        """POST ``body`` to ``agent``'s ``path`` and return its text output. Never raises."""
        base_url = self._endpoints.get(agent)
        if base_url is None:
            logger.warning(f"Dispatch to unknown agent '{agent}'")
            return f"[Agent unreachable: unknown agent '{agent}']"

        url = f"{base_url}{path}"
        logger.info(f"Dispatching to {agent}: POST {url}")
        try:
            response = await self._http.post(url, json=body, timeout=self._timeout)
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.warning(f"Agent {agent} unreachable at {url}: {reason}")
            return f"[Agent unreachable: {reason}]"

        if not response.is_success:
            logger.warning(f"Agent {agent} returned {response.status_code}")
            return f"[Agent error: {response.status_code}]"

        try:
            return extract_output(response.json())
        except ValueError as e:
            logger.warning(f"Agent {agent} returned a non-JSON body: {e}")
            return f"[Agent error: {response.status_code} non-JSON response]"
