"""Configuration loader — reads config.yaml, validates with Pydantic.

Secrets and deployment toggles can be overridden from the environment:
OPENROUTER_API_KEY, X402_ENABLED, X402_PAY_TO_ADDRESS.
Agent descriptors (models, prompts, skills) are hardcoded in agents/registry.py.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


class ProviderSettings(BaseModel):
    """OpenAI-compatible inference provider (OpenRouter by default)."""

    base_url: str = "https://openrouter.ai/api/v1"
    api_key: str | None = None  # unset -> demo mode, no network calls
    referer: str = "http://localhost:3001"
    title: str = "Agent Gateway"
    timeout: float = 120.0


class X402Settings(BaseModel):
    """Pay-per-call settings for the payment gate."""

    enabled: bool = True
    network: str = "eip155:143"
    pay_to: str
    facilitator_url: str
    asset: str  # stable-value token contract the price is denominated in
    asset_name: str = "USDC"
    asset_version: str = "2"
    price: str = "0.01"
    min_price: str = "0.01"
    max_timeout_seconds: int = 300

    @field_validator("price", "min_price")
    @classmethod
    def must_be_decimal(cls, v: str) -> str:
        try:
            value = Decimal(v)
        except InvalidOperation:
            raise ValueError(f"'{v}' is not a decimal price")
        if value < 0:
            raise ValueError(f"Price must not be negative, got '{v}'")
        return v


class MetadataSettings(BaseModel):
    """Token-metadata service and the TTL cache in front of it."""

    api_url: str = "https://api.nadapp.net"
    cache_ttl_seconds: float = 300.0
    sweep_interval_seconds: float = 600.0
    timeout: float = 10.0


class GatewayConfig(BaseModel):
    """Top-level gateway configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    public_url: str | None = None  # where sibling agents are reachable
    dispatch_timeout: float = 60.0
    allowed_origins: list[str] = ["*"]

    provider: ProviderSettings = ProviderSettings()
    x402: X402Settings
    metadata: MetadataSettings = MetadataSettings()

    @model_validator(mode="after")
    def validate_prices(self) -> GatewayConfig:
        if Decimal(self.x402.price) < Decimal(self.x402.min_price):
            raise ValueError(
                f"x402.price ({self.x402.price}) is below x402.min_price ({self.x402.min_price})"
            )
        return self

    @property
    def base_url(self) -> str:
        return (self.public_url or f"http://127.0.0.1:{self.port}").rstrip("/")

    def agent_endpoints(self) -> dict[str, str]:
        """Map every registered agent name to its base URL on this gateway."""
        from gateway.agents.registry import AGENT_REGISTRY

        return {
            agent.name: f"{self.base_url}/agents/{agent.slug}"
            for agent in AGENT_REGISTRY.values()
        }


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: GatewayConfig | None = None


def _apply_env_overrides(raw: dict) -> dict:
    provider = raw.setdefault("provider", {}) or {}
    raw["provider"] = provider
    if os.environ.get("OPENROUTER_API_KEY"):
        provider["api_key"] = os.environ["OPENROUTER_API_KEY"]

    x402 = raw.setdefault("x402", {}) or {}
    raw["x402"] = x402
    if "X402_ENABLED" in os.environ:
        x402["enabled"] = os.environ["X402_ENABLED"].lower() != "false"
    if os.environ.get("X402_PAY_TO_ADDRESS"):
        x402["pay_to"] = os.environ["X402_PAY_TO_ADDRESS"]
    return raw


def load_config(path: str | None = None) -> GatewayConfig:
    """Read config.yaml from disk, apply env overrides, validate, and cache."""
    global _config

    config_file = Path(path or os.environ.get("GATEWAY_CONFIG", DEFAULT_CONFIG_PATH))
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    _config = GatewayConfig(**_apply_env_overrides(raw))

    logger.info(
        f"Loaded config from {config_file}: "
        f"provider={'configured' if _config.provider.api_key else 'demo mode'}, "
        f"x402={'enabled' if _config.x402.enabled else 'disabled'}"
    )
    return _config


def get_config() -> GatewayConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded — call load_config() first")
    return _config
