"""Agent gateway — process entry point.

Loads config.yaml (or $GATEWAY_CONFIG) at import time and exposes ``app`` for
uvicorn. ``python -m gateway.main`` serves on the configured host and port.
"""

from __future__ import annotations

import logging

import uvicorn

from gateway.app import create_app
from gateway.config import load_config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

config = load_config()
app = create_app(config)


if __name__ == "__main__":
    logger.info(f"Serving agent gateway on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port)
