"""Token metadata lookup — GET /api/v1/tokens/{address}/metadata.

Projects the metadata service's ``token_info`` into the gateway's shape and
keeps successful lookups in a TTL cache. Misses on the upstream side are
answered with ``{"data": null}`` and are not cached.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Request

from gateway.errors import UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tokens", tags=["tokens"])


def project_token_info(payload: object) -> dict:
    info = payload.get("token_info") if isinstance(payload, dict) else None
    info = info if isinstance(info, dict) else {}
    return {
        "imageUri": info.get("image_uri"),
        "description": info.get("description"),
        "website": info.get("website"),
        "twitter": info.get("twitter"),
        "isGraduated": bool(info.get("is_graduated", False)),
    }


@router.get("/{token_address}/metadata")
async def token_metadata(token_address: str, request: Request) -> dict:
    address = token_address.lower()
    cache = request.app.state.metadata_cache

    cached = cache.get(address)
    if cached is not None:
        return {"data": cached}

    settings = request.app.state.config.metadata
    url = f"{settings.api_url.rstrip('/')}/token/{address}"
    try:
        response = await request.app.state.http.get(url, timeout=settings.timeout)
    except httpx.HTTPError as e:
        raise UpstreamError(f"Metadata service unreachable: {e}") from e

    if not response.is_success:
        logger.info(f"No metadata for {address} (status={response.status_code})")
        return {"data": None}

    try:
        result = project_token_info(response.json())
    except ValueError as e:
        raise UpstreamError(
            f"Malformed metadata response: {e}", upstream_status=response.status_code
        ) from e

    cache.set(address, result)
    return {"data": result}
