"""Error taxonomy and the JSON error handlers registered on the app.

Every failure that ends a request renders as ``{error, code, details?}``.
A missing payment proof is not a failure but a protocol step: it renders the
challenge body with status 402 and the base64 ``PAYMENT-REQUIRED`` header.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from x402.http import PAYMENT_REQUIRED_HEADER, encode_payment_required_header
from x402.schemas import PaymentRequiredV1

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for errors that terminate a request with a JSON body."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(GatewayError):
    status_code = 404
    code = "NOT_FOUND"


class UpstreamError(GatewayError):
    """The inference provider or another upstream returned garbage or failed."""

    status_code = 502
    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        details = {"status": upstream_status} if upstream_status is not None else None
        super().__init__(message, details)
        self.upstream_status = upstream_status


class PaymentDecodeError(GatewayError):
    """The X-PAYMENT header could not be decoded into a payment payload."""

    status_code = 400
    code = "INVALID_PAYMENT"


class PaymentRequiredError(GatewayError):
    """No payment proof was presented. Carries the challenge to send back."""

    status_code = 402
    code = "PAYMENT_REQUIRED"

    def __init__(self, challenge: PaymentRequiredV1) -> None:
        super().__init__(challenge.error or "Payment required")
        self.challenge = challenge


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if isinstance(exc, PaymentRequiredError):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.challenge.model_dump(mode="json", by_alias=True, exclude_none=True),
            headers={PAYMENT_REQUIRED_HEADER: encode_payment_required_header(exc.challenge)},
        )
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        body = NotFoundError(f"No route for {request.method} {request.url.path}").to_body()
    else:
        body = {"error": str(exc.detail), "code": "HTTP_ERROR"}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation error",
            "code": "INVALID_PARAMS",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
