"""Payment gate — the x402 pay-per-call check in front of monetized routes.

Per request the gate walks a small state machine:

    NO_PROOF      -> CHALLENGE_ISSUED   (402 + requirements, handler never runs)
    PROOF_PRESENT -> GRANTED            (header decoded, control passes through)
    PROOF_PRESENT -> REJECTED           (header undecodable, 400)

The gate is route-agnostic: callers build the requirement set for their route
and hand over the raw X-PAYMENT header. Wire models and header codecs come
from the ``x402`` package (protocol version 1).

A decoded proof is taken as authorization without asking a facilitator to
verify the signature.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from fastapi import Request
from x402.http import X_PAYMENT_HEADER, safe_base64_decode
from x402.schemas import PaymentRequiredV1, PaymentRequirementsV1

from gateway.errors import PaymentDecodeError, PaymentRequiredError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from gateway.config import X402Settings

logger = logging.getLogger(__name__)

ASSET_DECIMALS = 6

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


class GateState(str, Enum):
    NO_PROOF = "no_proof"
    CHALLENGE_ISSUED = "challenge_issued"
    PROOF_PRESENT = "proof_present"
    GRANTED = "granted"
    REJECTED = "rejected"


class Decision(str, Enum):
    GRANT = "grant"
    CHALLENGE = "challenge"
    REJECT = "reject"


@dataclass(frozen=True)
class GateOutcome:
    decision: Decision
    state: GateState
    challenge: PaymentRequiredV1 | None = None
    proof: dict | None = None
    error: str | None = None
    error_details: dict | None = None


def clamp_price(requested: str | None, default: str, floor: str) -> str:
    """Return the effective price: the requested one, never below ``floor``."""
    price = requested or default
    if Decimal(price) < Decimal(floor):
        return floor
    return price


def to_atomic_units(price: str) -> str:
    """Decimal price -> integer amount in the asset's smallest unit."""
    return str(int(Decimal(price) * 10**ASSET_DECIMALS))


def decode_proof(header: str) -> dict:
    """Decode an X-PAYMENT header into its payment payload.

    The header is base64 (standard or URL-safe alphabet, padding optional) of
    a UTF-8 JSON object. Raises PaymentDecodeError otherwise.
    """
    value = header.strip().translate(_URLSAFE_TO_STANDARD).rstrip("=")
    value += "=" * (-len(value) % 4)
    try:
        payload = json.loads(safe_base64_decode(value))
    except ValueError as e:
        raise PaymentDecodeError("Invalid X-PAYMENT header", details={"reason": str(e)}) from e

    if not isinstance(payload, dict):
        raise PaymentDecodeError(
            "Invalid X-PAYMENT header",
            details={"reason": f"expected a JSON object, got {type(payload).__name__}"},
        )
    return payload


class PaymentGate:
    """Builds requirement sets and decides GRANT / CHALLENGE / REJECT."""

    def __init__(self, settings: X402Settings) -> None:
        self._settings = settings

    @property
    def settings(self) -> X402Settings:
        return self._settings

    def requirements(
        self,
        resource: str,
        description: str,
        mime_type: str,
        price: str | None = None,
    ) -> list[PaymentRequirementsV1]:
        """Fresh requirement set for one request. ``price`` is clamped to the floor."""
        s = self._settings
        return [
            PaymentRequirementsV1(
                scheme="exact",
                network=s.network,
                max_amount_required=to_atomic_units(clamp_price(price, s.price, s.min_price)),
                resource=resource,
                description=description,
                mime_type=mime_type,
                pay_to=s.pay_to,
                max_timeout_seconds=s.max_timeout_seconds,
                asset=s.asset,
                extra={"name": s.asset_name, "version": s.asset_version},
            )
        ]

    def challenge(self, requirements: Sequence[PaymentRequirementsV1]) -> PaymentRequiredV1:
        return PaymentRequiredV1(
            error=f"{X_PAYMENT_HEADER} header is required", accepts=list(requirements)
        )

    def evaluate(self, requirements: Sequence[PaymentRequirementsV1], header: str | None) -> GateOutcome:
        """Run the state machine for one request. Pure: no I/O, no raising."""
        state = GateState.PROOF_PRESENT if header else GateState.NO_PROOF

        if state is GateState.NO_PROOF:
            return GateOutcome(
                decision=Decision.CHALLENGE,
                state=GateState.CHALLENGE_ISSUED,
                challenge=self.challenge(requirements),
            )

        try:
            proof = decode_proof(header)
        except PaymentDecodeError as e:
            return GateOutcome(
                decision=Decision.REJECT,
                state=GateState.REJECTED,
                error=e.message,
                error_details=e.details,
            )

        return GateOutcome(decision=Decision.GRANT, state=GateState.GRANTED, proof=proof)

    def enforce(self, requirements: Sequence[PaymentRequirementsV1], header: str | None) -> dict:
        """Evaluate and act: raise on CHALLENGE / REJECT, return the proof on GRANT."""
        outcome = self.evaluate(requirements, header)
        resource = requirements[0].resource if requirements else "?"

        if outcome.decision is Decision.CHALLENGE:
            logger.info(f"Payment required for {resource}")
            raise PaymentRequiredError(outcome.challenge)
        if outcome.decision is Decision.REJECT:
            logger.warning(f"Rejected payment header for {resource}: {outcome.error}")
            raise PaymentDecodeError(outcome.error or "Invalid X-PAYMENT header", outcome.error_details)

        logger.debug(f"Payment granted for {resource}")
        return outcome.proof


def payment_required(description: str, mime_type: str) -> Callable:
    """FastAPI dependency that gates a route when x402 is enabled.

    Usage::

        @router.post("/audit", dependencies=[Depends(payment_required("...", "application/json"))])
    """

    async def dependency(request: Request) -> None:
        gate: PaymentGate = request.app.state.gate
        if not gate.settings.enabled:
            return
        requirements = gate.requirements(
            resource=str(request.url), description=description, mime_type=mime_type
        )
        gate.enforce(requirements, request.headers.get(X_PAYMENT_HEADER))

    return dependency
