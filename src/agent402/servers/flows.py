"""
Built-in event handlers for the payment gate.

Implements the admission flow: proof header check -> ledger verification ->
admit, or a 402 naming the merchant address and price.
"""

import hmac
import logging

from ..engine.events import (
    EventBus,
    Dependencies,
    PaymentCheckEvent,
    ProofVerifyEvent,
    VerifyFailedEvent,
    AdmitEvent,
    Http402PaymentEvent,
    ProofRejectedEvent,
)
from ..engine.exceptions import InvalidPaymentProofError, PaymentRequiredError
from ..adapters.svm.verifies import parse_signature
from ..schemas.bases import ProofVerificationResult, VerificationStatus
from ..schemas.https import Server402ResponsePayload

logger = logging.getLogger(__name__)


def payment_required_event(deps: Dependencies, reason: str) -> Http402PaymentEvent:
    required = PaymentRequiredError(deps.merchant_wallet, deps.price_lamports)
    return Http402PaymentEvent(
        reason=reason,
        payload=Server402ResponsePayload(
            error=required.message,
            address=required.address,
            amount=required.amount,
        ),
        status_code=required.status_code,
    )


# ==================== Event Handlers ====================

async def handle_payment_check(
    event: PaymentCheckEvent,
    deps: Dependencies
) -> AdmitEvent | Http402PaymentEvent | ProofRejectedEvent | ProofVerifyEvent:
    """Inspect the proof header and decide whether a ledger lookup is needed."""
    if event.payment_sig is None or not event.payment_sig.strip():
        return payment_required_event(deps, "Missing payment signature")

    proof = event.payment_sig.strip()

    if deps.bypass_token and hmac.compare_digest(proof.encode(), deps.bypass_token.encode()):
        return AdmitEvent(
            verification_result=ProofVerificationResult(
                status=VerificationStatus.BYPASS,
                signature=proof,
                message="Development bypass token accepted",
            )
        )

    try:
        signature = parse_signature(proof)
    except InvalidPaymentProofError as e:
        return ProofRejectedEvent(error_message=str(e))

    return ProofVerifyEvent(signature=str(signature))


async def handle_proof_verify(
    event: ProofVerifyEvent,
    deps: Dependencies
) -> AdmitEvent | VerifyFailedEvent:
    """Resolve the proof on the ledger."""
    if deps.verifier is None:
        return VerifyFailedEvent(
            verification_result=ProofVerificationResult(
                status=VerificationStatus.BLOCKCHAIN_ERROR,
                signature=event.signature,
                message="No ledger verifier configured",
            )
        )

    result = await deps.verifier.verify(event.signature)
    if result.is_success():
        return AdmitEvent(verification_result=result)
    return VerifyFailedEvent(verification_result=result)


async def handle_verify_failed(
    event: VerifyFailedEvent,
    deps: Dependencies
) -> Http402PaymentEvent:
    logger.info("Payment proof not accepted: %s", event.verification_result.to_canonical_json())
    return payment_required_event(deps, event.verification_result.message)


# ==================== Event Bus Setup ====================

def setup_event_bus() -> EventBus:
    """Initialize event bus with built-in gate handlers."""
    event_bus = EventBus()

    event_bus.subscribe(PaymentCheckEvent, handle_payment_check)
    event_bus.subscribe(ProofVerifyEvent, handle_proof_verify)
    event_bus.subscribe(VerifyFailedEvent, handle_verify_failed)

    return event_bus
