"""
Payment proof verification against a Solana cluster.

A payment proof is a transaction signature. It is accepted when the cluster
returns the transaction and the transaction did not fail. Amount, payer and
recipient of the proof are not inspected, and proofs are not consumed.

Dependencies:
    - solana-py: AsyncClient for JSON-RPC getTransaction
    - solders: Signature parsing
"""

import asyncio
import logging
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.signature import Signature

from ...engine.exceptions import InvalidPaymentProofError
from ...schemas.bases import ProofVerificationResult, VerificationStatus

logger = logging.getLogger(__name__)


def parse_signature(value: Optional[str]) -> Signature:
    """
    Parse a base-58 transaction signature.

    Raises:
        InvalidPaymentProofError: If the value is not a 64-byte base-58 signature.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidPaymentProofError("Empty payment signature")
    try:
        return Signature.from_string(value.strip())
    except (ValueError, TypeError) as e:
        raise InvalidPaymentProofError(f"Malformed payment signature: {value!r}") from e


class SolanaLedgerVerifier:
    """
    Resolves payment proofs through the cluster's ``getTransaction`` RPC.

    A fresh RPC client is opened per lookup, so the verifier holds no
    connection state and can be shared across concurrent requests.

    Example:
        verifier = SolanaLedgerVerifier("https://api.devnet.solana.com", timeout=5.0)
        result = await verifier.verify("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb...")
        if result.is_success():
            ...
    """

    def __init__(self, rpc_url: str, timeout: float = 10.0):
        self.rpc_url = rpc_url
        self.timeout = timeout

    async def _fetch_transaction(self, signature: Signature):
        async with AsyncClient(self.rpc_url, commitment=Confirmed, timeout=self.timeout) as client:
            return await client.get_transaction(
                signature,
                encoding="json",
                commitment=Confirmed,
                max_supported_transaction_version=0,
            )

    async def verify(self, signature: str) -> ProofVerificationResult:
        """
        Check that `signature` references a confirmed, successful transaction.

        Never raises for ledger-side problems; those come back as failed
        results so the gate can answer 402.

        Raises:
            InvalidPaymentProofError: If `signature` is not syntactically valid.
        """
        parsed = parse_signature(signature)

        def _fail(status: VerificationStatus, message: str, **details) -> ProofVerificationResult:
            return ProofVerificationResult(
                status=status,
                signature=str(parsed),
                message=message,
                error_details=details or None,
            )

        try:
            response = await asyncio.wait_for(self._fetch_transaction(parsed), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Ledger lookup timed out after %.1fs for %s", self.timeout, parsed)
            return _fail(VerificationStatus.TIMEOUT, "Ledger lookup timed out")
        except Exception as exc:
            logger.warning("Ledger lookup failed for %s: %s", parsed, exc)
            return _fail(VerificationStatus.BLOCKCHAIN_ERROR, "Ledger lookup failed", error=str(exc))

        confirmed = getattr(response, "value", None)
        if confirmed is None:
            return _fail(VerificationStatus.NOT_FOUND, "Transaction not found")

        meta = getattr(confirmed.transaction, "meta", None)
        if meta is not None and meta.err is not None:
            return _fail(VerificationStatus.TRANSACTION_FAILED, "Transaction failed on-chain", error=str(meta.err))

        return ProofVerificationResult(
            status=VerificationStatus.SUCCESS,
            signature=str(parsed),
            message="Payment transaction confirmed",
            slot=confirmed.slot,
        )
