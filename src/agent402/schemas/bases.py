"""
Base Schema Models for the agent402 service

This module defines the base classes shared by the HTTP schemas, the payment
gate and the blockchain adapters.

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - VerificationStatus: Outcome of checking a payment proof against the ledger
    - ProofVerificationResult: Payment proof verification result

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    Keys are sorted and whitespace is stripped so the same model always
    serializes to the same string (useful for logging and hashing).

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )


class VerificationStatus(str, Enum):
    """
    Enumeration of possible payment proof verification statuses.

    Attributes:
        SUCCESS: The referenced transaction is confirmed and did not fail
        BYPASS: Development bypass token accepted without a ledger lookup
        NOT_FOUND: The ledger does not know the referenced transaction
        TRANSACTION_FAILED: The transaction landed but its execution failed
        BLOCKCHAIN_ERROR: Error querying the ledger (unreachable, RPC error)
        TIMEOUT: The ledger query exceeded the configured timeout
    """
    SUCCESS = "success"
    BYPASS = "bypass"
    NOT_FOUND = "not_found"
    TRANSACTION_FAILED = "transaction_failed"
    BLOCKCHAIN_ERROR = "blockchain_error"
    TIMEOUT = "timeout"


class ProofVerificationResult(CanonicalModel):
    """
    Result of resolving a payment proof against the ledger.

    Attributes:
        status: Verification result status (VerificationStatus enum)
        signature: The proof that was checked
        message: Human-readable status message
        slot: Slot of the referenced transaction when found
        error_details: Detailed error information if verification failed
        verified_at: Timestamp when verification was performed
    """

    status: VerificationStatus = Field(..., description="Verification result status")
    signature: str = Field(..., description="Transaction signature used as payment proof")
    message: str = Field(..., description="Human-readable status message")
    slot: Optional[int] = Field(None, ge=0, description="Slot containing the transaction")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")
    verified_at: datetime = Field(default_factory=datetime.now, description="Verification timestamp")

    def is_success(self) -> bool:
        """
        Check whether the proof admits the request.

        Example:
            result = await verifier.verify(signature)
            if result.is_success():
                # forward the request
        """
        return self.status in (VerificationStatus.SUCCESS, VerificationStatus.BYPASS)

    def get_error_message(self) -> Optional[str]:
        if self.is_success():
            return None

        error_msg = f"Verification failed: {self.message}"
        if self.error_details:
            details_str = json.dumps(self.error_details, indent=2)
            error_msg += f"\nDetails: {details_str}"
        return error_msg
