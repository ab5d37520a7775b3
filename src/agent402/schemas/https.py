"""
HTTP Request/Response Schema Models

Pydantic models for the single agent endpoint and the 402 payment-required
response. The flow is:

1. Client calls ``POST /agent/execute`` without ``X-Payment-Sig`` and receives
   a 402 naming the merchant address and price
2. Client pays on-chain and retries with the payment transaction signature in
   ``X-Payment-Sig``
3. Server answers with an unsigned transaction (or NFT metadata) for the
   client to sign
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


PAYMENT_HEADER = "X-Payment-Sig"


class ActionType(str, Enum):
    SWAP = "SWAP"
    TRANSFER = "TRANSFER"
    MINT_NFT = "MINT_NFT"
    ERROR = "ERROR"


# ============================================================================
# Client Request
# ============================================================================

class AgentRequest(BaseModel):
    """Natural-language instruction from the client.

    Attributes:
        prompt: The instruction, e.g. "Send 0.5 SOL to 8Xy...".
        user_pubkey: Wallet that will sign the returned transaction.
        network: Target cluster.
    """
    prompt: str = Field(..., min_length=1, description="Natural-language instruction")
    user_pubkey: str = Field(..., min_length=1, description="Signing wallet address (base-58)")
    network: Literal["devnet", "mainnet"] = Field(default="devnet", description="Target cluster")


# ============================================================================
# Server Responses
# ============================================================================

class AgentResponse(BaseModel):
    """Result of executing an instruction.

    Attributes:
        action_type: Action performed, or ERROR.
        tx_base64: Base-64 unsigned transaction for swaps and transfers.
        meta: Client-side execution metadata (NFT mints).
        message: Human-readable summary or error message.
    """
    action_type: ActionType = Field(..., description="Executed action")
    tx_base64: Optional[str] = Field(None, description="Base-64 unsigned transaction")
    meta: Optional[Dict[str, Any]] = Field(None, description="Client-side execution metadata")
    message: str = Field(..., description="Human-readable message")

    @classmethod
    def error(cls, message: str) -> "AgentResponse":
        return cls(action_type=ActionType.ERROR, message=message)


class Server402ResponsePayload(BaseModel):
    """Payload of a 402 Payment Required response.

    Attributes:
        error: Always "Payment Required" unless a more specific reason applies.
        address: Merchant wallet to pay.
        amount: Price in lamports.
    """
    error: str = Field(default="Payment Required", description="Rejection reason")
    address: str = Field(..., description="Merchant wallet address")
    amount: int = Field(..., ge=0, description="Required payment in lamports")
