from .bases import CanonicalModel, VerificationStatus, ProofVerificationResult
from .https import PAYMENT_HEADER, ActionType, AgentRequest, AgentResponse, Server402ResponsePayload
from .intents import RawIntent, SwapAction, TransferAction, MintAction, ActionTypes

__all__ = [
    "CanonicalModel",
    "VerificationStatus",
    "ProofVerificationResult",
    "PAYMENT_HEADER",
    "ActionType",
    "AgentRequest",
    "AgentResponse",
    "Server402ResponsePayload",
    "RawIntent",
    "SwapAction",
    "TransferAction",
    "MintAction",
    "ActionTypes",
]
