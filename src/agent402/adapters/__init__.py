from .gemini import CredentialRotator, GeminiIntentParser
from .jupiter import JupiterSwapAdapter
from .svm import (
    TokenRegistry,
    default_registry,
    build_native_transfer,
    build_token_transfer,
    build_mock_transfer,
    append_fee,
    encode_transaction,
    decode_transaction,
    SolanaLedgerVerifier,
)

__all__ = [
    "CredentialRotator",
    "GeminiIntentParser",
    "JupiterSwapAdapter",
    "TokenRegistry",
    "default_registry",
    "build_native_transfer",
    "build_token_transfer",
    "build_mock_transfer",
    "append_fee",
    "encode_transaction",
    "decode_transaction",
    "SolanaLedgerVerifier",
]
