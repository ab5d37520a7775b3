from .registry import TokenRegistry, default_registry
from .builders import (
    decode_address,
    get_associated_token_address,
    build_native_transfer,
    build_token_transfer,
    build_mock_transfer,
)
from .bundler import append_fee, append_fee_instruction
from .codec import encode_transaction, decode_transaction
from .verifies import SolanaLedgerVerifier, parse_signature

__all__ = [
    "TokenRegistry",
    "default_registry",
    "decode_address",
    "get_associated_token_address",
    "build_native_transfer",
    "build_token_transfer",
    "build_mock_transfer",
    "append_fee",
    "append_fee_instruction",
    "encode_transaction",
    "decode_transaction",
    "SolanaLedgerVerifier",
    "parse_signature",
]
