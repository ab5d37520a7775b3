"""
Wire encoding for Solana transactions.

Transactions travel as base-64 of their wire bytes (signature slots followed by
the message). Legacy and version-0 messages are both accepted on decode.
"""

import base64
import binascii
from typing import Union

from solders.message import Message
from solders.transaction import Transaction, VersionedTransaction

from ...engine.exceptions import SerializationError

AnyTransaction = Union[Transaction, VersionedTransaction]


def encode_transaction(tx: AnyTransaction) -> str:
    """Serialize a transaction to standard base-64."""
    return base64.b64encode(bytes(tx)).decode("ascii")


def decode_transaction_bytes(raw: bytes) -> AnyTransaction:
    """
    Parse wire bytes into a transaction.

    Returns a legacy ``Transaction`` when the message carries no version
    prefix, otherwise a ``VersionedTransaction``.

    Raises:
        SerializationError: If the bytes are not a Solana wire transaction.
    """
    try:
        versioned = VersionedTransaction.from_bytes(raw)
        if isinstance(versioned.message, Message):
            return Transaction.from_bytes(raw)
        return versioned
    except Exception as e:
        raise SerializationError(f"Malformed transaction bytes: {e}") from e


def decode_transaction(blob: str) -> AnyTransaction:
    """
    Decode a base-64 transaction blob.

    Raises:
        SerializationError: On invalid base-64 or invalid wire bytes.
    """
    if not isinstance(blob, str) or not blob:
        raise SerializationError("Empty transaction payload")
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SerializationError(f"Invalid base64 transaction: {e}") from e
    return decode_transaction_bytes(raw)
