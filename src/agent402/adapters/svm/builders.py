"""
Solana Transaction Builder

Builds unsigned transactions for client-side signing:
    - Native SOL transfers (system program)
    - SPL token transfers (idempotent associated account creation + transfer)
    - Mock self-transfers used to rehearse the sign/submit path on test networks

Every builder returns a ``solders.transaction.Transaction`` whose fee payer sits
at key index 0 and whose signature slots are zero-filled placeholders. The
recent blockhash is a placeholder as well unless one is supplied; the client
refreshes it before signing.

Dependencies:
    - solders: Pubkey, Instruction, Message and Transaction primitives
    - solana (spl.token): SPL token program instruction encoding
"""

from decimal import Decimal
from typing import Optional, Union

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.models import TransferParams as SplTransferParams
from spl.token.instructions import transfer as spl_transfer

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM,
    MOCK_TRANSFER_LAMPORTS,
    NATIVE_DECIMALS,
    SYSTEM_PROGRAM,
    TOKEN_PROGRAM,
    amount_to_atomic,
)
from ...engine.exceptions import InvalidAddressError, InvalidAmountError

# Instruction discriminator of the associated token program's CreateIdempotent
_CREATE_IDEMPOTENT: bytes = bytes([1])


def decode_address(value: Optional[str], field: str) -> Pubkey:
    """
    Decode a base-58 string into a 32-byte Solana address.

    Args:
        value: Base-58 encoded address.
        field: Name reported in the error when decoding fails.

    Raises:
        InvalidAddressError: If the value is empty, not base-58, or not 32 bytes.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidAddressError(field, value)
    try:
        return Pubkey.from_string(value.strip())
    except (ValueError, TypeError) as e:
        raise InvalidAddressError(field, value) from e


def get_associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """Derive the associated token account holding `owner`'s balance of `mint`."""
    address, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM,
    )
    return address


def create_idempotent_associated_token_account(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
    """
    Build the associated token program's CreateIdempotent instruction.

    A no-op on-chain when the account already exists, so it can always precede
    a transfer into that account.
    """
    associated_account = get_associated_token_address(owner, mint)
    accounts = [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=associated_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_PROGRAM, is_signer=False, is_writable=False),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM, _CREATE_IDEMPOTENT, accounts)


def _unsigned(instructions: list, fee_payer: Pubkey, recent_blockhash: Optional[Hash]) -> Transaction:
    message = Message.new_with_blockhash(instructions, fee_payer, recent_blockhash or Hash.default())
    return Transaction.new_unsigned(message)


def build_native_transfer(
    from_address: str,
    to_address: str,
    amount: Union[float, int, str, Decimal],
    recent_blockhash: Optional[Hash] = None,
) -> Transaction:
    """
    Build an unsigned native SOL transfer.

    An undecodable recipient falls back to the sender, producing a harmless
    self-transfer instead of an error. The sender must be valid.

    Args:
        from_address: Sender and fee payer (base-58).
        to_address: Recipient (base-58). Invalid values mean self-transfer.
        amount: Human-readable SOL amount, truncated to whole lamports.
        recent_blockhash: Optional blockhash; defaults to a zero placeholder.

    Returns:
        Transaction with a single system-program transfer instruction.

    Raises:
        InvalidAddressError: If `from_address` is not a valid address.
        InvalidAmountError: If `amount` is negative or not a number.
    """
    from_pubkey = decode_address(from_address, "from")
    try:
        to_pubkey = decode_address(to_address, "to")
    except InvalidAddressError:
        to_pubkey = from_pubkey

    lamports = amount_to_atomic(amount=amount, decimals=NATIVE_DECIMALS)
    instruction = transfer(
        TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=lamports)
    )
    return _unsigned([instruction], from_pubkey, recent_blockhash)


def build_token_transfer(
    owner: str,
    recipient: str,
    mint: str,
    atomic_amount: int,
    recent_blockhash: Optional[Hash] = None,
) -> Transaction:
    """
    Build an unsigned SPL token transfer between associated token accounts.

    Instruction order is fixed: the recipient's associated account is created
    (idempotently) first, because the transfer that follows writes into it.

    Args:
        owner: Token owner, fee payer and sole signer (base-58).
        recipient: Wallet receiving the tokens (base-58).
        mint: Token mint (base-58).
        atomic_amount: Amount in the token's smallest units.
        recent_blockhash: Optional blockhash; defaults to a zero placeholder.

    Raises:
        InvalidAddressError: With field "owner", "recipient" or "mint".
        InvalidAmountError: If `atomic_amount` is negative.
    """
    owner_pubkey = decode_address(owner, "owner")
    recipient_pubkey = decode_address(recipient, "recipient")
    mint_pubkey = decode_address(mint, "mint")

    if not isinstance(atomic_amount, int) or atomic_amount < 0:
        raise InvalidAmountError(f"Atomic amount must be a non-negative int, got {atomic_amount!r}")

    source = get_associated_token_address(owner_pubkey, mint_pubkey)
    destination = get_associated_token_address(recipient_pubkey, mint_pubkey)

    create_ix = create_idempotent_associated_token_account(owner_pubkey, recipient_pubkey, mint_pubkey)
    transfer_ix = spl_transfer(
        SplTransferParams(
            program_id=TOKEN_PROGRAM,
            source=source,
            dest=destination,
            owner=owner_pubkey,
            amount=atomic_amount,
        )
    )
    return _unsigned([create_ix, transfer_ix], owner_pubkey, recent_blockhash)


def build_mock_transfer(user: str, recent_blockhash: Optional[Hash] = None) -> Transaction:
    """
    Build a dust self-transfer (1000 lamports) for `user`.

    Used on test networks and for assets missing on the requested network, so
    callers can rehearse signing and submission without moving real value.
    """
    user_pubkey = decode_address(user, "from")
    instruction = transfer(
        TransferParams(from_pubkey=user_pubkey, to_pubkey=user_pubkey, lamports=MOCK_TRANSFER_LAMPORTS)
    )
    return _unsigned([instruction], user_pubkey, recent_blockhash)
