"""
Test suite for the Solana transaction builder and wire codec.
Tests: 1) Native transfers and the self-transfer fallback 2) SPL transfer layout
3) Address errors name the offending field 4) Base-64 round trip
"""
import base64
import struct

import pytest
from solders.hash import Hash
from solders.transaction import Transaction

from agent402.adapters.svm.builders import (
    build_mock_transfer,
    build_native_transfer,
    build_token_transfer,
    decode_address,
    get_associated_token_address,
)
from agent402.adapters.svm.codec import decode_transaction, encode_transaction
from agent402.adapters.svm.constants import (
    ASSOCIATED_TOKEN_PROGRAM,
    MOCK_TRANSFER_LAMPORTS,
    SYSTEM_PROGRAM,
    TOKEN_PROGRAM,
)
from agent402.engine.exceptions import InvalidAddressError, InvalidAmountError, SerializationError

from conftest import new_address


USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _system_transfer(tx: Transaction):
    """Return (from, to, lamports) of the single system transfer in `tx`."""
    message = tx.message
    assert len(message.instructions) == 1
    ix = message.instructions[0]
    keys = message.account_keys
    assert keys[ix.program_id_index] == SYSTEM_PROGRAM
    data = bytes(ix.data)
    # u32 instruction tag (2 = Transfer) followed by u64 lamports
    tag, lamports = struct.unpack("<IQ", data)
    assert tag == 2
    accounts = list(bytes(ix.accounts))
    return keys[accounts[0]], keys[accounts[1]], lamports


# ==================== Native transfers ====================

def test_native_transfer(owner, recipient):
    tx = build_native_transfer(owner, recipient, 0.5)

    source, dest, lamports = _system_transfer(tx)
    assert str(source) == owner
    assert str(dest) == recipient
    assert lamports == 500_000_000

    assert str(tx.message.account_keys[0]) == owner
    assert tx.message.header.num_required_signatures == 1
    assert tx.message.recent_blockhash == Hash.default()


@pytest.mark.parametrize("bad_recipient", ["", "not-an-address", "0OIl", None])
def test_native_transfer_bad_recipient_is_self_transfer(owner, bad_recipient):
    tx = build_native_transfer(owner, bad_recipient, 0.1)

    source, dest, lamports = _system_transfer(tx)
    assert source == dest
    assert str(dest) == owner
    assert lamports == 100_000_000


@pytest.mark.parametrize("bad_sender", ["", "garbage", "1" * 60])
def test_native_transfer_bad_sender(recipient, bad_sender):
    with pytest.raises(InvalidAddressError) as exc_info:
        build_native_transfer(bad_sender, recipient, 1)
    assert exc_info.value.field == "from"


def test_native_transfer_truncates_to_lamports(owner, recipient):
    _, _, lamports = _system_transfer(build_native_transfer(owner, recipient, "0.0000000019"))
    assert lamports == 1


def test_native_transfer_rejects_negative_amount(owner, recipient):
    with pytest.raises(InvalidAmountError):
        build_native_transfer(owner, recipient, -0.5)


def test_native_transfer_uses_supplied_blockhash(owner, recipient):
    blockhash = Hash.new_unique()
    tx = build_native_transfer(owner, recipient, 1, recent_blockhash=blockhash)
    assert tx.message.recent_blockhash == blockhash


def test_mock_transfer(owner):
    source, dest, lamports = _system_transfer(build_mock_transfer(owner))
    assert str(source) == owner
    assert str(dest) == owner
    assert lamports == MOCK_TRANSFER_LAMPORTS


# ==================== SPL token transfers ====================

def test_token_transfer_layout(owner, recipient):
    tx = build_token_transfer(owner, recipient, USDC_MINT, 1_500_000)
    message = tx.message
    keys = message.account_keys

    assert str(keys[0]) == owner
    assert message.header.num_required_signatures == 1
    assert len(message.instructions) == 2

    create_ix, transfer_ix = message.instructions
    assert keys[create_ix.program_id_index] == ASSOCIATED_TOKEN_PROGRAM
    assert keys[transfer_ix.program_id_index] == TOKEN_PROGRAM

    owner_key = decode_address(owner, "owner")
    recipient_key = decode_address(recipient, "recipient")
    mint_key = decode_address(USDC_MINT, "mint")
    source_ata = get_associated_token_address(owner_key, mint_key)
    dest_ata = get_associated_token_address(recipient_key, mint_key)

    create_accounts = [keys[i] for i in bytes(create_ix.accounts)]
    assert create_accounts[:4] == [owner_key, dest_ata, recipient_key, mint_key]
    assert bytes(create_ix.data) == bytes([1])

    transfer_accounts = [keys[i] for i in bytes(transfer_ix.accounts)]
    assert transfer_accounts == [source_ata, dest_ata, owner_key]
    data = bytes(transfer_ix.data)
    assert data[0] == 3  # Transfer
    assert struct.unpack("<Q", data[1:9])[0] == 1_500_000


def test_token_transfer_uses_spl_token_models():
    from spl.token import models

    from agent402.adapters.svm import builders

    assert builders.SplTransferParams is models.TransferParams


@pytest.mark.parametrize("field", ["owner", "recipient", "mint"])
def test_token_transfer_reports_bad_field(owner, recipient, field):
    args = {"owner": owner, "recipient": recipient, "mint": USDC_MINT}
    args[field] = "definitely-not-base58!"

    with pytest.raises(InvalidAddressError) as exc_info:
        build_token_transfer(args["owner"], args["recipient"], args["mint"], 10)
    assert exc_info.value.field == field
    assert field in str(exc_info.value)


def test_token_transfer_rejects_negative_amount(owner, recipient):
    with pytest.raises(InvalidAmountError):
        build_token_transfer(owner, recipient, USDC_MINT, -1)


def test_associated_token_address_is_deterministic():
    owner = decode_address(new_address(), "owner")
    mint = decode_address(USDC_MINT, "mint")
    assert get_associated_token_address(owner, mint) == get_associated_token_address(owner, mint)
    assert get_associated_token_address(owner, mint) != owner


# ==================== Codec ====================

def test_encode_decode_round_trip(owner, recipient):
    for tx in (
        build_native_transfer(owner, recipient, 2),
        build_token_transfer(owner, recipient, USDC_MINT, 42),
    ):
        blob = encode_transaction(tx)
        assert base64.b64decode(blob) == bytes(tx)
        assert decode_transaction(blob) == tx


def test_unsigned_transaction_has_placeholder_signatures(owner, recipient):
    tx = build_native_transfer(owner, recipient, 1)
    assert len(tx.signatures) == 1
    assert bytes(tx.signatures[0]) == bytes(64)


@pytest.mark.parametrize("blob", ["", "%%%not base64%%%", base64.b64encode(b"\x01\x02\x03").decode()])
def test_decode_rejects_malformed(blob):
    with pytest.raises(SerializationError):
        decode_transaction(blob)
