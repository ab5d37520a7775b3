"""
Test suite for ledger-backed payment proof verification.
The RPC round trip is replaced by patching SolanaLedgerVerifier._fetch_transaction.
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from solders.rpc.responses import GetTransactionResp

from agent402.adapters.svm.verifies import SolanaLedgerVerifier, parse_signature
from agent402.engine.exceptions import InvalidPaymentProofError
from agent402.schemas.bases import VerificationStatus

from conftest import new_address, new_signature


def rpc_response(value):
    return SimpleNamespace(value=value)


def confirmed_tx(slot=42, err=None):
    return SimpleNamespace(slot=slot, transaction=SimpleNamespace(meta=SimpleNamespace(err=err)))


def get_transaction_resp(signature: str, slot: int, err=None) -> GetTransactionResp:
    """Decode a getTransaction JSON-RPC reply the way solana-py does."""
    payer, recipient = new_address(), new_address()
    status = {"Ok": None} if err is None else {"Err": err}
    reply = {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "slot": slot,
            "blockTime": 1700000000,
            "meta": {
                "err": err,
                "status": status,
                "fee": 5000,
                "preBalances": [1_000_000_000, 0, 1],
                "postBalances": [999_990_000, 5000, 1],
                "innerInstructions": [],
                "logMessages": [],
                "preTokenBalances": [],
                "postTokenBalances": [],
                "rewards": [],
            },
            "transaction": {
                "signatures": [signature],
                "message": {
                    "accountKeys": [payer, recipient, "11111111111111111111111111111111"],
                    "header": {
                        "numRequiredSignatures": 1,
                        "numReadonlySignedAccounts": 0,
                        "numReadonlyUnsignedAccounts": 1,
                    },
                    "recentBlockhash": "11111111111111111111111111111111",
                    "instructions": [
                        {"programIdIndex": 2, "accounts": [0, 1], "data": "3Bxs4NN8M2Yn4TLb"},
                    ],
                },
            },
        },
    }
    return GetTransactionResp.from_json(json.dumps(reply))


@pytest.fixture
def verifier() -> SolanaLedgerVerifier:
    return SolanaLedgerVerifier("https://rpc.test", timeout=0.5)


def test_parse_signature():
    signature = new_signature()
    assert str(parse_signature(signature)) == signature
    assert str(parse_signature(f"  {signature}\n")) == signature


@pytest.mark.parametrize("value", [None, "", "   ", "mock_devnet_signature", "abc", "1" * 200])
def test_parse_signature_rejects(value):
    with pytest.raises(InvalidPaymentProofError):
        parse_signature(value)


@pytest.mark.asyncio
async def test_confirmed_transaction_is_success(verifier):
    signature = new_signature()
    fetch = AsyncMock(return_value=rpc_response(confirmed_tx(slot=1234)))
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", fetch):
        result = await verifier.verify(signature)

    assert result.status == VerificationStatus.SUCCESS
    assert result.is_success()
    assert result.slot == 1234
    assert result.signature == signature
    assert str(fetch.await_args.args[0]) == signature


@pytest.mark.asyncio
async def test_missing_transaction(verifier):
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", AsyncMock(return_value=rpc_response(None))):
        result = await verifier.verify(new_signature())
    assert result.status == VerificationStatus.NOT_FOUND
    assert not result.is_success()


@pytest.mark.asyncio
async def test_failed_transaction(verifier):
    response = rpc_response(confirmed_tx(err="InstructionError(0, InsufficientFunds)"))
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", AsyncMock(return_value=response)):
        result = await verifier.verify(new_signature())
    assert result.status == VerificationStatus.TRANSACTION_FAILED
    assert "InsufficientFunds" in result.error_details["error"]


@pytest.mark.asyncio
async def test_rpc_error_is_not_raised(verifier):
    fetch = AsyncMock(side_effect=ConnectionError("rpc down"))
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", fetch):
        result = await verifier.verify(new_signature())
    assert result.status == VerificationStatus.BLOCKCHAIN_ERROR
    assert result.error_details == {"error": "rpc down"}
    assert "Ledger lookup failed" in result.get_error_message()


@pytest.mark.asyncio
async def test_rpc_timeout(verifier):
    async def slow(self, signature):
        await asyncio.sleep(5)

    verifier.timeout = 0.01
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", slow):
        result = await verifier.verify(new_signature())
    assert result.status == VerificationStatus.TIMEOUT


@pytest.mark.asyncio
async def test_malformed_signature_raises(verifier):
    fetch = AsyncMock()
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", fetch):
        with pytest.raises(InvalidPaymentProofError):
            await verifier.verify("not-a-signature")
    fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_decoded_rpc_reply_is_success(verifier):
    signature = new_signature()
    response = get_transaction_resp(signature, slot=99)
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", AsyncMock(return_value=response)):
        result = await verifier.verify(signature)

    assert result.status == VerificationStatus.SUCCESS
    assert result.slot == 99
    assert result.error_details is None


@pytest.mark.asyncio
async def test_decoded_rpc_reply_with_instruction_error(verifier):
    signature = new_signature()
    response = get_transaction_resp(signature, slot=99, err={"InstructionError": [0, "InvalidAccountData"]})
    with patch.object(SolanaLedgerVerifier, "_fetch_transaction", AsyncMock(return_value=response)):
        result = await verifier.verify(signature)

    assert result.status == VerificationStatus.TRANSACTION_FAILED
    assert result.slot is None
    assert result.error_details["error"]
