"""
Test suite for the Jupiter swap adapter, driven by httpx.MockTransport.
"""
import json

import httpx
import pytest

from agent402.adapters.jupiter import JupiterSwapAdapter
from agent402.adapters.svm.constants import WRAPPED_SOL_MINT
from agent402.engine.exceptions import ExternalApiError, InvalidAmountError, UnsupportedAssetError


USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SWAP_TX = "AQAAAA=="


def make_quote(request: httpx.Request) -> dict:
    return {
        "inputMint": request.url.params["inputMint"],
        "outputMint": request.url.params["outputMint"],
        "inAmount": request.url.params["amount"],
        "outAmount": "123456",
        "routePlan": [],
    }


def make_adapter(handler, **kwargs) -> JupiterSwapAdapter:
    return JupiterSwapAdapter(
        base_url="https://jupiter.test/v6/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_quote_then_swap(owner):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v6/quote":
            return httpx.Response(200, json=make_quote(request))
        if request.url.path == "/v6/swap":
            return httpx.Response(200, json={"swapTransaction": SWAP_TX, "lastValidBlockHeight": 10})
        return httpx.Response(404)

    adapter = make_adapter(handler, api_key="secret")
    blob = await adapter.get_swap_transaction("sol", "usdc", 1.5, owner)

    assert blob == SWAP_TX
    quote_request, swap_request = seen
    assert quote_request.url.params["inputMint"] == WRAPPED_SOL_MINT
    assert quote_request.url.params["outputMint"] == USDC_MINT
    assert quote_request.url.params["amount"] == "1500000000"
    assert quote_request.url.params["slippageBps"] == "50"
    assert quote_request.headers["x-api-key"] == "secret"

    body = json.loads(swap_request.content)
    assert body["userPublicKey"] == owner
    assert body["quoteResponse"]["outAmount"] == "123456"
    assert body["quoteResponse"]["routePlan"] == []


@pytest.mark.asyncio
async def test_swap_log_reports_quoted_output(owner, caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/quote"):
            return httpx.Response(200, json=make_quote(request))
        return httpx.Response(200, json={"swapTransaction": SWAP_TX})

    with caplog.at_level("INFO", logger="agent402.adapters.jupiter"):
        await make_adapter(handler).get_swap_transaction("SOL", "USDC", 1, owner)

    assert "1 SOL -> 0.123456 USDC" in caplog.text


@pytest.mark.asyncio
async def test_amount_uses_input_token_decimals(owner):
    amounts = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/quote"):
            amounts.append(request.url.params["amount"])
            return httpx.Response(200, json=make_quote(request))
        return httpx.Response(200, json={"swapTransaction": SWAP_TX})

    adapter = make_adapter(handler)
    await adapter.get_swap_transaction("USDC", "SOL", 2.5, owner)
    await adapter.get_swap_transaction("BONK", "SOL", 1, owner)
    assert amounts == ["2500000", "100000"]


@pytest.mark.asyncio
async def test_missing_swap_transaction(owner):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/quote"):
            return httpx.Response(200, json=make_quote(request))
        return httpx.Response(200, json={"error": "no route"})

    with pytest.raises(ExternalApiError) as exc_info:
        await make_adapter(handler).get_swap_transaction("SOL", "USDC", 1, owner)
    assert exc_info.value.stage == "swap"
    assert str(exc_info.value).startswith("Swap Failed")


@pytest.mark.asyncio
async def test_quote_http_error(owner):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    with pytest.raises(ExternalApiError) as exc_info:
        await make_adapter(handler).get_swap_transaction("SOL", "USDC", 1, owner)
    assert exc_info.value.stage == "quote"
    assert "500" in str(exc_info.value)


@pytest.mark.asyncio
async def test_quote_transport_error(owner):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalApiError) as exc_info:
        await make_adapter(handler).get_swap_transaction("SOL", "USDC", 1, owner)
    assert exc_info.value.stage == "quote"


@pytest.mark.asyncio
async def test_quote_unexpected_payload(owner):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"routePlan": []})

    with pytest.raises(ExternalApiError) as exc_info:
        await make_adapter(handler).get_swap_transaction("SOL", "USDC", 1, owner)
    assert exc_info.value.stage == "quote"


@pytest.mark.asyncio
async def test_rejects_before_calling_api(owner):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("API must not be called")

    adapter = make_adapter(handler)
    with pytest.raises(UnsupportedAssetError):
        await adapter.get_swap_transaction("DOGE", "USDC", 1, owner)
    with pytest.raises(UnsupportedAssetError):
        await adapter.get_swap_transaction("SOL", "DOGE", 1, owner)
    with pytest.raises(InvalidAmountError):
        await adapter.get_swap_transaction("SOL", "USDC", 0, owner)
