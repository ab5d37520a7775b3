"""
Test suite for the Gemini intent parser and credential rotation.
"""
import json
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from agent402.adapters.gemini import CredentialRotator, GeminiIntentParser, extract_json_text
from agent402.engine.exceptions import ConfigurationError, IntentParseError, UnknownActionError
from agent402.schemas.intents import MintAction, SwapAction, TransferAction


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


def make_parser(reply, keys=("key-a",), seen=None) -> GeminiIntentParser:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=gemini_reply(reply))

    return GeminiIntentParser(CredentialRotator(list(keys)), transport=httpx.MockTransport(handler))


# ==================== CredentialRotator ====================

def test_rotator_wraps_around():
    rotator = CredentialRotator(["a", "b", "c"])
    assert [rotator.next_key() for _ in range(7)] == ["a", "b", "c", "a", "b", "c", "a"]


def test_rotator_requires_keys():
    with pytest.raises(ConfigurationError):
        CredentialRotator([])


def test_rotator_is_balanced_across_threads():
    rotator = CredentialRotator(["a", "b", "c", "d"])
    with ThreadPoolExecutor(max_workers=8) as pool:
        keys = list(pool.map(lambda _: rotator.next_key(), range(400)))
    assert {key: keys.count(key) for key in "abcd"} == {"a": 100, "b": 100, "c": 100, "d": 100}


# ==================== Response handling ====================

@pytest.mark.parametrize(
    "text",
    [
        '{"action": "SWAP"}',
        '```json\n{"action": "SWAP"}\n```',
        '```\n{"action": "SWAP"}\n```',
        '  {"action": "SWAP"}  ',
    ],
)
def test_extract_json_text(text):
    assert json.loads(extract_json_text(text)) == {"action": "SWAP"}


@pytest.mark.asyncio
async def test_parse_transfer(recipient):
    seen = []
    parser = make_parser(
        json.dumps({"action": "TRANSFER", "amount": 0.5, "token_in": "sol", "token_out": "", "recipient": recipient}),
        keys=("key-a", "key-b"),
        seen=seen,
    )

    action = await parser.parse(f"Send 0.5 SOL to {recipient}")
    assert action == TransferAction(amount=0.5, token_in="SOL", recipient=recipient)

    await parser.parse("again")
    assert [r.url.params["key"] for r in seen] == ["key-a", "key-b"]
    assert seen[0].url.path.endswith("/gemini-2.0-flash:generateContent")
    prompt_text = json.loads(seen[0].content)["contents"][0]["parts"][0]["text"]
    assert f"User Input: Send 0.5 SOL to {recipient}" in prompt_text


@pytest.mark.asyncio
async def test_parse_fenced_swap():
    parser = make_parser('```json\n{"action":"SWAP","amount":1,"token_in":"SOL","token_out":"usdc"}\n```')
    action = await parser.parse("Swap 1 SOL for USDC")
    assert isinstance(action, SwapAction)
    assert action.token_out == "USDC"


@pytest.mark.asyncio
async def test_parse_mint_with_null_amount():
    parser = make_parser('{"action":"MINT_NFT","amount":null,"nft_name":"Sunset"}')
    assert await parser.parse("Mint a sunset NFT") == MintAction(name="Sunset")


@pytest.mark.asyncio
async def test_unknown_action_is_business_error():
    parser = make_parser('{"action":"STAKE","amount":5}')
    with pytest.raises(UnknownActionError):
        await parser.parse("Stake 5 SOL")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        "I'm sorry, I can't help with that.",
        "[1, 2, 3]",
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(429, json={"error": "quota"}),
        httpx.Response(200, text="<html>"),
    ],
)
async def test_parser_failures(reply):
    with pytest.raises(IntentParseError) as exc_info:
        await make_parser(reply).parse("anything")
    assert exc_info.value.status_code == 500
