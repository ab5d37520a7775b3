"""
Gemini Intent Parser

Turns a natural-language prompt into a validated action by asking the Gemini
``generateContent`` API for strict JSON. API keys are spread across requests
by a shared round-robin ``CredentialRotator``.
"""

import json
import logging
import threading
from typing import List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..engine.exceptions import ConfigurationError, IntentParseError
from ..schemas.intents import ActionTypes, RawIntent

logger = logging.getLogger(__name__)

GEMINI_API = "https://generativelanguage.googleapis.com/v1beta/models"

SYSTEM_PROMPT = """
You are a Solana Transaction Parser. Output strictly JSON. No markdown.
Schema:
{
  "action": "SWAP" | "TRANSFER" | "MINT_NFT",
  "amount": number (0 if not applicable),
  "token_in": "SOL" | "USDC" | "USDT" | "BONK" (default SOL),
  "token_out": "USDC" (target token),
  "recipient": "PubkeyString" (if transfer),
  "nft_name": "String" (if mint)
}
User: "Swap 1 SOL for USDC" -> {"action":"SWAP", "amount":1, "token_in":"SOL", "token_out":"USDC"}
User: "Send 0.5 SOL to 8Xy..." -> {"action":"TRANSFER", "amount":0.5, "token_in":"SOL", "token_out":"", "recipient":"8Xy..."}
"""


class CredentialRotator:
    """
    Round-robin over a fixed list of API keys.

    The counter is the only state shared between requests; the lock keeps
    fetch-and-increment atomic across worker threads.
    """

    def __init__(self, keys: List[str]):
        if not keys:
            raise ConfigurationError("At least one intent parser API key is required")
        self._keys = list(keys)
        self._index = 0
        self._lock = threading.Lock()

    def next_key(self) -> str:
        with self._lock:
            index = self._index
            self._index = (self._index + 1) % len(self._keys)
        return self._keys[index]


# ---------------------------------------------------------------------------
# Response shape: candidates[0].content.parts[0].text
# ---------------------------------------------------------------------------

class _Part(BaseModel):
    text: str


class _Content(BaseModel):
    parts: List[_Part] = Field(..., min_length=1)


class _Candidate(BaseModel):
    content: _Content


class GenerateContentResponse(BaseModel):
    candidates: List[_Candidate] = Field(..., min_length=1)

    @property
    def text(self) -> str:
        return self.candidates[0].content.parts[0].text


def extract_json_text(text: str) -> str:
    """Strip markdown code fences the model sometimes wraps around its JSON."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    return cleaned.strip()


class GeminiIntentParser:
    """
    Intent parser backed by Gemini.

    Args:
        rotator: Shared credential rotator.
        model: Gemini model name.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        rotator: CredentialRotator,
        model: str = "gemini-2.0-flash",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rotator = rotator
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def parse_raw(self, prompt: str) -> RawIntent:
        """
        Ask the model for the raw intent behind `prompt`.

        Raises:
            IntentParseError: On transport errors, unexpected response shape,
                or output that is not the expected JSON object.
        """
        url = f"{GEMINI_API}/{self.model}:generateContent"
        body = {
            "contents": [{
                "parts": [{"text": f"{SYSTEM_PROMPT}\nUser Input: {prompt}"}]
            }]
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": self.rotator.next_key()}, json=body)
                response.raise_for_status()
                data = GenerateContentResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise IntentParseError(f"Intent parser returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise IntentParseError(f"Intent parser unreachable: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise IntentParseError("Intent parser returned no candidate") from exc

        try:
            return RawIntent.model_validate(json.loads(extract_json_text(data.text)))
        except (ValueError, ValidationError) as exc:
            raise IntentParseError(f"Intent parser returned invalid JSON: {data.text[:100]!r}") from exc

    async def parse(self, prompt: str) -> ActionTypes:
        """Parse and validate `prompt` into a typed action."""
        raw = await self.parse_raw(prompt)
        logger.info("Intent: %s", raw.model_dump())
        return raw.to_action()
