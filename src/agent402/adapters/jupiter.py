"""
Jupiter Swap Adapter

Thin client for the Jupiter aggregator: fetches a quote, then asks Jupiter to
build the swap transaction for the user. Only the output contract matters to
the rest of the service: a base-64 serialized, unsigned transaction.

Responses are decoded through pydantic models so that a missing field is an
``ExternalApiError`` rather than a KeyError deep inside the router.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .svm.constants import amount_to_atomic, atomic_to_amount
from .svm.registry import TokenRegistry, default_registry
from ..engine.exceptions import ExternalApiError, InvalidAmountError

logger = logging.getLogger(__name__)

DEFAULT_JUPITER_API = "https://quote-api.jup.ag/v6"


class JupiterQuote(BaseModel):
    """Subset of the quote payload we rely on; the rest is passed through untouched."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    input_mint: str = Field(..., alias="inputMint")
    output_mint: str = Field(..., alias="outputMint")
    in_amount: str = Field(..., alias="inAmount")
    out_amount: str = Field(..., alias="outAmount")


class JupiterSwapResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    swap_transaction: str = Field(..., alias="swapTransaction", min_length=1)


class JupiterSwapAdapter:
    """
    Builds swap transactions through the Jupiter HTTP API.

    Args:
        base_url: Jupiter API root (quote and swap endpoints live under it).
        api_key: Optional key sent as ``x-api-key``.
        timeout: Per-request timeout in seconds.
        slippage_bps: Allowed slippage in basis points.
        registry: Token registry used to resolve symbols to mints and decimals.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_JUPITER_API,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        slippage_bps: int = 50,
        registry: Optional[TokenRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.slippage_bps = slippage_bps
        self.registry = registry or default_registry
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"x-api-key": self.api_key} if self.api_key else None
        return httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self._transport)

    async def get_quote(self, client: httpx.AsyncClient, input_mint: str, output_mint: str, amount: int) -> Dict[str, Any]:
        """Fetch a quote and return the raw payload after validating its shape."""
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(self.slippage_bps),
        }
        try:
            response = await client.get(f"{self.base_url}/quote", params=params)
            response.raise_for_status()
            payload = response.json()
            JupiterQuote.model_validate(payload)
        except httpx.HTTPStatusError as exc:
            raise ExternalApiError("quote", f"HTTP {exc.response.status_code}: {exc.response.text[:100]}") from exc
        except httpx.HTTPError as exc:
            raise ExternalApiError("quote", str(exc) or type(exc).__name__) from exc
        except (ValueError, ValidationError) as exc:
            raise ExternalApiError("quote", "unexpected quote response") from exc
        return payload

    async def build_swap(self, client: httpx.AsyncClient, quote: Dict[str, Any], user_pubkey: str) -> JupiterSwapResponse:
        body = {
            "quoteResponse": quote,
            "userPublicKey": user_pubkey,
            "wrapAndUnwrapSol": True,
        }
        try:
            response = await client.post(f"{self.base_url}/swap", json=body)
            response.raise_for_status()
            return JupiterSwapResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise ExternalApiError("swap", f"HTTP {exc.response.status_code}: {exc.response.text[:100]}") from exc
        except httpx.HTTPError as exc:
            raise ExternalApiError("swap", str(exc) or type(exc).__name__) from exc
        except (ValueError, ValidationError) as exc:
            raise ExternalApiError("swap", "missing swapTransaction in response") from exc

    async def get_swap_transaction(
        self,
        token_in: str,
        token_out: str,
        amount: Union[float, int, str, Decimal],
        user_pubkey: str,
    ) -> str:
        """
        Quote and build a swap of `amount` `token_in` into `token_out`.

        Returns:
            Base-64 serialized unsigned transaction built by Jupiter.

        Raises:
            UnsupportedAssetError: If either symbol is not in the registry.
            InvalidAmountError: If the amount is not positive.
            ExternalApiError: With stage "quote" or "swap" on any API failure.
        """
        input_asset = self.registry.require(token_in)
        output_asset = self.registry.require(token_out)
        input_mint = self.registry.swap_mint(token_in)
        output_mint = self.registry.swap_mint(token_out)

        atomic = amount_to_atomic(amount=amount, decimals=input_asset.decimals)
        if atomic <= 0:
            raise InvalidAmountError(f"Swap amount must be positive, got {amount!r}")

        async with self._client() as client:
            quote = await self.get_quote(client, input_mint, output_mint, atomic)
            swap = await self.build_swap(client, quote, user_pubkey)

        quoted = atomic_to_amount(value=int(quote["outAmount"]), decimals=output_asset.decimals)
        logger.info("Jupiter swap built: %s %s -> %s %s", amount, token_in, quoted, token_out)
        return swap.swap_transaction
