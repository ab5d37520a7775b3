"""
Solana Network and Asset Configuration

Provides program identifiers, per-network RPC configuration, the static token
table backing the token registry, and the canonical human-amount to
atomic-amount conversion used by every transaction builder.
"""

import os
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Dict, Final, Optional

from pydantic import BaseModel, Field
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
import dotenv

from ...engine.exceptions import ConfigurationError, InvalidAmountError

dotenv.load_dotenv()


LAMPORTS_PER_SOL: Final[int] = 1_000_000_000
NATIVE_DECIMALS: Final[int] = 9
NATIVE_SYMBOL: Final[str] = "SOL"
MAX_U64: Final[int] = 2**64 - 1

#: Self-transfer used by the mock path (0.000001 SOL).
MOCK_TRANSFER_LAMPORTS: Final[int] = 1_000

# Core programs
SYSTEM_PROGRAM: Final[Pubkey] = SYSTEM_PROGRAM_ID
TOKEN_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
)
ASSOCIATED_TOKEN_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)

#: Wrapped SOL mint, used when routing native SOL through the swap provider.
WRAPPED_SOL_MINT: Final[str] = "So11111111111111111111111111111111111111112"


class SvmAssetConfig(BaseModel):
    """Token asset configuration."""
    symbol: str
    mint: Optional[str] = Field(None, description="Mint address, None for the native asset")
    name: str = Field(..., description="Token name")
    decimals: int = Field(..., ge=0, description="Token decimals")
    networks: tuple = Field(default=("mainnet",), description="Networks where the mint exists")


class SvmNetworkConfig(BaseModel):
    """Solana cluster configuration."""
    network: str
    name: str
    rpc_url: str = Field(..., description="JSON-RPC endpoint URL")
    is_test_network: bool = Field(default=False)


# Raw asset data. Adding a token is an edit to this table only.
_SVM_ASSETS_DATA: Dict[str, Dict] = {
    "SOL": {
        "mint": None,
        "name": "Solana",
        "decimals": 9,
        "networks": ("mainnet", "devnet"),
    },
    "USDC": {
        "mint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        "name": "USD Coin",
        "decimals": 6,
        "networks": ("mainnet",),
    },
    "USDT": {
        "mint": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
        "name": "Tether USD",
        "decimals": 6,
        "networks": ("mainnet",),
    },
    "BONK": {
        "mint": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
        "name": "Bonk",
        "decimals": 5,
        "networks": ("mainnet",),
    },
}


# RPC endpoints may be overridden per network through the environment.
_SVM_NETWORKS_DATA: Dict[str, Dict] = {
    "devnet": {
        "name": "Solana Devnet",
        "rpc_env": "SOLANA_DEVNET_RPC_URL",
        "rpc_url": "https://api.devnet.solana.com",
        "is_test_network": True,
    },
    "mainnet": {
        "name": "Solana Mainnet Beta",
        "rpc_env": "SOLANA_MAINNET_RPC_URL",
        "rpc_url": "https://api.mainnet-beta.solana.com",
        "is_test_network": False,
    },
}


SVM_ASSETS: Dict[str, SvmAssetConfig] = {
    symbol: SvmAssetConfig(symbol=symbol, **data) for symbol, data in _SVM_ASSETS_DATA.items()
}


def get_network_config(network: str) -> SvmNetworkConfig:
    """
    Look up the configuration of a Solana cluster.

    Args:
        network: Cluster name ("devnet" or "mainnet"), case-insensitive.

    Returns:
        SvmNetworkConfig with the RPC URL resolved from the environment when set.

    Raises:
        ConfigurationError: If the network is unknown.
    """
    key = (network or "").strip().lower()
    data = _SVM_NETWORKS_DATA.get(key)
    if data is None:
        raise ConfigurationError(
            f"Unsupported network: {network!r}. Expected one of {sorted(_SVM_NETWORKS_DATA)}"
        )
    return SvmNetworkConfig(
        network=key,
        name=data["name"],
        rpc_url=os.getenv(data["rpc_env"]) or data["rpc_url"],
        is_test_network=data["is_test_network"],
    )


def amount_to_atomic(*, amount: float | int | str | Decimal, decimals: int) -> int:
    """Convert a human-readable `amount` into an integer amount of smallest units.

    The conversion runs on ``Decimal`` so that values such as 0.1 are not
    distorted by binary floating point, and truncates toward zero.

    Args:
        amount: Human-readable amount (e.g. 0.5 SOL). Accepts float/int/str/Decimal.
        decimals: Asset decimals (9 for SOL, 6 for USDC).

    Returns:
        int: Atomic amount.

    Raises:
        InvalidAmountError: If the amount is negative, non-finite or not a number.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        # str() first: Decimal(0.1) would keep the float's binary expansion
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from e

    if not dec_amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if dec_amount < 0:
        raise InvalidAmountError(f"Amount must be non-negative, got {amount!r}")

    try:
        scaled = int(dec_amount.scaleb(decimals).quantize(Decimal(1), rounding=ROUND_DOWN))
    except InvalidOperation as e:
        raise InvalidAmountError(f"Amount out of range: {amount!r}") from e

    # Token and system program amounts are u64 on-chain
    if scaled > MAX_U64:
        raise InvalidAmountError(f"Amount out of range: {amount!r}")
    return scaled


def atomic_to_amount(*, value: int, decimals: int) -> Decimal:
    """Convert an atomic integer amount back into a human-readable Decimal."""
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")
    return Decimal(value).scaleb(-decimals)
