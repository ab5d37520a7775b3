"""
Service configuration loaded from environment variables (and a ``.env`` file).

Environment Variables:
    - GEMINI_KEYS: Comma-separated parser API keys, or GEMINI_KEY_1..GEMINI_KEY_N
    - GEMINI_MODEL: Generative model name (default gemini-2.0-flash)
    - MERCHANT_WALLET: Address that payment proofs are expected to pay
    - PAYMENT_PRICE_LAMPORTS: Price per request (default 5000)
    - PAYMENT_NETWORK: Cluster used to resolve payment proofs (default devnet)
    - PAYMENT_DEV_BYPASS_TOKEN: Header value admitted without lookup (development only)
    - FEE_WALLET / FEE_LAMPORTS: Optional fee appended to swap transactions
    - JUPITER_API_URL / JUPITER_API_KEY: Swap provider
    - AGENT_ENV: "development" or "production"
    - REQUEST_TIMEOUT: Timeout in seconds for every external call
"""

import os
from typing import List, Optional

import dotenv
from pydantic import BaseModel, Field

from .adapters.jupiter import DEFAULT_JUPITER_API

dotenv.load_dotenv()

DEFAULT_DEV_BYPASS_TOKEN = "mock_devnet_signature"


def _parser_keys_from_env() -> List[str]:
    joined = os.getenv("GEMINI_KEYS")
    if joined:
        return [key.strip() for key in joined.split(",") if key.strip()]

    keys = []
    index = 1
    while os.getenv(f"GEMINI_KEY_{index}"):
        keys.append(os.getenv(f"GEMINI_KEY_{index}").strip())
        index += 1
    return keys


class AgentSettings(BaseModel):
    """Runtime configuration for the agent server."""
    environment: str = Field(default="development", description="development or production")
    parser_keys: List[str] = Field(default_factory=list, description="Intent parser API keys, rotated")
    parser_model: str = Field(default="gemini-2.0-flash")
    merchant_wallet: str = Field(default="", description="Merchant wallet for payment proofs")
    payment_price_lamports: int = Field(default=5000, ge=0)
    payment_network: str = Field(default="devnet")
    dev_bypass_token: Optional[str] = Field(default=DEFAULT_DEV_BYPASS_TOKEN)
    fee_wallet: Optional[str] = Field(default=None)
    fee_lamports: int = Field(default=0, ge=0)
    jupiter_api_url: str = Field(default=DEFAULT_JUPITER_API)
    jupiter_api_key: Optional[str] = Field(default=None)
    request_timeout: float = Field(default=10.0, gt=0)

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def bypass_token(self) -> Optional[str]:
        """Development bypass token; always None in production."""
        if self.is_production:
            return None
        return self.dev_bypass_token or None

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """
        Build settings from the process environment.

        Example:
            # .env
            # MERCHANT_WALLET=9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM
            # GEMINI_KEYS=key-a,key-b
            settings = AgentSettings.from_env()
        """
        return cls(
            environment=os.getenv("AGENT_ENV", "development"),
            parser_keys=_parser_keys_from_env(),
            parser_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
            merchant_wallet=os.getenv("MERCHANT_WALLET", ""),
            payment_price_lamports=int(os.getenv("PAYMENT_PRICE_LAMPORTS", "5000")),
            payment_network=os.getenv("PAYMENT_NETWORK", "devnet"),
            dev_bypass_token=os.getenv("PAYMENT_DEV_BYPASS_TOKEN", DEFAULT_DEV_BYPASS_TOKEN),
            fee_wallet=os.getenv("FEE_WALLET") or None,
            fee_lamports=int(os.getenv("FEE_LAMPORTS", "0")),
            jupiter_api_url=os.getenv("JUPITER_API_URL", DEFAULT_JUPITER_API),
            jupiter_api_key=os.getenv("JUPITER_API_KEY") or None,
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),
        )
