"""
Shared fixtures for the agent402 test suite.

Addresses are generated per test so no test depends on a real on-chain account.
"""

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from agent402.config import AgentSettings
from agent402.schemas.intents import RawIntent


MOCK_BYPASS_TOKEN = "mock_devnet_signature"
MOCK_PRICE_LAMPORTS = 5000


def new_address() -> str:
    return str(Pubkey.new_unique())


def new_signature() -> str:
    return str(Keypair().sign_message(b"payment"))


class FakeIntentParser:
    """Stands in for the Gemini parser: returns a canned raw intent."""

    def __init__(self, raw: dict):
        self.raw = raw
        self.prompts = []

    async def parse(self, prompt: str):
        self.prompts.append(prompt)
        return RawIntent.model_validate(self.raw).to_action()


@pytest.fixture
def owner() -> str:
    return new_address()


@pytest.fixture
def recipient() -> str:
    return new_address()


@pytest.fixture
def merchant() -> str:
    return new_address()


@pytest.fixture
def settings(merchant) -> AgentSettings:
    return AgentSettings(
        environment="development",
        parser_keys=["key-a"],
        merchant_wallet=merchant,
        payment_price_lamports=MOCK_PRICE_LAMPORTS,
        dev_bypass_token=MOCK_BYPASS_TOKEN,
    )
