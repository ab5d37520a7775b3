"""
Action Router

Dispatches a validated action to the transaction builder, the swap adapter
(followed by the fee bundler), or the NFT metadata responder, and shapes the
result into an ``AgentResponse``.
"""

import logging
from decimal import Decimal
from typing import Optional

from ..adapters.jupiter import JupiterSwapAdapter
from ..adapters.svm.builders import (
    build_mock_transfer,
    build_native_transfer,
    build_token_transfer,
    decode_address,
)
from ..adapters.svm.bundler import append_fee
from ..adapters.svm.codec import encode_transaction
from ..adapters.svm.constants import amount_to_atomic, get_network_config
from ..adapters.svm.registry import TokenRegistry, default_registry
from ..engine.exceptions import BuildError, InvalidAddressError, UnknownActionError
from ..schemas.https import ActionType, AgentResponse
from ..schemas.intents import ActionTypes, MintAction, SwapAction, TransferAction

logger = logging.getLogger(__name__)

NFT_SYMBOL = "AI"
NFT_DEFAULT_NAME = "AI Gen"
NFT_PLACEHOLDER_URI = "https://arweave.net/placeholder"


def display_amount(amount: float) -> str:
    """Render an amount without float noise: 1.0 -> "1", 0.5 -> "0.5"."""
    return format(Decimal(str(amount)).normalize(), "f")


def _is_address(value: str) -> bool:
    try:
        decode_address(value, "to")
    except InvalidAddressError:
        return False
    return True


class AgentRouter:
    """
    Routes actions for a given user and network.

    Args:
        swap_adapter: Swap provider client used on mainnet.
        registry: Token registry.
        fee_wallet: Optional wallet receiving a fee on swaps.
        fee_lamports: Fee amount; zero disables the fee.
    """

    def __init__(
        self,
        swap_adapter: Optional[JupiterSwapAdapter] = None,
        registry: Optional[TokenRegistry] = None,
        fee_wallet: Optional[str] = None,
        fee_lamports: int = 0,
    ):
        self.registry = registry or default_registry
        self.swap_adapter = swap_adapter or JupiterSwapAdapter(registry=self.registry)
        self.fee_wallet = fee_wallet
        self.fee_lamports = fee_lamports

    async def route(self, action: ActionTypes, user_pubkey: str, network: str = "devnet") -> AgentResponse:
        """
        Execute `action` for `user_pubkey` on `network`.

        Raises:
            BuildError: For invalid addresses, unsupported tokens, bad amounts.
            ExternalApiError: When the swap provider fails.
            UnknownActionError: For an action type the router does not handle.
        """
        logger.info("Routing %s for %s on %s", getattr(action, "action", None), user_pubkey, network)
        if isinstance(action, SwapAction):
            return await self.swap(action, user_pubkey, network)
        if isinstance(action, TransferAction):
            return self.transfer(action, user_pubkey, network)
        if isinstance(action, MintAction):
            return self.mint(action)
        raise UnknownActionError(getattr(action, "action", None))

    async def swap(self, action: SwapAction, user_pubkey: str, network: str) -> AgentResponse:
        self.registry.require_swap_pair(action.token_in, action.token_out)

        if get_network_config(network).is_test_network:
            tx = build_mock_transfer(user_pubkey)
            return AgentResponse(
                action_type=ActionType.SWAP,
                tx_base64=encode_transaction(tx),
                message="Devnet Mode: Returning Mock Swap Transaction (Self-Transfer)",
            )

        tx_blob = await self.swap_adapter.get_swap_transaction(
            action.token_in, action.token_out, action.amount, user_pubkey
        )
        tx_blob = self.with_fee(tx_blob, user_pubkey)
        return AgentResponse(
            action_type=ActionType.SWAP,
            tx_base64=tx_blob,
            message=f"Swapping {display_amount(action.amount)} {action.token_in} to {action.token_out}",
        )

    def with_fee(self, tx_blob: str, payer: str) -> str:
        """Append the configured fee; keep the original swap if that fails."""
        try:
            return append_fee(tx_blob, payer, self.fee_wallet, self.fee_lamports)
        except BuildError as e:
            logger.warning("Fee bundling failed, returning swap without fee: %s", e)
            return tx_blob

    def transfer(self, action: TransferAction, user_pubkey: str, network: str) -> AgentResponse:
        asset = self.registry.require(action.token_in)

        if self.registry.is_native(asset.symbol):
            tx = build_native_transfer(user_pubkey, action.recipient, action.amount)
            message = f"Sending {display_amount(action.amount)} SOL to {action.recipient}"
            if not _is_address(action.recipient):
                message = (
                    f"Invalid recipient {action.recipient!r}: returning Self-Transfer of "
                    f"{display_amount(action.amount)} SOL to {user_pubkey}"
                )
            return AgentResponse(
                action_type=ActionType.TRANSFER,
                tx_base64=encode_transaction(tx),
                message=message,
            )

        if get_network_config(network).is_test_network or not self.registry.is_available(asset.symbol, network):
            tx = build_mock_transfer(user_pubkey)
            return AgentResponse(
                action_type=ActionType.TRANSFER,
                tx_base64=encode_transaction(tx),
                message=f"{asset.symbol} is not available on {network}: returning Mock Transfer (Self-Transfer)",
            )

        atomic = amount_to_atomic(amount=action.amount, decimals=asset.decimals)
        tx = build_token_transfer(user_pubkey, action.recipient, asset.mint, atomic)
        return AgentResponse(
            action_type=ActionType.TRANSFER,
            tx_base64=encode_transaction(tx),
            message=f"Sending {display_amount(action.amount)} {asset.symbol} to {action.recipient}",
        )

    def mint(self, action: MintAction) -> AgentResponse:
        # Minting is executed client-side; only metadata is returned
        return AgentResponse(
            action_type=ActionType.MINT_NFT,
            tx_base64=None,
            meta={
                "name": action.name or NFT_DEFAULT_NAME,
                "symbol": NFT_SYMBOL,
                "uri": NFT_PLACEHOLDER_URI,
            },
            message="Minting NFT...",
        )
