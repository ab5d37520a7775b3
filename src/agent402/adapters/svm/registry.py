"""
Token Registry

Static, process-wide mapping of token symbols to mint addresses and decimals.
The transaction builder and the swap adapter only ever see (mint, decimals)
pairs; all asset-specific knowledge lives in the table in ``constants``.
"""

from typing import Dict, List, Optional, Tuple

from .constants import SVM_ASSETS, SvmAssetConfig, NATIVE_SYMBOL, WRAPPED_SOL_MINT
from ...engine.exceptions import UnsupportedAssetError


class TokenRegistry:
    """
    Case-insensitive lookup over a fixed token table.

    The native asset ("SOL", or an empty symbol) is a distinguished entry with
    no mint and 9 decimals.
    """

    def __init__(self, assets: Optional[Dict[str, SvmAssetConfig]] = None):
        self._assets: Dict[str, SvmAssetConfig] = {
            symbol.upper(): asset for symbol, asset in (SVM_ASSETS if assets is None else assets).items()
        }

    @staticmethod
    def _normalize(symbol: Optional[str]) -> str:
        normalized = (symbol or "").strip().upper()
        return normalized or NATIVE_SYMBOL

    def get(self, symbol: Optional[str]) -> Optional[SvmAssetConfig]:
        return self._assets.get(self._normalize(symbol))

    def resolve(self, symbol: Optional[str]) -> Optional[Tuple[Optional[str], int]]:
        """
        Resolve a symbol to its mint and decimals.

        Args:
            symbol: Token symbol in any letter case. Empty means native SOL.

        Returns:
            (mint, decimals), where mint is None for the native asset,
            or None if the symbol is unknown.

        Example:
            registry = TokenRegistry()
            registry.resolve("usdc")
            # ("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6)
        """
        asset = self.get(symbol)
        if asset is None:
            return None
        return asset.mint, asset.decimals

    def require(self, symbol: Optional[str]) -> SvmAssetConfig:
        """Return the asset for `symbol` or raise UnsupportedAssetError."""
        asset = self.get(symbol)
        if asset is None:
            raise UnsupportedAssetError(symbol or "", self.supported_symbols())
        return asset

    def require_swap_pair(self, token_in: Optional[str], token_out: Optional[str]) -> Tuple[SvmAssetConfig, SvmAssetConfig]:
        """
        Resolve both sides of a swap.

        Unlike single lookups, an empty `token_out` is not read as native SOL:
        a swap needs an explicit destination that differs from its source.

        Raises:
            UnsupportedAssetError: If either side is unknown, `token_out` is
                empty, or both sides name the same asset.
        """
        if not (token_out or "").strip():
            raise UnsupportedAssetError("", self.supported_symbols())
        source = self.require(token_in)
        destination = self.require(token_out)
        if source.symbol == destination.symbol:
            raise UnsupportedAssetError(token_out, self.supported_symbols())
        return source, destination

    def is_supported(self, symbol: Optional[str]) -> bool:
        return self.get(symbol) is not None

    def is_native(self, symbol: Optional[str]) -> bool:
        asset = self.get(symbol)
        return asset is not None and asset.mint is None

    def is_available(self, symbol: Optional[str], network: str) -> bool:
        """Whether the token's mint exists on `network`."""
        asset = self.get(symbol)
        return asset is not None and network.lower() in asset.networks

    def swap_mint(self, symbol: Optional[str]) -> str:
        """Mint used when routing through the swap provider (wrapped SOL for native)."""
        asset = self.require(symbol)
        return asset.mint or WRAPPED_SOL_MINT

    def supported_symbols(self) -> List[str]:
        return list(self._assets)


#: Process-wide registry, immutable after import.
default_registry = TokenRegistry()
