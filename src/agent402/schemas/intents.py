"""
Intent Models

The intent parser returns loosely structured JSON. ``RawIntent`` accepts that
shape as-is; ``RawIntent.to_action()`` validates it into one variant of a
closed union of actions, each carrying only the fields its handler needs.

    RawIntent(action="TRANSFER", amount=0.5, token_in="SOL", recipient="8Xy...")
        .to_action()  ->  TransferAction(amount=0.5, token_in="SOL", recipient="8Xy...")
"""

import math
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing_extensions import Annotated

from ..engine.exceptions import InvalidAmountError, MissingRecipientError, UnknownActionError


class SwapAction(BaseModel):
    """Swap `amount` of `token_in` into `token_out`."""
    action: Literal["SWAP"] = "SWAP"
    amount: float = Field(..., gt=0)
    token_in: str
    token_out: str


class TransferAction(BaseModel):
    """Send `amount` of `token_in` to `recipient`."""
    action: Literal["TRANSFER"] = "TRANSFER"
    amount: float = Field(..., gt=0)
    token_in: str = "SOL"
    recipient: str = Field(..., min_length=1)


class MintAction(BaseModel):
    """Return NFT metadata for a client-side mint."""
    action: Literal["MINT_NFT"] = "MINT_NFT"
    name: Optional[str] = None


ActionTypes = Annotated[
    Union[
        SwapAction,      # action: "SWAP"
        TransferAction,  # action: "TRANSFER"
        MintAction,      # action: "MINT_NFT"
    ],
    Field(discriminator="action")
]


# Labels the parser may emit for each action
_ACTION_ALIASES = {
    "SWAP": "SWAP",
    "TRANSFER": "TRANSFER",
    "SEND": "TRANSFER",
    "MINT": "MINT_NFT",
    "MINT_NFT": "MINT_NFT",
}


class RawIntent(BaseModel):
    """Intent as emitted by the parser. Untrusted; every field is optional."""
    model_config = ConfigDict(extra="ignore")

    action: str = ""
    amount: float = 0.0
    token_in: Optional[str] = "SOL"
    token_out: Optional[str] = ""
    recipient: Optional[str] = None
    nft_name: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _none_amount(cls, value):
        return 0.0 if value is None else value

    def _require_amount(self) -> float:
        if not math.isfinite(self.amount) or self.amount <= 0:
            raise InvalidAmountError(f"Amount must be a positive number, got {self.amount!r}")
        return self.amount

    def to_action(self) -> Union[SwapAction, TransferAction, MintAction]:
        """
        Validate into a typed action.

        Raises:
            UnknownActionError: If the action label is not recognised.
            MissingRecipientError: If a transfer has no recipient.
            InvalidAmountError: If a swap or transfer amount is not positive.
        """
        label = _ACTION_ALIASES.get((self.action or "").strip().upper())
        if label is None:
            raise UnknownActionError(self.action or None)

        if label == "MINT_NFT":
            name = (self.nft_name or "").strip()
            return MintAction(name=name or None)

        token_in = (self.token_in or "").strip().upper() or "SOL"

        if label == "TRANSFER":
            recipient = (self.recipient or "").strip()
            if not recipient:
                raise MissingRecipientError()
            return TransferAction(amount=self._require_amount(), token_in=token_in, recipient=recipient)

        return SwapAction(
            amount=self._require_amount(),
            token_in=token_in,
            token_out=(self.token_out or "").strip().upper(),
        )
