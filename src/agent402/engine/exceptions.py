"""
Exception and Error Definitions Module

Defines the exception hierarchy for transaction construction, payment gating,
and calls to external collaborators (intent parser, swap provider, ledger RPC).
Every exception carries the HTTP status code the server answers with, so the
request boundary can turn any of them into a typed response without guessing.

Exception Hierarchy:
    AgentError (root)
    ├── BuildError
    │   ├── InvalidAddressError
    │   ├── UnsupportedAssetError
    │   ├── MissingRecipientError
    │   ├── InvalidAmountError
    │   └── SerializationError
    ├── UnknownActionError
    ├── ExternalApiError
    ├── IntentParseError
    ├── PaymentRequiredError
    ├── InvalidPaymentProofError
    └── ConfigurationError
"""

from typing import Iterable, Optional


class AgentError(Exception):
    """
    Root exception class for all project-specific exceptions.

    Attributes:
        status_code: HTTP status code used when the error reaches the server boundary.
    """
    status_code: int = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class BuildError(AgentError):
    """
    Base exception for transaction construction failures.

    Raised by the transaction builder, the fee bundler and the token registry
    when caller input cannot be turned into a valid unsigned transaction.
    """
    pass


class InvalidAddressError(BuildError):
    """
    Raised when a value does not decode to a 32-byte Solana address.

    Attributes:
        field: Name of the offending input (e.g. "owner", "recipient", "mint")
        value: The raw value that failed to decode
    """

    def __init__(self, field: str, value: Optional[str] = None) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} address: {value!r}")


class UnsupportedAssetError(BuildError):
    """
    Raised when a token symbol is not present in the token registry.

    Attributes:
        symbol: The rejected symbol
        supported: Symbols the registry does know about
    """

    def __init__(self, symbol: str, supported: Iterable[str] = ()) -> None:
        self.symbol = symbol
        self.supported = list(supported)
        message = f"Unsupported token: {symbol}"
        if self.supported:
            message += f". Supported tokens: {', '.join(self.supported)}"
        super().__init__(message)


class MissingRecipientError(BuildError):
    """Raised when a transfer intent carries no recipient address."""

    def __init__(self, message: str = "Transfer requires a recipient address") -> None:
        super().__init__(message)


class InvalidAmountError(BuildError):
    """
    Raised when an amount is negative, non-finite, or zero where a positive
    value is required.
    """
    pass


class SerializationError(BuildError):
    """
    Raised when a transaction cannot be decoded, re-encoded, or when its
    message structure prevents a safe rewrite.

    This includes scenarios such as:
    - Invalid base-64 payload
    - Bytes that are not a Solana wire transaction
    - Compiled instruction indices outside the key table
    """
    pass


class UnknownActionError(AgentError):
    """Raised when an intent names an action the router does not handle."""

    def __init__(self, action: Optional[str] = None) -> None:
        self.action = action
        super().__init__(f"Unknown Action: {action}" if action else "Unknown Action")


class ExternalApiError(AgentError):
    """
    Raised when a call to an external collaborator fails.

    This includes scenarios such as:
    - Transport errors and timeouts
    - Non-2xx responses
    - Responses missing an expected field

    Attributes:
        stage: Which call failed ("quote", "swap", "ledger")
    """

    def __init__(self, stage: str, detail: str = "") -> None:
        self.stage = stage
        self.detail = detail
        message = f"{stage.capitalize()} Failed"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class IntentParseError(AgentError):
    """
    Raised when the natural-language intent parser fails to produce an intent.

    Surfaced as an upstream failure (500) rather than a caller error.
    """
    status_code = 500


class PaymentRequiredError(AgentError):
    """
    Raised when a request carries no acceptable payment proof.

    Attributes:
        address: Merchant wallet the client has to pay
        amount: Required amount in lamports
    """
    status_code = 402

    def __init__(self, address: str, amount: int, reason: str = "Payment Required") -> None:
        self.address = address
        self.amount = amount
        super().__init__(reason)


class InvalidPaymentProofError(AgentError):
    """Raised when the payment proof header is not a syntactically valid signature."""
    pass


class ConfigurationError(AgentError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - No intent parser credentials configured
    - Malformed merchant or fee wallet address
    - Unsupported network name
    """
    status_code = 500
