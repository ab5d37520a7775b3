"""
Event-driven payment gate with typed events and clear data flow.

Events carry their own data, handlers return next events, and dependencies
are injected separately from business data.

Gate flow:
    PaymentCheckEvent
        ├── no header            -> Http402PaymentEvent
        ├── dev bypass token     -> AdmitEvent
        ├── malformed signature  -> ProofRejectedEvent
        └── ProofVerifyEvent
                ├── found        -> AdmitEvent
                └── VerifyFailedEvent -> Http402PaymentEvent
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncGenerator, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..adapters.svm.verifies import SolanaLedgerVerifier
from ..schemas.bases import ProofVerificationResult
from ..schemas.https import Server402ResponsePayload

# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        pass


# ==================== Trigger Events (External) ====================

class PaymentCheckEvent(BaseModel, BaseEvent):
    """External trigger: inbound request with its payment proof header (if any)."""
    payment_sig: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"PaymentCheckEvent(has_proof={self.payment_sig is not None})"


# ==================== Intermediate Events ====================

class ProofVerifyEvent(BaseModel, BaseEvent):
    """Proof is a well-formed signature and must be resolved on the ledger."""
    signature: str

    def __repr__(self) -> str:
        return f"ProofVerifyEvent(signature={self.signature[:8]}...)"


class VerifyFailedEvent(BaseModel, BaseEvent):
    """Ledger lookup did not confirm the proof."""
    verification_result: ProofVerificationResult

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"VerifyFailedEvent(status={self.verification_result.status.value})"


# ==================== Result Events ====================

class AdmitEvent(BaseModel, BaseEvent):
    """Result: request admitted; forward to the router."""
    verification_result: Optional[ProofVerificationResult] = None
    status_code: int = 200

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        status = self.verification_result.status.value if self.verification_result else "none"
        return f"AdmitEvent(status={status})"


class Http402PaymentEvent(BaseModel, BaseEvent):
    """Result: payment required - 402 response payload."""
    reason: str
    payload: Server402ResponsePayload
    status_code: int = 402

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"Http402PaymentEvent(reason={self.reason})"


class ProofRejectedEvent(BaseModel, BaseEvent):
    """Result: payment proof header is syntactically invalid - 400."""
    error_message: str
    status_code: int = 400

    def __repr__(self) -> str:
        return f"ProofRejectedEvent(error={self.error_message})"


class BreakEvent(BaseModel, BaseEvent):
    """Internal event to break the event chain."""
    break_reason: str = ""

    def __repr__(self) -> str:
        return "BreakEvent()"


# ==================== Dependencies Container ====================

@dataclass(frozen=True)
class Dependencies:
    """Container for infrastructure dependencies (read-only)."""
    verifier: Optional[SolanaLedgerVerifier] = None
    merchant_wallet: str = ""
    price_lamports: int = 5000
    bypass_token: Optional[str] = None


# ==================== Event Bus ====================

EventHandlerFunc = Callable[[BaseEvent, Dependencies], Awaitable[Optional[BaseEvent]]]
EventHookFunc = Callable[[BaseEvent, Dependencies], Awaitable[None]]


class EventBus:
    """Event dispatcher for publishing and subscribing to events."""

    def __init__(self) -> None:
        self._subscribers: Dict[type, list[EventHandlerFunc]] = {}
        self._hooks: Dict[type, list[EventHookFunc]] = {}

    def subscribe(self, event_class: type[BaseEvent], handler: EventHandlerFunc) -> None:
        """
        Register an async handler for the given event class.
        Multiple handlers can be subscribed to the same event type and run in parallel.

        Raises:
            TypeError: If handler is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")

        self._subscribers.setdefault(event_class, []).append(handler)

    def hook(self, event_class: type[BaseEvent], hook_func: EventHookFunc) -> None:
        """
        Register a hook for the given event class.
        Hooks run before subscribers and their return value is ignored.
        """
        if not inspect.iscoroutinefunction(hook_func):
            raise TypeError(f"Hook must be a coroutine function, got {type(hook_func).__name__}")

        self._hooks.setdefault(event_class, []).append(hook_func)

    async def dispatch(self, event: BaseEvent, deps: Dependencies) -> AsyncGenerator[Optional[BaseEvent], None]:
        """
        Dispatch an event to all registered hooks and subscribers.

        Yields:
            Results from all subscribers as they complete.
        """
        hooks = self._hooks.get(type(event), [])
        await asyncio.gather(*(hook(event, deps) for hook in hooks))

        handlers = self._subscribers.get(type(event), [])
        if not handlers:
            return

        tasks = [handler(event, deps) for handler in handlers]
        for coro in asyncio.as_completed(tasks):
            result = await coro
            yield result
