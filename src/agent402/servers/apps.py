"""
agent402 Server - FastAPI application behind an on-chain payment gate.

Exposes ``POST /agent/execute``: a natural-language instruction in, an
unsigned Solana transaction (or NFT metadata) out. Every call must carry a
payment proof in ``X-Payment-Sig``; otherwise the server answers 402 with the
merchant address and price.
"""

import logging
from typing import Callable, Optional

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..adapters.gemini import CredentialRotator, GeminiIntentParser
from ..adapters.jupiter import JupiterSwapAdapter
from ..adapters.svm.constants import get_network_config
from ..adapters.svm.registry import default_registry
from ..adapters.svm.verifies import SolanaLedgerVerifier
from ..config import AgentSettings
from ..engine.events import (
    AdmitEvent,
    BaseEvent,
    Dependencies,
    EventBus,
    Http402PaymentEvent,
    PaymentCheckEvent,
    ProofRejectedEvent,
)
from ..engine.exceptions import AgentError
from ..engine.executors import EventChain
from ..schemas.https import PAYMENT_HEADER, AgentRequest, AgentResponse
from .flows import setup_event_bus
from .routers import AgentRouter

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=AgentResponse.error(message).model_dump(mode="json"),
    )


class AgentServer(FastAPI):
    """FastAPI server for the agent endpoint with payment gating."""

    def __init__(
        self,
        settings: Optional[AgentSettings] = None,
        intent_parser: Optional[GeminiIntentParser] = None,
        agent_router: Optional[AgentRouter] = None,
        verifier: Optional[SolanaLedgerVerifier] = None,
        execute_endpoint: str = "/agent/execute",
        **fastapi_kwargs
    ):
        """Initialize the agent server.

        Args:
            settings: Runtime configuration (default: loaded from environment)
            intent_parser: Prompt-to-action parser (default: Gemini with rotated keys)
            agent_router: Action router (default: built from settings)
            verifier: Payment proof verifier (default: RPC of the payment network)
            execute_endpoint: Path of the agent endpoint
            **fastapi_kwargs: FastAPI arguments (title, version, etc.)
        """
        self.settings = settings or AgentSettings.from_env()
        self.intent_parser = intent_parser or GeminiIntentParser(
            CredentialRotator(self.settings.parser_keys),
            model=self.settings.parser_model,
            timeout=self.settings.request_timeout,
        )
        self.agent_router = agent_router or AgentRouter(
            swap_adapter=JupiterSwapAdapter(
                base_url=self.settings.jupiter_api_url,
                api_key=self.settings.jupiter_api_key,
                timeout=self.settings.request_timeout,
                registry=default_registry,
            ),
            fee_wallet=self.settings.fee_wallet,
            fee_lamports=self.settings.fee_lamports,
        )
        self.depends = Dependencies(
            verifier=verifier or SolanaLedgerVerifier(
                get_network_config(self.settings.payment_network).rpc_url,
                timeout=self.settings.request_timeout,
            ),
            merchant_wallet=self.settings.merchant_wallet,
            price_lamports=self.settings.payment_price_lamports,
            bypass_token=self.settings.bypass_token,
        )
        self.event_bus: EventBus = setup_event_bus()

        super().__init__(**fastapi_kwargs)

        self.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self.execute_endpoint = execute_endpoint
        self._setup_routes(execute_endpoint)

    def add_hook(self, event_class: type[BaseEvent], hook: Callable) -> None:
        """Register an async side-effect hook on a gate event."""
        self.event_bus.hook(event_class, hook)

    def hook(self, event_class: type[BaseEvent]) -> Callable:
        """Decorator for registering gate event hooks.

        Example:
            @app.hook(Http402PaymentEvent)
            async def on_payment_required(event, deps):
                logger.info("402: %s", event.reason)
        """
        def decorator(hook_func: Callable) -> Callable:
            self.event_bus.hook(event_class, hook_func)
            return hook_func
        return decorator

    def payment_required(self, route_handler):
        """Decorator that runs the payment gate before `route_handler(request)`.

        Returns 402 when no acceptable proof is present and 400 when the proof
        header is malformed; the handler is only reached on admission.
        """
        async def wrapper(request: Request, x_payment_sig: Optional[str] = Header(None, alias=PAYMENT_HEADER)):
            event_chain = EventChain(self.event_bus, self.depends)
            outcome: Optional[BaseEvent] = None
            # Drain the chain so hooks on the terminal event finish before responding
            async for event in event_chain.execute(PaymentCheckEvent(payment_sig=x_payment_sig)):
                if outcome is None and isinstance(event, (Http402PaymentEvent, ProofRejectedEvent, AdmitEvent)):
                    outcome = event

            if isinstance(outcome, Http402PaymentEvent):
                return JSONResponse(
                    status_code=outcome.status_code,
                    content=outcome.payload.model_dump(mode="json"),
                )
            if isinstance(outcome, ProofRejectedEvent):
                return _error_response(outcome.status_code, outcome.error_message)
            if isinstance(outcome, AdmitEvent):
                return await route_handler(request)

            return JSONResponse(
                status_code=500,
                content={"error": "Payment verification failed"}
            )

        return wrapper

    async def execute(self, request: Request) -> JSONResponse:
        """Parse, route and answer one agent request."""
        try:
            agent_request = AgentRequest.model_validate(await request.json())
        except (ValueError, ValidationError) as e:
            return _error_response(400, f"Invalid request body: {e}")

        logger.info("Received: %s", agent_request.prompt)
        try:
            action = await self.intent_parser.parse(agent_request.prompt)
            response = await self.agent_router.route(action, agent_request.user_pubkey, agent_request.network)
        except AgentError as e:
            logger.info("Request failed (%d): %s", e.status_code, e)
            return _error_response(e.status_code, str(e))
        except Exception:
            logger.exception("Unexpected failure while handling agent request")
            return _error_response(500, "Internal error")

        return JSONResponse(status_code=200, content=response.model_dump(mode="json"))

    def _setup_routes(self, path: str) -> None:
        @self.get("/health")
        async def health():
            return {"status": "ok"}

        self.post(path)(self.payment_required(self.execute))
