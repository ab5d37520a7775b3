import logging

from agent402 import AgentServer, AgentSettings
from agent402.engine.events import AdmitEvent, Http402PaymentEvent

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("agent402.example")


# Reads MERCHANT_WALLET, GEMINI_KEYS, AGENT_ENV, ... from the environment / .env
settings = AgentSettings.from_env()

app = AgentServer(
    settings=settings,
    title="agent402",
)


# Optional: observe the payment gate
@app.hook(Http402PaymentEvent)
async def on_payment_required(event, deps):
    logger.info("402 -> pay %d lamports to %s (%s)", deps.price_lamports, deps.merchant_wallet, event.reason)

@app.hook(AdmitEvent)
async def on_admit(event, deps):
    logger.info("Admitted: %s", event.verification_result.status.value)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="localhost", port=8000, log_level="info")
