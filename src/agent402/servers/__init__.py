from .apps import AgentServer
from .routers import AgentRouter

__all__ = [
    "AgentServer",
    "AgentRouter",
]
