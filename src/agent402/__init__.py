from .config import AgentSettings
from .servers import AgentServer

__version__ = "0.1.0"

__all__ = [
    "AgentSettings",
    "AgentServer",
]
