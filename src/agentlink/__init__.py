"""agentlink - talk to a containerized agent from your terminal."""

from .config import SessionConfig, Settings
from .protocol import InputMessage, decode, encode
from .session import SessionDriver
from .supervisor import WorkerProcess, launch

__version__ = "0.1.0"

__all__ = [
    "InputMessage",
    "SessionConfig",
    "SessionDriver",
    "Settings",
    "WorkerProcess",
    "decode",
    "encode",
    "launch",
]
