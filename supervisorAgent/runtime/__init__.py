"""Runtime assembly and session entry points."""

from .app import build_application
from .session import ActionResult, DelegatedExecutor, DelegationBatch, SessionRunner, TurnOutcome

__all__ = [
    "ActionResult",
    "DelegatedExecutor",
    "DelegationBatch",
    "SessionRunner",
    "TurnOutcome",
    "build_application",
]
