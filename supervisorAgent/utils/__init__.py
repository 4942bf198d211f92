"""Shared utilities."""

from .error_handler import (
    DelegationDispatchError,
    LocalActionError,
    ModelInvocationError,
    PhaseViolationError,
    StatePersistenceError,
    SupervisorError,
    TurnAbortedError,
    WorkerConfigError,
    error_payload,
    handle_model_error,
    with_error_boundary,
)
from .logging_utils import setup_logging

__all__ = [
    "DelegationDispatchError",
    "LocalActionError",
    "ModelInvocationError",
    "PhaseViolationError",
    "StatePersistenceError",
    "SupervisorError",
    "TurnAbortedError",
    "WorkerConfigError",
    "error_payload",
    "handle_model_error",
    "setup_logging",
    "with_error_boundary",
]
