"""Error taxonomy and the error boundary applied to model nodes."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from typing import Any, Callable, Optional

from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableConfig

LOGGER = logging.getLogger(__name__)


class SupervisorError(Exception):
    """Base exception for supervisor errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class ModelInvocationError(SupervisorError):
    """Error during model invocation."""
    pass


class LocalActionError(SupervisorError):
    """Error raised by a local action handler."""
    pass


class PhaseViolationError(SupervisorError):
    """A worker requested an action outside its current phase."""

    def __init__(self, worker: str, phase: str, action: str, allowed):
        self.worker = worker
        self.phase = phase
        self.action = action
        self.allowed = sorted(allowed)
        allowed_text = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(
            f"Action '{action}' is not allowed for worker '{worker}' in phase '{phase}'. "
            f"Allowed actions: {allowed_text}. Call advance_phase when this phase is done."
        )


class WorkerConfigError(SupervisorError):
    """Invalid worker card or phase table."""
    pass


class StatePersistenceError(SupervisorError):
    """Session state cannot be kept consistent or stored. Fatal for the turn."""
    pass


class TurnAbortedError(SupervisorError):
    """A turn was aborted before its state could be committed."""
    pass


class DelegationDispatchError(SupervisorError):
    """The delegated executor failed to accept a batch. It is retried on the next call."""
    pass


def _error_update(node_name: str, content: str, error: Exception) -> dict:
    # Imported lazily: the state module imports channels, which import this module
    from supervisorAgent.graph.state import SupervisorStatus

    return {
        "messages": [AIMessage(content=content, name=node_name)],
        "last_error": f"{type(error).__name__}: {error}",
        "status": SupervisorStatus.ENDED.value,
    }


def with_error_boundary(node_name: str):
    """Decorator to add an error boundary to model nodes.

    Recoverable failures are turned into a notice in the conversation and the
    turn ends. ``StatePersistenceError`` is never absorbed.

    Example:
        @with_error_boundary("supervisor")
        async def supervisor_node(state, config):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def sync_wrapper(state: Any, config: Optional[RunnableConfig] = None) -> dict:
            try:
                return func(state, config)
            except StatePersistenceError:
                raise
            except ModelInvocationError as e:
                LOGGER.error(f"{node_name} model error: {e}")
                return _error_update(node_name, f"Model call failed: {e.user_message}", e)
            except SupervisorError as e:
                LOGGER.error(f"{node_name} error: {e}")
                return _error_update(node_name, f"Could not continue: {e.user_message}", e)
            except Exception as e:
                LOGGER.exception(f"{node_name} unexpected error", exc_info=e)
                return _error_update(
                    node_name, "Something went wrong while processing this turn. Please retry.", e
                )

        @functools.wraps(func)
        async def async_wrapper(state: Any, config: Optional[RunnableConfig] = None) -> dict:
            try:
                return await func(state, config)
            except StatePersistenceError:
                raise
            except ModelInvocationError as e:
                LOGGER.error(f"{node_name} model error: {e}")
                return _error_update(node_name, f"Model call failed: {e.user_message}", e)
            except SupervisorError as e:
                LOGGER.error(f"{node_name} error: {e}")
                return _error_update(node_name, f"Could not continue: {e.user_message}", e)
            except Exception as e:
                LOGGER.exception(f"{node_name} unexpected error", exc_info=e)
                return _error_update(
                    node_name, "Something went wrong while processing this turn. Please retry.", e
                )

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def error_payload(message: str, **extra: Any) -> str:
    """Serialize an error result payload the way local handlers report failures."""
    payload = {"ok": False, "error": message}
    payload.update(extra)
    return json.dumps(payload, ensure_ascii=False, default=str)


def handle_model_error(error: Exception) -> str:
    """Convert model invocation errors to user-friendly messages."""
    error_str = str(error).lower()

    if "rate_limit" in error_str or "429" in error_str:
        return "Too many requests, please try again shortly"

    if "timeout" in error_str:
        return "The model timed out, please retry"

    if "context_length" in error_str or "token" in error_str:
        return "Conversation history is too long, please start a new session"

    if "invalid_api_key" in error_str or "authentication" in error_str:
        return "Invalid API key, contact the administrator"

    if "quota" in error_str or "insufficient" in error_str:
        return "Model quota exhausted, contact the administrator"

    return f"Model service temporarily unavailable: {error}"
