"""Model invocation exports."""

from .invoker import (
    ChatModelInvoker,
    ModelInvoker,
    build_chat_model,
    build_model_invoker,
    has_usable_response,
)

__all__ = [
    "ChatModelInvoker",
    "ModelInvoker",
    "build_chat_model",
    "build_model_invoker",
    "has_usable_response",
]
