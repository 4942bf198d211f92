"""Model invocation boundary.

The graph only needs ``invoke(system_prompt, history, advertised_actions)``
returning the next model turn. ``ChatModelInvoker`` adapts any LangChain chat
model that supports ``bind_tools``; tests plug in scripted invokers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from supervisorAgent.config.settings import Settings
from supervisorAgent.graph.message_utils import message_text
from supervisorAgent.utils.error_handler import ModelInvocationError, handle_model_error

LOGGER = logging.getLogger(__name__)

EMPTY_RESPONSE_NUDGE = (
    "Your previous reply was empty. Respond to the user or request an action."
)


class ModelInvoker(Protocol):
    async def invoke(
        self,
        system_prompt: str,
        history: List[BaseMessage],
        advertised_actions: List[dict],
    ) -> AIMessage:
        ...


def has_usable_response(message: Any) -> bool:
    """True when the model produced text or at least one action request."""
    if not isinstance(message, AIMessage):
        return False
    return bool(message.tool_calls) or bool(message_text(message.content).strip())


class ChatModelInvoker:
    """ModelInvoker backed by a LangChain chat model.

    Failed calls are retried: a failed call emitted no request ids, so a retry
    cannot duplicate them. An empty reply gets one extra attempt with a nudge.
    """

    def __init__(self, model: BaseChatModel, max_retries: int = 2) -> None:
        self.model = model
        self.max_retries = max_retries

    async def invoke(
        self,
        system_prompt: str,
        history: List[BaseMessage],
        advertised_actions: List[dict],
    ) -> AIMessage:
        runnable = self.model.bind_tools(advertised_actions) if advertised_actions else self.model
        messages: List[BaseMessage] = [SystemMessage(content=system_prompt), *history]

        response = await self._invoke_with_retries(runnable, messages)
        if not has_usable_response(response):
            LOGGER.warning("Model returned an empty response, retrying once with a nudge")
            response = await self._invoke_with_retries(
                runnable, messages + [HumanMessage(content=EMPTY_RESPONSE_NUDGE)]
            )
        return response

    async def _invoke_with_retries(self, runnable: Any, messages: List[BaseMessage]) -> AIMessage:
        last_error: Optional[Exception] = None
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await runnable.ainvoke(messages)
            except Exception as e:
                last_error = e
                LOGGER.warning(f"Model invocation failed (attempt {attempt}/{attempts}): {e}")
                continue

            if not isinstance(response, AIMessage):
                raise ModelInvocationError(f"Model returned {type(response).__name__}, expected AIMessage")
            finish_reason = (response.response_metadata or {}).get("finish_reason")
            if finish_reason == "length":
                LOGGER.warning("Model output truncated (finish_reason='length')")
            return response

        raise ModelInvocationError(
            f"Model invocation failed after {attempts} attempts: {last_error}",
            user_message=handle_model_error(last_error),
        ) from last_error


def _chat_kwargs(model: str, api_key: Optional[str], base_url: Optional[str], temperature: float) -> Dict[str, object]:
    if not api_key:
        raise RuntimeError(f"Missing API key for model {model}; set MODEL_SUPERVISOR_API_KEY in .env")
    kwargs: Dict[str, object] = {"model": model, "api_key": api_key, "temperature": temperature}
    if base_url:
        kwargs["base_url"] = base_url
    return kwargs


def build_chat_model(settings: Settings) -> ChatOpenAI:
    """ChatOpenAI-compatible client configured from settings."""
    cfg = settings.models
    return ChatOpenAI(**_chat_kwargs(cfg.model_id, cfg.api_key, cfg.base_url, cfg.temperature))


def build_model_invoker(settings: Settings, model: Optional[BaseChatModel] = None) -> ChatModelInvoker:
    return ChatModelInvoker(model or build_chat_model(settings), max_retries=settings.models.invoke_max_retries)


__all__ = [
    "ChatModelInvoker",
    "EMPTY_RESPONSE_NUDGE",
    "ModelInvoker",
    "build_chat_model",
    "build_model_invoker",
    "has_usable_response",
]
