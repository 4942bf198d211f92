"""Local execution node.

Runs every pending local request of the latest model turn concurrently and
answers rejected requests with an error result. All results of the batch are
returned together, so a partially executed batch is never stored.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from langchain_core.messages import ToolMessage
from langchain_core.runnables import RunnableConfig

from supervisorAgent.graph.routing import Dispatcher
from supervisorAgent.graph.state import EXECUTE_NODE, SupervisorState, SupervisorStatus
from supervisorAgent.utils.error_handler import LocalActionError, error_payload
from supervisorAgent.utils.logging_utils import (
    log_error,
    log_node_entry,
    log_node_exit,
    log_tool_call,
    log_tool_result,
)

LOGGER = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def rejection_result(request: dict, reason: str) -> ToolMessage:
    return ToolMessage(
        content=error_payload(reason, rejected=True),
        tool_call_id=request["id"],
        name=request.get("name"),
        status="error",
    )


async def run_local_action(
    dispatcher: Dispatcher, request: dict, config: Optional[RunnableConfig] = None
) -> ToolMessage:
    """Run one local handler; failures become error results."""
    name = request.get("name", "")
    args = request.get("args") or {}
    log_tool_call(LOGGER, name, args)
    try:
        tool = dispatcher.registry.get_local_tool(name)
        output = await tool.ainvoke({**request, "args": args, "type": "tool_call"}, config)
    except Exception as e:
        failure = LocalActionError(f"Action '{name}' failed: {e}")
        log_error(LOGGER, e, context=f"local action {name} (request {request['id']})")
        log_tool_result(LOGGER, name, e, success=False)
        return ToolMessage(
            content=error_payload(str(failure)),
            tool_call_id=request["id"],
            name=name,
            status="error",
        )

    if not isinstance(output, ToolMessage):
        output = ToolMessage(content=str(output), tool_call_id=request["id"], name=name)
    log_tool_result(LOGGER, name, output.content, success=output.status != "error")
    return output


def build_execute_node(*, dispatcher: Dispatcher):
    """Create the local execution node."""

    async def execute_node(state: SupervisorState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
        log_node_entry(LOGGER, EXECUTE_NODE, state)

        turn, plan = dispatcher.plan_pending(state)
        if plan.routing is not None:
            LOGGER.error(f"{EXECUTE_NODE}: reached with an accepted routing signal {plan.routing.name}")

        results: Dict[str, ToolMessage] = {
            rejection.request["id"]: rejection_result(rejection.request, rejection.reason)
            for rejection in plan.rejected
        }
        outputs = await asyncio.gather(*(run_local_action(dispatcher, request, config) for request in plan.local))
        for request, output in zip(plan.local, outputs):
            results[request["id"]] = output

        # Keep the model turn's request order
        ordered: List[ToolMessage] = [
            results[call["id"]] for call in (turn.tool_calls if turn is not None else []) if call["id"] in results
        ]

        status = SupervisorStatus.AWAITING_DELEGATED if plan.delegated else SupervisorStatus.MODEL_INVOKED
        updates: Dict[str, Any] = {"messages": ordered, "status": status.value}

        if plan.actor in dispatcher.workers:
            summary = [
                {
                    "request_id": message.tool_call_id,
                    "action": message.name,
                    "ok": message.status != "error",
                    "at": _now(),
                }
                for message in ordered
            ]
            updates["worker_progress"] = {
                plan.actor: {
                    "tool_call_summary": summary,
                    "explored": [request.get("name") for request in plan.local],
                    "counters": {"local_actions": len(plan.local), "rejected": len(plan.rejected)},
                    "updated_at": _now(),
                }
            }

        log_node_exit(LOGGER, EXECUTE_NODE, updates)
        return updates

    return execute_node
