"""Suspension point for delegated actions.

The node records which requests are out for external execution and ends the
run. Results come back through the session runner, which appends them and
starts a new run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from langchain_core.runnables import RunnableConfig

from supervisorAgent.graph.routing import Dispatcher
from supervisorAgent.graph.state import AWAIT_NODE, SupervisorState, SupervisorStatus
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def build_await_node(*, dispatcher: Dispatcher):
    """Create the node that suspends the session until delegated results arrive."""

    async def await_delegated_node(state: SupervisorState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
        log_node_entry(LOGGER, AWAIT_NODE, state)

        _, plan = dispatcher.plan_pending(state)
        if plan.local or plan.rejected or plan.routing is not None:
            LOGGER.error(f"{AWAIT_NODE}: suspending with non-delegated requests still pending")

        delegated = plan.delegated
        record = {
            "actor": plan.actor,
            "request_ids": [request["id"] for request in delegated],
            "actions": [request.get("name") for request in delegated],
            "approvals": [
                request.get("name") for request in delegated
                if dispatcher.registry.is_approval_action(request.get("name", ""))
            ],
            "dispatched_at": datetime.now(timezone.utc).isoformat(),
        }
        existing = state.get("pending_delegation") or {}
        if existing.get("request_ids") == record["request_ids"] and existing.get("dispatched_at"):
            record["dispatched_at"] = existing["dispatched_at"]
        # Written by the session runner once the executor accepts the batch
        record["dispatched_ids"] = [
            request_id for request_id in existing.get("dispatched_ids") or []
            if request_id in record["request_ids"]
        ]
        LOGGER.info(f"Awaiting {len(delegated)} delegated results: {record['actions']}")

        updates: Dict[str, Any] = {
            "status": SupervisorStatus.AWAITING_DELEGATED.value,
            "pending_delegation": record,
        }
        if plan.actor in dispatcher.workers and delegated:
            updates["worker_phases"] = {plan.actor: {"pending_action": delegated[0].get("name")}}

        log_node_exit(LOGGER, AWAIT_NODE, updates)
        return updates

    return await_delegated_node
