"""Handoff node: applies an accepted routing signal.

- transfer_to_worker: creates the worker's phase record and the active task,
  then control passes to the worker
- advance_phase: moves the acting worker to its next phase
- report_completion: clears the worker's phase record and returns control to
  the supervisor

Every signal is answered with an acknowledgement result; requests superseded
by the signal are answered with an error result.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from langchain_core.messages import BaseMessage, ToolMessage
from langchain_core.runnables import RunnableConfig

from supervisorAgent.actions.registry import ADVANCE_PHASE, REPORT_COMPLETION, TRANSFER_TO_WORKER
from supervisorAgent.graph.message_utils import EntryKind, entry_kind, message_text
from supervisorAgent.graph.nodes.execute import rejection_result
from supervisorAgent.graph.routing import Dispatcher, RoutingSignal
from supervisorAgent.graph.state import HANDOFF_NODE, SUPERVISOR_NODE, SupervisorState, SupervisorStatus
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _last_user_text(messages: List[BaseMessage]) -> str:
    for message in reversed(messages):
        if entry_kind(message) is EntryKind.USER:
            return message_text(message.content)
    return ""


def _ack(signal: RoutingSignal, content: str) -> ToolMessage:
    return ToolMessage(content=content, tool_call_id=signal.request["id"], name=signal.name)


def _transfer(state: SupervisorState, dispatcher: Dispatcher, signal: RoutingSignal, actor: str) -> Dict[str, Any]:
    worker = signal.target
    gate = dispatcher.workers.gate(worker)
    args = signal.request.get("args") or {}
    task = args.get("task") or ""
    goal = args.get("goal") or task

    existing = (state.get("worker_phases") or {}).get(worker)
    record = existing or gate.phase_record(gate.initial_phase)
    note = f"{SUPERVISOR_NODE}: handed off to {worker}"

    if state.get("active_task"):
        task_update = {"current_goal": goal, "assigned_worker": worker, "worker_instructions": task, "progress": [note]}
    else:
        task_update = {
            "original_request": _last_user_text(state.get("messages") or []),
            "current_goal": goal,
            "assigned_worker": worker,
            "worker_instructions": task,
            "progress": [note],
            "started_at": _now(),
        }

    LOGGER.info(f"Handoff to {worker} (phase {record['phase']})")
    return {
        "messages": [_ack(signal, f"Transferred to {worker}. Current phase: {record['phase']}.")],
        "current_worker": worker,
        "worker_phases": {worker: record},
        "active_task": task_update,
        "handoff_history": [{
            "request_id": signal.request["id"],
            "from": SUPERVISOR_NODE,
            "to": worker,
            "at": _now(),
        }],
    }


def _advance(state: SupervisorState, dispatcher: Dispatcher, signal: RoutingSignal, actor: str) -> Dict[str, Any]:
    worker = actor
    gate = dispatcher.workers.gate(worker)
    previous = dispatcher.actor_phase(state, worker)
    new_phase = signal.target
    spec = dispatcher.workers.get(worker).get_phase(new_phase)
    allowed = ", ".join(sorted(spec.allowed_actions)) or "none"
    summary = (signal.request.get("args") or {}).get("summary") or ""

    LOGGER.info(f"{worker}: phase {previous} -> {new_phase}")
    updates: Dict[str, Any] = {
        "messages": [_ack(
            signal,
            f"Phase '{previous}' complete. Now in phase '{new_phase}': {spec.description}. "
            f"Allowed actions: {allowed}.",
        )],
        "worker_phases": {worker: gate.phase_record(new_phase)},
        "worker_progress": {worker: {"last_phase": new_phase, "counters": {"phase_transitions": 1}, "updated_at": _now()}},
    }
    if state.get("active_task"):
        note = f"{worker}: completed {previous}" + (f" ({summary})" if summary else "")
        updates["active_task"] = {"progress": [note]}
    return updates


def _complete(state: SupervisorState, dispatcher: Dispatcher, signal: RoutingSignal, actor: str) -> Dict[str, Any]:
    worker = actor
    card = dispatcher.workers.get(worker)
    args = signal.request.get("args") or {}
    summary = args.get("summary") or ""
    task_complete = args.get("task_complete", True) is not False

    LOGGER.info(f"{worker} reported completion (task_complete={task_complete})")
    updates: Dict[str, Any] = {
        "messages": [_ack(signal, f"{card.name} reported completion: {summary}")],
        "current_worker": None,
        "worker_phases": {worker: None},
        "handoff_history": [{
            "request_id": signal.request["id"],
            "from": worker,
            "to": SUPERVISOR_NODE,
            "at": _now(),
        }],
    }
    if task_complete:
        updates["active_task"] = None
    elif state.get("active_task"):
        updates["active_task"] = {"progress": [f"{worker}: {summary[:200]}"]}
    return updates


_HANDLERS = {
    TRANSFER_TO_WORKER: _transfer,
    ADVANCE_PHASE: _advance,
    REPORT_COMPLETION: _complete,
}


def build_handoff_node(*, dispatcher: Dispatcher):
    """Create the handoff node."""

    async def handoff_node(state: SupervisorState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
        log_node_entry(LOGGER, HANDOFF_NODE, state)

        turn, plan = dispatcher.plan_pending(state)
        rejections = [rejection_result(r.request, r.reason) for r in plan.rejected]

        if plan.routing is None:
            LOGGER.error(f"{HANDOFF_NODE}: no routing signal to apply")
            updates: Dict[str, Any] = {"messages": rejections, "status": SupervisorStatus.MODEL_INVOKED.value}
        else:
            updates = _HANDLERS[plan.routing.name](state, dispatcher, plan.routing, plan.actor)
            # Acknowledgement first, then the superseded requests
            updates["messages"] = updates["messages"] + rejections
            updates["status"] = SupervisorStatus.WORKER_HANDOFF.value

        log_node_exit(LOGGER, HANDOFF_NODE, updates)
        return updates

    return handoff_node
