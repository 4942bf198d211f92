"""Model nodes: the supervisor and one node per worker.

Both follow the same turn logic:

1. Safety check: if the latest model turn still has unresolved requests, the
   model is not invoked; the plan is re-derived from those requests.
2. Loop governance: stop once ``max_loops`` invocations happened in this run.
3. Build the trimmed history, the prompt and the advertised actions, invoke.
4. Plan dispatch for the new requests and record the resulting status.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableConfig

from supervisorAgent.actions.catalogue import catalogue_names, catalogue_schemas
from supervisorAgent.actions.routing_signals import transfer_schema, worker_signal_schemas
from supervisorAgent.config.settings import Settings
from supervisorAgent.graph.message_utils import find_pending_turn, prepare_model_history
from supervisorAgent.graph.prompts import build_supervisor_prompt, build_task_context, build_worker_prompt
from supervisorAgent.graph.routing import Dispatcher
from supervisorAgent.graph.state import SUPERVISOR_NODE, SupervisorState, SupervisorStatus
from supervisorAgent.utils.error_handler import with_error_boundary
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit, log_prompt

LOGGER = logging.getLogger(__name__)

LOOP_LIMIT_NOTICE = "I stopped here because this turn reached its step limit. Send a message to continue."


def _re_derive_pending(
    state: SupervisorState, dispatcher: Dispatcher, node_name: str, pending: List[dict]
) -> Optional[Dict[str, Any]]:
    if not pending:
        return None
    _, plan = dispatcher.plan_pending(state)
    LOGGER.warning(
        f"{node_name}: latest model turn has {len(pending)} unresolved requests "
        f"{[r.get('id') for r in pending]}; skipping model invocation ({plan.status.value})"
    )
    return {"status": plan.status.value}


def _loop_limit_reached(state: SupervisorState, settings: Settings) -> bool:
    loops = state.get("loops") or 0
    max_loops = state.get("max_loops") or settings.governance.max_loops
    return loops >= max_loops


async def _invoke_and_plan(
    state: SupervisorState,
    *,
    actor: str,
    invoker,
    dispatcher: Dispatcher,
    settings: Settings,
    system_prompt: str,
    advertised: List[dict],
    phase: Optional[str],
) -> Dict[str, Any]:
    history = prepare_model_history(state.get("messages") or [], settings.governance.max_message_history)
    log_prompt(LOGGER, actor, system_prompt, settings.observability.log_prompt_max_length)
    LOGGER.info(f"{actor}: invoking model with {len(history)} entries and {len(advertised)} actions")

    response = await invoker.invoke(system_prompt, history, advertised)
    response = response.model_copy(update={"name": actor})

    plan = dispatcher.plan(
        list(response.tool_calls or []),
        actor=actor,
        advertised_names=catalogue_names(state.get("advertised_actions")),
        phase=phase,
    )
    return {
        "messages": [response],
        "status": plan.status.value,
        "loops": (state.get("loops") or 0) + 1,
        "pending_delegation": None,
        "last_error": None,
    }


def build_supervisor_node(*, invoker, dispatcher: Dispatcher, settings: Settings):
    """Create the supervisor model node."""

    @with_error_boundary(SUPERVISOR_NODE)
    async def supervisor_node(state: SupervisorState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
        log_node_entry(LOGGER, SUPERVISOR_NODE, state)

        _, pending = find_pending_turn(state.get("messages") or [])
        updates = _re_derive_pending(state, dispatcher, SUPERVISOR_NODE, pending)
        if updates is None and _loop_limit_reached(state, settings):
            LOGGER.warning(f"{SUPERVISOR_NODE}: loop limit reached, ending turn")
            updates = {
                "messages": [AIMessage(content=LOOP_LIMIT_NOTICE, name=SUPERVISOR_NODE)],
                "status": SupervisorStatus.ENDED.value,
            }
        if updates is None:
            catalogue = state.get("advertised_actions") or []
            advertised = []
            if dispatcher.workers.ids():
                advertised.append(transfer_schema(dispatcher.workers.ids()))
            advertised.extend(dispatcher.registry.local_tool_schemas())
            advertised.extend(catalogue_schemas(catalogue))

            task_context = build_task_context(
                state.get("active_task"), state.get("worker_phases"), state.get("created_items")
            )
            prompt = build_supervisor_prompt(dispatcher.workers.get_catalog_text(), task_context)
            updates = await _invoke_and_plan(
                state,
                actor=SUPERVISOR_NODE,
                invoker=invoker,
                dispatcher=dispatcher,
                settings=settings,
                system_prompt=prompt,
                advertised=advertised,
                phase=None,
            )

        log_node_exit(LOGGER, SUPERVISOR_NODE, updates)
        return updates

    return supervisor_node


def build_worker_node(worker_id: str, *, invoker, dispatcher: Dispatcher, settings: Settings):
    """Create the model node for one worker. Advertised actions follow its phase."""
    card = dispatcher.workers.get(worker_id)
    gate = dispatcher.workers.gate(worker_id)

    @with_error_boundary(worker_id)
    async def worker_node(state: SupervisorState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
        log_node_entry(LOGGER, worker_id, state)

        _, pending = find_pending_turn(state.get("messages") or [])
        updates = _re_derive_pending(state, dispatcher, worker_id, pending)
        if updates is None and _loop_limit_reached(state, settings):
            LOGGER.warning(f"{worker_id}: loop limit reached, ending turn")
            updates = {
                "messages": [AIMessage(content=LOOP_LIMIT_NOTICE, name=worker_id)],
                "status": SupervisorStatus.ENDED.value,
            }
        if updates is None:
            phase_name = dispatcher.actor_phase(state, worker_id)
            phase = card.get_phase(phase_name)
            allowed = gate.allowed_actions(phase_name)

            advertised = worker_signal_schemas(phase.is_terminal)
            advertised.extend(dispatcher.registry.local_tool_schemas(allowed))
            advertised.extend(catalogue_schemas(state.get("advertised_actions"), allowed))

            own_phase = {worker_id: (state.get("worker_phases") or {}).get(worker_id) or gate.phase_record(phase_name)}
            task_context = build_task_context(state.get("active_task"), own_phase)
            prompt = build_worker_prompt(card, phase, task_context)
            updates = await _invoke_and_plan(
                state,
                actor=worker_id,
                invoker=invoker,
                dispatcher=dispatcher,
                settings=settings,
                system_prompt=prompt,
                advertised=advertised,
                phase=phase_name,
            )
            if own_phase[worker_id].get("pending_action"):
                updates["worker_phases"] = {worker_id: {"pending_action": None}}

        log_node_exit(LOGGER, worker_id, updates)
        return updates

    return worker_node
