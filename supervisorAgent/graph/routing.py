"""Dispatch planning and routing logic for the supervisor graph.

A model turn's pending requests are turned into a ``DispatchPlan``: at most
one routing signal, the local requests to run, the delegated requests to hand
out, and the requests rejected with a reason. The plan decides the next
supervisor status; the route functions below only read that status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, List, Optional, Tuple

from langchain_core.messages import AIMessage
from langgraph.graph import END

from supervisorAgent.actions.catalogue import catalogue_names
from supervisorAgent.actions.classifier import classify_action_requests
from supervisorAgent.actions.registry import (
    ADVANCE_PHASE,
    REPORT_COMPLETION,
    TRANSFER_TO_WORKER,
    ActionRegistry,
)
from supervisorAgent.graph.message_utils import find_pending_turn
from supervisorAgent.graph.state import (
    AWAIT_NODE,
    EXECUTE_NODE,
    HANDOFF_NODE,
    SUPERVISOR_NODE,
    SupervisorState,
    SupervisorStatus,
)
from supervisorAgent.utils.error_handler import PhaseViolationError
from supervisorAgent.utils.logging_utils import log_classification, log_routing_decision
from supervisorAgent.workers.registry import WorkerRegistry

LOGGER = logging.getLogger(__name__)


@dataclass
class Rejection:
    request: dict
    reason: str


@dataclass
class RoutingSignal:
    name: str
    request: dict
    target: str  # worker id, next phase, or the supervisor


@dataclass
class DispatchPlan:
    actor: str
    routing: Optional[RoutingSignal] = None
    local: List[dict] = field(default_factory=list)
    delegated: List[dict] = field(default_factory=list)
    rejected: List[Rejection] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def status(self) -> SupervisorStatus:
        if self.routing is not None:
            return SupervisorStatus.WORKER_HANDOFF
        if self.local or self.rejected:
            return SupervisorStatus.LOCAL_EXECUTING
        if self.delegated:
            return SupervisorStatus.AWAITING_DELEGATED
        return SupervisorStatus.ENDED


def _ordered(requests: Iterable[dict], wanted: List[dict]) -> List[dict]:
    ids = {id(request) for request in wanted}
    return [request for request in requests if id(request) in ids]


class Dispatcher:
    """Builds dispatch plans from requests, registry, catalogue and phase tables."""

    def __init__(self, registry: ActionRegistry, workers: WorkerRegistry) -> None:
        self.registry = registry
        self.workers = workers

    def actor_phase(self, state: SupervisorState, actor: str) -> Optional[str]:
        if actor not in self.workers:
            return None
        record = (state.get("worker_phases") or {}).get(actor) or {}
        return record.get("phase") or self.workers.gate(actor).initial_phase

    def plan(
        self,
        requests: List[dict],
        *,
        actor: str,
        advertised_names: AbstractSet[str],
        phase: Optional[str] = None,
    ) -> DispatchPlan:
        classified = classify_action_requests(requests, self.registry, advertised_names)
        plan = DispatchPlan(actor=actor, warnings=list(classified.warnings))
        log_classification(
            LOGGER,
            actor,
            [r.get("name") for r in classified.routing],
            [r.get("name") for r in classified.local],
            [r.get("name") for r in classified.delegated],
        )

        for request in classified.routing:
            target, reason = self._resolve_signal(request, actor, phase)
            if target is None:
                plan.rejected.append(Rejection(request, reason))
            elif plan.routing is not None:
                plan.rejected.append(Rejection(
                    request, f"Only one routing signal per turn; {plan.routing.name} was already accepted"
                ))
            else:
                plan.routing = RoutingSignal(request["name"], request, target)

        if plan.routing is not None:
            for request in _ordered(requests, classified.local + classified.delegated):
                plan.rejected.append(Rejection(
                    request, f"Not executed: superseded by {plan.routing.name} in the same turn"
                ))
            return plan

        gate = self.workers.gate(actor) if actor in self.workers else None
        for bucket, requests_of_class in ((plan.local, classified.local), (plan.delegated, classified.delegated)):
            for request in requests_of_class:
                name = request.get("name", "")
                if gate is not None and phase is not None and not gate.is_action_allowed(phase, name):
                    violation = PhaseViolationError(actor, phase, name, gate.allowed_actions(phase))
                    LOGGER.warning(str(violation))
                    plan.rejected.append(Rejection(request, str(violation)))
                else:
                    bucket.append(request)

        return plan

    def plan_pending(self, state: SupervisorState) -> Tuple[Optional[AIMessage], DispatchPlan]:
        """Plan for the unresolved requests of the latest model turn."""
        turn, pending = find_pending_turn(state.get("messages") or [])
        actor = self.actor_of(turn)
        plan = self.plan(
            pending,
            actor=actor,
            advertised_names=catalogue_names(state.get("advertised_actions")),
            phase=self.actor_phase(state, actor),
        )
        return turn, plan

    def actor_of(self, turn: Optional[AIMessage]) -> str:
        name = getattr(turn, "name", None)
        return name if name in self.workers else SUPERVISOR_NODE

    def _resolve_signal(self, request: dict, actor: str, phase: Optional[str]) -> Tuple[Optional[str], str]:
        name = request.get("name")
        args = request.get("args") or {}
        is_worker = actor in self.workers

        if name == TRANSFER_TO_WORKER:
            if is_worker:
                return None, "Workers cannot transfer work; call report_completion to return to the supervisor"
            worker = args.get("worker")
            if worker not in self.workers:
                available = ", ".join(self.workers.ids()) or "none"
                return None, f"Unknown worker '{worker}'. Available workers: {available}"
            return worker, ""

        if name == ADVANCE_PHASE:
            if not is_worker:
                return None, "advance_phase is only available to an active worker"
            next_phase = self.workers.gate(actor).next_phase(phase, completed_signal=True)
            if next_phase is None:
                return None, f"Phase '{phase}' is final; call report_completion instead"
            return next_phase, ""

        if name == REPORT_COMPLETION:
            if not is_worker:
                return None, "report_completion is only available to an active worker"
            return SUPERVISOR_NODE, ""

        return None, f"Unknown routing signal '{name}'"


# ========== Route functions ==========

def _active_worker(state: SupervisorState) -> Optional[str]:
    worker = state.get("current_worker")
    if worker and worker in (state.get("worker_phases") or {}):
        return worker
    return None


def entry_route(state: SupervisorState) -> str:
    """Route a new run to the active worker, or the supervisor."""
    worker = _active_worker(state)
    decision = worker or SUPERVISOR_NODE
    log_routing_decision(LOGGER, "entry", decision, "active worker" if worker else "no active worker")
    return decision


def model_route(state: SupervisorState) -> str:
    """Route after a model node according to the planned status."""
    status = state.get("status")
    if status == SupervisorStatus.WORKER_HANDOFF.value:
        decision = HANDOFF_NODE
    elif status == SupervisorStatus.LOCAL_EXECUTING.value:
        decision = EXECUTE_NODE
    elif status == SupervisorStatus.AWAITING_DELEGATED.value:
        decision = AWAIT_NODE
    else:
        decision = END
    log_routing_decision(LOGGER, "model", str(decision), f"status={status}")
    return decision


def execute_route(state: SupervisorState) -> str:
    """After local execution: suspend for delegated requests or loop back to the actor."""
    if state.get("status") == SupervisorStatus.AWAITING_DELEGATED.value:
        log_routing_decision(LOGGER, EXECUTE_NODE, AWAIT_NODE, "delegated requests pending")
        return AWAIT_NODE

    turn, _ = find_pending_turn(state.get("messages") or [])
    actor = getattr(turn, "name", None)
    decision = actor if actor and actor == _active_worker(state) else SUPERVISOR_NODE
    log_routing_decision(LOGGER, EXECUTE_NODE, decision, "results appended, re-invoking model")
    return decision


def handoff_route(state: SupervisorState) -> str:
    """After a routing signal: go to the active worker, or back to the supervisor."""
    decision = _active_worker(state) or SUPERVISOR_NODE
    log_routing_decision(LOGGER, HANDOFF_NODE, decision, f"current_worker={state.get('current_worker')}")
    return decision


__all__ = [
    "DispatchPlan",
    "Dispatcher",
    "Rejection",
    "RoutingSignal",
    "entry_route",
    "execute_route",
    "handoff_route",
    "model_route",
]
