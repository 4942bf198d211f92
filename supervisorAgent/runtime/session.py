"""Session runner: the external entry points into the supervisor.

- ``run_turn`` appends a user turn and runs the graph
- ``resume`` merges results of delegated actions and continues the turn
- ``expire_pending`` answers every pending delegated request with an error
  result (for callers that enforce their own deadline)

Each call carries a session id, used as the LangGraph thread id. Calls for
one session must not overlap; different sessions are independent.

After every call, pending delegated requests the executor has not yet
accepted are dispatched to it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set, Union

from langchain_core.messages import HumanMessage, ToolMessage
from pydantic import BaseModel, Field

from supervisorAgent.actions.catalogue import ActionSpec, normalize_catalogue
from supervisorAgent.actions.registry import ActionRegistry
from supervisorAgent.config.settings import Settings, get_settings
from supervisorAgent.graph.message_utils import answered_ids, find_pending_turn, last_model_reply
from supervisorAgent.graph.state import AWAIT_NODE, SupervisorStatus
from supervisorAgent.utils.error_handler import DelegationDispatchError, StatePersistenceError, TurnAbortedError

LOGGER = logging.getLogger(__name__)


class ActionResult(BaseModel):
    """Result of a delegated action, reported by the external executor."""

    request_id: str = Field(min_length=1)
    payload: Any = None
    is_error: bool = False

    def to_message(self, name: Optional[str] = None) -> ToolMessage:
        if isinstance(self.payload, str):
            content = self.payload
        else:
            content = json.dumps(self.payload, ensure_ascii=False, default=str)
        return ToolMessage(
            content=content,
            tool_call_id=self.request_id,
            name=name,
            status="error" if self.is_error else "success",
        )


@dataclass
class DelegationBatch:
    """Delegated requests handed to the external executor."""

    session_id: str
    requests: List[dict]
    advertised_actions: List[str]
    approvals: List[str] = field(default_factory=list)


@dataclass
class TurnOutcome:
    session_id: str
    status: str
    reply: str
    pending_requests: List[dict] = field(default_factory=list)
    approvals_requested: List[str] = field(default_factory=list)
    current_worker: Optional[str] = None
    active_task: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None

    @property
    def awaiting(self) -> bool:
        return self.status == SupervisorStatus.AWAITING_DELEGATED.value


class DelegatedExecutor(Protocol):
    async def dispatch(self, batch: DelegationBatch) -> None:
        ...


ResultInput = Union[ActionResult, Dict[str, Any]]


class SessionRunner:
    """Runs supervisor turns for many independent sessions."""

    def __init__(
        self,
        app,
        *,
        action_registry: ActionRegistry,
        settings: Optional[Settings] = None,
        executor: Optional[DelegatedExecutor] = None,
    ) -> None:
        self.app = app
        self.action_registry = action_registry
        self.settings = settings or get_settings()
        self.executor = executor

    # ========== Entry points ==========

    async def run_turn(
        self,
        session_id: str,
        text: str,
        *,
        actions: Optional[Iterable[Union[ActionSpec, Dict[str, Any]]]] = None,
        user_id: Optional[str] = None,
    ) -> TurnOutcome:
        """Append a user turn and run until the turn ends or suspends."""
        before = await self._get_values(session_id)
        user_id = user_id or before.get("user_id")

        inputs: Dict[str, Any] = {
            "messages": [HumanMessage(content=text)],
            "thread_id": session_id,
            "status": SupervisorStatus.IDLE.value,
            "loops": 0,
            "max_loops": self.settings.governance.max_loops,
        }
        if actions is not None:
            inputs["advertised_actions"] = normalize_catalogue(actions)
        if user_id:
            inputs["user_id"] = user_id

        LOGGER.info(f"[{session_id}] user turn: {text[:100]}{'...' if len(text) > 100 else ''}")
        values = await self._run(session_id, inputs, user_id)
        return await self._finish(session_id, values)

    async def resume(
        self,
        session_id: str,
        results: Iterable[ResultInput],
        *,
        actions: Optional[Iterable[Union[ActionSpec, Dict[str, Any]]]] = None,
    ) -> TurnOutcome:
        """Merge delegated results and continue the suspended turn.

        Results that answer no pending request (duplicates, unknown ids) are
        ignored. When nothing is accepted the graph does not run, so repeated
        delivery of the same results leaves the session unchanged.
        """
        before = await self._get_values(session_id)
        messages = before.get("messages") or []
        _, pending = find_pending_turn(messages)
        pending_by_id = {request["id"]: request for request in pending}
        already_answered = answered_ids(messages)

        accepted: List[ActionResult] = []
        seen: Set[str] = set()
        for raw in results:
            result = raw if isinstance(raw, ActionResult) else ActionResult.model_validate(raw)
            if result.request_id in pending_by_id and result.request_id not in seen:
                seen.add(result.request_id)
                accepted.append(result)
            elif result.request_id in already_answered or result.request_id in seen:
                LOGGER.info(f"[{session_id}] duplicate result for {result.request_id} ignored")
            else:
                LOGGER.warning(f"[{session_id}] result for unknown request {result.request_id} ignored")

        if not accepted:
            LOGGER.info(f"[{session_id}] no pending request matched; session unchanged")
            return await self._finish(session_id, before)

        now = datetime.now(timezone.utc).isoformat()
        inputs: Dict[str, Any] = {
            "messages": [r.to_message(pending_by_id[r.request_id].get("name")) for r in accepted],
            "loops": 0,
            "max_loops": self.settings.governance.max_loops,
            "delegated_results": [
                {
                    "request_id": r.request_id,
                    "action": pending_by_id[r.request_id].get("name"),
                    "is_error": r.is_error,
                    "received_at": now,
                }
                for r in accepted
            ],
        }
        created = self._created_items(accepted, pending_by_id, now)
        if created:
            inputs["created_items"] = created
        if actions is not None:
            inputs["advertised_actions"] = normalize_catalogue(actions)

        LOGGER.info(f"[{session_id}] resuming with {len(accepted)} delegated results")
        values = await self._run(session_id, inputs, before.get("user_id"))
        return await self._finish(session_id, values)

    async def expire_pending(self, session_id: str, reason: str = "Action timed out") -> TurnOutcome:
        """Answer every pending request with an error result and continue."""
        values = await self._get_values(session_id)
        _, pending = find_pending_turn(values.get("messages") or [])
        if not pending:
            return self._outcome(session_id, values)
        LOGGER.warning(f"[{session_id}] expiring {len(pending)} pending requests: {reason}")
        results = [
            ActionResult(request_id=request["id"], payload={"ok": False, "error": reason}, is_error=True)
            for request in pending
        ]
        return await self.resume(session_id, results)

    async def get_outcome(self, session_id: str) -> TurnOutcome:
        return self._outcome(session_id, await self._get_values(session_id))

    # ========== Internals ==========

    def _config(self, session_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        configurable: Dict[str, Any] = {"thread_id": session_id}
        if user_id:
            configurable["user_id"] = user_id
        return {"configurable": configurable, "recursion_limit": self.settings.governance.recursion_limit}

    async def _get_values(self, session_id: str) -> Dict[str, Any]:
        try:
            snapshot = await self.app.aget_state(self._config(session_id))
        except Exception as e:
            LOGGER.error(f"[{session_id}] failed to load session state: {e}")
            raise StatePersistenceError(f"Cannot load session {session_id}: {e}") from e
        return dict(snapshot.values or {})

    async def _run(self, session_id: str, inputs: Dict[str, Any], user_id: Optional[str]) -> Dict[str, Any]:
        try:
            return await self.app.ainvoke(inputs, config=self._config(session_id, user_id))
        except StatePersistenceError as e:
            LOGGER.error(f"[{session_id}] turn aborted, state not persisted: {e}")
            raise
        except Exception as e:
            LOGGER.exception(f"[{session_id}] turn aborted", exc_info=e)
            raise TurnAbortedError(f"Turn aborted for session {session_id}: {e}") from e

    def _created_items(
        self, accepted: List[ActionResult], pending_by_id: Dict[str, dict], now: str
    ) -> List[Dict[str, Any]]:
        creating = set(self.settings.actions.item_creating_actions)
        items = []
        for result in accepted:
            action = pending_by_id[result.request_id].get("name")
            if action not in creating or result.is_error:
                continue
            payload = result.payload if isinstance(result.payload, dict) else {}
            items.append({
                "item_id": str(payload.get("id") or payload.get("itemId") or payload.get("nodeId") or result.request_id),
                "action": action,
                "request_id": result.request_id,
                "title": payload.get("title") or payload.get("name"),
                "created_at": now,
            })
        return items

    def _outcome(self, session_id: str, values: Dict[str, Any]) -> TurnOutcome:
        messages = values.get("messages") or []
        _, pending = find_pending_turn(messages)
        return TurnOutcome(
            session_id=session_id,
            status=values.get("status") or SupervisorStatus.IDLE.value,
            reply=last_model_reply(messages),
            pending_requests=list(pending),
            approvals_requested=[
                request.get("name") for request in pending
                if self.action_registry.is_approval_action(request.get("name", ""))
            ],
            current_worker=values.get("current_worker"),
            active_task=values.get("active_task"),
            last_error=values.get("last_error"),
        )

    async def _finish(self, session_id: str, values: Dict[str, Any]) -> TurnOutcome:
        """Build the outcome and hand undispatched delegated requests to the executor.

        Request ids are recorded as dispatched only after the executor accepts
        the batch, so a failed or interrupted dispatch is retried by the next
        call for the session.
        """
        outcome = self._outcome(session_id, values)
        if not outcome.awaiting or self.executor is None:
            return outcome

        record = dict(values.get("pending_delegation") or {})
        dispatched = list(record.get("dispatched_ids") or [])
        undispatched = [request for request in outcome.pending_requests if request["id"] not in dispatched]
        if not undispatched:
            return outcome

        batch = DelegationBatch(
            session_id=session_id,
            requests=undispatched,
            advertised_actions=[entry["name"] for entry in values.get("advertised_actions") or []],
            approvals=[
                request.get("name") for request in undispatched
                if self.action_registry.is_approval_action(request.get("name", ""))
            ],
        )
        LOGGER.info(f"[{session_id}] dispatching {len(undispatched)} delegated requests")
        try:
            await self.executor.dispatch(batch)
        except Exception as e:
            LOGGER.error(f"[{session_id}] delegated dispatch failed, retrying on the next call: {e}")
            raise DelegationDispatchError(
                f"Dispatch of {len(undispatched)} delegated requests failed for session {session_id}: {e}",
                user_message="Could not hand the requested actions to the client",
            ) from e

        record["dispatched_ids"] = dispatched + [request["id"] for request in undispatched]
        await self._record_dispatched(session_id, record)
        return outcome

    async def _record_dispatched(self, session_id: str, record: Dict[str, Any]) -> None:
        try:
            await self.app.aupdate_state(
                self._config(session_id),
                {"pending_delegation": record},
                as_node=AWAIT_NODE,
            )
        except Exception as e:
            LOGGER.error(f"[{session_id}] failed to record dispatched requests: {e}")
            raise StatePersistenceError(f"Cannot update session {session_id}: {e}") from e
