"""Session state definition for the supervisor graph."""

from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, TypedDict

from langchain_core.messages import BaseMessage

from supervisorAgent.config.settings import ChannelSettings
from supervisorAgent.graph.channels import (
    active_task_reducer,
    bounded_reducer,
    conversation_reducer,
    merge_worker_phases,
    worker_progress_reducer,
)


class SupervisorStatus(str, Enum):
    IDLE = "Idle"
    MODEL_INVOKED = "ModelInvoked"
    ENDED = "Ended"
    WORKER_HANDOFF = "WorkerHandoff"
    LOCAL_EXECUTING = "LocalExecuting"
    AWAITING_DELEGATED = "AwaitingDelegated"


SUPERVISOR_NODE = "supervisor"
EXECUTE_NODE = "execute_local"
HANDOFF_NODE = "handoff"
AWAIT_NODE = "await_delegated"
RESERVED_NODES = frozenset({SUPERVISOR_NODE, EXECUTE_NODE, HANDOFF_NODE, AWAIT_NODE})


class SupervisorState(TypedDict, total=False):
    """Conversation state persisted per session (thread).

    Field types only; the graph runs on the schema returned by
    ``build_state_schema``, which adds the channel reducers.
    """

    # Conversation log
    messages: List[BaseMessage]

    # Per-turn advertised delegated actions: [{name, description, parameters}]
    advertised_actions: List[Dict[str, Any]]

    # Supervisor state machine
    status: str
    current_worker: Optional[str]
    last_error: Optional[str]
    pending_delegation: Optional[Dict[str, Any]]

    # Task and worker tracking
    active_task: Optional[Dict[str, Any]]
    worker_phases: Dict[str, Dict[str, Any]]
    worker_progress: Dict[str, Dict[str, Any]]

    # Bounded records
    created_items: List[Dict[str, Any]]
    delegated_results: List[Dict[str, Any]]
    handoff_history: List[Dict[str, Any]]

    # Governance
    loops: int
    max_loops: int

    # Session identity
    thread_id: Optional[str]
    user_id: Optional[str]


def build_state_schema(channels: ChannelSettings) -> type:
    """Build the graph state schema with reducers sized by ``channels``.

    Reducer channels use builtin generics so LangGraph seeds them with an
    empty value and every write, the first included, goes through the reducer.
    """
    fields = dict(SupervisorState.__annotations__)
    fields.update({
        "messages": Annotated[
            list[BaseMessage],
            conversation_reducer(channels.conversation_cap, channels.conversation_hard_limit),
        ],
        "active_task": Annotated[Optional[Dict[str, Any]], active_task_reducer(channels.task_progress_cap)],
        "worker_phases": Annotated[dict[str, Dict[str, Any]], merge_worker_phases],
        "worker_progress": Annotated[
            dict[str, Dict[str, Any]],
            worker_progress_reducer(channels.explored_cap, channels.tool_summary_cap),
        ],
        "created_items": Annotated[
            list[Dict[str, Any]],
            bounded_reducer(channels.created_items_cap, lambda item: item.get("item_id")),
        ],
        "delegated_results": Annotated[
            list[Dict[str, Any]],
            bounded_reducer(channels.delegated_results_cap, lambda record: record.get("request_id")),
        ],
        "handoff_history": Annotated[
            list[Dict[str, Any]],
            bounded_reducer(channels.handoff_history_cap, lambda record: record.get("request_id")),
        ],
    })
    return TypedDict("SupervisorGraphState", fields, total=False)
