"""Factory for assembling the supervisor state machine."""

from __future__ import annotations

import logging

from langgraph.graph import END, START, StateGraph

from supervisorAgent.actions.registry import ActionRegistry
from supervisorAgent.config.settings import Settings
from supervisorAgent.graph.nodes import (
    build_await_node,
    build_execute_node,
    build_handoff_node,
    build_supervisor_node,
    build_worker_node,
)
from supervisorAgent.graph.routing import Dispatcher, entry_route, execute_route, handoff_route, model_route
from supervisorAgent.graph.state import (
    AWAIT_NODE,
    EXECUTE_NODE,
    HANDOFF_NODE,
    RESERVED_NODES,
    SUPERVISOR_NODE,
    build_state_schema,
)
from supervisorAgent.workers.registry import WorkerRegistry

LOGGER = logging.getLogger(__name__)


def build_state_graph(
    *,
    invoker,
    action_registry: ActionRegistry,
    worker_registry: WorkerRegistry,
    settings: Settings,
    checkpointer=None,
):
    """Compose the supervisor graph.

        START → supervisor | <active worker>
        model node → handoff         → <worker> | supervisor
                   → execute_local   → <acting model node> | await_delegated
                   → await_delegated → END (suspended)
                   → END             (turn complete)

    ``invoker`` is any object with ``async invoke(system_prompt, history,
    advertised_actions) -> AIMessage``.
    """
    clashes = RESERVED_NODES.intersection(worker_registry.ids())
    if clashes:
        raise ValueError(f"Worker ids clash with graph nodes: {sorted(clashes)}")

    dispatcher = Dispatcher(action_registry, worker_registry)
    model_nodes = [SUPERVISOR_NODE, *worker_registry.ids()]

    graph = StateGraph(build_state_schema(settings.channels))

    graph.add_node(SUPERVISOR_NODE, build_supervisor_node(invoker=invoker, dispatcher=dispatcher, settings=settings))
    for worker_id in worker_registry.ids():
        graph.add_node(worker_id, build_worker_node(worker_id, invoker=invoker, dispatcher=dispatcher, settings=settings))
        LOGGER.info(f"Added worker node: {worker_id}")
    graph.add_node(EXECUTE_NODE, build_execute_node(dispatcher=dispatcher))
    graph.add_node(HANDOFF_NODE, build_handoff_node(dispatcher=dispatcher))
    graph.add_node(AWAIT_NODE, build_await_node(dispatcher=dispatcher))

    graph.add_conditional_edges(START, entry_route, {name: name for name in model_nodes})

    after_model = {HANDOFF_NODE: HANDOFF_NODE, EXECUTE_NODE: EXECUTE_NODE, AWAIT_NODE: AWAIT_NODE, END: END}
    for name in model_nodes:
        graph.add_conditional_edges(name, model_route, after_model)

    graph.add_conditional_edges(
        EXECUTE_NODE,
        execute_route,
        {AWAIT_NODE: AWAIT_NODE, **{name: name for name in model_nodes}},
    )
    graph.add_conditional_edges(HANDOFF_NODE, handoff_route, {name: name for name in model_nodes})
    graph.add_edge(AWAIT_NODE, END)

    return graph.compile(checkpointer=checkpointer)
