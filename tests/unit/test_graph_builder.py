"""Unit tests for graph assembly."""

import warnings
from typing import get_type_hints

import pytest

from conftest import RESEARCHER_CARD, ScriptedInvoker
from supervisorAgent.actions import ActionRegistry
from supervisorAgent.config.settings import ChannelSettings
from supervisorAgent.graph import build_state_graph, build_state_schema
from supervisorAgent.runtime import build_application
from supervisorAgent.workers import WorkerRegistry, parse_worker_card


def test_worker_id_cannot_clash_with_graph_nodes(settings):
    workers = WorkerRegistry()
    workers.register(parse_worker_card("handoff", RESEARCHER_CARD))
    with pytest.raises(ValueError, match="clash"):
        build_state_graph(
            invoker=ScriptedInvoker(),
            action_registry=ActionRegistry(),
            worker_registry=workers,
            settings=settings,
        )


def test_application_from_default_workers(settings):
    app, action_registry, workers = build_application(settings, invoker=ScriptedInvoker())

    nodes = set(app.get_graph().nodes)
    assert {"supervisor", "execute_local", "handoff", "await_delegated"} <= nodes
    for worker_id in workers.ids():
        assert worker_id in nodes
    assert {"now", "save_memory", "recall_memories", "list_memories"} <= action_registry.local_actions


def test_state_schema_reducers_use_channel_settings():
    schema = build_state_schema(ChannelSettings(created_items_cap=2, conversation_cap=4, conversation_hard_limit=6))
    hints = get_type_hints(schema, include_extras=True)

    created = hints["created_items"].__metadata__[0]
    merged = created([{"item_id": "a"}], [{"item_id": "b"}, {"item_id": "c"}])
    assert merged == [{"item_id": "b"}, {"item_id": "c"}]

    # Plain fields carry no reducer
    assert not hasattr(hints["status"], "__metadata__")


def test_node_config_parameters_are_typed(settings, worker_registry):
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        build_application(settings, invoker=ScriptedInvoker(), worker_registry=worker_registry)

    assert not [w for w in caught if "'config' parameter" in str(w.message)]
