"""Unit tests for the action registry and request classification."""

import logging

import pytest
from langchain_core.tools import tool

from supervisorAgent.actions import ActionRegistry, classify_action_requests
from supervisorAgent.actions.registry import ActionClass


@tool
def search(query: str) -> str:
    """Search the knowledge base."""
    return query


@tool
def now() -> str:
    """Current time."""
    return "2025-01-01T00:00:00+00:00"


def req(call_id, name, **args):
    return {"id": call_id, "name": name, "args": args, "type": "tool_call"}


@pytest.fixture
def registry():
    return ActionRegistry([search, now])


class TestActionRegistry:
    def test_static_tables(self, registry):
        assert registry.local_actions == frozenset({"search", "now"})
        assert "transfer_to_worker" in registry.routing_actions
        known = registry.class_known_actions(["search", "advance_phase", "createItem"])
        assert known == {"search": ActionClass.LOCAL, "advance_phase": ActionClass.ROUTING}

    def test_duplicate_local_action_rejected(self):
        with pytest.raises(ValueError, match="registered twice"):
            ActionRegistry([search, search])

    def test_local_action_cannot_shadow_routing_signal(self):
        @tool("advance_phase")
        def fake_advance() -> str:
            """Not a real signal."""
            return ""

        with pytest.raises(ValueError, match="shadow routing"):
            ActionRegistry([fake_advance])

    def test_local_table_is_read_only(self, registry):
        with pytest.raises(TypeError):
            registry._local["other"] = search

    def test_approval_actions_by_name(self, registry):
        assert registry.is_approval_action("requestPlanApproval")
        assert registry.is_approval_action("confirmDelete")
        assert not registry.is_approval_action("createItem")
        assert not registry.is_approval_action("")

    def test_local_tool_schemas_subset(self, registry):
        schemas = registry.local_tool_schemas(["search", "createItem"])
        assert [s["function"]["name"] for s in schemas] == ["search"]
        assert len(registry.local_tool_schemas()) == 2

    def test_get_unknown_local_tool(self, registry):
        with pytest.raises(KeyError):
            registry.get_local_tool("createItem")


class TestClassifyActionRequests:
    def test_four_rules(self, registry):
        requests = [
            req("c1", "transfer_to_worker", worker="researcher", task="t"),
            req("c2", "search", query="q"),
            req("c3", "createItem", title="x"),
            req("c4", "mysteryAction"),
        ]
        result = classify_action_requests(requests, registry, {"createItem"})

        assert [r["id"] for r in result.routing] == ["c1"]
        assert [r["id"] for r in result.local] == ["c2"]
        assert [r["id"] for r in result.delegated] == ["c3", "c4"]
        assert result.class_of("c4") is ActionClass.DELEGATED
        assert len(result.warnings) == 1

    def test_advertised_action_delegated_without_warning(self, registry, caplog):
        """Test that an advertised, unregistered action is delegated silently."""
        with caplog.at_level(logging.WARNING):
            result = classify_action_requests([req("c1", "switchView", view="board")], registry, {"switchView"})

        assert [r["id"] for r in result.delegated] == ["c1"]
        assert result.warnings == []
        assert "Unknown action" not in caplog.text

    def test_unknown_action_delegated_with_warning(self, registry, caplog):
        """Test that an unknown name still goes to the external executor, with a warning."""
        with caplog.at_level(logging.WARNING):
            result = classify_action_requests([req("c9", "doSomethingUnregistered")], registry, set())

        assert [r["id"] for r in result.delegated] == ["c9"]
        assert "doSomethingUnregistered" in result.warnings[0]
        assert "Unknown action 'doSomethingUnregistered'" in caplog.text

    def test_partition_preserves_order_and_is_disjoint(self, registry):
        requests = [req(f"c{i}", name) for i, name in enumerate(
            ["createItem", "search", "now", "updateItem", "report_completion", "search"]
        )]
        result = classify_action_requests(requests, registry, {"createItem", "updateItem"})

        ids = [r["id"] for r in result.routing + result.local + result.delegated]
        assert sorted(ids) == sorted(r["id"] for r in requests)
        assert len(set(ids)) == len(ids)
        assert [r["id"] for r in result.local] == ["c1", "c2", "c5"]
        assert [r["id"] for r in result.delegated] == ["c0", "c3"]

    def test_classification_is_deterministic(self, registry):
        requests = [req("a", "search"), req("b", "createItem"), req("c", "advance_phase")]
        first = classify_action_requests(requests, registry, {"createItem"})
        second = classify_action_requests(requests, registry, {"createItem"})
        assert first == second

    def test_empty_batch(self, registry):
        result = classify_action_requests([], registry, set())
        assert result.routing == [] and result.local == [] and result.delegated == []

    def test_class_of_unknown_id(self, registry):
        result = classify_action_requests([req("a", "search")], registry, set())
        with pytest.raises(KeyError):
            result.class_of("missing")
