"""Unit tests for the conversation log reducer."""

import logging

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from supervisorAgent.graph.channels import cap_conversation, merge_conversation
from supervisorAgent.graph.message_utils import EntryKind, entry_kind
from supervisorAgent.utils.error_handler import StatePersistenceError


def ai(*call_ids, content=""):
    return AIMessage(content=content, tool_calls=[{"id": c, "name": "act", "args": {}} for c in call_ids])


def result(call_id, content="ok"):
    return ToolMessage(content=content, tool_call_id=call_id)


class TestMergeConversation:
    def test_assigns_ids_and_appends(self):
        merged = merge_conversation([], [HumanMessage(content="hi")], cap=10, hard_limit=20)
        assert len(merged) == 1
        assert merged[0].id

    def test_same_entry_is_not_stored_twice(self):
        merged = merge_conversation([], [HumanMessage(content="hi", id="m1")], cap=10, hard_limit=20)
        merged = merge_conversation(merged, [HumanMessage(content="hi", id="m1")], cap=10, hard_limit=20)
        assert len(merged) == 1

    def test_orphan_result_is_dropped(self, caplog):
        """Test that a result without a prior request never enters the log."""
        with caplog.at_level(logging.WARNING):
            merged = merge_conversation([HumanMessage(content="hi")], [result("ghost")], cap=10, hard_limit=20)
        assert len(merged) == 1
        assert "ghost" in caplog.text

    def test_duplicate_result_is_ignored(self):
        log = merge_conversation([], [ai("c1"), result("c1", "first")], cap=10, hard_limit=20)
        log = merge_conversation(log, [result("c1", "second")], cap=10, hard_limit=20)
        results = [m for m in log if entry_kind(m) is EntryKind.RESULT]
        assert [m.content for m in results] == ["first"]

    def test_result_before_request_in_same_update_is_orphan(self):
        log = merge_conversation([], [result("c1"), ai("c1")], cap=10, hard_limit=20)
        assert [entry_kind(m) for m in log] == [EntryKind.MODEL]


class TestCapConversation:
    def test_cap_never_splits_pairs(self):
        log = []
        for i in range(20):
            log += [HumanMessage(content=f"q{i}"), ai(f"c{i}"), result(f"c{i}"), AIMessage(content=f"a{i}")]
        capped = cap_conversation(log, cap=10, hard_limit=50)

        assert len(capped) <= 10
        assert entry_kind(capped[0]) is not EntryKind.RESULT
        issued = {c["id"] for m in capped if entry_kind(m) is EntryKind.MODEL for c in m.tool_calls}
        for m in capped:
            if entry_kind(m) is EntryKind.RESULT:
                assert m.tool_call_id in issued

    def test_pending_request_is_never_dropped(self):
        log = [ai("pending")] + [HumanMessage(content=f"u{i}") for i in range(15)]
        capped = cap_conversation(log, cap=5, hard_limit=50)
        assert capped[0].tool_calls[0]["id"] == "pending"

    def test_hard_limit_raises(self):
        log = [ai("pending")] + [HumanMessage(content=f"u{i}") for i in range(15)]
        with pytest.raises(StatePersistenceError):
            cap_conversation(log, cap=5, hard_limit=10)

    def test_under_cap_unchanged(self):
        log = [HumanMessage(content="a"), AIMessage(content="b")]
        assert cap_conversation(log, cap=5, hard_limit=10) == log
