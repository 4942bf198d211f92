"""Unit tests for model-input history preparation (trim, filter, pair, repair)."""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from supervisorAgent.graph.message_utils import (
    CANCELLED_RESULT_TEXT,
    EntryKind,
    entry_kind,
    filter_orphaned_results,
    find_pending_turn,
    find_safe_start,
    pair_results_with_requests,
    prepare_model_history,
    repair_dangling_requests,
    trim_history,
)


def ai(*call_ids, content=""):
    return AIMessage(content=content, tool_calls=[{"id": c, "name": "act", "args": {}} for c in call_ids])


def result(call_id, content="ok"):
    return ToolMessage(content=content, tool_call_id=call_id)


def long_log():
    """120 entries; entry 81 requests r81, answered by entry 95."""
    log = []
    for i in range(120):
        if i == 80:
            log.append(ai("r81"))
        elif i == 94:
            log.append(result("r81"))
        elif i % 2 == 1:
            log.append(HumanMessage(content=f"user {i}"))
        else:
            log.append(AIMessage(content=f"reply {i}"))
    return log


def assert_pairing_safe(trimmed):
    issued = set()
    assert entry_kind(trimmed[0]) is not EntryKind.RESULT
    for message in trimmed:
        if entry_kind(message) is EntryKind.MODEL:
            issued.update(c["id"] for c in message.tool_calls)
        elif entry_kind(message) is EntryKind.RESULT:
            assert message.tool_call_id in issued


class TestTrimHistory:
    def test_cut_at_model_turn_keeps_its_result(self):
        log = long_log()
        trimmed = trim_history(log, 40)
        assert trimmed[0] is log[80]
        assert log[94] in trimmed

    def test_cut_inside_pair_moves_to_next_user_turn(self):
        """Test that a cut between the request and its result moves past the result."""
        log = long_log()
        trimmed = trim_history(log, 30)
        assert trimmed[0] is log[95]
        assert isinstance(trimmed[0], HumanMessage)
        assert log[94] not in trimmed

    @pytest.mark.parametrize("keep", [1, 5, 25, 26, 35, 39, 40, 41, 60, 119, 120, 200])
    def test_never_starts_with_result_or_orphans_one(self, keep):
        trimmed = trim_history(long_log(), keep)
        assert_pairing_safe(trimmed)

    def test_system_entries_always_kept(self):
        log = [SystemMessage(content="rules")] + long_log()
        trimmed = trim_history(log, 10)
        assert isinstance(trimmed[0], SystemMessage)
        assert_pairing_safe(trimmed[1:])

    def test_short_log_unchanged(self):
        log = [HumanMessage(content="hi"), AIMessage(content="hello")]
        assert trim_history(log, 40) == log

    def test_falls_back_backwards_when_no_forward_start(self):
        log = [HumanMessage(content="q"), ai("c1"), result("c1")]
        assert find_safe_start(log, 2) == 1


class TestCleaning:
    def test_filter_drops_orphans_duplicates_and_empty_turns(self):
        log = [
            HumanMessage(content="q"),
            result("ghost"),
            ai("c1"),
            result("c1", "first"),
            result("c1", "again"),
            AIMessage(content=""),
            AIMessage(content="done"),
        ]
        cleaned = filter_orphaned_results(log)
        assert [getattr(m, "content", None) for m in cleaned] == ["q", "", "first", "done"]

    def test_pair_moves_late_result_next_to_request(self):
        late = result("c1", "late")
        log = [HumanMessage(content="q"), ai("c1"), HumanMessage(content="meanwhile"), late]
        paired = pair_results_with_requests(log)
        assert paired[2] is late
        assert paired[3].content == "meanwhile"

    def test_repair_adds_cancelled_placeholder(self):
        log = [HumanMessage(content="q"), ai("c1", "c2"), result("c1"), HumanMessage(content="next")]
        repaired = repair_dangling_requests(log)
        placeholder = repaired[3]
        assert isinstance(placeholder, ToolMessage)
        assert placeholder.tool_call_id == "c2"
        assert placeholder.content == CANCELLED_RESULT_TEXT
        assert placeholder.status == "error"
        assert repaired[4].content == "next"

    def test_prepare_model_history_is_pairing_safe(self):
        log = long_log() + [ai("open"), HumanMessage(content="still waiting")]
        history = prepare_model_history(log, 40)
        assert_pairing_safe(history)
        answered = {m.tool_call_id for m in history if isinstance(m, ToolMessage)}
        assert "open" in answered

    def test_stored_log_not_modified(self):
        log = [ai("c1")]
        prepare_model_history(log, 40)
        assert len(log) == 1


class TestPendingTurn:
    def test_latest_turn_and_unresolved_requests(self):
        log = [ai("a1"), result("a1"), ai("b1", "b2"), result("b1")]
        turn, pending = find_pending_turn(log)
        assert turn is log[2]
        assert [r["id"] for r in pending] == ["b2"]

    def test_no_requests(self):
        assert find_pending_turn([HumanMessage(content="hi")]) == (None, [])

    def test_unknown_entry_type_rejected(self):
        from langchain_core.messages import ChatMessage

        with pytest.raises(TypeError):
            entry_kind(ChatMessage(content="x", role="custom"))
