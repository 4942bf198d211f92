"""Unit tests for the bounded and record channel reducers."""

import pytest

from supervisorAgent.graph.channels import (
    bounded_reducer,
    merge_active_task,
    merge_bounded,
    merge_ordered_set,
    merge_worker_phases,
    merge_worker_progress,
)


def by_id(item):
    return item["id"]


class TestMergeBounded:
    def test_keeps_newest_entries(self):
        existing = [{"id": i} for i in range(5)]
        merged = merge_bounded(existing, [{"id": 5}, {"id": 6}], cap=5, key_fn=by_id)
        assert [item["id"] for item in merged] == [2, 3, 4, 5, 6]

    def test_duplicates_are_ignored(self):
        merged = merge_bounded([{"id": "a", "v": 1}], [{"id": "a", "v": 2}, {"id": "b"}], cap=10, key_fn=by_id)
        assert merged == [{"id": "a", "v": 1}, {"id": "b"}]

    def test_duplicates_within_one_update(self):
        merged = merge_bounded([], [{"id": "a"}, {"id": "a"}], cap=10, key_fn=by_id)
        assert len(merged) == 1

    def test_never_exceeds_cap(self):
        merged = []
        for i in range(100):
            merged = merge_bounded(merged, {"id": i}, cap=7, key_fn=by_id)
            assert len(merged) <= 7
        assert merged[-1]["id"] == 99

    def test_existing_order_is_stable(self):
        existing = [{"id": "b"}, {"id": "a"}]
        merged = merge_bounded(existing, [{"id": "a"}, {"id": "c"}], cap=10, key_fn=by_id)
        assert [item["id"] for item in merged] == ["b", "a", "c"]

    def test_none_inputs(self):
        assert merge_bounded(None, None, cap=3, key_fn=by_id) == []

    @pytest.mark.parametrize("cap", [0, -1])
    def test_non_positive_cap_rejected(self, cap):
        with pytest.raises(ValueError, match="cap must be at least 1"):
            merge_bounded([{"id": 1}], [{"id": 2}], cap=cap, key_fn=by_id)

    def test_reducer_factory(self):
        reducer = bounded_reducer(2, by_id)
        assert reducer([{"id": 1}], [{"id": 2}, {"id": 3}]) == [{"id": 2}, {"id": 3}]

    def test_ordered_set(self):
        assert merge_ordered_set(["x", "y"], ["y", "z"], cap=10) == ["x", "y", "z"]


class TestActiveTask:
    def test_none_clears(self):
        assert merge_active_task({"current_goal": "g"}, None, progress_cap=5) is None

    def test_original_request_is_fixed(self):
        existing = {"original_request": "first", "started_at": "t0", "current_goal": "g1"}
        merged = merge_active_task(existing, {"original_request": "second", "current_goal": "g2"}, progress_cap=5)
        assert merged["original_request"] == "first"
        assert merged["started_at"] == "t0"
        assert merged["current_goal"] == "g2"

    def test_none_fields_keep_stored_value(self):
        merged = merge_active_task({"assigned_worker": "w"}, {"assigned_worker": None}, progress_cap=5)
        assert merged["assigned_worker"] == "w"

    def test_progress_is_bounded_union(self):
        merged = merge_active_task({"progress": ["a", "b"]}, {"progress": ["b", "c", "d"]}, progress_cap=3)
        assert merged["progress"] == ["b", "c", "d"]


class TestWorkerPhases:
    def test_record_fields_merge(self):
        existing = {"w": {"phase": "p1", "pending_action": "createItem"}}
        merged = merge_worker_phases(existing, {"w": {"pending_action": None}})
        assert merged == {"w": {"phase": "p1", "pending_action": None}}

    def test_none_removes_worker(self):
        merged = merge_worker_phases({"w": {"phase": "p1"}, "v": {"phase": "q"}}, {"w": None})
        assert merged == {"v": {"phase": "q"}}

    def test_input_not_mutated(self):
        existing = {"w": {"phase": "p1"}}
        merge_worker_phases(existing, {"w": {"phase": "p2"}})
        assert existing == {"w": {"phase": "p1"}}


class TestWorkerProgress:
    def test_merge_rules(self):
        existing = {"w": {
            "explored": ["search"],
            "tool_call_summary": [{"request_id": "r1", "action": "search"}],
            "counters": {"local_actions": 1},
            "last_phase": "p1",
        }}
        update = {"w": {
            "explored": ["search", "now"],
            "tool_call_summary": [{"request_id": "r1", "action": "search"}, {"request_id": "r2", "action": "now"}],
            "counters": {"local_actions": 2, "rejected": 1},
            "last_phase": "p2",
        }}
        merged = merge_worker_progress(existing, update, explored_cap=10, summary_cap=10)["w"]

        assert merged["explored"] == ["search", "now"]
        assert [e["request_id"] for e in merged["tool_call_summary"]] == ["r1", "r2"]
        assert merged["counters"] == {"local_actions": 3, "rejected": 1}
        assert merged["last_phase"] == "p2"

    def test_summary_is_capped(self):
        merged = {}
        for i in range(30):
            merged = merge_worker_progress(
                merged, {"w": {"tool_call_summary": [{"request_id": f"r{i}"}]}}, explored_cap=5, summary_cap=5
            )
        summary = merged["w"]["tool_call_summary"]
        assert [e["request_id"] for e in summary] == ["r25", "r26", "r27", "r28", "r29"]
