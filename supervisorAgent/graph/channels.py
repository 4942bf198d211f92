"""Merge functions for the session state channels.

Every accumulating channel goes through one of these reducers; nodes only
return partial updates. Bounded logs deduplicate by key and keep the newest
``cap`` entries. Record channels merge field by field, and ``None`` as an
update clears the record.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from langchain_core.messages import BaseMessage, convert_to_messages

from supervisorAgent.graph.message_utils import (
    EntryKind,
    entry_kind,
    find_safe_start,
    find_safe_start_at_or_before,
    request_ids,
    unresolved_request_ids,
)
from supervisorAgent.utils.error_handler import StatePersistenceError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def merge_bounded(
    existing: Optional[Sequence[T]],
    incoming: Optional[Iterable[T]],
    cap: int,
    key_fn: Callable[[T], Any],
) -> List[T]:
    """Append unseen items and keep the newest ``cap`` entries.

    Previously accepted entries are never reordered. Keys are checked against
    the retained entries only.
    """
    if cap < 1:
        raise ValueError(f"cap must be at least 1, got {cap}")
    merged = list(existing or [])
    seen = {key_fn(item) for item in merged}
    for item in _as_list(incoming):
        key = key_fn(item)
        if key in seen:
            continue
        seen.add(key)
        merged.append(item)
    if len(merged) > cap:
        merged = merged[-cap:]
    return merged


def merge_ordered_set(existing: Optional[Sequence[str]], incoming: Optional[Iterable[str]], cap: int) -> List[str]:
    """Union of two string sequences, order of first appearance, newest ``cap`` kept."""
    return merge_bounded(existing, incoming, cap, lambda item: item)


def bounded_reducer(cap: int, key_fn: Callable[[Any], Any]) -> Callable[[Any, Any], List[Any]]:
    """Build a LangGraph reducer for a bounded, deduplicated log."""

    def reducer(existing, incoming):
        return merge_bounded(existing, incoming, cap, key_fn)

    reducer.__name__ = f"bounded_reducer_{cap}"
    return reducer


# ========== Conversation log ==========

def cap_conversation(messages: List[BaseMessage], cap: int, hard_limit: int) -> List[BaseMessage]:
    """Cap the stored log without splitting a model turn from its results.

    Model turns with unresolved requests are never cut, since their results
    may still arrive. Raises StatePersistenceError when that forces the log
    past ``hard_limit``.
    """
    if len(messages) <= cap:
        return messages

    start = find_safe_start(messages, len(messages) - cap)

    pending = unresolved_request_ids(messages)
    if pending:
        first_pending = next(
            i for i, message in enumerate(messages) if pending.intersection(request_ids(message))
        )
        if first_pending < start:
            start = find_safe_start_at_or_before(messages, first_pending)

    kept = messages[start:]
    if len(kept) > hard_limit:
        raise StatePersistenceError(
            f"Conversation log would keep {len(kept)} entries (limit {hard_limit}) "
            f"because {len(pending)} requests are still pending",
            user_message="Session history is too large to store safely",
        )
    if start:
        LOGGER.debug(f"Conversation log capped: dropped {start} oldest entries")
    return kept


def merge_conversation(
    existing: Optional[List[BaseMessage]],
    incoming: Any,
    cap: int,
    hard_limit: int,
) -> List[BaseMessage]:
    """Append new entries to the conversation log.

    - entries get an id when they have none; an entry whose id is already
      stored is skipped
    - a result for a request that was already answered is skipped
    - a result without a prior request is dropped with a warning
    """
    merged = list(existing or [])
    stored_ids = {m.id for m in merged if m.id}
    issued = set()
    answered = set()
    for message in merged:
        kind = entry_kind(message)
        if kind is EntryKind.MODEL:
            issued.update(request_ids(message))
        elif kind is EntryKind.RESULT:
            answered.add(message.tool_call_id)

    for message in convert_to_messages(_as_list(incoming)):
        if message.id is None:
            message.id = str(uuid.uuid4())
        elif message.id in stored_ids:
            LOGGER.debug(f"Entry {message.id} already stored, skipping")
            continue

        kind = entry_kind(message)
        if kind is EntryKind.RESULT:
            call_id = message.tool_call_id
            if call_id not in issued:
                LOGGER.warning(f"Dropping orphaned result for request {call_id}: no prior request in log")
                continue
            if call_id in answered:
                LOGGER.info(f"Ignoring duplicate result for request {call_id}")
                continue
            answered.add(call_id)
        elif kind is EntryKind.MODEL:
            issued.update(request_ids(message))

        merged.append(message)
        stored_ids.add(message.id)

    return cap_conversation(merged, cap, hard_limit)


def conversation_reducer(cap: int, hard_limit: int) -> Callable[[Any, Any], List[BaseMessage]]:
    """Build the LangGraph reducer for the conversation channel."""

    def reducer(existing, incoming):
        return merge_conversation(existing, incoming, cap, hard_limit)

    reducer.__name__ = "conversation_reducer"
    return reducer


# ========== Record channels ==========

def merge_active_task(
    existing: Optional[Dict[str, Any]],
    update: Optional[Dict[str, Any]],
    progress_cap: int,
) -> Optional[Dict[str, Any]]:
    """Merge an active-task update.

    ``None`` clears the task. Fields missing (or ``None``) in the update keep
    their stored value; ``original_request`` and ``started_at`` are fixed once
    set; progress notes are a deduplicated union.
    """
    if update is None:
        return None

    base = dict(existing or {})
    for key, value in update.items():
        if key == "progress" or value is None:
            continue
        if key in ("original_request", "started_at") and base.get(key):
            continue
        base[key] = value

    base["progress"] = merge_ordered_set(base.get("progress"), update.get("progress"), progress_cap)
    return base


def active_task_reducer(progress_cap: int) -> Callable[[Any, Any], Optional[Dict[str, Any]]]:
    def reducer(existing, update):
        return merge_active_task(existing, update, progress_cap)

    reducer.__name__ = "active_task_reducer"
    return reducer


def merge_worker_phases(
    existing: Optional[Dict[str, Dict[str, Any]]],
    update: Optional[Dict[str, Optional[Dict[str, Any]]]],
) -> Dict[str, Dict[str, Any]]:
    """Replace per-worker phase records; a ``None`` record removes the worker."""
    merged = dict(existing or {})
    for worker, record in (update or {}).items():
        if record is None:
            merged.pop(worker, None)
        else:
            merged[worker] = {**merged.get(worker, {}), **record}
    return merged


def merge_worker_progress(
    existing: Optional[Dict[str, Dict[str, Any]]],
    update: Optional[Dict[str, Optional[Dict[str, Any]]]],
    explored_cap: int,
    summary_cap: int,
) -> Dict[str, Dict[str, Any]]:
    """Merge per-worker progress trackers.

    ``explored`` is a set union, ``tool_call_summary`` a bounded log keyed by
    request id, ``counters`` are summed, everything else is last-write-wins.
    """
    merged = dict(existing or {})
    for worker, record in (update or {}).items():
        if record is None:
            merged.pop(worker, None)
            continue

        current = dict(merged.get(worker) or {})
        for key, value in record.items():
            if key in ("explored", "tool_call_summary", "counters"):
                continue
            current[key] = value

        current["explored"] = merge_ordered_set(current.get("explored"), record.get("explored"), explored_cap)
        current["tool_call_summary"] = merge_bounded(
            current.get("tool_call_summary"),
            record.get("tool_call_summary"),
            summary_cap,
            lambda entry: entry.get("request_id"),
        )

        counters = dict(current.get("counters") or {})
        for name, amount in (record.get("counters") or {}).items():
            counters[name] = counters.get(name, 0) + amount
        current["counters"] = counters

        merged[worker] = current
    return merged


def worker_progress_reducer(explored_cap: int, summary_cap: int):
    def reducer(existing, update):
        return merge_worker_progress(existing, update, explored_cap, summary_cap)

    reducer.__name__ = "worker_progress_reducer"
    return reducer


__all__ = [
    "active_task_reducer",
    "bounded_reducer",
    "cap_conversation",
    "conversation_reducer",
    "merge_active_task",
    "merge_bounded",
    "merge_conversation",
    "merge_ordered_set",
    "merge_worker_phases",
    "merge_worker_progress",
    "worker_progress_reducer",
]
