"""Utilities for classifying, cleaning and trimming the conversation log.

The log is a list of LangChain messages. Four entry kinds exist and every
message must map to exactly one of them:

- SYSTEM: ``SystemMessage`` (system-level, never trimmed)
- USER: ``HumanMessage``
- MODEL: ``AIMessage`` (may carry action requests in ``tool_calls``)
- RESULT: ``ToolMessage`` (answers exactly one request via ``tool_call_id``)

A request is satisfied only by a result that appears later in the log.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

LOGGER = logging.getLogger(__name__)

CANCELLED_RESULT_TEXT = "[Action cancelled or interrupted - no result available]"


class EntryKind(str, Enum):
    SYSTEM = "system"
    USER = "user"
    MODEL = "model"
    RESULT = "result"


def entry_kind(message: BaseMessage) -> EntryKind:
    """Return the entry kind of a message. Unknown message types are rejected."""
    # ToolMessage/AIMessage chunks subclass the plain types, so isinstance covers them
    if isinstance(message, ToolMessage):
        return EntryKind.RESULT
    if isinstance(message, AIMessage):
        return EntryKind.MODEL
    if isinstance(message, HumanMessage):
        return EntryKind.USER
    if isinstance(message, SystemMessage):
        return EntryKind.SYSTEM
    raise TypeError(f"Unsupported conversation entry: {type(message).__name__}")


def message_text(content: Any) -> str:
    """Convert message content (plain or multimodal) to a string."""
    if isinstance(content, list):
        pieces: List[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                pieces.append(str(item["text"]))
            else:
                pieces.append(str(item))
        return "\n".join(pieces)
    return str(content) if content is not None else ""


def request_ids(message: BaseMessage) -> List[str]:
    """Ids of the action requests carried by a model turn."""
    if entry_kind(message) is not EntryKind.MODEL:
        return []
    ids = []
    for call in message.tool_calls or []:
        call_id = call.get("id") if isinstance(call, dict) else getattr(call, "id", None)
        if call_id:
            ids.append(call_id)
    return ids


def answered_ids(messages: List[BaseMessage]) -> Set[str]:
    """Request ids that have a result somewhere in the log."""
    return {m.tool_call_id for m in messages if entry_kind(m) is EntryKind.RESULT}


def find_pending_turn(messages: List[BaseMessage]) -> Tuple[Optional[AIMessage], List[dict]]:
    """Return the latest model turn that issued requests and its unresolved requests.

    Only results that appear after the model turn count as answers.
    """
    answered: Set[str] = set()
    for message in reversed(messages):
        kind = entry_kind(message)
        if kind is EntryKind.RESULT:
            answered.add(message.tool_call_id)
        elif kind is EntryKind.MODEL and message.tool_calls:
            pending = [call for call in message.tool_calls if call.get("id") not in answered]
            return message, pending
    return None, []


def unresolved_request_ids(messages: List[BaseMessage]) -> Set[str]:
    """Every request id in the log that has no later result."""
    pending: Set[str] = set()
    for message in messages:
        kind = entry_kind(message)
        if kind is EntryKind.MODEL:
            pending.update(request_ids(message))
        elif kind is EntryKind.RESULT:
            pending.discard(message.tool_call_id)
    return pending


def last_model_reply(messages: List[BaseMessage]) -> str:
    """Text of the most recent model turn."""
    for message in reversed(messages):
        if entry_kind(message) is EntryKind.MODEL:
            return message_text(message.content)
    return ""


# ========== Safe cut points ==========

def _unsafe_owner_index(entries: List[BaseMessage]) -> List[int]:
    """For each index i, the smallest index of a model turn before i whose
    request is answered at or after i (len(entries) when there is none)."""
    n = len(entries)
    owner: Dict[str, int] = {}
    for i, message in enumerate(entries):
        for call_id in request_ids(message):
            owner[call_id] = i

    earliest = [n] * (n + 1)
    running = n
    for j in range(n - 1, -1, -1):
        message = entries[j]
        if entry_kind(message) is EntryKind.RESULT:
            owner_idx = owner.get(message.tool_call_id)
            if owner_idx is not None and owner_idx < j:
                running = min(running, owner_idx)
        earliest[j] = running
    return earliest


def _is_safe_start(entries: List[BaseMessage], earliest: List[int], index: int) -> bool:
    if index >= len(entries):
        return True
    if entry_kind(entries[index]) is EntryKind.RESULT:
        return False
    return earliest[index] >= index


def find_safe_start(entries: List[BaseMessage], candidate: int) -> int:
    """Find the first safe start index at or after ``candidate``.

    A start is safe when it is not a result and no result at or after it
    answers a request issued before it. Falls back to scanning backwards
    when no forward position is safe; index 0 is always safe.
    """
    candidate = max(0, min(candidate, len(entries)))
    earliest = _unsafe_owner_index(entries)
    for index in range(candidate, len(entries)):
        if _is_safe_start(entries, earliest, index):
            return index
    for index in range(candidate - 1, -1, -1):
        if _is_safe_start(entries, earliest, index):
            return index
    return 0


def find_safe_start_at_or_before(entries: List[BaseMessage], limit: int) -> int:
    """Latest safe start index that is not after ``limit``."""
    earliest = _unsafe_owner_index(entries)
    for index in range(min(limit, len(entries)), -1, -1):
        if _is_safe_start(entries, earliest, index):
            return index
    return 0


def trim_history(messages: List[BaseMessage], keep_count: int) -> List[BaseMessage]:
    """Trim the log to about ``keep_count`` conversation entries.

    System entries are always retained. The retained suffix never starts with
    a result and never keeps a result whose request was cut away.
    """
    system = [m for m in messages if entry_kind(m) is EntryKind.SYSTEM]
    entries = [m for m in messages if entry_kind(m) is not EntryKind.SYSTEM]

    if len(entries) <= keep_count:
        return system + entries

    start = find_safe_start(entries, len(entries) - keep_count)
    if start:
        LOGGER.debug(f"Trimmed {start} entries from model input ({len(entries) - start} kept)")
    return system + entries[start:]


# ========== Cleaning for model input ==========

def filter_orphaned_results(messages: List[BaseMessage]) -> List[BaseMessage]:
    """Drop results without a prior request, duplicate results and empty model turns."""
    issued: Set[str] = set()
    answered: Set[str] = set()
    cleaned: List[BaseMessage] = []

    for message in messages:
        kind = entry_kind(message)
        if kind is EntryKind.MODEL:
            if not message.tool_calls and not message_text(message.content).strip():
                continue
            issued.update(request_ids(message))
        elif kind is EntryKind.RESULT:
            call_id = message.tool_call_id
            if call_id not in issued:
                LOGGER.warning(f"Dropping orphaned result for request {call_id}")
                continue
            if call_id in answered:
                LOGGER.warning(f"Dropping duplicate result for request {call_id}")
                continue
            answered.add(call_id)
        cleaned.append(message)

    return cleaned


def pair_results_with_requests(messages: List[BaseMessage]) -> List[BaseMessage]:
    """Move every result directly after the model turn that requested it.

    Results may arrive after later user turns (late delegated results); model
    APIs need each result adjacent to its request.
    """
    results: Dict[str, ToolMessage] = {}
    for message in messages:
        if entry_kind(message) is EntryKind.RESULT:
            results.setdefault(message.tool_call_id, message)

    owned = set()
    for message in messages:
        for call_id in request_ids(message):
            if call_id in results:
                owned.add(call_id)

    paired: List[BaseMessage] = []
    for message in messages:
        kind = entry_kind(message)
        if kind is EntryKind.RESULT and message.tool_call_id in owned:
            continue
        paired.append(message)
        if kind is EntryKind.MODEL:
            for call_id in request_ids(message):
                if call_id in results:
                    paired.append(results[call_id])
    return paired


def repair_dangling_requests(messages: List[BaseMessage]) -> List[BaseMessage]:
    """Add a cancelled-result placeholder after every request that has no result.

    Expects paired input (results directly follow their model turn). Only used
    for the model's view of the log; the stored log is never repaired.
    """
    answered = answered_ids(messages)
    repaired: List[BaseMessage] = []
    dangling: List[dict] = []

    def flush() -> None:
        for call in dangling:
            repaired.append(ToolMessage(
                content=CANCELLED_RESULT_TEXT,
                tool_call_id=call["id"],
                name=call.get("name"),
                status="error",
            ))
        dangling.clear()

    for message in messages:
        kind = entry_kind(message)
        if kind is not EntryKind.RESULT:
            flush()
        repaired.append(message)
        if kind is EntryKind.MODEL:
            dangling.extend(call for call in message.tool_calls or [] if call.get("id") not in answered)
    flush()
    return repaired


def prepare_model_history(messages: List[BaseMessage], keep_count: int) -> List[BaseMessage]:
    """Build the model's view of the log: clean, pair, trim, repair."""
    cleaned = filter_orphaned_results(messages)
    paired = pair_results_with_requests(cleaned)
    trimmed = trim_history(paired, keep_count)
    return repair_dangling_requests(trimmed)


__all__ = [
    "CANCELLED_RESULT_TEXT",
    "EntryKind",
    "answered_ids",
    "entry_kind",
    "filter_orphaned_results",
    "find_pending_turn",
    "find_safe_start",
    "find_safe_start_at_or_before",
    "last_model_reply",
    "message_text",
    "pair_results_with_requests",
    "prepare_model_history",
    "repair_dangling_requests",
    "request_ids",
    "trim_history",
    "unresolved_request_ids",
]
