"""Long-term memory tools backed by a LangGraph store.

Memories are namespaced per user (``configurable.user_id``, falling back to
the session's thread id) so one user's memories are never read by another.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import tool
from langgraph.store.base import BaseStore

LOGGER = logging.getLogger(__name__)

# Module-level store (set by runtime after the store is built)
_memory_store: Optional[BaseStore] = None


def set_memory_store(store: Optional[BaseStore]) -> None:
    """Set the store used by the memory tools. Called by runtime."""
    global _memory_store
    _memory_store = store


def _require_store() -> BaseStore:
    if _memory_store is None:
        raise RuntimeError("Memory store is not configured")
    return _memory_store


def _namespace(config: Optional[RunnableConfig]) -> tuple:
    configurable = (config or {}).get("configurable") or {}
    owner = configurable.get("user_id") or configurable.get("thread_id") or "anonymous"
    return ("memories", str(owner))


def _tokens(text: str) -> set:
    return {token for token in re.findall(r"\w+", text.lower()) if len(token) > 2}


@tool
async def save_memory(content: str, config: RunnableConfig, category: str = "general") -> str:
    """Save a fact or preference about the user for future conversations.

    Args:
        content: The fact to remember, written as a standalone sentence
        category: Short label such as "preference", "project" or "general"
    """
    store = _require_store()
    key = uuid.uuid4().hex[:12]
    await store.aput(_namespace(config), key, {
        "content": content,
        "category": category,
        "saved_at": datetime.now(timezone.utc).isoformat(),
    })
    LOGGER.info(f"Saved memory {key} ({category})")
    return json.dumps({"ok": True, "id": key}, ensure_ascii=False)


@tool
async def recall_memories(query: str, config: RunnableConfig, limit: int = 5) -> str:
    """Find saved memories related to a query.

    Args:
        query: Words describing what you want to recall
        limit: Maximum number of memories to return
    """
    store = _require_store()
    items = await store.asearch(_namespace(config), limit=200)
    wanted = _tokens(query)

    scored = []
    for item in items:
        overlap = len(wanted & _tokens(item.value.get("content", "")))
        if overlap:
            scored.append((overlap, item))
    scored.sort(key=lambda pair: pair[0], reverse=True)

    matches: List[dict] = [
        {"id": item.key, "content": item.value.get("content"), "category": item.value.get("category")}
        for _, item in scored[:limit]
    ]
    return json.dumps({"ok": True, "memories": matches}, ensure_ascii=False)


@tool
async def list_memories(config: RunnableConfig, category: Optional[str] = None) -> str:
    """List saved memories, optionally filtered by category.

    Args:
        category: Only return memories with this category
    """
    store = _require_store()
    items = await store.asearch(_namespace(config), limit=200)
    memories = [
        {"id": item.key, "content": item.value.get("content"), "category": item.value.get("category")}
        for item in items
        if category is None or item.value.get("category") == category
    ]
    return json.dumps({"ok": True, "memories": memories}, ensure_ascii=False)


__all__ = ["list_memories", "recall_memories", "save_memory", "set_memory_store"]
