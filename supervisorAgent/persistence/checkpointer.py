"""Checkpointer for session state persistence.

Each session is one LangGraph thread; the checkpointer keys state by
``thread_id`` so sessions never share data.
"""

from __future__ import annotations

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.store.memory import InMemoryStore


def build_checkpointer() -> BaseCheckpointSaver:
    """Build the checkpointer that stores session channels.

    In-memory and process-scoped; swap for a durable saver to survive restarts.
    """
    return MemorySaver()


def build_memory_store() -> InMemoryStore:
    """Long-term store backing the memory tools, namespaced per user."""
    return InMemoryStore()
