"""Builtin local actions."""

from .memory import list_memories, recall_memories, save_memory, set_memory_store
from .now import now


def builtin_local_tools():
    """Local actions registered by default."""
    return [now, save_memory, recall_memories, list_memories]


__all__ = [
    "builtin_local_tools",
    "list_memories",
    "now",
    "recall_memories",
    "save_memory",
    "set_memory_store",
]
