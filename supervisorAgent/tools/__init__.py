"""Local action handlers."""

from .builtin import builtin_local_tools, set_memory_store

__all__ = ["builtin_local_tools", "set_memory_store"]
