"""Persistence helpers."""

from .checkpointer import build_checkpointer, build_memory_store

__all__ = ["build_checkpointer", "build_memory_store"]
