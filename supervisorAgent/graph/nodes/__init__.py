"""Graph node builders."""

from .delegation import build_await_node
from .execute import build_execute_node
from .handoff import build_handoff_node
from .model_turn import build_supervisor_node, build_worker_node

__all__ = [
    "build_await_node",
    "build_execute_node",
    "build_handoff_node",
    "build_supervisor_node",
    "build_worker_node",
]
