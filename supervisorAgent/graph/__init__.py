"""Graph assembly exports."""

from .state import SupervisorState, SupervisorStatus, build_state_schema
from .builder import build_state_graph

__all__ = ["build_state_graph", "build_state_schema", "SupervisorState", "SupervisorStatus"]
