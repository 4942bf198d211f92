"""Static action classification tables.

Routing signals and local handlers are declared once, at startup. Anything
else the model asks for is resolved per turn against the advertised
catalogue (see ``classifier.py``).
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool

LOGGER = logging.getLogger(__name__)

TRANSFER_TO_WORKER = "transfer_to_worker"
ADVANCE_PHASE = "advance_phase"
REPORT_COMPLETION = "report_completion"

ROUTING_ACTIONS: FrozenSet[str] = frozenset({TRANSFER_TO_WORKER, ADVANCE_PHASE, REPORT_COMPLETION})

DEFAULT_APPROVAL_PATTERN = r"^request\w*Approval$|^confirm\w*$"


class ActionClass(str, Enum):
    ROUTING = "routing"
    LOCAL = "local"
    DELEGATED = "delegated"


class ActionRegistry:
    """Read-only registry of routing signals and local action handlers."""

    def __init__(
        self,
        local_tools: Iterable[BaseTool] = (),
        routing_actions: Iterable[str] = ROUTING_ACTIONS,
        approval_pattern: str = DEFAULT_APPROVAL_PATTERN,
    ) -> None:
        tools: Dict[str, BaseTool] = {}
        for tool in local_tools:
            if tool.name in tools:
                raise ValueError(f"Local action registered twice: {tool.name}")
            tools[tool.name] = tool

        routing = frozenset(routing_actions)
        overlap = routing.intersection(tools)
        if overlap:
            raise ValueError(f"Local actions shadow routing signals: {sorted(overlap)}")

        self._routing: FrozenSet[str] = routing
        self._local: Mapping[str, BaseTool] = MappingProxyType(tools)
        self._approval = re.compile(approval_pattern)
        LOGGER.info(f"Action registry ready: routing={sorted(self._routing)}, local={sorted(self._local)}")

    @property
    def routing_actions(self) -> FrozenSet[str]:
        return self._routing

    @property
    def local_actions(self) -> FrozenSet[str]:
        return frozenset(self._local)

    def class_known_actions(self, names: Iterable[str]) -> Dict[str, ActionClass]:
        """Classify statically known names. Unknown names are left out."""
        known: Dict[str, ActionClass] = {}
        for name in names:
            if name in self._routing:
                known[name] = ActionClass.ROUTING
            elif name in self._local:
                known[name] = ActionClass.LOCAL
        return known

    def get_local_tool(self, name: str) -> BaseTool:
        if name not in self._local:
            raise KeyError(f"Local action not registered: {name}")
        return self._local[name]

    def local_tool_schemas(self, names: Optional[Iterable[str]] = None) -> List[dict]:
        """Function-calling schemas for local actions (all, or the given subset)."""
        selected = self._local.keys() if names is None else [n for n in names if n in self._local]
        return [convert_to_openai_tool(self._local[name]) for name in sorted(selected)]

    def is_approval_action(self, name: str) -> bool:
        """Human-in-the-loop approval actions are recognized by name only."""
        return bool(self._approval.search(name or ""))


__all__ = [
    "ADVANCE_PHASE",
    "ActionClass",
    "ActionRegistry",
    "REPORT_COMPLETION",
    "ROUTING_ACTIONS",
    "TRANSFER_TO_WORKER",
]
