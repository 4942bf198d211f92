"""Worker cards and phase tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional


@dataclass(frozen=True)
class PhaseSpec:
    """One phase of a worker workflow."""

    name: str
    description: str
    allowed_actions: FrozenSet[str]
    next_phase: Optional[str]

    @property
    def is_terminal(self) -> bool:
        return self.next_phase is None


@dataclass(frozen=True)
class WorkerCard:
    """Static description of a worker: identity, prompt and phase table."""

    id: str
    name: str
    description: str
    instructions: str
    initial_phase: str
    phases: Dict[str, PhaseSpec] = field(default_factory=dict)
    enabled: bool = True

    def get_phase(self, phase: str) -> PhaseSpec:
        if phase not in self.phases:
            raise KeyError(f"Worker '{self.id}' has no phase '{phase}'")
        return self.phases[phase]

    def phase_order(self):
        """Phase names from the initial phase to the terminal one."""
        order = []
        current: Optional[str] = self.initial_phase
        while current is not None and current not in order:
            order.append(current)
            current = self.phases[current].next_phase if current in self.phases else None
        return order
