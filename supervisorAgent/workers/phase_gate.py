"""Phase gate: which actions a worker may request, and what comes next."""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Optional

from .schema import WorkerCard

LOGGER = logging.getLogger(__name__)


class PhaseGate:
    """Forward-only phase state machine for one worker type."""

    def __init__(self, card: WorkerCard) -> None:
        self.card = card

    @property
    def worker(self) -> str:
        return self.card.id

    @property
    def initial_phase(self) -> str:
        return self.card.initial_phase

    def allowed_actions(self, phase: str) -> FrozenSet[str]:
        return self.card.get_phase(phase).allowed_actions

    def is_terminal(self, phase: str) -> bool:
        return self.card.get_phase(phase).is_terminal

    def is_action_allowed(self, phase: str, action_name: str) -> bool:
        """Unknown phases allow nothing."""
        spec = self.card.phases.get(phase)
        if spec is None:
            LOGGER.warning(f"Worker '{self.worker}' is in unknown phase '{phase}'")
            return False
        return action_name in spec.allowed_actions

    def next_phase(self, current: str, completed_signal: bool) -> Optional[str]:
        """Phase after ``current``.

        Without a completion signal the worker stays where it is. The terminal
        phase has no successor (returns None).
        """
        spec = self.card.get_phase(current)
        if not completed_signal:
            return current
        return spec.next_phase

    def phase_record(self, phase: str, pending_action: Optional[str] = None) -> Dict[str, Any]:
        """State record for the worker being in ``phase``."""
        return {
            "worker": self.worker,
            "phase": phase,
            "allowed_actions": sorted(self.allowed_actions(phase)),
            "pending_action": pending_action,
        }
