"""Worker registry."""

from __future__ import annotations

import logging
from typing import Dict, List

from .phase_gate import PhaseGate
from .schema import WorkerCard

LOGGER = logging.getLogger(__name__)


class WorkerRegistry:
    """Registered workers and their phase gates."""

    def __init__(self) -> None:
        self._cards: Dict[str, WorkerCard] = {}
        self._gates: Dict[str, PhaseGate] = {}

    def register(self, card: WorkerCard) -> None:
        if card.id in self._cards:
            raise ValueError(f"Worker registered twice: {card.id}")
        self._cards[card.id] = card
        self._gates[card.id] = PhaseGate(card)

    def __contains__(self, worker_id: object) -> bool:
        return worker_id in self._cards

    def ids(self) -> List[str]:
        return list(self._cards)

    def get(self, worker_id: str) -> WorkerCard:
        if worker_id not in self._cards:
            raise KeyError(f"Unknown worker: {worker_id}")
        return self._cards[worker_id]

    def gate(self, worker_id: str) -> PhaseGate:
        if worker_id not in self._gates:
            raise KeyError(f"Unknown worker: {worker_id}")
        return self._gates[worker_id]

    def list_cards(self) -> List[WorkerCard]:
        return list(self._cards.values())

    def get_catalog_text(self) -> str:
        """Team catalog used in the supervisor prompt."""
        if not self._cards:
            return "No workers are available. Answer the user directly."
        lines = ["# Available workers", ""]
        for card in self._cards.values():
            lines.append(f"- **{card.id}** ({card.name}): {card.description}")
        return "\n".join(lines)
