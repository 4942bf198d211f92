"""Workers: cards, phase gates and the YAML scanner."""

from .phase_gate import PhaseGate
from .registry import WorkerRegistry
from .scanner import load_workers_config, parse_worker_card, scan_workers_from_config
from .schema import PhaseSpec, WorkerCard

__all__ = [
    "PhaseGate",
    "PhaseSpec",
    "WorkerCard",
    "WorkerRegistry",
    "load_workers_config",
    "parse_worker_card",
    "scan_workers_from_config",
]
