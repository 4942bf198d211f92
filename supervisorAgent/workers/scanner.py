"""Worker scanner - load worker cards and phase tables from workers.yaml."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from supervisorAgent.config.settings import DEFAULT_WORKERS_CONFIG
from supervisorAgent.utils.error_handler import WorkerConfigError

from .registry import WorkerRegistry
from .schema import PhaseSpec, WorkerCard

LOGGER = logging.getLogger(__name__)


def parse_worker_card(worker_id: str, config: Dict[str, Any]) -> WorkerCard:
    """Build a WorkerCard from its YAML mapping and validate the phase table.

    Raises:
        WorkerConfigError: missing fields, unknown ``next`` targets, cycles,
            or a terminal phase that allows actions
    """
    try:
        raw_phases = config["phases"]
        initial = config["initial_phase"]
    except KeyError as e:
        raise WorkerConfigError(f"Worker '{worker_id}' is missing field {e}") from e

    phases: Dict[str, PhaseSpec] = {}
    for phase_name, phase_config in (raw_phases or {}).items():
        phase_config = phase_config or {}
        phases[phase_name] = PhaseSpec(
            name=phase_name,
            description=phase_config.get("description", ""),
            allowed_actions=frozenset(phase_config.get("allowed_actions") or []),
            next_phase=phase_config.get("next"),
        )

    if initial not in phases:
        raise WorkerConfigError(f"Worker '{worker_id}': initial phase '{initial}' is not defined")

    for spec in phases.values():
        if spec.next_phase is not None and spec.next_phase not in phases:
            raise WorkerConfigError(
                f"Worker '{worker_id}': phase '{spec.name}' points to unknown phase '{spec.next_phase}'"
            )
        if spec.is_terminal and spec.allowed_actions:
            raise WorkerConfigError(
                f"Worker '{worker_id}': terminal phase '{spec.name}' must not allow actions"
            )

    # Forward-only: walking from the initial phase must end at a terminal phase
    visited = []
    current: Optional[str] = initial
    while current is not None:
        if current in visited:
            raise WorkerConfigError(f"Worker '{worker_id}': phase cycle at '{current}'")
        visited.append(current)
        current = phases[current].next_phase

    unreachable = set(phases) - set(visited)
    if unreachable:
        LOGGER.warning(f"Worker '{worker_id}': unreachable phases {sorted(unreachable)}")

    return WorkerCard(
        id=worker_id,
        name=config.get("name", worker_id),
        description=config.get("description", ""),
        instructions=(config.get("instructions") or "").strip(),
        initial_phase=initial,
        phases=phases,
        enabled=bool(config.get("enabled", True)),
    )


def load_workers_config(config_path: Union[Path, str]) -> Dict[str, Any]:
    """Load workers.yaml.

    Raises:
        FileNotFoundError: Config file does not exist
        yaml.YAMLError: Invalid YAML
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Worker config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    LOGGER.debug(f"Loaded worker config from {config_path}")
    return config


def scan_workers_from_config(config_path: Union[Path, str, None] = None) -> WorkerRegistry:
    """Read workers.yaml and register every enabled worker.

    Invalid worker definitions abort startup.
    """
    registry = WorkerRegistry()
    config = load_workers_config(config_path or DEFAULT_WORKERS_CONFIG)

    if not config.get("global", {}).get("enabled", True):
        LOGGER.info("Workers are disabled in config")
        return registry

    for worker_id, worker_config in (config.get("workers") or {}).items():
        card = parse_worker_card(worker_id, worker_config or {})
        if not card.enabled:
            LOGGER.info(f"Skipping disabled worker: {worker_id}")
            continue
        registry.register(card)
        LOGGER.info(f"Registered worker: {worker_id} ({' -> '.join(card.phase_order())})")

    return registry
