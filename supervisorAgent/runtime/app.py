"""Runtime assembly for the supervisor graph."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from langchain_core.tools import BaseTool

from supervisorAgent.actions.registry import ActionRegistry
from supervisorAgent.config.settings import Settings, get_settings
from supervisorAgent.graph.builder import build_state_graph
from supervisorAgent.models.invoker import build_model_invoker
from supervisorAgent.persistence import build_checkpointer, build_memory_store
from supervisorAgent.tools import builtin_local_tools, set_memory_store
from supervisorAgent.utils.logging_utils import setup_logging
from supervisorAgent.workers.registry import WorkerRegistry
from supervisorAgent.workers.scanner import scan_workers_from_config

LOGGER = logging.getLogger(__name__)


def build_application(
    settings: Optional[Settings] = None,
    *,
    invoker=None,
    local_tools: Iterable[BaseTool] = (),
    worker_registry: Optional[WorkerRegistry] = None,
    checkpointer=None,
    store=None,
    configure_logging: bool = False,
) -> Tuple[object, ActionRegistry, WorkerRegistry]:
    """Build the compiled graph and its registries.

    Args:
        settings: Application settings (defaults to get_settings())
        invoker: Model invoker; defaults to a ChatOpenAI-backed invoker
        local_tools: Extra local actions registered next to the builtins
        worker_registry: Workers; defaults to scanning workers.yaml
        checkpointer: LangGraph checkpointer; defaults to MemorySaver
        store: Store for the memory tools; defaults to InMemoryStore
        configure_logging: Install the package log handlers from settings.observability

    Returns:
        (app, action_registry, worker_registry)
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(level=settings.observability.log_level, log_dir=settings.observability.log_dir or None)

    workers = worker_registry if worker_registry is not None else scan_workers_from_config(settings.workers_config_path)
    LOGGER.info(f"Workers: {workers.ids()}")

    action_registry = ActionRegistry(
        [*builtin_local_tools(), *local_tools],
        approval_pattern=settings.actions.approval_pattern,
    )

    set_memory_store(store if store is not None else build_memory_store())

    app = build_state_graph(
        invoker=invoker if invoker is not None else build_model_invoker(settings),
        action_registry=action_registry,
        worker_registry=workers,
        settings=settings,
        checkpointer=checkpointer if checkpointer is not None else build_checkpointer(),
    )
    LOGGER.info("Supervisor graph compiled")
    return app, action_registry, workers
