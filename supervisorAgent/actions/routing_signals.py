"""Routing signal schemas.

These tools are only advertised to the model so it can express a routing
decision; the graph consumes the requests in the handoff node and never
executes them.
"""

from __future__ import annotations

import copy
import logging
from typing import Iterable, List

from langchain_core.tools import tool
from langchain_core.utils.function_calling import convert_to_openai_tool

from .registry import ADVANCE_PHASE, REPORT_COMPLETION, TRANSFER_TO_WORKER

LOGGER = logging.getLogger(__name__)


@tool(TRANSFER_TO_WORKER)
def transfer_to_worker(worker: str, task: str, goal: str = "") -> str:
    """Hand the conversation to a specialist worker.

    Args:
        worker: Id of the worker that should take over
        task: What the worker must do, with everything it needs to know
        goal: The outcome that marks the task as done
    """
    return f"Transferring to {worker}"


@tool(ADVANCE_PHASE)
def advance_phase(summary: str = "") -> str:
    """Finish your current phase and move to the next one.

    Args:
        summary: What was accomplished in the phase being closed
    """
    return "Advancing phase"


@tool(REPORT_COMPLETION)
def report_completion(summary: str, task_complete: bool = True) -> str:
    """Report back to the supervisor and hand control back.

    Args:
        summary: Result of your work for the supervisor and the user
        task_complete: False when the task still needs other workers
    """
    return "Reporting completion"


def transfer_schema(worker_ids: Iterable[str]) -> dict:
    """transfer_to_worker schema with the worker argument restricted to known ids."""
    schema = copy.deepcopy(convert_to_openai_tool(transfer_to_worker))
    ids = sorted(worker_ids)
    if ids:
        schema["function"]["parameters"]["properties"]["worker"]["enum"] = ids
    return schema


def worker_signal_schemas(in_terminal_phase: bool) -> List[dict]:
    """Signals a worker may send; a terminal phase can only report completion."""
    schemas = [convert_to_openai_tool(report_completion)]
    if not in_terminal_phase:
        schemas.insert(0, convert_to_openai_tool(advance_phase))
    return schemas


__all__ = [
    "advance_phase",
    "report_completion",
    "transfer_schema",
    "transfer_to_worker",
    "worker_signal_schemas",
]
