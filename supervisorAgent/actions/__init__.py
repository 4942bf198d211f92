"""Action registry, classification and catalogue."""

from .catalogue import ActionSpec, catalogue_names, catalogue_schemas, normalize_catalogue
from .classifier import ClassifiedRequests, classify_action_requests
from .registry import (
    ADVANCE_PHASE,
    REPORT_COMPLETION,
    ROUTING_ACTIONS,
    TRANSFER_TO_WORKER,
    ActionClass,
    ActionRegistry,
)

__all__ = [
    "ADVANCE_PHASE",
    "ActionClass",
    "ActionRegistry",
    "ActionSpec",
    "ClassifiedRequests",
    "REPORT_COMPLETION",
    "ROUTING_ACTIONS",
    "TRANSFER_TO_WORKER",
    "catalogue_names",
    "catalogue_schemas",
    "classify_action_requests",
    "normalize_catalogue",
]
