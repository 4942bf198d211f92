"""Partition a model turn's action requests by execution target."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Iterable, List

from .registry import ActionClass, ActionRegistry

LOGGER = logging.getLogger(__name__)


@dataclass
class ClassifiedRequests:
    """Disjoint, order-preserving partition of a batch of requests."""

    routing: List[dict] = field(default_factory=list)
    local: List[dict] = field(default_factory=list)
    delegated: List[dict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def class_of(self, request_id: str) -> ActionClass:
        for action_class, requests in (
            (ActionClass.ROUTING, self.routing),
            (ActionClass.LOCAL, self.local),
            (ActionClass.DELEGATED, self.delegated),
        ):
            if any(request.get("id") == request_id for request in requests):
                return action_class
        raise KeyError(request_id)


def _request_name(request: Any) -> str:
    if isinstance(request, dict):
        name = request.get("name")
    else:
        name = getattr(request, "name", None)
    return name if isinstance(name, str) else ""


def classify_action_requests(
    requests: Iterable[dict],
    registry: ActionRegistry,
    advertised_names: AbstractSet[str],
) -> ClassifiedRequests:
    """Classify each request, first matching rule wins.

    1. static routing set -> routing
    2. static local set -> local
    3. advertised for this session -> delegated
    4. anything else -> delegated, with a warning

    Unknown names go to the external executor, where a bad name fails visibly.
    Never raises; same input gives the same partition.
    """
    result = ClassifiedRequests()
    requests = list(requests or [])
    known = registry.class_known_actions(_request_name(r) for r in requests)

    for request in requests:
        name = _request_name(request)
        action_class = known.get(name)
        if action_class is ActionClass.ROUTING:
            result.routing.append(request)
        elif action_class is ActionClass.LOCAL:
            result.local.append(request)
        else:
            if name not in advertised_names:
                request_id = request.get("id") if isinstance(request, dict) else None
                message = (
                    f"Unknown action '{name or '<unnamed>'}' (request {request_id}) "
                    f"is neither registered nor advertised; delegating it to the external executor"
                )
                LOGGER.warning(message)
                result.warnings.append(message)
            result.delegated.append(request)

    return result


__all__ = ["ClassifiedRequests", "classify_action_requests"]
