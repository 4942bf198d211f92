"""Advertised action catalogue supplied by the session's external context."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set, Union

from pydantic import BaseModel, Field


class ActionSpec(BaseModel):
    """An externally executed action the model may request this turn."""

    name: str = Field(min_length=1)
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_tool_schema(self) -> dict:
        """OpenAI function-calling schema accepted by ``bind_tools``."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def normalize_catalogue(actions: Optional[Iterable[Union[ActionSpec, Dict[str, Any]]]]) -> List[Dict[str, Any]]:
    """Validate catalogue entries and return them as plain dicts (state friendly).

    Later duplicates of a name are ignored.
    """
    normalized: List[Dict[str, Any]] = []
    seen: Set[str] = set()
    for action in actions or []:
        spec = action if isinstance(action, ActionSpec) else ActionSpec.model_validate(action)
        if spec.name in seen:
            continue
        seen.add(spec.name)
        normalized.append(spec.model_dump())
    return normalized


def catalogue_names(catalogue: Optional[Iterable[Dict[str, Any]]]) -> Set[str]:
    return {entry["name"] for entry in catalogue or []}


def catalogue_schemas(catalogue: Optional[Iterable[Dict[str, Any]]], names: Optional[Iterable[str]] = None) -> List[dict]:
    """Tool schemas for catalogue entries, optionally restricted to ``names``."""
    wanted = None if names is None else set(names)
    return [
        ActionSpec.model_validate(entry).to_tool_schema()
        for entry in catalogue or []
        if wanted is None or entry["name"] in wanted
    ]


__all__ = ["ActionSpec", "catalogue_names", "catalogue_schemas", "normalize_catalogue"]
