"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import sys
from pathlib import Path
from typing import List

import pytest
from langchain_core.messages import AIMessage
from langchain_core.tools import tool
from langgraph.checkpoint.memory import MemorySaver
from langgraph.store.memory import InMemoryStore

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from supervisorAgent.config.settings import Settings  # noqa: E402
from supervisorAgent.runtime import SessionRunner, build_application  # noqa: E402
from supervisorAgent.workers.registry import WorkerRegistry  # noqa: E402
from supervisorAgent.workers.scanner import parse_worker_card  # noqa: E402


def ai_turn(content: str = "", *calls) -> AIMessage:
    """Model turn with action requests given as (id, name, args) tuples."""
    return AIMessage(
        content=content,
        tool_calls=[{"id": call_id, "name": name, "args": args} for call_id, name, args in calls],
    )


class ScriptedInvoker:
    """Model invoker that replays queued responses and records every call."""

    def __init__(self, responses=None):
        self.responses: List = list(responses or [])
        self.calls: List[dict] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def invoke(self, system_prompt, history, advertised_actions):
        self.calls.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "advertised": [schema["function"]["name"] for schema in advertised_actions],
        })
        if not self.responses:
            raise AssertionError("ScriptedInvoker ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        # Fresh copy so a response object is never shared between sessions
        return response.model_copy(deep=True)


@tool
def search(query: str) -> str:
    """Search the knowledge base.

    Args:
        query: Search terms
    """
    return f"results for {query}"


@tool
def broken_lookup(key: str) -> str:
    """Look up a key (always fails).

    Args:
        key: Key to look up
    """
    raise ValueError(f"lookup backend unavailable for {key}")


RESEARCHER_CARD = {
    "name": "Researcher",
    "description": "Finds information",
    "instructions": "Research the topic.",
    "initial_phase": "researching",
    "phases": {
        "researching": {
            "description": "Collect sources",
            "allowed_actions": ["search", "broken_lookup", "listDocuments"],
            "next": "writing",
        },
        "writing": {
            "description": "Write up the findings",
            "allowed_actions": ["createItem"],
            "next": "complete",
        },
        "complete": {"description": "Done"},
    },
}


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def worker_registry():
    registry = WorkerRegistry()
    registry.register(parse_worker_card("researcher", RESEARCHER_CARD))
    return registry


@pytest.fixture
def invoker():
    return ScriptedInvoker()


class RecordingExecutor:
    """Delegated executor that only records dispatched batches."""

    def __init__(self):
        self.batches = []

    async def dispatch(self, batch):
        self.batches.append(batch)


@pytest.fixture
def executor():
    return RecordingExecutor()


def make_runner(settings, invoker, worker_registry, executor) -> SessionRunner:
    """Session runner over a fresh in-memory checkpointer and store."""
    app, action_registry, _ = build_application(
        settings,
        invoker=invoker,
        local_tools=[search, broken_lookup],
        worker_registry=worker_registry,
        checkpointer=MemorySaver(),
        store=InMemoryStore(),
    )
    return SessionRunner(app, action_registry=action_registry, settings=settings, executor=executor)


@pytest.fixture
def runner(settings, invoker, worker_registry, executor):
    return make_runner(settings, invoker, worker_registry, executor)
