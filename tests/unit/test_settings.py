"""Unit tests for environment-driven settings and error helpers."""

import json

import pytest
from pydantic import ValidationError

from supervisorAgent.config.settings import DEFAULT_WORKERS_CONFIG, GovernanceSettings, Settings
from supervisorAgent.utils.error_handler import (
    PhaseViolationError,
    StatePersistenceError,
    error_payload,
    handle_model_error,
    with_error_boundary,
)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.workers_config_path == DEFAULT_WORKERS_CONFIG
        assert settings.channels.conversation_cap <= settings.channels.conversation_hard_limit
        assert "createItem" in settings.actions.item_creating_actions

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MAX_LOOPS", "7")
        monkeypatch.setenv("CHANNEL_CREATED_ITEMS_CAP", "3")
        settings = Settings()
        assert settings.governance.max_loops == 7
        assert settings.channels.created_items_cap == 3

    def test_bounds_are_validated(self):
        with pytest.raises(ValidationError):
            GovernanceSettings(max_loops=0)


class TestErrorHelpers:
    def test_error_payload(self):
        assert json.loads(error_payload("boom", rejected=True)) == {"ok": False, "error": "boom", "rejected": True}

    def test_phase_violation_message(self):
        error = PhaseViolationError("writer", "planning", "createItem", {"listDocuments"})
        assert str(error) == (
            "Action 'createItem' is not allowed for worker 'writer' in phase 'planning'. "
            "Allowed actions: listDocuments. Call advance_phase when this phase is done."
        )

    def test_model_error_messages(self):
        assert "timed out" in handle_model_error(Exception("Request timeout"))
        assert "unavailable" in handle_model_error(Exception("boom"))


class TestErrorBoundary:
    @pytest.mark.asyncio
    async def test_failure_becomes_notice(self):
        @with_error_boundary("supervisor")
        async def node(state, config=None):
            raise ValueError("bad input")

        update = await node({})
        assert update["status"] == "Ended"
        assert update["last_error"] == "ValueError: bad input"
        assert update["messages"][0].name == "supervisor"

    @pytest.mark.asyncio
    async def test_persistence_errors_propagate(self):
        @with_error_boundary("supervisor")
        async def node(state, config=None):
            raise StatePersistenceError("store down")

        with pytest.raises(StatePersistenceError):
            await node({})

    def test_sync_nodes_supported(self):
        @with_error_boundary("worker")
        def node(state, config=None):
            return {"status": "Ended"}

        assert node({}) == {"status": "Ended"}


def test_setup_logging_writes_log_file(tmp_path):
    import logging

    from supervisorAgent.utils import setup_logging

    logger = setup_logging(level=logging.WARNING, log_dir=str(tmp_path / "logs"))
    try:
        logging.getLogger("supervisorAgent.graph.routing").info("routing check")
        for handler in logger.handlers:
            handler.flush()
        log_files = list((tmp_path / "logs").glob("supervisor_*.log"))
        assert len(log_files) == 1
        assert "routing check" in log_files[0].read_text(encoding="utf-8")
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


def test_build_application_configures_logging_from_settings(tmp_path):
    import logging

    from conftest import ScriptedInvoker
    from supervisorAgent.config.settings import ObservabilitySettings
    from supervisorAgent.runtime import build_application

    settings = Settings(observability=ObservabilitySettings(log_level="warning", log_dir=str(tmp_path / "logs")))
    build_application(settings, invoker=ScriptedInvoker(), configure_logging=True)

    logger = logging.getLogger("supervisorAgent")
    try:
        console = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]
        assert [h.level for h in console] == [logging.WARNING]
        assert len(list((tmp_path / "logs").glob("supervisor_*.log"))) == 1
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
