"""Environment-bound configuration objects.

Settings are loaded from environment variables (and a local ``.env`` file)
through pydantic-settings. Every group can be overridden independently.

Example:
    from supervisorAgent.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    cap = settings.channels.conversation_cap
    max_loops = settings.governance.max_loops
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()

DEFAULT_WORKERS_CONFIG = Path(__file__).parent / "workers.yaml"


class ModelSettings(BaseSettings):
    """Model endpoint used by the supervisor and its workers.

    Loads from:
    - MODEL_SUPERVISOR_ID / MODEL_CHAT_ID
    - MODEL_SUPERVISOR_API_KEY / OPENAI_API_KEY
    - MODEL_SUPERVISOR_BASE_URL / OPENAI_BASE_URL
    """

    model_id: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("MODEL_SUPERVISOR_ID", "MODEL_CHAT_ID"),
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_SUPERVISOR_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_SUPERVISOR_BASE_URL", "OPENAI_BASE_URL"),
    )
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, alias="MODEL_TEMPERATURE")
    # Retries happen only while no action request ids have been emitted
    invoke_max_retries: int = Field(default=2, ge=0, le=10, alias="MODEL_INVOKE_MAX_RETRIES")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class GovernanceSettings(BaseSettings):
    """Runtime governance and control settings.

    - max_loops: Model invocations allowed per graph run (1-500, default: 50)
    - max_message_history: Entries kept when trimming model input (10-200, default: 40)
    - recursion_limit: LangGraph super-step limit per run
    """

    max_loops: int = Field(default=50, ge=1, le=500, alias="MAX_LOOPS")
    max_message_history: int = Field(default=40, ge=10, le=200, alias="MAX_MESSAGE_HISTORY")
    recursion_limit: int = Field(default=150, ge=10, le=2000, alias="GRAPH_RECURSION_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ChannelSettings(BaseSettings):
    """Capacity of every bounded session channel."""

    conversation_cap: int = Field(default=40, ge=4, alias="CHANNEL_CONVERSATION_CAP")
    # Retention above this (forced by pending requests) aborts the turn
    conversation_hard_limit: int = Field(default=120, ge=4, alias="CHANNEL_CONVERSATION_HARD_LIMIT")
    created_items_cap: int = Field(default=50, ge=1, alias="CHANNEL_CREATED_ITEMS_CAP")
    delegated_results_cap: int = Field(default=100, ge=1, alias="CHANNEL_DELEGATED_RESULTS_CAP")
    handoff_history_cap: int = Field(default=50, ge=1, alias="CHANNEL_HANDOFF_HISTORY_CAP")
    task_progress_cap: int = Field(default=20, ge=1, alias="CHANNEL_TASK_PROGRESS_CAP")
    explored_cap: int = Field(default=50, ge=1, alias="CHANNEL_EXPLORED_CAP")
    tool_summary_cap: int = Field(default=20, ge=1, alias="CHANNEL_TOOL_SUMMARY_CAP")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ActionSettings(BaseSettings):
    """Naming conventions applied to advertised (delegated) actions."""

    approval_pattern: str = Field(
        default=r"^request\w*Approval$|^confirm\w*$",
        alias="ACTION_APPROVAL_PATTERN",
    )
    item_creating_actions: List[str] = Field(
        default_factory=lambda: ["createItem", "createNode", "createDocument"],
        alias="ACTION_ITEM_CREATING",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Empty for console-only logging
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_prompt_max_length: int = Field(default=500, ge=100, le=5000, alias="LOG_PROMPT_MAX_LENGTH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Groups:
    - models: Model endpoint and retry policy (ModelSettings)
    - governance: Loop and history limits (GovernanceSettings)
    - channels: Bounded channel capacities (ChannelSettings)
    - actions: Action naming conventions (ActionSettings)
    - observability: Logging (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    workers_config_path: Path = Field(default=DEFAULT_WORKERS_CONFIG, alias="WORKERS_CONFIG_PATH")
    models: ModelSettings = Field(default_factory=ModelSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    channels: ChannelSettings = Field(default_factory=ChannelSettings)
    actions: ActionSettings = Field(default_factory=ActionSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance."""
    return Settings()
