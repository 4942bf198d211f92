"""Configuration exports."""

from .settings import (
    ActionSettings,
    ChannelSettings,
    GovernanceSettings,
    ModelSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "ActionSettings",
    "ChannelSettings",
    "GovernanceSettings",
    "ModelSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
