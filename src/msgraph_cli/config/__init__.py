"""Configuration helpers for the Microsoft Graph CLI."""

from .settings import (
    DEFAULT_GRAPH_SCOPES,
    AuthConfig,
    Settings,
    SettingsManager,
    config_dir,
    log_dir,
)

__all__ = [
    "DEFAULT_GRAPH_SCOPES",
    "AuthConfig",
    "Settings",
    "SettingsManager",
    "config_dir",
    "log_dir",
]
