"""
Configuration Module

Centralized configuration management for ActionHub.
"""

from actionhub.config.settings import (
    ApiSettings,
    ExecutionSettings,
    ObservabilitySettings,
    RedisSettings,
    RemoteSettings,
    Settings,
    StoreSettings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "ExecutionSettings",
    "ObservabilitySettings",
    "RedisSettings",
    "RemoteSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
]
