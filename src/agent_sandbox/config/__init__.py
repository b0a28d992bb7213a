"""Configuration package for agent-sandbox."""

from .constants import DEFAULT_FORBIDDEN_PATHS, DEFAULT_TIMEOUT_SECONDS, MAX_TIMEOUT_SECONDS
from .manager import get_config_path, load_config, load_settings, merge_with_env, save_config
from .schema import (
    ExecutionConfig,
    LoggingConfig,
    SandboxSettings,
    SecurityConfig,
    WorkspaceConfig,
)

__all__ = [
    # Constants
    "DEFAULT_FORBIDDEN_PATHS",
    "DEFAULT_TIMEOUT_SECONDS",
    "MAX_TIMEOUT_SECONDS",
    # Schema
    "SandboxSettings",
    "WorkspaceConfig",
    "SecurityConfig",
    "ExecutionConfig",
    "LoggingConfig",
    # Manager
    "get_config_path",
    "load_config",
    "load_settings",
    "save_config",
    "merge_with_env",
]
