"""Configuration file manager for loading, saving, and merging sandbox settings."""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from agent_sandbox.exceptions import ConfigurationError

from .constants import DEFAULT_CONFIG_PATH
from .schema import SandboxSettings


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Returns:
        Path to ~/.agent-sandbox/settings.json, or SANDBOX_CONFIG if set
    """
    if env_path := os.getenv("SANDBOX_CONFIG"):
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> SandboxSettings:
    """Load configuration from JSON file.

    Args:
        config_path: Optional path to config file. Defaults to ~/.agent-sandbox/settings.json

    Returns:
        SandboxSettings loaded from file, or default settings if file doesn't exist

    Raises:
        ConfigurationError: If file exists but is invalid JSON or fails validation
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        return SandboxSettings()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        return SandboxSettings(**data)

    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed for {config_path}:\n{e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}") from e


def save_config(settings: SandboxSettings, config_path: Path | None = None) -> None:
    """Save configuration to JSON file with minimal formatting.

    Only values that differ from the defaults are written. Sets restrictive
    permissions (0o600) on POSIX systems.

    Args:
        settings: SandboxSettings instance to save
        config_path: Optional path to config file. Defaults to ~/.agent-sandbox/settings.json

    Raises:
        ConfigurationError: If save operation fails
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(settings.model_dump_json_minimal())

        if os.name != "nt":
            os.chmod(config_path, 0o600)

    except OSError as e:
        raise ConfigurationError(f"Failed to save configuration to {config_path}: {e}") from e


def merge_with_env(settings: SandboxSettings) -> dict[str, Any]:
    """Collect environment variable overrides.

    Environment variables take precedence over file settings.

    Recognized variables:
        SANDBOX_WORKSPACE_ROOT, SANDBOX_SHELL, SANDBOX_TIMEOUT,
        SANDBOX_MAX_OUTPUT_BYTES, SANDBOX_BACKUP_ON_EDIT, SANDBOX_LOG_LEVEL

    Args:
        settings: SandboxSettings instance from file

    Returns:
        Dictionary of overrides shaped like the settings model

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed
    """
    env_overrides: dict[str, Any] = {}

    if root := os.getenv("SANDBOX_WORKSPACE_ROOT"):
        env_overrides.setdefault("workspace", {})["root"] = root
    if backup := os.getenv("SANDBOX_BACKUP_ON_EDIT"):
        env_overrides.setdefault("workspace", {})["backup_on_edit"] = backup.lower() == "true"

    if shell := os.getenv("SANDBOX_SHELL"):
        env_overrides.setdefault("execution", {})["shell"] = shell
    for env_name, field_name in (
        ("SANDBOX_TIMEOUT", "default_timeout_seconds"),
        ("SANDBOX_MAX_OUTPUT_BYTES", "max_output_bytes"),
    ):
        if raw := os.getenv(env_name):
            try:
                env_overrides.setdefault("execution", {})[field_name] = int(raw)
            except ValueError as e:
                raise ConfigurationError(f"{env_name} must be an integer, got '{raw}'") from e

    if level := os.getenv("SANDBOX_LOG_LEVEL"):
        env_overrides.setdefault("logging", {})["level"] = level

    return env_overrides


def load_settings(config_path: Path | None = None) -> SandboxSettings:
    """Load settings from file, .env and environment, in increasing precedence.

    Args:
        config_path: Optional path to config file

    Returns:
        Effective SandboxSettings

    Raises:
        ConfigurationError: If the file or an override fails validation
    """
    load_dotenv()
    settings = load_config(config_path)
    overrides = merge_with_env(settings)
    if not overrides:
        return settings

    data = settings.model_dump()
    for section, values in overrides.items():
        data.setdefault(section, {}).update(values)

    try:
        return SandboxSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Environment override validation failed:\n{e}") from e
