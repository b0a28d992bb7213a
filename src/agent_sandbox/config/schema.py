"""Pydantic models for sandbox configuration schema."""

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from agent_sandbox.config.constants import (
    DEFAULT_FORBIDDEN_PATHS,
    DEFAULT_KILL_GRACE_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_OUTPUT_BYTES,
    DEFAULT_MAX_READ_BYTES,
    DEFAULT_MAX_WRITE_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    MAX_TIMEOUT_SECONDS,
)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class WorkspaceConfig(BaseModel):
    """Workspace boundary and file size limits."""

    root: Path | None = Field(
        default=None,
        description="Workspace root. Defaults to SANDBOX_WORKSPACE_ROOT or the current directory.",
    )
    max_read_bytes: int = Field(default=DEFAULT_MAX_READ_BYTES, gt=0)
    max_write_bytes: int = Field(default=DEFAULT_MAX_WRITE_BYTES, gt=0)
    backup_on_edit: bool = Field(
        default=False,
        description="Copy the original file to <name>.backup.<timestamp> before edits",
    )

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: Path | None) -> Path | None:
        """Expand user home directory in root and resolve to absolute path."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()


class SecurityConfig(BaseModel):
    """Guard configuration."""

    forbidden_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_FORBIDDEN_PATHS))
    extra_dangerous_patterns: list[str] = Field(
        default_factory=list,
        description="Additional regexes rejected by the command guard",
    )

    @field_validator("extra_dangerous_patterns")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        """Reject patterns that do not compile."""
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid command pattern '{pattern}': {e}") from e
        return v


class ExecutionConfig(BaseModel):
    """Shell execution configuration."""

    shell: str | None = Field(
        default=None, description="Shell executable. Defaults to bash if found, else /bin/sh."
    )
    default_timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=1)
    max_timeout_seconds: int = Field(default=MAX_TIMEOUT_SECONDS, ge=1)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    kill_grace_seconds: float = Field(default=DEFAULT_KILL_GRACE_SECONDS, ge=0)

    @model_validator(mode="after")
    def check_timeouts(self) -> "ExecutionConfig":
        """Default timeout must not exceed the maximum."""
        if self.default_timeout_seconds > self.max_timeout_seconds:
            raise ValueError(
                f"default_timeout_seconds ({self.default_timeout_seconds}) exceeds "
                f"max_timeout_seconds ({self.max_timeout_seconds})"
            )
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {sorted(VALID_LOG_LEVELS)}")
        return level

    @property
    def numeric_level(self) -> int:
        return logging.getLevelName(self.level)


class SandboxSettings(BaseModel):
    """Root configuration model for sandbox settings."""

    version: str = "1.0"
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def model_dump_json_pretty(self, **kwargs: Any) -> str:
        """Dump model to pretty-printed JSON string."""
        return self.model_dump_json(indent=2, exclude_none=False, **kwargs)

    def model_dump_json_minimal(self) -> str:
        """Dump only values that differ from the defaults.

        Returns:
            JSON string with minimal configuration

        Example:
            >>> settings = SandboxSettings()
            >>> settings.execution.default_timeout_seconds = 60
            >>> settings.model_dump_json_minimal()
            '{\\n  "version": "1.0",\\n  "execution": {\\n    "default_timeout_seconds": 60\\n  }\\n}'
        """
        defaults = SandboxSettings().model_dump(mode="json")
        current = self.model_dump(mode="json")

        data: dict[str, Any] = {"version": current["version"]}
        for section, values in current.items():
            if not isinstance(values, dict):
                continue
            changed = {
                key: value
                for key, value in values.items()
                if value is not None and value != defaults[section].get(key)
            }
            if changed:
                data[section] = changed

        return json.dumps(data, indent=2)
