"""Configuration constants for agent-sandbox.

This module provides a single source of truth for all default configuration values.
Separated from schema.py and manager.py to avoid circular imports.
"""

from pathlib import Path

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".agent-sandbox"
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "settings.json"

# Workspace limits
DEFAULT_MAX_READ_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_MAX_WRITE_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_READ_LINE_LIMIT = 1000
MAX_LINE_LENGTH = 2000
DEFAULT_GREP_MAX_FILES = 1000

# System directories no resolved path may fall under
DEFAULT_FORBIDDEN_PATHS = [
    "/etc",
    "/root",
    "/boot",
    "/sys",
    "/proc",
    "/dev",
    "/bin",
    "/sbin",
    "/usr/bin",
    "/usr/sbin",
    "/var/log",
    "/var/spool",
    "/tmp",
]

# Shell execution
DEFAULT_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 300
DEFAULT_MAX_OUTPUT_BYTES = 1_048_576  # 1MB
DEFAULT_KILL_GRACE_SECONDS = 2.0

# Directories skipped by glob/grep
SKIPPED_DIRECTORIES = {
    "node_modules",
    ".git",
    ".svn",
    ".hg",
    ".vscode",
    "dist",
    "build",
    "coverage",
    ".nyc_output",
    ".next",
    ".cache",
    "__pycache__",
}

DEFAULT_LOG_LEVEL = "WARNING"
