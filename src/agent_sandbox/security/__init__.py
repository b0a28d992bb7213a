"""Path and command guards for tool execution."""

from agent_sandbox.security.commands import CommandGuard
from agent_sandbox.security.paths import PathGuard, sanitize_path

__all__ = ["CommandGuard", "PathGuard", "sanitize_path"]
