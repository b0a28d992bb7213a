"""Command-line interface for agent-sandbox."""

from agent_sandbox.cli.app import app

__all__ = ["app"]
