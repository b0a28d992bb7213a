"""Utility modules for agent-sandbox."""

from agent_sandbox.utils.responses import (
    create_error_response,
    create_success_response,
    error_response_from_exception,
)

__all__ = [
    "create_success_response",
    "create_error_response",
    "error_response_from_exception",
]
