"""Shared response helper functions for sandbox tools.

Every tool returns one of two envelope shapes so the calling agent can
handle results uniformly:

    {"success": True, "result": ..., "message": str}
    {"success": False, "error": kind, "message": str, "details": {...}}
"""

from typing import Any

from agent_sandbox.exceptions import SandboxError


def create_success_response(result: Any, message: str = "") -> dict:
    """Create standardized success response.

    Args:
        result: Operation result (usually a dict of tool-specific fields)
        message: Optional human-readable summary

    Returns:
        Structured response dict with success=True

    Example:
        >>> create_success_response({"bytes_written": 5}, "Wrote notes.txt")
        {'success': True, 'result': {'bytes_written': 5}, 'message': 'Wrote notes.txt'}
    """
    return {
        "success": True,
        "result": result,
        "message": message,
    }


def create_error_response(error: str, message: str, details: dict | None = None) -> dict:
    """Create standardized error response.

    Args:
        error: Machine-readable error kind (e.g., "path_traversal")
        message: Human-friendly error message
        details: Structured context the agent can use to self-correct

    Returns:
        Structured response dict with success=False

    Example:
        >>> create_error_response("not_found", "File not found: a.txt")
        {'success': False, 'error': 'not_found', 'message': 'File not found: a.txt', 'details': {}}
    """
    return {
        "success": False,
        "error": error,
        "message": message,
        "details": details or {},
    }


def error_response_from_exception(error: SandboxError) -> dict:
    """Convert a SandboxError into an error envelope using its kind and details."""
    return create_error_response(error.kind, error.message, error.details)
