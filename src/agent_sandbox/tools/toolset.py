"""Base class for sandbox toolsets.

Toolsets encapsulate related tools with shared dependencies (settings,
guards, stores), avoiding global state and enabling dependency injection
for testing.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from agent_sandbox.config import SandboxSettings
from agent_sandbox.exceptions import SandboxError
from agent_sandbox.utils.responses import (
    create_error_response,
    create_success_response,
    error_response_from_exception,
)


class SandboxToolset(ABC):
    """Base class for sandbox toolsets.

    Each toolset receives a SandboxSettings instance with all necessary
    configuration, making it easy to swap in test settings.

    Example:
        >>> class EchoTools(SandboxToolset):
        ...     def get_tools(self):
        ...         return [self.echo]
        ...
        ...     async def echo(self, text: str) -> dict:
        ...         return self._create_success_response(result=text, message="Echoed")
    """

    def __init__(self, settings: SandboxSettings | None = None):
        """Initialize toolset with settings.

        Args:
            settings: Sandbox settings, defaults to SandboxSettings()
        """
        self.settings = settings or SandboxSettings()

    @abstractmethod
    def get_tools(self) -> list[Callable]:
        """Get list of tool functions.

        Tools are async callables with type hints and docstrings an LLM can consume.

        Returns:
            List of callable tool functions
        """
        pass

    def _create_success_response(self, result: Any, message: str = "") -> dict:
        return create_success_response(result, message)

    def _create_error_response(
        self, error: str, message: str, details: dict | None = None
    ) -> dict:
        """Create standardized error response.

        Tools use this instead of raising, so the agent always receives an
        envelope it can act on.

        Args:
            error: Machine-readable error kind (e.g., "not_found")
            message: Human-friendly error message
            details: Structured context for self-correction

        Returns:
            Structured response dict with success=False
        """
        return create_error_response(error, message, details)

    def _error_from_exception(self, error: SandboxError) -> dict:
        return error_response_from_exception(error)
