"""Test helpers for agent-sandbox."""

from tests.helpers.assertions import (
    assert_error_response,
    assert_success_response,
    assert_tool_response_format,
)

__all__ = ["assert_success_response", "assert_error_response", "assert_tool_response_format"]
