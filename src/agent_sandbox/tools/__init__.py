"""Tool implementations for agent-sandbox."""

from agent_sandbox.tools.sandbox import SandboxTools
from agent_sandbox.tools.schemas import TOOL_PARAMS
from agent_sandbox.tools.toolset import SandboxToolset

__all__ = ["SandboxToolset", "SandboxTools", "TOOL_PARAMS"]
