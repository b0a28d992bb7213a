"""agent-sandbox - Workspace-confined file, search and shell tools for coding agents."""

from importlib.metadata import PackageNotFoundError, version

# Read version from package metadata (pyproject.toml)
try:
    __version__ = version("agent-sandbox")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "0.0.0.dev"

from agent_sandbox.config import SandboxSettings
from agent_sandbox.exceptions import SandboxError
from agent_sandbox.tools import SandboxTools

__all__ = ["SandboxError", "SandboxSettings", "SandboxTools", "__version__"]
