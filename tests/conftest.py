"""Shared test fixtures for all tests.

This file imports and re-exports fixtures from the fixtures/ module so
they are discovered by pytest for every test directory.
"""

from tests.fixtures.config import (  # noqa: F401
    fast_kill_settings,
    isolated_env,
    sandbox_settings,
    settings_file,
)
from tests.fixtures.workspace import (  # noqa: F401
    sample_files,
    sandbox_tools,
    workspace,
)
