"""Utility functions for CLI module."""

import logging
import os
import platform
import sys

from rich.console import Console
from rich.logging import RichHandler


def get_console(stderr: bool = False) -> Console:
    """Create Rich console with proper encoding for Windows.

    On Windows in non-interactive mode (subprocess, pipe, etc.), the default
    encoding is often CP1252 which cannot handle Unicode characters. This
    function forces UTF-8 in that case.

    Args:
        stderr: Write to stderr instead of stdout

    Returns:
        Console: Configured Rich console instance
    """
    if platform.system() == "Windows" and not sys.stdout.isatty():
        os.environ.setdefault("PYTHONIOENCODING", "utf-8")
        return Console(stderr=stderr, force_terminal=True, legacy_windows=False)
    return Console(stderr=stderr)


def configure_logging(level: str, verbose: bool = False) -> None:
    """Route log records to stderr through Rich.

    Args:
        level: Level name from settings (DEBUG, INFO, ...)
        verbose: Force DEBUG regardless of ``level``
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=get_console(stderr=True), show_path=False)],
        force=True,
    )
