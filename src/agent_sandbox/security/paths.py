"""Workspace boundary enforcement for caller-supplied paths.

Every filesystem tool resolves its path arguments through ``PathGuard``
before touching the disk. The guard rejects, in order:

1. literal traversal sequences (``../``, ``..\\``, URL-encoded and
   double-encoded variants), checked on the raw input
2. inputs that are empty before or after sanitization
3. paths that resolve outside the workspace root
4. paths that resolve into a denylisted system directory
"""

import logging
import os
import re
from collections.abc import Iterable
from pathlib import Path

from agent_sandbox.config.constants import DEFAULT_FORBIDDEN_PATHS
from agent_sandbox.exceptions import ForbiddenPath, InvalidPath, PathTraversal
from agent_sandbox.observability import log_decision

logger = logging.getLogger(__name__)

# Checked on the raw string, before any decoding or normalization
TRAVERSAL_PATTERNS = [
    re.compile(r"(^|[\\/])\.\.([\\/]|$)"),
    re.compile(r"\.\.%2f", re.IGNORECASE),
    re.compile(r"\.\.%5c", re.IGNORECASE),
    re.compile(r"%2e%2e([\\/]|%2f|%5c|$)", re.IGNORECASE),
    re.compile(r"\.\.%252f", re.IGNORECASE),
    re.compile(r"\.\.%255c", re.IGNORECASE),
    re.compile(r"%252e%252e", re.IGNORECASE),
    re.compile(r"\.\.%c0%af", re.IGNORECASE),
    re.compile(r"\.\.%c1%9c", re.IGNORECASE),
]

ILLEGAL_CHARACTERS = re.compile(r'[<>:"|?*\x00-\x1f\x7f]')
WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")
WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_path(raw_path: str) -> str:
    """Strip characters illegal in filenames and collapse whitespace.

    A leading drive letter (``C:\\``) is preserved on Windows.

    Args:
        raw_path: Caller-supplied path

    Returns:
        Sanitized path, possibly empty

    Examples:
        >>> sanitize_path('  src/<main>.py ')
        'src/main.py'
        >>> sanitize_path('notes   for  me.txt')
        'notes for me.txt'
        >>> sanitize_path('tab\\there.txt')  # tabs are control characters
        'tabhere.txt'
    """
    drive = ""
    rest = raw_path
    if os.name == "nt" and WINDOWS_DRIVE.match(raw_path):
        drive, rest = raw_path[:2], raw_path[2:]

    cleaned = ILLEGAL_CHARACTERS.sub("", rest)
    cleaned = WHITESPACE_RUN.sub(" ", cleaned).strip()
    return f"{drive}{cleaned}" if cleaned else ""


def find_traversal(raw_path: str) -> str | None:
    """Return the first traversal pattern found in ``raw_path``, if any."""
    for pattern in TRAVERSAL_PATTERNS:
        if pattern.search(raw_path):
            return pattern.pattern
    return None


class PathGuard:
    """Resolves caller paths against a fixed workspace root.

    The guard holds no mutable state; one instance can serve concurrent calls.

    Example:
        >>> guard = PathGuard("/ws")
        >>> guard.validate("sub/file.txt")
        PosixPath('/ws/sub/file.txt')
        >>> guard.validate("../etc/passwd")
        Traceback (most recent call last):
        ...
        PathTraversal: Path '../etc/passwd' contains a traversal sequence
    """

    def __init__(
        self,
        workspace_root: str | Path,
        forbidden_paths: Iterable[str | Path] = DEFAULT_FORBIDDEN_PATHS,
    ):
        """Initialize PathGuard.

        Args:
            workspace_root: Directory every resolved path must stay inside
            forbidden_paths: System directories no resolved path may fall under
        """
        self.workspace_root = Path(workspace_root).resolve()
        self.forbidden_paths = self._expand_forbidden(forbidden_paths)

    @staticmethod
    def _expand_forbidden(forbidden_paths: Iterable[str | Path]) -> list[Path]:
        # Keep both the literal and the resolved form: /bin may be a symlink to /usr/bin
        expanded: list[Path] = []
        for entry in forbidden_paths:
            literal = Path(entry)
            for candidate in (literal, literal.resolve()):
                if candidate not in expanded:
                    expanded.append(candidate)
        return expanded

    def validate(self, raw_path: str, workspace_root: str | Path | None = None) -> Path:
        """Resolve ``raw_path`` and verify it stays inside the workspace.

        Args:
            raw_path: Relative or absolute path supplied by the caller
            workspace_root: Optional root overriding the configured one

        Returns:
            Absolute, symlink-resolved path inside the workspace

        Raises:
            InvalidPath: Input is not a string or is empty (before or after sanitization)
            PathTraversal: Input contains a traversal sequence or resolves outside the root
            ForbiddenPath: Resolved path falls under a denylisted system directory
        """
        root = Path(workspace_root).resolve() if workspace_root is not None else self.workspace_root

        if not isinstance(raw_path, str):
            self._reject(repr(raw_path), "invalid_path")
            raise InvalidPath(
                f"Path must be a string, got {type(raw_path).__name__}",
                {"requested_path": repr(raw_path)},
            )

        if not raw_path.strip():
            self._reject(raw_path, "invalid_path")
            raise InvalidPath("Path cannot be empty", {"requested_path": raw_path})

        if pattern := find_traversal(raw_path):
            self._reject(raw_path, "path_traversal", pattern=pattern)
            raise PathTraversal(
                f"Path '{raw_path}' contains a traversal sequence",
                {"requested_path": raw_path, "pattern": pattern, "workspace_root": str(root)},
            )

        sanitized = sanitize_path(raw_path)
        if not sanitized:
            self._reject(raw_path, "invalid_path")
            raise InvalidPath(
                f"Path '{raw_path}' is empty after removing illegal characters",
                {"requested_path": raw_path},
            )

        candidate = Path(sanitized)
        try:
            resolved = (candidate if candidate.is_absolute() else root / candidate).resolve()
        except (OSError, RuntimeError) as e:
            self._reject(raw_path, "invalid_path", error=str(e))
            raise InvalidPath(
                f"Failed to resolve path '{raw_path}': {e}", {"requested_path": raw_path}
            ) from e

        if not resolved.is_relative_to(root):
            self._reject(raw_path, "path_traversal", resolved=str(resolved))
            raise PathTraversal(
                f"Path '{raw_path}' resolves outside the workspace ({root})",
                {
                    "requested_path": raw_path,
                    "resolved_path": str(resolved),
                    "workspace_root": str(root),
                },
            )

        for forbidden in self.forbidden_paths:
            # A denylisted directory that contains the workspace itself was chosen by the operator
            if resolved.is_relative_to(forbidden) and not root.is_relative_to(forbidden):
                self._reject(raw_path, "forbidden_path", directory=str(forbidden))
                raise ForbiddenPath(
                    f"Path '{raw_path}' is inside the protected system directory {forbidden}",
                    {
                        "requested_path": raw_path,
                        "resolved_path": str(resolved),
                        "forbidden_directory": str(forbidden),
                    },
                )

        log_decision(logger, "allowed", raw_path, resolved=str(resolved))
        return resolved

    def is_within_workspace(self, path: Path) -> bool:
        """Check an already-resolved path (e.g. a glob hit) against the root."""
        try:
            return path.resolve().is_relative_to(self.workspace_root)
        except (OSError, RuntimeError):
            return False

    @staticmethod
    def _reject(raw_path: str, kind: str, **fields) -> None:
        log_decision(logger, "rejected", raw_path, logging.WARNING, kind=kind, **fields)
