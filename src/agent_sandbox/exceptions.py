"""Custom exceptions for sandbox errors.

This module provides a hierarchy of exception classes for the tool-execution
sandbox. Every exception carries a machine-readable ``kind`` tag and a
``details`` dict so the tool facade can convert it into an error envelope
the calling agent can reason about.

Exception Hierarchy:
    SandboxError (base)
    ├── ParameterValidationError      validation_error
    ├── SecurityViolation
    │   ├── PathTraversal             path_traversal
    │   ├── ForbiddenPath             forbidden_path
    │   ├── InvalidPath               invalid_path
    │   └── UnsafeCommand             unsafe_command
    ├── EditError
    │   ├── TextNotFound              not_found
    │   ├── OccurrenceMismatch        occurrence_mismatch
    │   ├── FileAlreadyExists         file_already_exists
    │   └── EditSequenceFailed        edit_sequence_failed
    ├── FileStoreError
    │   ├── FileNotFound              not_found
    │   ├── PermissionDenied          permission_denied
    │   ├── SandboxIOError            io_error
    │   ├── SizeLimitExceeded         write_too_large / file_too_large
    │   └── BinaryFile                is_binary
    └── ProcessError
        ├── InvalidWorkingDirectory   invalid_working_directory
        ├── CommandTimeout            timeout
        └── SpawnError                spawn_error
"""

from typing import Any


class SandboxError(Exception):
    """Base exception for all sandbox errors.

    Attributes:
        kind: Machine-readable error tag used in error envelopes
        details: Structured context (paths, patterns, counts) for self-correction
    """

    kind = "sandbox_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize SandboxError.

        Args:
            message: Human-readable error message
            details: Optional structured context
        """
        self.details = details or {}
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class ParameterValidationError(SandboxError):
    """Tool call parameters do not match the declared schema.

    Raised before any guard or filesystem work happens.
    """

    kind = "validation_error"


class SecurityViolation(SandboxError):
    """Base class for guard rejections. Never retried."""

    kind = "security_violation"


class PathTraversal(SecurityViolation):
    """Path escapes the workspace root or contains a traversal sequence."""

    kind = "path_traversal"


class ForbiddenPath(SecurityViolation):
    """Path lands inside a denylisted system directory."""

    kind = "forbidden_path"


class InvalidPath(SecurityViolation):
    """Path is empty, not a string, or empty after sanitization."""

    kind = "invalid_path"


class UnsafeCommand(SecurityViolation):
    """Shell command matches a dangerous shape.

    Attributes:
        pattern: Source of the pattern that matched (or None for metacharacters)
    """

    kind = "unsafe_command"

    def __init__(self, message: str, pattern: str | None = None, details: dict | None = None):
        self.pattern = pattern
        details = dict(details or {})
        if pattern is not None:
            details.setdefault("pattern", pattern)
        super().__init__(message, details)


class EditError(SandboxError):
    """Base class for edit engine semantic failures.

    These are recoverable: the agent is expected to re-read the file and
    retry with a corrected ``old_string``.
    """

    kind = "edit_error"


class TextNotFound(EditError):
    """old_string does not occur in the file (or the file does not exist)."""

    kind = "not_found"


class OccurrenceMismatch(EditError):
    """old_string occurs a different number of times than expected."""

    kind = "occurrence_mismatch"


class FileAlreadyExists(EditError):
    """Empty old_string (file creation) used against an existing file."""

    kind = "file_already_exists"


class EditSequenceFailed(EditError):
    """No edit in a continue-mode multiedit session could be applied."""

    kind = "edit_sequence_failed"


class FileStoreError(SandboxError):
    """Base class for file I/O failures."""

    kind = "io_error"


class FileNotFound(FileStoreError):
    """File or parent directory does not exist."""

    kind = "not_found"


class PermissionDenied(FileStoreError):
    """Operating system refused access."""

    kind = "permission_denied"


class SandboxIOError(FileStoreError):
    """Any other I/O failure (target is a directory, disk full, ...)."""

    kind = "io_error"


class SizeLimitExceeded(FileStoreError):
    """Content or file exceeds the configured byte limit."""

    def __init__(self, message: str, kind: str, details: dict | None = None):
        self.kind = kind
        super().__init__(message, details)


class BinaryFile(FileStoreError):
    """File contains null bytes and is not treated as text."""

    kind = "is_binary"


class ProcessError(SandboxError):
    """Base class for subprocess execution failures."""

    kind = "process_error"


class InvalidWorkingDirectory(ProcessError):
    """Working directory does not exist; nothing was spawned."""

    kind = "invalid_working_directory"


class CommandTimeout(ProcessError):
    """Command exceeded its timeout and was terminated.

    Attributes:
        elapsed_ms: Wall-clock time until termination
        stdout: Output captured before the kill (best effort)
        stderr: Error output captured before the kill (best effort)
    """

    kind = "timeout"

    def __init__(
        self,
        message: str,
        elapsed_ms: int,
        stdout: str = "",
        stderr: str = "",
        details: dict | None = None,
    ):
        self.elapsed_ms = elapsed_ms
        self.stdout = stdout
        self.stderr = stderr
        details = dict(details or {})
        details.setdefault("elapsed_ms", elapsed_ms)
        details.setdefault("partial_stdout", stdout)
        details.setdefault("partial_stderr", stderr)
        super().__init__(message, details)


class SpawnError(ProcessError):
    """The shell could not be launched."""

    kind = "spawn_error"


class ConfigurationError(SandboxError):
    """Raised when configuration operations fail."""

    kind = "configuration_error"
