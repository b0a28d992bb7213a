"""Thin filesystem boundary used by the tool facade.

Paths passed here must already be validated by ``PathGuard``. Writes land
atomically: content goes to a temp file in the target directory, then
``os.replace`` swaps it in, so a crash never leaves a truncated file.
"""

import logging
import mimetypes
import os
import shutil
import tempfile
import time
from pathlib import Path

from agent_sandbox.exceptions import (
    BinaryFile,
    FileNotFound,
    PermissionDenied,
    SandboxIOError,
    SizeLimitExceeded,
)

logger = logging.getLogger(__name__)

BINARY_SAMPLE_BYTES = 8192


def looks_binary(data: bytes) -> bool:
    """Treat content as binary when the first 8KB contain a null byte."""
    return b"\x00" in data[:BINARY_SAMPLE_BYTES]


def media_kind(path: Path) -> tuple[str, str] | None:
    """Classify images and PDFs by extension.

    Returns:
        ``("image", mime_type)`` or ``("pdf", "application/pdf")``, None for anything else
    """
    mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type is None:
        return None
    if mime_type.startswith("image/"):
        return "image", mime_type
    if mime_type == "application/pdf":
        return "pdf", mime_type
    return None


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# Read once; os.umask cannot be queried without setting it
_UMASK = _current_umask()


class FileStore:
    """Read, write and existence checks with size limits.

    Example:
        >>> store = FileStore(max_write_bytes=1024)
        >>> store.write(Path("/ws/notes/todo.txt"), "ship it\\n")
        >>> store.read(Path("/ws/notes/todo.txt"))
        'ship it\\n'
    """

    def __init__(self, max_read_bytes: int | None = None, max_write_bytes: int | None = None):
        """Initialize FileStore.

        Args:
            max_read_bytes: Largest file ``read`` accepts (None for no limit)
            max_write_bytes: Largest content ``write`` accepts (None for no limit)
        """
        self.max_read_bytes = max_read_bytes
        self.max_write_bytes = max_write_bytes

    def exists(self, path: Path) -> bool:
        return path.exists()

    def read_if_exists(self, path: Path) -> str | None:
        """Read ``path``, or return None when it does not exist (edit-to-create)."""
        if not path.exists():
            return None
        return self.read(path)

    def size(self, path: Path) -> int:
        """Size of an existing regular file in bytes.

        Raises:
            FileNotFound: Path does not exist
            SandboxIOError: Path is a directory or cannot be inspected
        """
        if not path.exists():
            raise FileNotFound(f"File not found: {path}", {"path": str(path)})
        if path.is_dir():
            raise SandboxIOError(
                f"Path is a directory, not a file: {path}", {"path": str(path)}
            )
        try:
            return path.stat().st_size
        except OSError as e:
            raise SandboxIOError(f"Error inspecting {path}: {e}", {"path": str(path)}) from e

    def read(self, path: Path) -> str:
        """Read a UTF-8 text file.

        Line endings are returned as stored on disk.

        Raises:
            FileNotFound: Path does not exist
            PermissionDenied: OS refused access
            SizeLimitExceeded: File is larger than ``max_read_bytes``
            BinaryFile: Null bytes in the first 8KB
            SandboxIOError: Path is a directory, not UTF-8, or another OS error
        """
        try:
            if not path.exists():
                raise FileNotFound(f"File not found: {path}", {"path": str(path)})
            if path.is_dir():
                raise SandboxIOError(
                    f"Path is a directory, not a file: {path}", {"path": str(path)}
                )

            size = path.stat().st_size
            if self.max_read_bytes is not None and size > self.max_read_bytes:
                raise SizeLimitExceeded(
                    f"File size ({size} bytes) exceeds max read limit "
                    f"({self.max_read_bytes} bytes): {path}",
                    kind="file_too_large",
                    details={"path": str(path), "size": size, "limit": self.max_read_bytes},
                )

            data = path.read_bytes()

        except PermissionError as e:
            raise PermissionDenied(
                f"Permission denied reading file: {path}", {"path": str(path)}
            ) from e
        except (FileNotFound, SandboxIOError, SizeLimitExceeded):
            raise
        except OSError as e:
            raise SandboxIOError(f"Error reading file {path}: {e}", {"path": str(path)}) from e

        if looks_binary(data):
            raise BinaryFile(
                f"File appears to be binary (contains null bytes): {path}", {"path": str(path)}
            )

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SandboxIOError(
                f"File is not valid UTF-8 text: {path} ({e.reason} at byte {e.start})",
                {"path": str(path)},
            ) from e

    def write(
        self,
        path: Path,
        content: str,
        create_dirs: bool = True,
        backup: bool = False,
    ) -> Path | None:
        """Write ``content`` to ``path`` atomically.

        Args:
            path: Validated destination path
            content: Text to write (UTF-8, line endings written as given)
            create_dirs: Create missing parent directories
            backup: Copy an existing file to ``<name>.backup.<ms timestamp>`` first

        Returns:
            Path of the backup copy, or None when no backup was made

        Raises:
            SizeLimitExceeded: Content is larger than ``max_write_bytes``
            FileNotFound: Parent directory is missing and ``create_dirs`` is False
            PermissionDenied: OS refused access
            SandboxIOError: Path is a directory or another OS error
        """
        data = content.encode("utf-8")
        if self.max_write_bytes is not None and len(data) > self.max_write_bytes:
            raise SizeLimitExceeded(
                f"Content size ({len(data)} bytes) exceeds max write limit "
                f"({self.max_write_bytes} bytes)",
                kind="write_too_large",
                details={"path": str(path), "size": len(data), "limit": self.max_write_bytes},
            )

        if path.is_dir():
            raise SandboxIOError(
                f"Target path is a directory, not a file: {path}", {"path": str(path)}
            )

        try:
            if create_dirs:
                path.parent.mkdir(parents=True, exist_ok=True)
            elif not path.parent.is_dir():
                raise FileNotFound(
                    f"Parent directory does not exist: {path.parent}. "
                    "Use create_dirs=true to create it.",
                    {"path": str(path)},
                )

            backup_path = self._backup(path) if backup and path.exists() else None

            # Temp file in the same directory so os.replace stays on one filesystem
            temp_fd, temp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(temp_fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())

                if path.exists():
                    shutil.copymode(path, temp_name)
                else:
                    os.chmod(temp_name, 0o666 & ~_UMASK)

                os.replace(temp_name, path)
            except BaseException:
                try:
                    os.unlink(temp_name)
                except OSError:
                    pass
                raise

            logger.debug(f"Wrote {len(data)} bytes to {path}")
            return backup_path

        except PermissionError as e:
            raise PermissionDenied(
                f"Permission denied writing to: {path}", {"path": str(path)}
            ) from e
        except FileNotFound:
            raise
        except OSError as e:
            raise SandboxIOError(f"Error writing to {path}: {e}", {"path": str(path)}) from e

    @staticmethod
    def _backup(path: Path) -> Path:
        backup_path = path.with_name(f"{path.name}.backup.{int(time.time() * 1000)}")
        shutil.copy2(path, backup_path)
        logger.info(f"Created backup: {backup_path}")
        return backup_path
