"""Shell command execution with timeout and captured output.

Commands run in their own process group so a timeout can take down the
shell and everything it started. Output is drained concurrently while the
process runs; whatever arrived before a timeout is reported with the error.
"""

import asyncio
import logging
import os
import shutil
import signal
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agent_sandbox.config.constants import DEFAULT_KILL_GRACE_SECONDS, DEFAULT_MAX_OUTPUT_BYTES
from agent_sandbox.exceptions import CommandTimeout, InvalidWorkingDirectory, SpawnError

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 65536


def default_shell() -> str | None:
    """Pick bash when available, else /bin/sh. None on Windows (cmd.exe)."""
    if os.name == "nt":
        return None
    return shutil.which("bash") or "/bin/sh"


@dataclass
class CommandExecution:
    """A finished shell command.

    ``success`` reflects the process exit code only; a non-zero exit is a
    normal result, not an error.
    """

    command: str
    working_directory: Path
    timeout_ms: int
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0
    capture_output: bool = True
    env_overlay: dict[str, str] = field(default_factory=dict)
    truncated: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "working_directory": str(self.working_directory),
            "exit_code": self.exit_code,
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "elapsed_ms": self.elapsed_ms,
            "timeout_ms": self.timeout_ms,
            "capture_output": self.capture_output,
            "truncated": self.truncated,
        }


class _OutputBuffer:
    """Collects a stream up to a byte limit while counting everything seen."""

    def __init__(self, limit: int):
        self.limit = limit
        self.data = bytearray()
        self.total = 0

    def feed(self, chunk: bytes) -> None:
        self.total += len(chunk)
        room = self.limit - len(self.data)
        if room > 0:
            self.data.extend(chunk[:room])

    @property
    def truncated(self) -> bool:
        return self.total > self.limit

    def text(self) -> str:
        text = self.data.decode("utf-8", errors="replace")
        if self.truncated:
            text += (
                f"\n... [output truncated: {self.total} bytes total, showing first {self.limit}]"
            )
        return text


class ProcessRunner:
    """Runs shell commands asynchronously.

    Example:
        >>> runner = ProcessRunner()
        >>> execution = await runner.run("echo hi", Path("/ws"), timeout_ms=5000)
        >>> execution.stdout
        'hi\\n'
    """

    def __init__(
        self,
        shell: str | None = None,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    ):
        """Initialize ProcessRunner.

        Args:
            shell: Shell executable, defaults to bash (or /bin/sh)
            max_output_bytes: Per-stream capture limit
            kill_grace_seconds: Time between SIGTERM and SIGKILL on timeout
        """
        self.shell = shell or default_shell()
        self.max_output_bytes = max_output_bytes
        self.kill_grace_seconds = kill_grace_seconds

    async def run(
        self,
        command: str,
        working_directory: Path,
        timeout_ms: int,
        env_overlay: dict[str, str] | None = None,
        capture_output: bool = True,
    ) -> CommandExecution:
        """Run ``command`` through the shell.

        Args:
            command: Command string, already screened by CommandGuard
            working_directory: Validated directory to run in
            timeout_ms: Wall-clock limit in milliseconds
            env_overlay: Variables layered over the current environment
            capture_output: Capture stdout/stderr, otherwise inherit the parent's streams

        Returns:
            CommandExecution with the real exit code

        Raises:
            InvalidWorkingDirectory: Directory does not exist (nothing spawned)
            SpawnError: Shell could not be launched
            CommandTimeout: Timeout expired; process group was terminated
            asyncio.CancelledError: Caller cancelled; process group was terminated
        """
        if not working_directory.is_dir():
            raise InvalidWorkingDirectory(
                f"Working directory does not exist: {working_directory}",
                {"working_directory": str(working_directory)},
            )

        env_overlay = dict(env_overlay or {})
        env = {**os.environ, **env_overlay}
        stream = asyncio.subprocess.PIPE if capture_output else None

        kwargs: dict[str, Any] = {}
        if os.name != "nt":
            kwargs["start_new_session"] = True

        logger.info(f"Executing command in {working_directory}: {command}")
        start = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=stream,
                stderr=stream,
                cwd=working_directory,
                env=env,
                executable=self.shell,
                **kwargs,
            )
        except OSError as e:
            raise SpawnError(
                f"Failed to start shell {self.shell or 'default'}: {e}",
                {"command": command, "shell": self.shell},
            ) from e

        stdout_buffer = _OutputBuffer(self.max_output_bytes)
        stderr_buffer = _OutputBuffer(self.max_output_bytes)
        waiters = [process.wait()]
        if capture_output:
            waiters += [
                self._drain(process.stdout, stdout_buffer),
                self._drain(process.stderr, stderr_buffer),
            ]

        gathered = asyncio.gather(*waiters)
        try:
            await asyncio.wait_for(gathered, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            logger.warning(f"Command cancelled, terminating process group: {command}")
            # Consume the cancelled drains so asyncio does not report them
            gathered.add_done_callback(lambda f: f.cancelled() or f.exception())
            await self._terminate(process)
            raise
        except TimeoutError:
            await self._terminate(process)
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            logger.warning(f"Command timed out after {elapsed_ms}ms: {command}")
            raise CommandTimeout(
                f"Command timed out after {timeout_ms / 1000:g}s",
                elapsed_ms=elapsed_ms,
                stdout=stdout_buffer.text(),
                stderr=stderr_buffer.text(),
                details={"command": command, "timeout_ms": timeout_ms},
            ) from None

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(f"Command exited with {process.returncode} in {elapsed_ms}ms")

        return CommandExecution(
            command=command,
            working_directory=working_directory,
            timeout_ms=timeout_ms,
            exit_code=process.returncode,
            stdout=stdout_buffer.text(),
            stderr=stderr_buffer.text(),
            elapsed_ms=elapsed_ms,
            capture_output=capture_output,
            env_overlay=env_overlay,
            truncated=stdout_buffer.truncated or stderr_buffer.truncated,
        )

    @staticmethod
    async def _drain(reader: asyncio.StreamReader | None, buffer: _OutputBuffer) -> None:
        if reader is None:
            return
        while chunk := await reader.read(READ_CHUNK_BYTES):
            buffer.feed(chunk)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """SIGTERM the process group, then SIGKILL after the grace period."""
        self._signal(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except TimeoutError:
            logger.warning(f"Process {process.pid} ignored SIGTERM, sending SIGKILL")
            self._signal(process, getattr(signal, "SIGKILL", signal.SIGTERM))
            await process.wait()

    @staticmethod
    def _signal(process: asyncio.subprocess.Process, sig: int) -> None:
        try:
            if os.name == "nt":
                if sig == signal.SIGTERM:
                    process.terminate()
                else:
                    process.kill()
            else:
                # start_new_session makes the shell the group leader
                os.killpg(process.pid, sig)
        except ProcessLookupError:
            pass
