"""Sandboxed tools for reading, editing and searching files and running commands.

This module is the single entry point an agent uses to touch a project.
Every call follows the same path:

1. parameters are validated against the tool's pydantic model
2. paths go through PathGuard, commands through CommandGuard
3. the operation runs (file I/O in a worker thread, commands via ProcessRunner)
4. the outcome, or any SandboxError raised on the way, becomes an envelope

Tools never raise. Unexpected exceptions are logged with a traceback and
reported as ``io_error``.
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, ValidationError

from agent_sandbox.config import SandboxSettings
from agent_sandbox.config.constants import (
    DEFAULT_GREP_MAX_FILES,
    DEFAULT_READ_LINE_LIMIT,
    MAX_LINE_LENGTH,
    SKIPPED_DIRECTORIES,
)
from agent_sandbox.editing import EditSpec, apply_edit, apply_sequence
from agent_sandbox.exceptions import (
    ConfigurationError,
    EditSequenceFailed,
    FileNotFound,
    FileStoreError,
    ParameterValidationError,
    PermissionDenied,
    SandboxError,
    SandboxIOError,
)
from agent_sandbox.files import FileStore, media_kind
from agent_sandbox.process import ProcessRunner
from agent_sandbox.security import CommandGuard, PathGuard
from agent_sandbox.tools.patterns import compile_globs, matches_any
from agent_sandbox.tools.schemas import (
    TOOL_PARAMS,
    BashParams,
    EditParams,
    GlobParams,
    GrepParams,
    LsParams,
    MultiEditParams,
    ReadParams,
    WriteParams,
    format_validation_error,
)
from agent_sandbox.tools.toolset import SandboxToolset

logger = logging.getLogger(__name__)


def count_lines(content: str) -> int:
    """Count lines the way an editor does: a trailing newline does not start a new line."""
    if not content:
        return 0
    return content.count("\n") + (0 if content.endswith("\n") else 1)


class SandboxTools(SandboxToolset):
    """Workspace-confined file, search and shell tools.

    All paths must resolve under the workspace root and outside the
    configured system directories. Shell commands are screened before they
    are spawned.

    Example:
        >>> tools = SandboxTools(workspace_root=Path("/home/user/project"))
        >>> await tools.write("notes/todo.txt", "ship it\\n")
        {'success': True, 'result': {'is_new_file': True, ...}, 'message': '...'}
        >>> await tools.call("edit", {"file_path": "notes/todo.txt",
        ...                           "old_string": "ship", "new_string": "test"})
    """

    def __init__(
        self, settings: SandboxSettings | None = None, workspace_root: Path | str | None = None
    ):
        """Initialize SandboxTools.

        Args:
            settings: Sandbox settings, defaults to SandboxSettings()
            workspace_root: Explicit root, overriding settings and environment

        Raises:
            ConfigurationError: Workspace root does not exist or is not a directory
        """
        super().__init__(settings)
        self.workspace_root = self._get_workspace_root(workspace_root)

        if not self.workspace_root.is_dir():
            raise ConfigurationError(
                f"Workspace root does not exist or is not a directory: {self.workspace_root}"
            )

        self.path_guard = PathGuard(self.workspace_root, self.settings.security.forbidden_paths)
        self.command_guard = CommandGuard(
            extra_patterns=self.settings.security.extra_dangerous_patterns
        )
        self.file_store = FileStore(
            max_read_bytes=self.settings.workspace.max_read_bytes,
            max_write_bytes=self.settings.workspace.max_write_bytes,
        )
        self.process_runner = ProcessRunner(
            shell=self.settings.execution.shell,
            max_output_bytes=self.settings.execution.max_output_bytes,
            kill_grace_seconds=self.settings.execution.kill_grace_seconds,
        )

        self._handlers = {
            "read": self._read,
            "write": self._write,
            "edit": self._edit,
            "multiedit": self._multiedit,
            "bash": self._bash,
            "glob": self._glob,
            "grep": self._grep,
            "ls": self._ls,
        }

    def _get_workspace_root(self, explicit: Path | str | None) -> Path:
        """Pick the workspace root.

        Priority order:
            1. explicit argument
            2. settings.workspace.root (load_settings already applied
               SANDBOX_WORKSPACE_ROOT over settings.json)
            3. SANDBOX_WORKSPACE_ROOT, for settings built without load_settings
            4. Path.cwd()
        """
        if explicit is not None:
            return Path(explicit).expanduser().resolve()
        if self.settings.workspace.root is not None:
            return self.settings.workspace.root
        if env_root := os.getenv("SANDBOX_WORKSPACE_ROOT"):
            return Path(env_root).expanduser().resolve()

        workspace_root = Path.cwd().resolve()
        if workspace_root == Path.home() or workspace_root == Path("/"):
            logger.warning(
                f"Workspace is set to {workspace_root}. Consider using a project directory "
                "or configuring workspace.root in ~/.agent-sandbox/settings.json."
            )
        return workspace_root

    def get_tools(self) -> list:
        return [
            self.read,
            self.write,
            self.edit,
            self.multiedit,
            self.bash,
            self.glob,
            self.grep,
            self.ls,
        ]

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    async def call(self, name: str, params: dict[str, Any] | None = None) -> dict:
        """Validate ``params`` for tool ``name`` and run it.

        Args:
            name: Tool name (read, write, edit, multiedit, bash, glob, grep, ls)
            params: Raw parameters, e.g. decoded from an LLM tool call

        Returns:
            Success or error envelope
        """
        handler = self._handlers.get(name)
        if handler is None:
            return self._create_error_response(
                error="validation_error",
                message=f"Unknown tool '{name}'. Available tools: {', '.join(self._handlers)}",
                details={"tool": name},
            )

        if params is None:
            params = {}
        if not isinstance(params, dict):
            return self._create_error_response(
                error="validation_error",
                message=f"Parameters must be an object, got {type(params).__name__}",
                details={"tool": name},
            )

        try:
            model = TOOL_PARAMS[name].model_validate(params)
        except ValidationError as e:
            message, errors = format_validation_error(e)
            logger.info(f"Rejected {name} call: {message}")
            return self._create_error_response(
                error="validation_error",
                message=message,
                details={"tool": name, "errors": errors},
            )

        try:
            return await handler(model)
        except SandboxError as e:
            logger.info(f"{name} failed with {e.kind}: {e.message}")
            return self._error_from_exception(e)
        except Exception as e:
            logger.exception(f"Unexpected error in {name} tool")
            return self._create_error_response(
                error="io_error",
                message=f"Unexpected error in {name}: {e}",
                details={"tool": name, "exception": type(e).__name__},
            )

    # Tool entry points. Signatures mirror the parameter models so an agent
    # framework can build tool schemas from them.

    async def read(
        self,
        file_path: Annotated[str, Field(description="File path relative to workspace")],
        offset: Annotated[int, Field(description="Number of lines to skip")] = 0,
        limit: Annotated[
            int, Field(description="Maximum lines to return")
        ] = DEFAULT_READ_LINE_LIMIT,
    ) -> dict:
        """Read a UTF-8 text file, optionally a window of lines.

        Lines longer than 2000 characters are cut. Binary files are refused.
        Images and PDFs are described (type, MIME type, size) rather than decoded.

        Returns:
            Success response with content, lines_shown, lines_total, truncated
            and next_offset (None when the end of the file was reached).
        """
        return await self.call("read", {"file_path": file_path, "offset": offset, "limit": limit})

    async def write(
        self,
        file_path: Annotated[str, Field(description="File path relative to workspace")],
        content: Annotated[str, Field(description="Full file content to write")],
        create_dirs: Annotated[bool, Field(description="Create missing parent directories")] = True,
    ) -> dict:
        """Create or overwrite a file atomically."""
        return await self.call(
            "write", {"file_path": file_path, "content": content, "create_dirs": create_dirs}
        )

    async def edit(
        self,
        file_path: Annotated[str, Field(description="File path relative to workspace")],
        old_string: Annotated[
            str, Field(description="Exact text to replace; empty string creates a new file")
        ],
        new_string: Annotated[str, Field(description="Replacement text")],
        expected_replacements: Annotated[
            int, Field(description="Exact number of occurrences that must exist")
        ] = 1,
    ) -> dict:
        """Replace exact text in a file.

        The edit applies only when ``old_string`` occurs exactly
        ``expected_replacements`` times; then every occurrence is replaced.
        Matching is literal, including whitespace and indentation. Read the
        file first and copy the text exactly.

        Returns:
            Success response with replacements, lines_total, bytes_total and
            content_changed, or an error (not_found, occurrence_mismatch,
            file_already_exists) whose details carry the matched count.
        """
        return await self.call(
            "edit",
            {
                "file_path": file_path,
                "old_string": old_string,
                "new_string": new_string,
                "expected_replacements": expected_replacements,
            },
        )

    async def multiedit(
        self,
        file_path: Annotated[str, Field(description="File path relative to workspace")],
        edits: Annotated[
            list[dict],
            Field(
                description="Edits applied in order, each with old_string, new_string "
                "and optional expected_replacements"
            ),
        ],
        fail_fast: Annotated[
            bool, Field(description="Stop at the first failed edit and write nothing")
        ] = True,
    ) -> dict:
        """Apply several exact-match edits to one file in sequence.

        Each edit sees the result of the previous ones. With ``fail_fast``
        the file is untouched unless every edit succeeds; otherwise the
        successful edits are written and failures are reported per edit.
        """
        return await self.call(
            "multiedit", {"file_path": file_path, "edits": edits, "fail_fast": fail_fast}
        )

    async def bash(
        self,
        command: Annotated[str, Field(description="Shell command to execute")],
        working_directory: Annotated[
            str, Field(description="Directory relative to workspace")
        ] = ".",
        timeout_seconds: Annotated[
            int | None, Field(description="Timeout in seconds, 1-300 (default 30)")
        ] = None,
        capture_output: Annotated[bool, Field(description="Capture stdout and stderr")] = True,
        environment: Annotated[
            dict[str, str] | None, Field(description="Extra environment variables")
        ] = None,
    ) -> dict:
        """Run a shell command inside the workspace.

        Destructive and privilege-escalating commands are refused. Pipes and
        ``&&`` chains are only accepted for read-only commands.

        Returns:
            Success response with exit_code, stdout, stderr and elapsed_ms.
            A non-zero exit code is still a success envelope with
            ``result.success`` False. Timeouts return a ``timeout`` error with
            the partial output in details.
        """
        params: dict[str, Any] = {
            "command": command,
            "working_directory": working_directory,
            "capture_output": capture_output,
            "environment": environment or {},
        }
        if timeout_seconds is not None:
            params["timeout_seconds"] = timeout_seconds
        return await self.call("bash", params)

    async def glob(
        self,
        pattern: Annotated[str, Field(description="Glob pattern, e.g. '**/*.py' or '*.{ts,tsx}'")],
        path: Annotated[str, Field(description="Directory to search in")] = ".",
        include_dirs: Annotated[bool, Field(description="Include directories in results")] = False,
        show_hidden: Annotated[bool, Field(description="Include dotfiles")] = False,
        case_sensitive: Annotated[bool, Field(description="Case-sensitive matching")] = False,
        sort_by_time: Annotated[bool, Field(description="Newest first instead of by name")] = False,
        max_results: Annotated[int, Field(description="Maximum results")] = 500,
    ) -> dict:
        """Find files by name pattern.

        Dependency and VCS directories (node_modules, .git, build, ...) are skipped.
        """
        return await self.call(
            "glob",
            {
                "pattern": pattern,
                "path": path,
                "include_dirs": include_dirs,
                "show_hidden": show_hidden,
                "case_sensitive": case_sensitive,
                "sort_by_time": sort_by_time,
                "max_results": max_results,
            },
        )

    async def grep(
        self,
        pattern: Annotated[str, Field(description="Regular expression to search for")],
        path: Annotated[str, Field(description="File or directory to search")] = ".",
        include: Annotated[str | None, Field(description="Filename glob, e.g. '*.py'")] = None,
        case_sensitive: Annotated[bool, Field(description="Case-sensitive matching")] = False,
        max_files: Annotated[
            int, Field(description="Maximum files to search")
        ] = DEFAULT_GREP_MAX_FILES,
        max_matches: Annotated[int, Field(description="Maximum matches to return")] = 100,
    ) -> dict:
        """Search file contents with a regular expression. Binary files are skipped."""
        return await self.call(
            "grep",
            {
                "pattern": pattern,
                "path": path,
                "include": include,
                "case_sensitive": case_sensitive,
                "max_files": max_files,
                "max_matches": max_matches,
            },
        )

    async def ls(
        self,
        path: Annotated[str, Field(description="Directory to list")] = ".",
        show_hidden: Annotated[bool, Field(description="Include dotfiles")] = False,
        ignore: Annotated[
            list[str] | None, Field(description="Name globs to skip, e.g. ['*.log']")
        ] = None,
    ) -> dict:
        """List a directory, directories first."""
        return await self.call(
            "ls", {"path": path, "show_hidden": show_hidden, "ignore": ignore or []}
        )

    # Handlers. Each receives a validated model and may raise SandboxError.

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.workspace_root).as_posix() or "."
        except ValueError:
            return str(path)

    async def _read(self, params: ReadParams) -> dict:
        path = self.path_guard.validate(params.file_path)
        if media := media_kind(path):
            return await self._read_media(params, path, *media)

        content = await asyncio.to_thread(self.file_store.read, path)

        lines = content.splitlines(keepends=True)
        total_lines = len(lines)
        if params.offset > 0 and params.offset >= total_lines:
            raise ParameterValidationError(
                f"offset ({params.offset}) is beyond the end of the file "
                f"({total_lines} lines): {params.file_path}",
                {"offset": params.offset, "lines_total": total_lines},
            )

        end = min(params.offset + params.limit, total_lines)
        shown = []
        lines_cut = 0
        for line in lines[params.offset : end]:
            body = line.rstrip("\r\n")
            if len(body) > MAX_LINE_LENGTH:
                lines_cut += 1
                line = f"{body[:MAX_LINE_LENGTH]}... [line truncated]{line[len(body):]}"
            shown.append(line)

        truncated = end < total_lines
        result = {
            "file_path": params.file_path,
            "absolute_path": str(path),
            "file_type": "text",
            "content": "".join(shown),
            "offset": params.offset,
            "lines_shown": [params.offset + 1, end] if shown else [0, 0],
            "lines_total": total_lines,
            "bytes_total": len(content.encode("utf-8")),
            "truncated": truncated,
            "next_offset": end if truncated else None,
            "long_lines_truncated": lines_cut,
        }

        message = f"Read {len(shown)} lines from {params.file_path}"
        if truncated:
            message += f" (lines {params.offset + 1}-{end} of {total_lines})"
        return self._create_success_response(result=result, message=message)

    async def _read_media(
        self, params: ReadParams, path: Path, file_type: str, mime_type: str
    ) -> dict:
        """Describe an image or PDF instead of decoding it as text."""
        size = await asyncio.to_thread(self.file_store.size, path)
        result = {
            "file_path": params.file_path,
            "absolute_path": str(path),
            "file_type": file_type,
            "mime_type": mime_type,
            "content": (
                f"[{file_type.upper()} FILE: {path.name}]\n"
                f"File size: {size / 1024:.1f} KB\n"
                f"MIME type: {mime_type}"
            ),
            "bytes_total": size,
        }
        return self._create_success_response(
            result=result, message=f"Read {file_type} file {params.file_path} ({mime_type})"
        )

    async def _write(self, params: WriteParams) -> dict:
        path = self.path_guard.validate(params.file_path)
        is_new_file = not self.file_store.exists(path)

        await asyncio.to_thread(self.file_store.write, path, params.content, params.create_dirs)

        bytes_written = len(params.content.encode("utf-8"))
        result = {
            "file_path": params.file_path,
            "absolute_path": str(path),
            "is_new_file": is_new_file,
            "bytes_written": bytes_written,
            "lines_written": count_lines(params.content),
        }
        action = "Created" if is_new_file else "Overwrote"
        return self._create_success_response(
            result=result, message=f"{action} {params.file_path} ({bytes_written} bytes)"
        )

    async def _edit(self, params: EditParams) -> dict:
        path = self.path_guard.validate(params.file_path)
        original = await asyncio.to_thread(self.file_store.read_if_exists, path)

        spec = EditSpec(params.old_string, params.new_string, params.expected_replacements)
        outcome = apply_edit(original, spec)
        if not outcome.applied:
            error = outcome.to_error()
            error.details["file_path"] = params.file_path
            raise error

        backup_path = await self._persist(path, outcome.content, original)

        result = {
            "file_path": params.file_path,
            "absolute_path": str(path),
            "is_new_file": outcome.is_new_file,
            "replacements": outcome.matched_occurrences,
            "lines_total": count_lines(outcome.content),
            "bytes_total": len(outcome.content.encode("utf-8")),
            "content_changed": original != outcome.content,
            "backup_path": str(backup_path) if backup_path else None,
        }
        if outcome.is_new_file:
            message = f"Created {params.file_path}"
        else:
            message = f"Replaced {outcome.matched_occurrences} occurrence(s) in {params.file_path}"
        return self._create_success_response(result=result, message=message)

    async def _multiedit(self, params: MultiEditParams) -> dict:
        path = self.path_guard.validate(params.file_path)
        original = await asyncio.to_thread(self.file_store.read_if_exists, path)

        specs = [
            EditSpec(item.old_string, item.new_string, item.expected_replacements)
            for item in params.edits
        ]
        sequence = apply_sequence(original, specs, fail_fast=params.fail_fast)
        edit_results = [outcome.to_dict() for outcome in sequence.outcomes]

        if sequence.aborted:
            index, outcome = sequence.first_failure
            error = outcome.to_error(context=f"Edit {index + 1}/{len(specs)} failed")
            error.details.update(
                file_path=params.file_path, failed_index=index, edit_results=edit_results
            )
            raise error

        if not sequence.any_applied:
            raise EditSequenceFailed(
                f"None of the {len(specs)} edits could be applied to {params.file_path}",
                {"file_path": params.file_path, "edit_results": edit_results},
            )

        backup_path = await self._persist(path, sequence.final_content, original)

        result = {
            "file_path": params.file_path,
            "absolute_path": str(path),
            "is_new_file": original is None,
            "edits_total": len(specs),
            "edits_successful": sequence.applied_count,
            "edits_failed": sequence.failed_count,
            "total_replacements": sequence.total_replacements,
            "lines_total": count_lines(sequence.final_content),
            "bytes_total": len(sequence.final_content.encode("utf-8")),
            "content_changed": original != sequence.final_content,
            "edit_results": edit_results,
            "backup_path": str(backup_path) if backup_path else None,
        }
        message = f"Applied {sequence.applied_count}/{len(specs)} edits to {params.file_path}"
        if sequence.failed_count:
            message += f" ({sequence.failed_count} failed)"
        return self._create_success_response(result=result, message=message)

    async def _persist(self, path: Path, content: str, original: str | None) -> Path | None:
        backup = self.settings.workspace.backup_on_edit and original is not None
        return await asyncio.to_thread(self.file_store.write, path, content, True, backup)

    async def _bash(self, params: BashParams) -> dict:
        execution_config = self.settings.execution
        self.command_guard.validate(params.command)
        working_directory = self.path_guard.validate(params.working_directory)

        timeout_seconds = params.timeout_seconds or execution_config.default_timeout_seconds
        if timeout_seconds > execution_config.max_timeout_seconds:
            raise ParameterValidationError(
                f"Parameter 'timeout_seconds': must be at most "
                f"{execution_config.max_timeout_seconds}, got {timeout_seconds}",
                {"timeout_seconds": timeout_seconds},
            )

        execution = await self.process_runner.run(
            params.command,
            working_directory,
            timeout_ms=timeout_seconds * 1000,
            env_overlay=params.environment,
            capture_output=params.capture_output,
        )

        if execution.success:
            message = f"Command completed in {execution.elapsed_ms}ms"
        else:
            message = f"Command exited with code {execution.exit_code}"
        return self._create_success_response(result=execution.to_dict(), message=message)

    def _resolve_directory(self, raw_path: str) -> Path:
        path = self.path_guard.validate(raw_path)
        if not path.exists():
            raise FileNotFound(f"Path not found: {raw_path}", {"path": raw_path})
        if not path.is_dir():
            raise SandboxIOError(f"Path is not a directory: {raw_path}", {"path": raw_path})
        return path

    def _walk(self, base: Path, show_hidden: bool):
        """Yield (path, is_dir) below ``base``, pruning skipped and hidden directories."""
        for root, dirs, files in os.walk(base):
            dirs[:] = sorted(
                d
                for d in dirs
                if d not in SKIPPED_DIRECTORIES and (show_hidden or not d.startswith("."))
            )
            root_path = Path(root)
            for name in dirs:
                yield root_path / name, True
            for name in sorted(files):
                if show_hidden or not name.startswith("."):
                    yield root_path / name, False

    async def _glob(self, params: GlobParams) -> dict:
        base = self._resolve_directory(params.path)
        patterns = compile_globs(params.pattern, params.case_sensitive)
        matches, truncated = await asyncio.to_thread(self._glob_sync, base, patterns, params)

        result = {
            "pattern": params.pattern,
            "search_path": self._relative(base),
            "matches": matches,
            "total_matches": len(matches),
            "files": sum(1 for m in matches if m["type"] == "file"),
            "directories": sum(1 for m in matches if m["type"] == "directory"),
            "truncated": truncated,
        }
        message = f'Found {len(matches)} match(es) for pattern "{params.pattern}"'
        if truncated:
            message += f" (limited to {params.max_results})"
        return self._create_success_response(result=result, message=message)

    def _glob_sync(
        self, base: Path, patterns: list[re.Pattern], params: GlobParams
    ) -> tuple[list[dict], bool]:
        matches: list[dict] = []
        truncated = False
        for path, is_dir in self._walk(base, params.show_hidden):
            if is_dir and not params.include_dirs:
                continue
            if not matches_any(path.relative_to(base).as_posix(), patterns):
                continue
            # Symlinks may point outside the workspace
            if not self.path_guard.is_within_workspace(path):
                continue
            if len(matches) >= params.max_results:
                truncated = True
                break
            try:
                stat = path.stat()
            except OSError:
                continue
            matches.append(
                {
                    "path": self._relative(path),
                    "type": "directory" if is_dir else "file",
                    "size": None if is_dir else stat.st_size,
                    "modified": stat.st_mtime,
                }
            )

        if params.sort_by_time:
            matches.sort(key=lambda m: m["modified"], reverse=True)
        else:
            matches.sort(key=lambda m: (m["type"] != "directory", m["path"]))
        return matches, truncated

    async def _grep(self, params: GrepParams) -> dict:
        flags = 0 if params.case_sensitive else re.IGNORECASE
        try:
            regex = re.compile(params.pattern, flags)
        except re.error as e:
            raise ParameterValidationError(
                f"Invalid regular expression '{params.pattern}': {e}", {"pattern": params.pattern}
            ) from e

        path = self.path_guard.validate(params.path)
        if not path.exists():
            raise FileNotFound(f"Path not found: {params.path}", {"path": params.path})

        result = await asyncio.to_thread(self._grep_sync, path, regex, params)
        message = (
            f"Found {len(result['matches'])} match(es) in {result['files_matched']} file(s) "
            f"({result['files_searched']} searched)"
        )
        if result["files_limited"]:
            message += f"; stopped after {params.max_files} files, narrow path or include"
        return self._create_success_response(result=result, message=message)

    def _grep_sync(self, base: Path, regex: re.Pattern, params: GrepParams) -> dict:
        include = compile_globs(params.include) if params.include else None

        files_limited = False
        if base.is_file():
            candidates = [base]
        else:
            candidates = []
            for path, is_dir in self._walk(base, show_hidden=False):
                if is_dir:
                    continue
                if include:
                    relative = path.relative_to(base).as_posix()
                    if not (matches_any(relative, include) or matches_any(path.name, include)):
                        continue
                if len(candidates) >= params.max_files:
                    files_limited = True
                    break
                candidates.append(path)

        matches: list[dict] = []
        files_searched = 0
        files_skipped = 0
        matched_files: set[str] = set()
        truncated = False

        for path in candidates:
            if not self.path_guard.is_within_workspace(path):
                continue
            try:
                content = self.file_store.read(path)
            except FileStoreError:
                # Binary, oversized or unreadable files are not searchable
                files_skipped += 1
                continue

            files_searched += 1
            relative = self._relative(path)
            for line_number, line in enumerate(content.splitlines(), start=1):
                match = regex.search(line)
                if not match:
                    continue
                if len(matches) >= params.max_matches:
                    truncated = True
                    break
                matched_files.add(relative)
                matches.append(
                    {
                        "file": relative,
                        "line": line_number,
                        "column": match.start() + 1,
                        "content": line[:MAX_LINE_LENGTH],
                        "match": match.group(0),
                    }
                )
            if truncated:
                break

        return {
            "pattern": params.pattern,
            "search_path": self._relative(base),
            "include": params.include,
            "matches": matches,
            "files_searched": files_searched,
            "files_matched": len(matched_files),
            "files_skipped": files_skipped,
            "files_limited": files_limited,
            "truncated": truncated or files_limited,
        }

    async def _ls(self, params: LsParams) -> dict:
        base = self._resolve_directory(params.path)
        ignore = [p for pattern in params.ignore for p in compile_globs(pattern)]
        entries, ignored_count = await asyncio.to_thread(
            self._ls_sync, base, params.show_hidden, ignore
        )

        directories = sum(1 for e in entries if e["type"] == "directory")
        result = {
            "path": params.path,
            "absolute_path": str(base),
            "entries": entries,
            "total_count": len(entries),
            "directories": directories,
            "files": len(entries) - directories,
            "ignored_count": ignored_count,
        }
        message = f"Listed {len(entries)} item(s) in {params.path}"
        if ignored_count:
            message += f" ({ignored_count} ignored)"
        return self._create_success_response(result=result, message=message)

    def _ls_sync(
        self, base: Path, show_hidden: bool, ignore: list[re.Pattern]
    ) -> tuple[list[dict], int]:
        entries = []
        ignored_count = 0
        try:
            children = list(base.iterdir())
        except PermissionError as e:
            raise PermissionDenied(
                f"Permission denied reading directory: {base}", {"path": str(base)}
            ) from e

        for entry in children:
            if not show_hidden and entry.name.startswith("."):
                continue
            if ignore and matches_any(entry.name, ignore):
                ignored_count += 1
                continue
            try:
                stat = entry.stat()
            except OSError:
                continue
            is_dir = entry.is_dir()
            entries.append(
                {
                    "name": entry.name,
                    "relative_path": self._relative(entry),
                    "type": "directory" if is_dir else "file",
                    "size": None if is_dir else stat.st_size,
                    "modified": stat.st_mtime,
                }
            )

        entries.sort(key=lambda e: (e["type"] != "directory", e["name"].lower()))
        return entries, ignored_count
