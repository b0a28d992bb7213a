"""Parameter models for sandbox tools.

Each tool call is validated against one of these models before any guard
or filesystem work happens. Fields are strict: ``"5"`` is not accepted
where an integer is expected, and unknown parameters are rejected.
"""

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
)

from agent_sandbox.config.constants import (
    DEFAULT_GREP_MAX_FILES,
    DEFAULT_READ_LINE_LIMIT,
    MAX_TIMEOUT_SECONDS,
)


class ToolParams(BaseModel):
    """Base for tool parameter models."""

    model_config = ConfigDict(extra="forbid")


class ReadParams(ToolParams):
    file_path: StrictStr = Field(min_length=1, description="File path relative to workspace")
    offset: StrictInt = Field(default=0, ge=0, description="Number of lines to skip")
    limit: StrictInt = Field(
        default=DEFAULT_READ_LINE_LIMIT, ge=1, description="Maximum lines to return"
    )


class WriteParams(ToolParams):
    file_path: StrictStr = Field(min_length=1, description="File path relative to workspace")
    content: StrictStr = Field(description="Full file content to write")
    create_dirs: StrictBool = Field(default=True, description="Create missing parent directories")


class EditParams(ToolParams):
    file_path: StrictStr = Field(min_length=1, description="File path relative to workspace")
    old_string: StrictStr = Field(description="Exact text to replace; empty creates a new file")
    new_string: StrictStr = Field(description="Replacement text")
    expected_replacements: StrictInt = Field(
        default=1, ge=1, description="Exact number of occurrences that must exist"
    )


class EditItem(ToolParams):
    old_string: StrictStr
    new_string: StrictStr
    expected_replacements: StrictInt = Field(default=1, ge=1)


class MultiEditParams(ToolParams):
    file_path: StrictStr = Field(min_length=1, description="File path relative to workspace")
    edits: list[EditItem] = Field(min_length=1, description="Edits applied in order")
    fail_fast: StrictBool = Field(
        default=True, description="Stop at the first failed edit and write nothing"
    )


class BashParams(ToolParams):
    command: StrictStr = Field(min_length=1, description="Shell command to execute")
    working_directory: StrictStr = Field(
        default=".", min_length=1, description="Directory relative to workspace"
    )
    timeout_seconds: StrictInt | None = Field(
        default=None,
        ge=1,
        le=MAX_TIMEOUT_SECONDS,
        description="Timeout in seconds (default from settings)",
    )
    capture_output: StrictBool = Field(default=True, description="Capture stdout and stderr")
    environment: dict[StrictStr, StrictStr] = Field(
        default_factory=dict, description="Extra environment variables"
    )


class GlobParams(ToolParams):
    pattern: StrictStr = Field(
        min_length=1, description="Glob pattern, e.g. '**/*.py' or '*.{ts,tsx}'"
    )
    path: StrictStr = Field(default=".", min_length=1, description="Directory to search in")
    include_dirs: StrictBool = Field(default=False, description="Include directories in results")
    show_hidden: StrictBool = Field(default=False, description="Include dotfiles")
    case_sensitive: StrictBool = Field(default=False, description="Case-sensitive matching")
    sort_by_time: StrictBool = Field(default=False, description="Newest first instead of by name")
    max_results: StrictInt = Field(default=500, ge=1, le=10000, description="Result cap")


class GrepParams(ToolParams):
    pattern: StrictStr = Field(min_length=1, description="Regular expression to search for")
    path: StrictStr = Field(default=".", min_length=1, description="File or directory to search")
    include: StrictStr | None = Field(default=None, description="Filename glob, e.g. '*.py'")
    case_sensitive: StrictBool = Field(default=False, description="Case-sensitive matching")
    max_files: StrictInt = Field(
        default=DEFAULT_GREP_MAX_FILES, ge=1, le=100_000, description="Cap on files searched"
    )
    max_matches: StrictInt = Field(default=100, ge=1, le=10000, description="Match cap")


class LsParams(ToolParams):
    path: StrictStr = Field(default=".", min_length=1, description="Directory to list")
    show_hidden: StrictBool = Field(default=False, description="Include dotfiles")
    ignore: list[StrictStr] = Field(default_factory=list, description="Name globs to skip")


TOOL_PARAMS: dict[str, type[ToolParams]] = {
    "read": ReadParams,
    "write": WriteParams,
    "edit": EditParams,
    "multiedit": MultiEditParams,
    "bash": BashParams,
    "glob": GlobParams,
    "grep": GrepParams,
    "ls": LsParams,
}


def format_validation_error(error: ValidationError) -> tuple[str, list[dict]]:
    """Flatten a pydantic ValidationError into a message and per-field details.

    Example:
        >>> message, errors = format_validation_error(exc)
        >>> message
        "Parameter 'file_path': Field required"
    """
    errors = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "params"
        errors.append({"parameter": location, "message": item["msg"], "type": item["type"]})
    message = "; ".join(f"Parameter '{e['parameter']}': {e['message']}" for e in errors)
    return message, errors
