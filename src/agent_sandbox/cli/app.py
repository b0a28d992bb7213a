"""CLI entry point for agent-sandbox."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.table import Table

from agent_sandbox import __version__
from agent_sandbox.cli.constants import ExitCodes
from agent_sandbox.cli.utils import configure_logging, get_console
from agent_sandbox.config import get_config_path, load_settings
from agent_sandbox.config.schema import SandboxSettings
from agent_sandbox.exceptions import ConfigurationError
from agent_sandbox.tools import TOOL_PARAMS, SandboxTools
from agent_sandbox.utils.responses import create_error_response

app = typer.Typer(help="agent-sandbox - Sandboxed file, search and shell tools for coding agents")

console = get_console()
error_console = get_console(stderr=True)

logger = logging.getLogger(__name__)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version_flag: bool = typer.Option(False, "--version", help="Show version"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """agent-sandbox - Sandboxed file, search and shell tools for coding agents.

    \b
    Examples:
        agent-sandbox tools                                         # List tools
        agent-sandbox call read --params '{"file_path": "README.md"}'
        agent-sandbox call bash --params '{"command": "git status"}' -w ~/project
        agent-sandbox config show                                   # Effective settings
    """
    ctx.obj = {"verbose": verbose}

    if version_flag:
        console.print(f"agent-sandbox version {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _load_settings_or_exit(config_path: Path | None) -> SandboxSettings:
    try:
        return load_settings(config_path)
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(ExitCodes.GENERAL_ERROR) from e


def _emit(response: dict) -> None:
    # Plain echo: the envelope is machine-readable output
    typer.echo(json.dumps(response, indent=2, default=str))


@app.command("call")
def call_command(
    ctx: typer.Context,
    tool: str = typer.Argument(
        ..., help="Tool name (read, write, edit, multiedit, bash, glob, grep, ls)"
    ),
    params: str = typer.Option("{}", "--params", "-p", help="Tool parameters as a JSON object"),
    workspace: Path = typer.Option(None, "--workspace", "-w", help="Workspace root directory"),
    config_path: Path = typer.Option(None, "--config", help="Settings file to load"),
) -> None:
    """Run one tool call and print the JSON envelope.

    Exits 0 when the envelope reports success, 1 otherwise, 130 on Ctrl+C.
    """
    settings = _load_settings_or_exit(config_path)
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    configure_logging(settings.logging.level, verbose)

    try:
        parsed = json.loads(params)
    except json.JSONDecodeError as e:
        _emit(create_error_response("validation_error", f"--params is not valid JSON: {e}"))
        raise typer.Exit(ExitCodes.GENERAL_ERROR) from e

    try:
        tools = SandboxTools(settings, workspace_root=workspace)
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(ExitCodes.GENERAL_ERROR) from e

    logger.debug(f"Calling {tool} in {tools.workspace_root}")
    try:
        response = asyncio.run(tools.call(tool, parsed))
    except KeyboardInterrupt:
        # asyncio.run cancels the call first, which terminates any running command
        error_console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(ExitCodes.INTERRUPTED) from None
    _emit(response)

    raise typer.Exit(ExitCodes.SUCCESS if response["success"] else ExitCodes.GENERAL_ERROR)


@app.command("tools")
def tools_command() -> None:
    """List available tools and their parameters."""
    table = Table(title="Sandbox Tools")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Parameters", style="magenta")
    table.add_column("Description")

    for name, model in TOOL_PARAMS.items():
        method = getattr(SandboxTools, name)
        summary = method.__doc__.strip().splitlines()[0] if method.__doc__ else ""
        parameters = ", ".join(
            field_name
            if field.is_required()
            else f"{field_name}={field.get_default(call_default_factory=True)!r}"
            for field_name, field in model.model_fields.items()
        )
        table.add_row(name, parameters, summary)

    console.print(table)


config_app = typer.Typer(help="Manage sandbox configuration")
app.add_typer(config_app, name="config")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    """Manage sandbox configuration."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@config_app.command("show")
def config_show_command(
    config_path: Path = typer.Option(None, "--config", help="Settings file to load"),
) -> None:
    """Show effective settings (file, .env and environment merged)."""
    settings = _load_settings_or_exit(config_path)
    source = config_path or get_config_path()

    note = "" if source.exists() else " [dim](not found, using defaults)[/dim]"
    console.print(f"[bold]Settings file:[/bold] {source}{note}")
    console.print_json(settings.model_dump_json_pretty())


@config_app.command("validate")
def config_validate_command(
    config_path: Path = typer.Option(None, "--config", help="Settings file to validate"),
) -> None:
    """Validate the settings file and environment overrides."""
    _load_settings_or_exit(config_path)
    console.print("[green]Configuration is valid[/green]")
