"""
CLI entry point for the STM32N6 development server.

Commands:
    serve    Run the MCP server over stdio
    tools    List registered tools grouped by category
    agents   List registered agents
    call     Dispatch one tool call and print the envelope
    ask      Route a task to the matching agents
    config   Show the effective configuration

Architecture Note:
    The CLI is thin - it builds a ServerContext and delegates to the
    dispatcher or the MCP server. Human-readable output goes to the Rich
    console; JSON output is printed plainly so it can be piped.
"""

import asyncio
import json
import traceback
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from stm32n6_dev import __version__
from stm32n6_dev.config import load_config
from stm32n6_dev.context import ServerContext, build_server_context
from stm32n6_dev.dispatcher import Dispatcher
from stm32n6_dev.errors import ConfigError
from stm32n6_dev.log import configure_logging
from stm32n6_dev.schema import Envelope, LogLevel

app = typer.Typer(
    name="stm32n6-dev",
    help="MCP server exposing STM32N6 development tools and expert agents.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a YAML configuration file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]stm32n6-dev[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    STM32N6 development server.

    Build, flash, debug, generate code and deploy models for the STM32N6
    through MCP tools and keyword-routed expert agents.
    """
    pass


def _load_context(config_path: Optional[Path], overrides: Optional[dict[str, Any]] = None) -> ServerContext:
    try:
        config = load_config(config_path, overrides=overrides)
    except ConfigError as e:
        console.print(f"[red]{e.message}[/red]")
        for error in e.errors:
            console.print(f"  [red]• {error}[/red]")
        raise typer.Exit(code=1)
    return build_server_context(config=config)


def _print_envelope(envelope: Envelope) -> None:
    print(json.dumps(envelope.to_dict(), indent=2, default=str))


@app.command()
def serve(
    config_path: ConfigOption = None,
    log_level: Annotated[
        Optional[LogLevel],
        typer.Option(
            "--log-level",
            "-l",
            help="Override the configured log level.",
        ),
    ] = None,
) -> None:
    """
    Run the MCP server over stdio.

    Logs go to stderr; stdout carries the protocol.

    Example:
        $ stm32n6-dev serve --config stm32n6.yaml
    """
    from stm32n6_dev.server import run_stdio

    overrides = {"server": {"log_level": log_level.value}} if log_level else None
    context = _load_context(config_path, overrides)
    configure_logging(context.config.server.log_level)
    asyncio.run(run_stdio(context))


@app.command("tools")
def list_tools(
    config_path: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output tool schemas in JSON format."),
    ] = False,
) -> None:
    """
    List registered tools grouped by category.

    Example:
        $ stm32n6-dev tools --json
    """
    context = _load_context(config_path)

    if json_output:
        output = [
            {
                "name": tool.name,
                "description": tool.description,
                "category": tool.category.value,
                "inputSchema": tool.json_schema(),
            }
            for tool in context.tools.list_all()
        ]
        print(json.dumps(output, indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Category", style="magenta")
    table.add_column("Tool", style="cyan")
    table.add_column("Description")

    for category, tools in context.tools.get_by_category().items():
        for tool in tools:
            table.add_row(category.value, tool.name, tool.description)

    console.print(table)
    console.print(f"[dim]{context.tools.count()} tools[/dim]")


@app.command("agents")
def list_agents(
    config_path: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output agent definitions in JSON format."),
    ] = False,
) -> None:
    """List registered agents with their keywords."""
    context = _load_context(config_path)

    if json_output:
        print(json.dumps(context.agents.list_definitions(), indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Agent", style="cyan")
    table.add_column("Description")
    table.add_column("Capabilities", style="dim")

    for agent in context.agents.list_all():
        table.add_row(agent.name, agent.description, ", ".join(agent.capabilities))

    console.print(table)


@app.command()
def call(
    name: Annotated[str, typer.Argument(help="Tool name.")],
    params: Annotated[
        str,
        typer.Option(
            "--params",
            "-p",
            help="Tool parameters as a JSON object.",
        ),
    ] = "{}",
    config_path: ConfigOption = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging."),
    ] = False,
) -> None:
    """
    Dispatch one tool call through the hooks and print the envelope.

    Exits with status 1 when the envelope reports a failure.

    Example:
        $ stm32n6-dev call memory_map --params '{"elf_path": "build/app.elf"}'
    """
    try:
        arguments = json.loads(params)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid --params JSON: {e}[/red]")
        raise typer.Exit(code=1)
    if not isinstance(arguments, dict):
        console.print("[red]--params must be a JSON object[/red]")
        raise typer.Exit(code=1)

    context = _load_context(config_path)
    configure_logging(LogLevel.DEBUG if debug else LogLevel.WARN)

    try:
        envelope = asyncio.run(Dispatcher(context).dispatch_tool(name, arguments))
    except Exception as e:
        console.print(f"[red]Dispatch error: {e}[/red]")
        if debug:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)

    _print_envelope(envelope)
    raise typer.Exit(code=0 if envelope.success else 1)


@app.command()
def ask(
    task: Annotated[str, typer.Argument(help="Free-text task description.")],
    agent: Annotated[
        Optional[str],
        typer.Option(
            "--agent",
            "-a",
            help="Ask this agent instead of selecting by keywords.",
        ),
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """
    Route a task to the agents whose keywords it mentions.

    Falls back to project-lead when no agent matches.

    Example:
        $ stm32n6-dev ask "configure the clock tree"
    """
    context = _load_context(config_path)
    configure_logging(LogLevel.WARN)

    if agent:
        names = [agent]
    else:
        names = [a.name for a in context.agents.select_agents_for_task(task)] or ["project-lead"]

    async def _ask_all() -> list[tuple[str, Envelope]]:
        dispatcher = Dispatcher(context)
        return [(name, await dispatcher.dispatch_agent(name, {"task": task})) for name in names]

    results = asyncio.run(_ask_all())
    print(json.dumps({name: envelope.to_dict() for name, envelope in results}, indent=2, default=str))
    raise typer.Exit(code=0 if all(envelope.success for _, envelope in results) else 1)


@app.command("config")
def show_config(config_path: ConfigOption = None) -> None:
    """Show the effective configuration as JSON."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)
    print(json.dumps(config.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    app()
