"""Command-line interface for buildtree."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from buildtree import __version__
from buildtree.cli_commands.execute_targets import execute_targets
from buildtree.cli_commands.list_targets import list_targets
from buildtree.cli_commands.show_tree import show_tree
from buildtree.cli_commands.show_workflows import show_workflows
from buildtree.config import BuildSettings, ConfigError, load_settings
from buildtree.console_logger import ConsoleLogger
from buildtree.context import (
    BuildContext,
    Configuration,
    default_configuration,
    is_server_build,
)
from buildtree.graph import ConfigurationError, TargetGraph
from buildtree.logging import Logger, LogLevel
from buildtree.pipeline import create_graph
from buildtree.process_runner import OutputMode, make_process_runner
from buildtree.solution import SolutionError, load_solution
from buildtree.tools import Toolchain
from buildtree.workflows import validate_workflows

app = typer.Typer(
    help="buildtree - build, test, version and package the solution",
    add_completion=False,
    no_args_is_help=False,
)


def _make_context(
    logger: ConsoleLogger,
    root: Path,
    settings: BuildSettings,
    configuration: Optional[str],
    nuget_api_key: Optional[str],
    output: OutputMode,
) -> BuildContext:
    """Assemble the immutable parameters for this invocation.

    Raises:
        ValueError: If the configuration name is invalid
        SolutionError: If a project file can't be read
    """
    config_name = configuration or settings.configuration
    resolved = Configuration.from_name(config_name) if config_name else default_configuration()

    logger.add_secret(nuget_api_key)
    runner = make_process_runner(output, logger)

    context = BuildContext(
        root=root,
        configuration=resolved,
        tools=Toolchain.create(runner, logger, root),
        logger=logger,
        solution=load_solution(root),
        nuget_api_key=nuget_api_key,
        nuget_source=settings.nuget_source,
        project_name=settings.project,
        is_local_build=not is_server_build(),
    )
    logger.debug(f"Root: {root}")
    logger.debug(f"Configuration: {context.configuration}")
    logger.debug(f"Solution: {context.solution.name}")
    return context


def _load_graph(logger: Logger) -> TargetGraph:
    try:
        graph = create_graph()
        validate_workflows(graph)
    except ConfigurationError as e:
        logger.fatal(f"[red]Invalid build definition: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    return graph


@app.command()
def main(
    targets: Optional[list[str]] = typer.Argument(
        None, help="Targets to run (default: the default target)", show_default=False
    ),
    configuration: Optional[str] = typer.Option(
        None,
        "--configuration",
        "-c",
        help="Configuration to build - Default is 'Debug' (local) or 'Release' (server)",
    ),
    nuget_api_key: Optional[str] = typer.Option(
        None,
        "--nuget-api-key",
        envvar="NUGET_API_KEY",
        help="API key for pushing packages",
        show_default=False,
        show_envvar=True,
    ),
    root: Optional[Path] = typer.Option(
        None, "--root", "-r", help="Repository root (default: current directory)"
    ),
    list_opt: bool = typer.Option(False, "--list", "-l", help="List all targets"),
    tree: Optional[str] = typer.Option(
        None, "--tree", help="Show the dependency tree of a target", metavar="TARGET"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the execution plan without running"),
    workflows: bool = typer.Option(False, "--workflows", help="List CI workflows and their targets"),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Tool output to show: all, none, out, err"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-L", help="Log verbosity: fatal, error, warn, info, debug, trace"
    ),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
) -> None:
    """Run build targets and their dependencies."""
    console = Console()

    if version:
        console.print(f"buildtree version {__version__}")
        return

    root = (root or Path.cwd()).resolve()
    try:
        settings = load_settings(root)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    try:
        level = LogLevel.from_name(log_level or settings.log_level)
        output_mode = OutputMode((output or settings.output).lower())
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    logger = ConsoleLogger(console, level)
    graph = _load_graph(logger)

    if list_opt:
        list_targets(logger, graph)
        return

    if tree:
        show_tree(logger, graph, tree)
        return

    if workflows:
        show_workflows(logger)
        return

    try:
        context = _make_context(logger, root, settings, configuration, nuget_api_key, output_mode)
    except (ValueError, SolutionError) as e:
        logger.error(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    execute_targets(logger, graph, context, targets or [], dry_run=dry_run)


if __name__ == "__main__":
    app()
