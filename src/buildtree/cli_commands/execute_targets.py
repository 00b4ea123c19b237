"""Execute targets command implementation."""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.table import Table

from buildtree.cli_commands import (
    get_action_failure_string,
    get_action_success_string,
    get_status_string,
)
from buildtree.context import BuildContext
from buildtree.executor import Executor, PreconditionError, RunResult
from buildtree.graph import ConfigurationError, TargetGraph, TargetNotFoundError
from buildtree.logging import Logger

# Conventional exit code for termination by SIGINT
INTERRUPTED_EXIT_CODE = 130


def execute_targets(
    logger: Logger,
    graph: TargetGraph,
    context: BuildContext,
    targets: list[str],
    dry_run: bool = False,
) -> None:
    """
    Run targets with their dependencies and report the outcome.

    Args:
    logger: Logger interface for output
    graph: Built target graph
    context: Parameters for the run
    targets: Requested target names (empty for the default target)
    dry_run: Only show the execution plan

    Raises:
    typer.Exit: With code 0 on success, otherwise the failing tool's exit code,
        1 for configuration and precondition errors, 130 when interrupted
    """
    executor = Executor(graph, context, logger)

    try:
        result = executor.run(targets, dry_run=dry_run)
    except TargetNotFoundError as e:
        logger.error(f"[red]{escape(str(e))}[/red]")
        logger.info("\nAvailable targets:")
        for name in graph.target_names():
            logger.info(f"  - {name}")
        raise typer.Exit(1)
    except (ConfigurationError, PreconditionError) as e:
        logger.error(f"[red]{get_action_failure_string()} {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        logger.error(f"[red]{get_action_failure_string()} Build interrupted[/red]")
        raise typer.Exit(INTERRUPTED_EXIT_CODE)

    if dry_run:
        _show_plan(logger, result)
        return

    _show_summary(logger, result)

    if not result.succeeded:
        failure = result.failure
        logger.error(
            f"[red]{get_action_failure_string()} Target '{failure.target}' failed: "
            f"{escape(str(failure.cause))}[/red]"
        )
        raise typer.Exit(result.exit_code)

    logger.info(f"[green]{get_action_success_string()} Build succeeded[/green]")


def _show_plan(logger: Logger, result: RunResult) -> None:
    logger.info("[bold]Execution plan:[/bold]\n")
    for i, name in enumerate(result.plan, 1):
        logger.info(f"  {i}. [cyan]{name}[/cyan]")


def _show_summary(logger: Logger, result: RunResult) -> None:
    table = Table(show_edge=False, show_header=True, box=None, padding=(0, 2))
    table.add_column("Target", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Duration", justify="right", style="dim")

    for target_result in result.results:
        table.add_row(
            target_result.target,
            get_status_string(target_result.status),
            f"{target_result.duration:.1f}s",
        )

    not_run = [name for name in result.plan if result.status_of(name) is None]
    for name in not_run:
        table.add_row(name, "[dim]not run[/dim]", "")

    logger.info()
    logger.info(table)
