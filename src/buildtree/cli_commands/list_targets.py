from __future__ import annotations

from rich.table import Table

from buildtree.graph import Target, TargetGraph
from buildtree.logging import Logger


def list_targets(logger: Logger, graph: TargetGraph) -> None:
    """
    List all targets in registration order with their relations.
    """
    table = Table(show_edge=False, show_header=True, box=None, padding=(0, 2))
    table.add_column("Target", style="bold cyan", no_wrap=True)
    table.add_column("Relations", style="white", max_width=80)
    table.add_column("Description", style="white", max_width=80)

    for target in graph:
        name = target.name
        if name == graph.default_target:
            name += " [dim](default)[/dim]"
        table.add_row(name, _format_relations(target), target.description)

    logger.info(table)


def _format_relations(target: Target) -> str:
    """
    Format a target's relations for display.

    Examples:
    depends_on=("Compile",), triggers=("Pack",) -> "depends on Compile; triggers Pack"
    """
    parts = []
    for label, names in (
        ("depends on", target.depends_on),
        ("after", target.after),
        ("before", target.before),
        ("triggers", target.triggers),
    ):
        if names:
            parts.append(f"{label} {', '.join(names)}")
    if target.produces:
        parts.append(f"produces {', '.join(target.produces)}")
    if target.only_when is not None:
        parts.append("[dim]conditional[/dim]")
    if target.requires:
        parts.append("[dim]has requirements[/dim]")
    return "; ".join(parts)
