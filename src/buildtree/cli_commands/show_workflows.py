from __future__ import annotations

from rich.table import Table

from buildtree.logging import Logger
from buildtree.workflows import WORKFLOWS, Workflow


def show_workflows(logger: Logger, workflows: dict[str, Workflow] = WORKFLOWS) -> None:
    """
    List the CI pipelines and the targets each one invokes.
    """
    table = Table(show_edge=False, show_header=True, box=None, padding=(0, 2))
    table.add_column("Workflow", style="bold cyan", no_wrap=True)
    table.add_column("Triggered by", style="white")
    table.add_column("Targets", style="white")
    table.add_column("Image", style="dim")

    for workflow in workflows.values():
        name = workflow.name
        if not workflow.auto_generate:
            name += " [dim](manual)[/dim]"
        table.add_row(
            name,
            workflow.describe_triggers(),
            ", ".join(workflow.invoked_targets),
            workflow.image,
        )

    logger.info(table)
