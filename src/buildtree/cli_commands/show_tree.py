from __future__ import annotations

import typer
from rich.tree import Tree

from buildtree.graph import TargetGraph, TargetNotFoundError, build_dependency_tree
from buildtree.logging import Logger


def show_tree(logger: Logger, graph: TargetGraph, target_name: str) -> None:
    """
    Show dependency tree structure.
    """
    try:
        dep_tree = build_dependency_tree(graph, target_name)
    except TargetNotFoundError as e:
        logger.error(f"[red]{e}[/red]")
        raise typer.Exit(1)

    logger.info(_build_rich_tree(dep_tree))


def _build_rich_tree(dep_tree: dict) -> Tree:
    """
    Build a Rich Tree visualization from a dependency tree structure.

    Triggered targets are shown as a dimmed annotation since they run after,
    not before, the target.
    """
    label = dep_tree["name"]
    if dep_tree.get("cycle"):
        label += " [red](cycle)[/red]"
    if dep_tree.get("triggers"):
        label += f" [dim]-> triggers {', '.join(dep_tree['triggers'])}[/dim]"
    tree = Tree(label)

    for dep in dep_tree.get("deps", []):
        tree.add(_build_rich_tree(dep))

    return tree
