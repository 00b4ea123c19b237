"""CI pipelines that invoke build targets, described as data.

The workflow files themselves are maintained by hand; this module only
records which targets each pipeline runs and when, so the mapping can be
validated against the target graph and listed from the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

from buildtree.graph import TargetGraph, TargetNotFoundError

UBUNTU_LATEST = "ubuntu-latest"


@dataclass(frozen=True)
class Workflow:
    name: str
    invoked_targets: tuple[str, ...]
    image: str = UBUNTU_LATEST
    on_push_branches: tuple[str, ...] = ()
    on_push_branches_ignore: tuple[str, ...] = ()
    on_pull_request_branches: tuple[str, ...] = ()
    fetch_depth: int = 0
    auto_generate: bool = True

    def describe_triggers(self) -> str:
        parts = []
        if self.on_push_branches:
            parts.append(f"push to {', '.join(self.on_push_branches)}")
        if self.on_push_branches_ignore:
            parts.append(f"push except {', '.join(self.on_push_branches_ignore)}")
        if self.on_pull_request_branches:
            parts.append(f"pull request to {', '.join(self.on_pull_request_branches)}")
        return "; ".join(parts)


WORKFLOWS: dict[str, Workflow] = {
    w.name: w
    for w in (
        Workflow(
            name="continuous",
            on_push_branches_ignore=("main",),
            invoked_targets=("Test",),
        ),
        Workflow(
            name="merge",
            on_pull_request_branches=("main",),
            invoked_targets=("Test",),
        ),
        Workflow(
            name="after-merge",
            on_push_branches=("main",),
            invoked_targets=("BumpVersion", "Publish"),
        ),
        Workflow(
            name="bumpversion",
            on_pull_request_branches=("main",),
            invoked_targets=("BumpVersion",),
            auto_generate=False,
        ),
    )
}


def validate_workflows(graph: TargetGraph, workflows: dict[str, Workflow] = WORKFLOWS) -> None:
    """Check that every invoked target exists in the graph.

    Raises:
        TargetNotFoundError: Naming the workflow and the missing target
    """
    for workflow in workflows.values():
        if not workflow.invoked_targets:
            raise TargetNotFoundError(f"Workflow '{workflow.name}' invokes no targets")
        for name in workflow.invoked_targets:
            if name not in graph:
                raise TargetNotFoundError(
                    f"Workflow '{workflow.name}' invokes unknown target '{name}'"
                )
