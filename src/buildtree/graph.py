"""Target registration and dependency resolution using topological sorting."""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from graphlib import CycleError as _SorterCycleError
from graphlib import TopologicalSorter
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

if TYPE_CHECKING:
    from buildtree.context import BuildContext

Action = Callable[["BuildContext"], None]
Predicate = Callable[["BuildContext"], bool]


class ConfigurationError(Exception):
    """Raised when the target graph is malformed."""

    pass


class DuplicateTargetError(ConfigurationError):
    """Raised when two targets are registered under the same name."""

    pass


class TargetNotFoundError(ConfigurationError):
    """Raised when a target, or a target it references, doesn't exist."""

    pass


class CycleError(ConfigurationError):
    """Raised when a dependency or ordering cycle is detected."""

    def __init__(self, participants: list[str]):
        self.participants = participants
        super().__init__(f"Dependency cycle detected: {' -> '.join(participants)}")


@dataclass(frozen=True)
class Target:
    """A named unit of build work.

    ``depends_on`` targets must finish (succeed or be skipped) before this one
    starts and are pulled into the plan. ``after``/``before`` only order targets
    that are already planned. ``triggers`` are scheduled once this target
    succeeds.
    """

    name: str
    action: Optional[Action] = None
    depends_on: tuple[str, ...] = ()
    after: tuple[str, ...] = ()
    before: tuple[str, ...] = ()
    triggers: tuple[str, ...] = ()
    only_when: Optional[Predicate] = None
    requires: tuple[Predicate, ...] = ()
    description: str = ""
    produces: tuple[str, ...] = ()

    def references(self) -> Iterator[tuple[str, str]]:
        """Yield (relation, target name) for every target this one names."""
        for relation in ("depends_on", "after", "before", "triggers"):
            for name in getattr(self, relation):
                yield relation, name


class TargetGraph:
    """Registry of targets, frozen once built."""

    def __init__(self) -> None:
        self._targets: dict[str, Target] = {}
        self._index: dict[str, int] = {}
        self._default: Optional[str] = None
        self._built = False

    def define(
        self,
        name: str,
        action: Optional[Action] = None,
        *,
        depends_on: Iterable[str] = (),
        after: Iterable[str] = (),
        before: Iterable[str] = (),
        triggers: Iterable[str] = (),
        only_when: Optional[Predicate] = None,
        requires: Iterable[Predicate] = (),
        description: str = "",
        produces: Iterable[str] = (),
        default: bool = False,
    ) -> Target:
        """Register a target.

        Registration order is the tie-break used when ordering targets, so
        targets should be defined in the order they are expected to run.

        Raises:
            DuplicateTargetError: If the name is already registered
            ConfigurationError: If the graph has already been built
        """
        if self._built:
            raise ConfigurationError(f"Cannot define target '{name}': graph is already built")
        if name in self._targets:
            raise DuplicateTargetError(f"Target already defined: {name}")

        target = Target(
            name=name,
            action=action,
            depends_on=tuple(depends_on),
            after=tuple(after),
            before=tuple(before),
            triggers=tuple(triggers),
            only_when=only_when,
            requires=tuple(requires),
            description=description,
            produces=tuple(produces),
        )
        self._index[name] = len(self._targets)
        self._targets[name] = target
        if default:
            self._default = name
        return target

    def build(self) -> "TargetGraph":
        """Validate the graph and freeze it.

        Raises:
            TargetNotFoundError: If a target references an unknown target
            CycleError: If dependency and ordering edges contain a cycle
        """
        for target in self._targets.values():
            for relation, ref in target.references():
                if ref not in self._targets:
                    raise TargetNotFoundError(
                        f"Target '{target.name}' references unknown target '{ref}' in {relation}"
                    )
        if self._default is not None and self._default not in self._targets:
            raise TargetNotFoundError(f"Default target not found: {self._default}")

        # Feasibility over the whole graph, soft edges included
        stable_topological_order(self, self._targets.keys())

        self._built = True
        return self

    @property
    def built(self) -> bool:
        return self._built

    @property
    def default_target(self) -> Optional[str]:
        return self._default

    def get_target(self, name: str) -> Target | None:
        return self._targets.get(name)

    def target_names(self) -> list[str]:
        """Get all target names in registration order."""
        return list(self._targets.keys())

    def index_of(self, name: str) -> int:
        return self._index[name]

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())


def stable_topological_order(graph: TargetGraph, names: Iterable[str]) -> list[str]:
    """Order targets so that every edge among them is respected.

    Hard dependencies and ``after``/``before`` annotations are edges of the same
    graph; an edge is only considered when both of its ends are in ``names``.
    When several targets are ready at once, the one registered first wins.

    Raises:
        CycleError: If the edges among ``names`` contain a cycle
    """
    selected = set(names)
    predecessors: dict[str, set[str]] = {name: set() for name in selected}

    for name in selected:
        target = graph.get_target(name)
        for dep in (*target.depends_on, *target.after):
            if dep in selected:
                predecessors[name].add(dep)
        for succ in target.before:
            if succ in selected:
                predecessors[succ].add(name)

    sorter = TopologicalSorter(predecessors)
    try:
        sorter.prepare()
    except _SorterCycleError as e:
        raise CycleError(list(e.args[1])) from e

    ready: list[tuple[int, str]] = []
    order: list[str] = []
    while sorter.is_active():
        for name in sorter.get_ready():
            heapq.heappush(ready, (graph.index_of(name), name))
        _, name = heapq.heappop(ready)
        order.append(name)
        sorter.done(name)

    return order


def resolve_execution_order(
    graph: TargetGraph,
    requested: Iterable[str],
    exclude: Iterable[str] = (),
) -> list[str]:
    """Resolve execution order for targets and their hard dependencies.

    Args:
        graph: Graph containing all targets
        requested: Names of the targets to run
        exclude: Targets that already finished; they satisfy dependencies and
            are left out of the result

    Returns:
        List of target names in execution order (dependencies first)

    Raises:
        TargetNotFoundError: If a requested target or any dependency doesn't exist
        CycleError: If a cycle is detected among the resolved targets
    """
    finished = set(exclude)
    closure: set[str] = set()

    def visit(name: str) -> None:
        if name in closure or name in finished:
            return

        target = graph.get_target(name)
        if target is None:
            raise TargetNotFoundError(f"Target not found: {name}")

        closure.add(name)
        for dep in target.depends_on:
            visit(dep)

    for name in requested:
        visit(name)

    return stable_topological_order(graph, closure)


def build_dependency_tree(graph: TargetGraph, target_name: str) -> dict:
    """Build a tree structure representing dependencies for visualization.

    Args:
        graph: Graph containing all targets
        target_name: Name of the target to build tree for

    Returns:
        Nested dictionary representing the dependency tree
    """
    if target_name not in graph:
        raise TargetNotFoundError(f"Target not found: {target_name}")

    visited = set()

    def build_tree(name: str) -> dict:
        """Recursively build dependency tree."""
        target = graph.get_target(name)
        if target is None:
            raise TargetNotFoundError(f"Target not found: {name}")

        # Prevent infinite recursion on cycles
        if name in visited:
            return {"name": name, "deps": [], "triggers": [], "cycle": True}

        visited.add(name)

        tree = {
            "name": name,
            "deps": [build_tree(dep) for dep in target.depends_on],
            "triggers": list(target.triggers),
        }

        visited.remove(name)

        return tree

    return build_tree(target_name)
