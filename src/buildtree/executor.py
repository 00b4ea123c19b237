"""Target execution with conditional skipping, triggers and fail-fast halting."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from rich.markup import escape

from buildtree.context import BuildContext
from buildtree.graph import (
    ConfigurationError,
    Predicate,
    Target,
    TargetGraph,
    resolve_execution_order,
)
from buildtree.logging import Logger
from buildtree.tools import ToolError


class TargetStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TargetResult:
    """Final outcome of one target within a run."""

    target: str
    status: TargetStatus
    reason: str = ""
    cause: Optional[BaseException] = None
    exit_code: Optional[int] = None
    duration: float = 0.0


class ExecutionError(Exception):
    """Raised when a run cannot proceed."""

    pass


class PreconditionError(ExecutionError):
    """Raised when a target's required condition doesn't hold."""

    def __init__(self, target: str, message: str):
        self.target = target
        super().__init__(f"Target '{target}' precondition failed: {message}")


class ActionFailure(ExecutionError):
    """A target's action failed."""

    def __init__(
        self,
        target: str,
        cause: BaseException,
        exit_code: Optional[int] = None,
        output: str = "",
    ):
        self.target = target
        self.cause = cause
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"Target '{target}' failed: {cause}")


@dataclass
class RunResult:
    """Aggregate outcome of one invocation."""

    plan: list[str]
    results: list[TargetResult] = field(default_factory=list)
    failure: Optional[ActionFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @property
    def failed_target(self) -> Optional[str]:
        return self.failure.target if self.failure else None

    @property
    def exit_code(self) -> int:
        if self.failure is None:
            return 0
        if self.failure.exit_code and self.failure.exit_code > 0:
            return self.failure.exit_code
        return 1

    def executed(self) -> list[str]:
        """Names of targets whose action ran, in order."""
        return [r.target for r in self.results if r.status is not TargetStatus.SKIPPED]

    def status_of(self, name: str) -> Optional[TargetStatus]:
        for result in self.results:
            if result.target == name:
                return result.status
        return None


def _describe(predicate: Predicate) -> str:
    doc = (predicate.__doc__ or "").strip()
    if doc:
        return doc.splitlines()[0]
    return getattr(predicate, "__name__", repr(predicate))


class Executor:
    """Runs targets of a graph one at a time, in dependency order."""

    def __init__(self, graph: TargetGraph, context: BuildContext, logger: Optional[Logger] = None):
        """Initialize executor.

        Args:
            graph: Built target graph
            context: Parameters handed to every predicate and action
            logger: Logger for progress output (defaults to the context's logger)
        """
        if not graph.built:
            raise ConfigurationError("Target graph must be built before execution")
        self.graph = graph
        self.context = context
        self.logger = logger or context.logger

    def plan(self, requested: Iterable[str]) -> list[str]:
        """Resolve the execution order for the requested targets.

        An empty request means the graph's default target.
        """
        names = list(requested)
        if not names:
            if self.graph.default_target is None:
                raise ConfigurationError("No targets requested and no default target defined")
            names = [self.graph.default_target]
        return resolve_execution_order(self.graph, names)

    def check_requirements(self, names: Iterable[str]) -> None:
        """Evaluate every ``requires`` predicate of the given targets.

        Raises:
            PreconditionError: On the first predicate that is false or raises
        """
        for name in names:
            target = self.graph.get_target(name)
            for predicate in target.requires:
                description = _describe(predicate)
                try:
                    satisfied = bool(predicate(self.context))
                except Exception as e:
                    raise PreconditionError(name, f"{description} ({e})") from e
                if not satisfied:
                    raise PreconditionError(name, description)
                self.logger.trace(f"Requirement of '{name}' met: {description}")

    def run(self, requested: Iterable[str], dry_run: bool = False) -> RunResult:
        """Run the requested targets and their dependencies.

        Args:
            requested: Names of targets to run (empty for the default target)
            dry_run: If True, only resolve the plan and check requirements

        Returns:
            RunResult with one entry per evaluated target. On an action failure
            the run stops and the result carries the failure.

        Raises:
            ConfigurationError: If a target is unknown or a cycle is found
            PreconditionError: If a requirement of a planned target is not met
            KeyboardInterrupt: After recording the interrupted target as failed
        """
        plan = self.plan(requested)
        self.check_requirements(plan)
        run_result = RunResult(plan=list(plan))
        if dry_run:
            return run_result

        self.logger.debug(f"Execution plan: {' -> '.join(plan)}")

        finished: set[str] = set()
        remaining = deque(plan)
        while remaining:
            name = remaining.popleft()
            target = self.graph.get_target(name)

            try:
                result = self._execute(target)
            except KeyboardInterrupt as e:
                run_result.results.append(
                    TargetResult(target=name, status=TargetStatus.FAILED, reason="interrupted", cause=e)
                )
                raise

            run_result.results.append(result)
            finished.add(name)

            if result.status is TargetStatus.FAILED:
                run_result.failure = result.cause
                self.logger.trace(f"Halting run, not executing: {', '.join(remaining) or '-'}")
                return run_result

            if result.status is TargetStatus.SUCCEEDED and target.triggers:
                remaining = self._schedule_triggers(target, remaining, finished, run_result)

        return run_result

    def _schedule_triggers(
        self,
        target: Target,
        remaining: deque[str],
        finished: set[str],
        run_result: RunResult,
    ) -> deque[str]:
        """Re-plan the remaining work with the targets ``target`` triggers."""
        triggered = [t for t in target.triggers if t not in finished and t not in remaining]
        if not triggered:
            return remaining

        replanned = resolve_execution_order(self.graph, [*remaining, *triggered], exclude=finished)
        added = [n for n in replanned if n not in remaining]
        self.check_requirements(added)

        self.logger.debug(f"'{target.name}' triggered: {', '.join(added)}")
        run_result.plan.extend(added)
        return deque(replanned)

    def _execute(self, target: Target) -> TargetResult:
        start = time.monotonic()

        def finish(status: TargetStatus, **kwargs) -> TargetResult:
            return TargetResult(
                target=target.name,
                status=status,
                duration=time.monotonic() - start,
                **kwargs,
            )

        if target.only_when is not None:
            description = _describe(target.only_when)
            try:
                should_run = bool(target.only_when(self.context))
            except Exception as e:
                failure = ActionFailure(target.name, e)
                self.logger.error(f"[red]Condition of '{target.name}' raised: {escape(str(e))}[/red]")
                return finish(TargetStatus.FAILED, reason=description, cause=failure)
            if not should_run:
                self.logger.info(f"[yellow]Skipping {target.name}: {escape(description)}[/yellow]")
                return finish(TargetStatus.SKIPPED, reason=description)

        self.logger.info(f"[bold]Running: {target.name}[/bold]")
        if target.action is None:
            return finish(TargetStatus.SUCCEEDED)

        try:
            target.action(self.context)
        except ToolError as e:
            failure = ActionFailure(target.name, e, exit_code=e.exit_code, output=e.output)
            self._report_failure(failure)
            return finish(TargetStatus.FAILED, reason=str(e), cause=failure, exit_code=e.exit_code)
        except Exception as e:
            failure = ActionFailure(target.name, e)
            self._report_failure(failure)
            return finish(TargetStatus.FAILED, reason=str(e), cause=failure)

        return finish(TargetStatus.SUCCEEDED)

    def _report_failure(self, failure: ActionFailure) -> None:
        self.logger.error(f"[red]{escape(str(failure))}[/red]")
        if failure.output:
            self.logger.error(escape(failure.output))
