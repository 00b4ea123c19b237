"""buildtree - a target graph build pipeline for .NET solutions."""

__version__ = "0.1.0"

from buildtree.context import BuildContext, Configuration
from buildtree.executor import (
    ActionFailure,
    ExecutionError,
    Executor,
    PreconditionError,
    RunResult,
    TargetResult,
    TargetStatus,
)
from buildtree.graph import (
    ConfigurationError,
    CycleError,
    DuplicateTargetError,
    Target,
    TargetGraph,
    TargetNotFoundError,
    build_dependency_tree,
    resolve_execution_order,
)
from buildtree.tools import ToolError

__all__ = [
    "__version__",
    "ActionFailure",
    "BuildContext",
    "Configuration",
    "ConfigurationError",
    "CycleError",
    "DuplicateTargetError",
    "ExecutionError",
    "Executor",
    "PreconditionError",
    "RunResult",
    "Target",
    "TargetGraph",
    "TargetNotFoundError",
    "TargetResult",
    "TargetStatus",
    "ToolError",
    "build_dependency_tree",
    "resolve_execution_order",
]
