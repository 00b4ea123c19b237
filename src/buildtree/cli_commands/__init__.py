"""CLI command implementations and shared utilities."""

from __future__ import annotations

import os
import sys

from buildtree.executor import TargetStatus


def _supports_unicode() -> bool:
    """
    Check if the terminal can print the status symbols.

    Returns:
    True if stdout's encoding can represent them, False otherwise
    """
    # Classic Windows console (conhost) mangles them regardless of encoding
    if os.name == "nt" and "WT_SESSION" not in os.environ:
        return False

    encoding = getattr(sys.stdout, "encoding", None)
    if not encoding:
        return False

    try:
        "✓✗–".encode(encoding)
        return True
    except UnicodeEncodeError:
        return False


def get_action_success_string() -> str:
    return "✓" if _supports_unicode() else "[ OK ]"


def get_action_failure_string() -> str:
    return "✗" if _supports_unicode() else "[ FAIL ]"


def get_status_string(status: TargetStatus) -> str:
    """
    Render a target status for the run summary.

    Returns:
    A Rich markup string such as "[green]✓ succeeded[/green]"
    """
    match status:
        case TargetStatus.SUCCEEDED:
            return f"[green]{get_action_success_string()} succeeded[/green]"
        case TargetStatus.FAILED:
            return f"[red]{get_action_failure_string()} failed[/red]"
        case TargetStatus.SKIPPED:
            symbol = "–" if _supports_unicode() else "[ SKIP ]"
            return f"[yellow]{symbol} skipped[/yellow]"
    raise ValueError(f"Invalid TargetStatus: {status}")
