"""Running the external build toolchain as child processes.

Tools never call subprocess directly; they go through a ProcessRunner so tests
can script results. Every runner captures stdout and stderr in full, which lets
tools parse their output and lets failures carry the tool's own diagnostics.
The output mode only decides what is echoed to the terminal while a child runs.
"""

import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from enum import Enum
from subprocess import Popen
from threading import Thread
from typing import Any, Optional, TextIO

__all__ = [
    "ProcessRunner",
    "PassthroughProcessRunner",
    "SilentProcessRunner",
    "StdoutOnlyProcessRunner",
    "StderrOnlyProcessRunner",
    "OutputMode",
    "make_process_runner",
    "stream_output",
]

from buildtree.logging import Logger

# Seconds a child gets to exit after an interrupt is forwarded before it is killed
INTERRUPT_GRACE_SECS = 10.0

# Seconds to wait for a pipe reader once its process has exited
READER_JOIN_SECS = 1.0


class OutputMode(Enum):
    """
    Enum defining which tool output is echoed to the terminal.
    """

    ALL = "all"
    NONE = "none"
    OUT = "out"
    ERR = "err"


class ProcessRunner(ABC):
    """
    Runs one toolchain command to completion.
    """

    @abstractmethod
    def run(self, *args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        """
        Run a command, accepting the same arguments as subprocess.run().

        Returns:
        The finished process with its stdout and stderr as text

        Raises:
        subprocess.CalledProcessError: With check=True, on a non-zero exit
        subprocess.TimeoutExpired: When the timeout elapses
        KeyboardInterrupt: Once the child has exited after a forwarded interrupt
        """
        ...


def stream_output(pipe: Any, target: Optional[TextIO], sink: list[str]) -> None:
    """
    Copy lines from a child's pipe into ``sink``, echoing each to ``target``.

    Runs on a reader thread. Reading stops quietly once the pipe is closed,
    which happens when the child is killed.

    Args:
        pipe: The child's stdout or stderr
        target: Terminal stream to echo to, or None to capture silently
        sink: Receives every line read
    """
    if not pipe:
        return
    try:
        for line in pipe:
            sink.append(line)
            if target is not None:
                target.write(line)
                target.flush()
    except (OSError, ValueError):
        # Closed pipe after kill
        return


def _forward_interrupt(process: Popen[str], logger: Logger) -> None:
    logger.warn(f"Interrupt received, stopping process {process.pid}")
    try:
        process.send_signal(signal.SIGINT)
        process.wait(timeout=INTERRUPT_GRACE_SECS)
    except subprocess.TimeoutExpired:
        logger.warn(f"Process {process.pid} did not exit after interrupt, killing it")
    finally:
        # Also reached on a second interrupt during the grace period
        if process.poll() is None:
            process.kill()
            process.wait()


def _start_threads_and_wait_to_complete(
    process: Popen[str],
    threads: list[Thread],
    process_allowed_runtime: float | None,
    logger: Logger,
) -> int:
    for thread in threads:
        thread.start()

    try:
        return_code = process.wait(timeout=process_allowed_runtime)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        _join_readers(threads, logger)
        raise
    except KeyboardInterrupt:
        _forward_interrupt(process, logger)
        _join_readers(threads, logger)
        raise

    _join_readers(threads, logger)
    return return_code


def _join_readers(threads: list[Thread], logger: Logger) -> None:
    for thread in threads:
        thread.join(timeout=READER_JOIN_SECS)
        if thread.is_alive():
            logger.warn(f"{thread.name} still running {READER_JOIN_SECS}s after the process exited")


def _check_result_if_necessary(
    raise_on_failure: bool,
    proc_ret_code: int,
    cmd: Any,
    stdout: str,
    stderr: str,
) -> subprocess.CompletedProcess[str]:
    if raise_on_failure and proc_ret_code != 0:
        raise subprocess.CalledProcessError(proc_ret_code, cmd, output=stdout, stderr=stderr)

    return subprocess.CompletedProcess(
        args=cmd,
        returncode=proc_ret_code,
        stdout=stdout,
        stderr=stderr,
    )


class _CapturingProcessRunner(ProcessRunner):
    """
    Runs a command with both pipes captured, echoing the selected ones.

    Uses subprocess.Popen with one thread per pipe so output appears in real
    time while the interface stays synchronous from the caller's perspective.
    Line buffering (bufsize=1) keeps output prompt.
    """

    echo_stdout = False
    echo_stderr = False

    def __init__(self, logger: Logger) -> None:
        self._logger = logger

    def run(self, *args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        # Extract parameters that need special handling
        check = kwargs.pop("check", False)
        timeout = kwargs.pop("timeout", None)
        # Remove capture_output if present - not supported by Popen
        kwargs.pop("capture_output", None)
        cmd = args[0] if args else kwargs.get("args", [])

        process = subprocess.Popen(
            *args,
            **{**kwargs, "stdout": subprocess.PIPE, "stderr": subprocess.PIPE, "text": True, "bufsize": 1},
        )

        out_lines: list[str] = []
        err_lines: list[str] = []
        threads = [
            Thread(
                target=stream_output,
                args=(process.stdout, sys.stdout if self.echo_stdout else None, out_lines),
                name="stdout-streamer",
            ),
            Thread(
                target=stream_output,
                args=(process.stderr, sys.stderr if self.echo_stderr else None, err_lines),
                name="stderr-streamer",
            ),
        ]

        try:
            return_code = _start_threads_and_wait_to_complete(process, threads, timeout, self._logger)
        finally:
            for pipe in (process.stdout, process.stderr):
                if pipe:
                    pipe.close()

        return _check_result_if_necessary(
            check, return_code, cmd, "".join(out_lines), "".join(err_lines)
        )


class PassthroughProcessRunner(_CapturingProcessRunner):
    """
    Process runner that echoes both stdout and stderr.
    """

    echo_stdout = True
    echo_stderr = True


class SilentProcessRunner(_CapturingProcessRunner):
    """
    Process runner that echoes nothing; output is only captured.
    """


class StdoutOnlyProcessRunner(_CapturingProcessRunner):
    """
    Process runner that echoes stdout while keeping stderr captured only.
    """

    echo_stdout = True


class StderrOnlyProcessRunner(_CapturingProcessRunner):
    """
    Process runner that echoes stderr while keeping stdout captured only.
    """

    echo_stderr = True


def make_process_runner(output_mode: OutputMode, logger: Logger) -> ProcessRunner:
    """
    Pick the runner that echoes the streams selected by ``output_mode``.

    Raises:
    ValueError: For a value that isn't an OutputMode
    """
    match output_mode:
        case OutputMode.ALL:
            return PassthroughProcessRunner(logger)
        case OutputMode.NONE:
            return SilentProcessRunner(logger)
        case OutputMode.OUT:
            return StdoutOnlyProcessRunner(logger)
        case OutputMode.ERR:
            return StderrOnlyProcessRunner(logger)
        case _:
            raise ValueError(f"Invalid OutputMode: {output_mode}")
