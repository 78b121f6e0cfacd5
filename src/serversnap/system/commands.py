"""
Command execution and process management utilities.

This module provides the asynchronous CommandRunner used for every probe and
command-valued metric, and a small synchronous helper for service detectors.
Every command runs in its own session so that a timeout or cancellation can
terminate the whole process group it spawned.
"""

import asyncio
import logging
import os
import shlex
import signal
import subprocess
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import psutil

from ..models.probe import CommandSpec, ProbeResult, ProbeStatus

logger = logging.getLogger(__name__)

# Seconds to wait after SIGTERM before escalating to SIGKILL.
TERMINATE_GRACE_PERIOD = 2.0
# Seconds to wait for the output pipe to drain once the group is gone.
OUTPUT_DRAIN_TIMEOUT = 2.0


def run_command(
    command: Union[str, Sequence[str]], timeout: float = 10.0, cwd: Optional[Path] = None
) -> Tuple[int, str, str]:
    """Execute a short command synchronously and capture its output.

    Used by service detectors, which need an answer before any probe runs.

    Args:
        command: An argument vector, or a string split with shlex.
        timeout: Seconds before the command is abandoned.
        cwd: Working directory, defaults to the current one.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors and timeouts.
    """
    argv = shlex.split(command) if isinstance(command, str) else list(command)
    logger.debug(f"Executing command: '{shlex.join(argv)}'")
    try:
        process = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.debug(f"Command not found: {argv[0]}: {e}")
        return -1, "", f"Error: Command not found '{argv[0]}'"
    except subprocess.TimeoutExpired:
        logger.warning(f"Command '{shlex.join(argv)}' timed out after {timeout}s")
        return -1, "", f"Error: timed out after {timeout}s"
    except OSError as e:
        logger.error(f"Error while running command '{shlex.join(argv)}': {type(e).__name__}: {e}")
        return -1, "", f"Error: {e}"


class CommandRunner:
    """
    Runs one external command with a timeout and captures its merged output.

    A runner never raises for command-level problems: a nonzero exit, a
    missing executable, a timeout or a cancellation all become a
    :class:`ProbeResult` with the matching status. Failures are recorded
    once; there are no retries.
    """

    def __init__(
        self,
        cancel_event: Optional[asyncio.Event] = None,
        terminate_grace_period: float = TERMINATE_GRACE_PERIOD,
    ):
        """
        Initialize the command runner.

        Args:
            cancel_event: When set, any running command is terminated and
                reported as a cancelled failure
            terminate_grace_period: Seconds between SIGTERM and SIGKILL
        """
        self.cancel_event = cancel_event
        self.terminate_grace_period = terminate_grace_period

    async def execute(
        self,
        command: CommandSpec,
        timeout: float,
        sink: Optional[Path] = None,
        probe_name: str = "",
        section: str = "",
    ) -> ProbeResult:
        """
        Execute a command and wait for it to finish, time out or be cancelled.

        Args:
            command: The command descriptor; its placeholders must be resolved
            timeout: Seconds the command may run
            sink: When given, the captured output is written to this file
            probe_name: Name recorded in the result
            section: Section recorded in the result

        Returns:
            The probe result. ``SUCCESS`` for exit 0, ``FAILURE`` for a nonzero
            exit, a start error or a cancellation, ``TIMED_OUT`` when the
            command was killed for exceeding ``timeout``.
        """
        probe_name = probe_name or command.display()
        argv = command.to_exec_args()
        started_at = time.time()
        logger.debug(f"[{probe_name}] executing: {command.display()} (timeout {timeout}s)")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,  # own process group
            )
        except OSError as e:
            finished_at = time.time()
            message = str(e)
            logger.warning(f"[{probe_name}] could not start '{argv[0]}': {message}")
            output = message.encode("utf-8")
            return self._finish(
                probe_name, section, started_at, finished_at,
                ProbeStatus.FAILURE, output, None, message, sink,
            )

        read_task = asyncio.create_task(process.communicate())
        waiters = [read_task]
        cancel_task = None
        if self.cancel_event is not None:
            cancel_task = asyncio.create_task(self.cancel_event.wait())
            waiters.append(cancel_task)

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # The surrounding task was cancelled; never leave the group behind.
            await self._terminate_group(process)
            read_task.cancel()
            raise
        finally:
            if cancel_task is not None and not cancel_task.done():
                cancel_task.cancel()

        if read_task in done:
            stdout, _ = read_task.result()
            finished_at = time.time()
            # Children that escaped the shell but kept the group alive.
            self._sweep_group(process.pid)
            exit_code = process.returncode
            status = ProbeStatus.SUCCESS if exit_code == 0 else ProbeStatus.FAILURE
            detail = "" if exit_code == 0 else f"exit code {exit_code}"
            return self._finish(
                probe_name, section, started_at, finished_at,
                status, stdout or b"", exit_code, detail, sink,
            )

        if cancel_task is not None and cancel_task in done:
            status, detail = ProbeStatus.FAILURE, "cancelled"
            logger.info(f"[{probe_name}] cancelled, terminating process group {process.pid}")
        else:
            status, detail = ProbeStatus.TIMED_OUT, f"timed out after {timeout:g}s"
            logger.warning(f"[{probe_name}] timed out after {timeout:g}s, terminating process group {process.pid}")

        await self._terminate_group(process)
        output = await self._drain(read_task)
        finished_at = time.time()
        return self._finish(
            probe_name, section, started_at, finished_at,
            status, output, process.returncode, detail, sink,
        )

    async def _terminate_group(self, process: asyncio.subprocess.Process) -> None:
        """
        Terminate the command's whole process group.

        SIGTERM first, then SIGKILL after the grace period. Descendants that
        moved to another process group are found through psutil and killed
        as well.
        """
        descendants = _descendants(process.pid)
        _signal_group(process.pid, signal.SIGTERM)
        for child in descendants:
            _signal_process(child, signal.SIGTERM)

        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_grace_period)
        except asyncio.TimeoutError:
            logger.debug(f"Process group {process.pid} ignored SIGTERM, sending SIGKILL")

        _signal_group(process.pid, signal.SIGKILL)
        for child in descendants:
            _signal_process(child, signal.SIGKILL)
        if process.returncode is None:
            await process.wait()

        # Reap leftovers so no zombie outlives the run.
        _, alive = psutil.wait_procs(descendants, timeout=self.terminate_grace_period)
        for child in alive:
            logger.warning(f"Descendant process {child.pid} survived SIGKILL")

    async def _drain(self, read_task: "asyncio.Task") -> bytes:
        """Collect whatever output was produced before the kill."""
        try:
            stdout, _ = await asyncio.wait_for(read_task, timeout=OUTPUT_DRAIN_TIMEOUT)
            return stdout or b""
        except asyncio.TimeoutError:
            logger.warning("Output pipe still open after the process group was killed; output discarded")
            return b""

    def _sweep_group(self, pgid: int) -> None:
        """Kill processes left in the command's group after it exited."""
        try:
            os.killpg(pgid, 0)
        except (ProcessLookupError, PermissionError):
            return
        logger.debug(f"Killing leftover processes of group {pgid}")
        _signal_group(pgid, signal.SIGKILL)

    def _finish(
        self,
        probe_name: str,
        section: str,
        started_at: float,
        finished_at: float,
        status: ProbeStatus,
        output: bytes,
        exit_code: Optional[int],
        detail: str,
        sink: Optional[Path],
    ) -> ProbeResult:
        sink_path = None
        if sink is not None:
            sink_path = write_sink(sink, output, probe_name)

        logger.info(
            f"[{probe_name}] {status.label} in {finished_at - started_at:.2f}s"
            + (f" ({detail})" if detail else "")
        )
        return ProbeResult(
            probe_name=probe_name,
            section=section,
            started_at=started_at,
            finished_at=finished_at,
            status=status,
            output=output,
            exit_code=exit_code,
            detail=detail,
            sink_path=sink_path,
        )


def write_sink(sink: Path, output: bytes, probe_name: str) -> Optional[str]:
    """Write a probe's output file; returns its path, or None if it could not be written."""
    try:
        sink = Path(sink)
        sink.write_bytes(output)
        return str(sink)
    except OSError as e:
        logger.error(f"[{probe_name}] could not write output file {sink}: {e}")
        return None


def _descendants(pid: int) -> List[psutil.Process]:
    try:
        return psutil.Process(pid).children(recursive=True)
    except psutil.Error:
        return []


def _signal_group(pgid: int, sig: signal.Signals) -> None:
    try:
        os.killpg(pgid, sig)
    except ProcessLookupError:
        pass
    except PermissionError as e:
        logger.warning(f"Not permitted to signal process group {pgid}: {e}")


def _signal_process(proc: psutil.Process, sig: signal.Signals) -> None:
    try:
        proc.send_signal(sig)
    except psutil.NoSuchProcess:
        pass
    except psutil.AccessDenied as e:
        logger.warning(f"Not permitted to signal process {proc.pid}: {e}")
