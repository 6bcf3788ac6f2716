"""Spawn one command and wait for it, killing it when its deadline passes."""

from __future__ import annotations

import logging
import queue
import subprocess
import time

from parallel_exec.execute import signals
from parallel_exec.execute.command import SpawnError, SpawnHandle, spawn
from parallel_exec.execute.models import (
    TERMINATE_SIGNAL,
    ExecutionResult,
    JobOutcome,
    SinkMessage,
)
from parallel_exec.execute.relay import OutputRelay

logger = logging.getLogger(__name__)


class ProcessRunner:
    """Run a built command to completion or to its deadline.

    A zero timeout disables the deadline. Output is relayed exactly once per
    spawned process, after the child has stopped and before timing is final.
    """

    def __init__(self, relay: OutputRelay | None = None) -> None:
        self.relay = relay or OutputRelay()

    def exec_and_wait(
        self,
        command: str,
        timeout_seconds: float,
        *,
        job_id: int,
        input: str,  # noqa: A002
        result_sink: queue.Queue[SinkMessage],
        quiet: bool,
        shell: bool = False,
    ) -> ExecutionResult:
        """Return the job's result; raises ``SpawnError`` if it never started."""

        try:
            stdout, stderr = self.relay.open_capture()
        except OSError as error:
            raise SpawnError(f"I/O error: {error}", command=command) from error
        try:
            handle = spawn(command, shell=shell, stdout=stdout, stderr=stderr)
        except SpawnError:
            self.relay.discard(stdout, stderr)
            raise
        start_time = time.time_ns()

        def _finish(exit_value: int, signal: int, outcome: JobOutcome) -> ExecutionResult:
            self.relay.relay(
                handle,
                job_id=job_id,
                input=input,
                result_sink=result_sink,
                quiet=quiet,
            )
            return ExecutionResult(
                job_id=job_id,
                start_time=start_time,
                end_time=time.time_ns(),
                exit_value=exit_value,
                signal=signal,
                outcome=outcome,
            )

        try:
            returncode = handle.process.wait(timeout=timeout_seconds or None)
        except subprocess.TimeoutExpired:
            logger.info(
                "Job %d exceeded %ss timeout, killing: %s",
                job_id + 1,
                timeout_seconds,
                command,
            )
            _kill(handle)
            return _finish(-1, TERMINATE_SIGNAL, JobOutcome.TIMEOUT_KILL)
        except OSError as error:
            logger.warning("Waiting on job %d failed: %s", job_id + 1, error)
            _kill(handle)
            return _finish(-1, 0, JobOutcome.WAIT_ERROR)

        signal = signals.decode(returncode)
        if signal:
            return _finish(-1, signal, JobOutcome.SIGNALED)
        return _finish(returncode, 0, JobOutcome.NORMAL_EXIT)


def _kill(handle: SpawnHandle) -> None:
    # Result is reported as a terminate regardless of whether the kill lands.
    try:
        handle.process.kill()
    except OSError:
        return
    try:
        handle.process.wait()
    except OSError:
        logger.debug("Could not reap killed process: %s", handle.command, exc_info=True)
