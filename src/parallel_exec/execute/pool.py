"""Run a command template over all inputs with one worker thread per slot."""

from __future__ import annotations

import logging
import queue
import sys
import threading
from collections.abc import Sequence
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

import rich_click as click

from parallel_exec.execute.inputs import InputCursor
from parallel_exec.execute.joblog import JobLogWriter
from parallel_exec.execute.models import (
    ErrorMessage,
    JobLogMessage,
    OutputMessage,
    RunFlags,
    SinkMessage,
    WorkerDone,
)
from parallel_exec.execute.tokenizer import Token
from parallel_exec.execute.verbose import VerboseReporter
from parallel_exec.execute.worker import WorkerLoop, WorkerSummary

logger = logging.getLogger(__name__)

MAX_EXIT_CODE = 101


@dataclass(slots=True)
class RunSummary:
    """Aggregate counters across every slot of one run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
    spawn_errors: int = 0
    joblog_records: int = 0
    errors: list[str] = field(default_factory=list)
    workers: list[WorkerSummary] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return min(self.failed, MAX_EXIT_CODE)


def run_parallel(  # noqa: PLR0913
    inputs: InputCursor,
    template: Sequence[Token],
    *,
    jobs: int,
    timeout_seconds: float = 0,
    flags: RunFlags = RunFlags.NONE,
    joblog_path: Path | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> RunSummary:
    """Execute every input, block until all slots finish, and return the summary.

    The calling thread is the single consumer of the shared result queue; it
    prints output in completion order and persists job log rows.
    """

    out_stream = stdout or sys.stdout
    err_stream = stderr or sys.stderr
    if joblog_path is not None:
        flags |= RunFlags.JOBLOG
    slot_count = max(1, min(jobs, inputs.total))
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    reporter = VerboseReporter(stream=out_stream)
    summary = RunSummary(total=inputs.total)
    error_holder: list[Exception] = []

    def _run_slot(loop: WorkerLoop) -> None:
        try:
            summary.workers.append(loop.run())
        except Exception as exc:  # noqa: BLE001
            error_holder.append(exc)
        finally:
            result_sink.put(WorkerDone(slot=loop.slot))

    threads = [
        threading.Thread(
            target=_run_slot,
            args=(
                WorkerLoop(
                    slot=slot,
                    inputs=inputs,
                    template=template,
                    flags=flags,
                    timeout_seconds=timeout_seconds,
                    result_sink=result_sink,
                    reporter=reporter,
                    stderr=err_stream,
                ),
            ),
            daemon=True,
            name=f"parallel-exec-slot-{slot}",
        )
        for slot in range(1, slot_count + 1)
    ]
    logger.debug("Starting %d slots for %d inputs", slot_count, inputs.total)
    for thread in threads:
        thread.start()

    with ExitStack() as stack:
        joblog = None
        if joblog_path is not None:
            joblog = stack.enter_context(JobLogWriter(joblog_path))

        remaining = slot_count
        while remaining:
            message = result_sink.get()
            if isinstance(message, WorkerDone):
                remaining -= 1
            elif isinstance(message, OutputMessage):
                _emit_output(message, out_stream=out_stream, err_stream=err_stream)
            elif isinstance(message, ErrorMessage):
                summary.errors.append(message.message)
            elif isinstance(message, JobLogMessage):
                summary.joblog_records += 1
                if joblog is not None:
                    joblog.write(message.record)

    for thread in threads:
        thread.join()
    if error_holder:
        raise error_holder[0]

    for worker_summary in summary.workers:
        summary.succeeded += worker_summary.succeeded
        summary.failed += worker_summary.failed
        summary.timed_out += worker_summary.timed_out
        summary.spawn_errors += worker_summary.spawn_errors
    summary.workers.sort(key=lambda worker_summary: worker_summary.slot)
    return summary


def _emit_output(message: OutputMessage, *, out_stream: TextIO, err_stream: TextIO) -> None:
    if message.quiet:
        return
    if message.stdout:
        click.echo(message.stdout, file=out_stream, nl=False)
    if message.stderr:
        click.echo(message.stderr, file=err_stream, nl=False)
