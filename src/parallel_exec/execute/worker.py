"""Per-slot worker loop: claim an input, run its command, report the result."""

from __future__ import annotations

import logging
import queue
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TextIO

import rich_click as click

from parallel_exec.execute.command import CommandBuilder, SpawnError
from parallel_exec.execute.inputs import InputCursor
from parallel_exec.execute.models import (
    ErrorMessage,
    ExecutionResult,
    Job,
    JobLogMessage,
    JobLogRecord,
    JobOutcome,
    RunFlags,
    SinkMessage,
)
from parallel_exec.execute.runner import ProcessRunner
from parallel_exec.execute.tokenizer import Token
from parallel_exec.execute.verbose import VerboseReporter

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkerSummary:
    """Counters for the jobs one slot processed."""

    slot: int
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
    spawn_errors: int = 0


class WorkerLoop:
    """Executes jobs for one parallelism slot until the input cursor runs dry.

    Several loops share one cursor and one result sink. A job that cannot be
    spawned is reported and skipped; it never stops the loop.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        slot: int,
        inputs: InputCursor,
        template: Sequence[Token],
        flags: RunFlags,
        timeout_seconds: float,
        result_sink: queue.Queue[SinkMessage],
        runner: ProcessRunner | None = None,
        builder: CommandBuilder | None = None,
        reporter: VerboseReporter | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self.slot = slot
        self.inputs = inputs
        self.template = template
        self.flags = flags
        self.timeout_seconds = timeout_seconds
        self.result_sink = result_sink
        self.runner = runner or ProcessRunner()
        self.builder = builder or CommandBuilder()
        self.reporter = reporter or VerboseReporter()
        self.stderr = stderr or sys.stderr

    def run(self) -> WorkerSummary:
        summary = WorkerSummary(slot=self.slot)
        verbose = RunFlags.VERBOSE in self.flags
        quiet = RunFlags.QUIET in self.flags
        job_total = self.inputs.total
        shell = self.builder.needs_shell(self.template)

        while True:
            claimed = self.inputs.try_next()
            if claimed is None:
                break
            job = Job(job_id=claimed[0], input=claimed[1], slot=self.slot)
            summary.processed += 1
            if verbose:
                self.reporter.task_started(job.job_no, job_total, job.input)

            command = self.builder.build(
                slot=self.slot,
                job_no=job.job_no,
                job_total=job_total,
                input=job.input,
                template=self.template,
            )
            logger.debug("Slot %d starting job %d: %s", self.slot, job.job_no, command)

            try:
                result = self.runner.exec_and_wait(
                    command,
                    self.timeout_seconds,
                    job_id=job.job_id,
                    input=job.input,
                    result_sink=self.result_sink,
                    quiet=quiet,
                    shell=shell,
                )
            except SpawnError as error:
                summary.spawn_errors += 1
                summary.failed += 1
                self._report_spawn_error(job, error)
                continue

            _count_result(summary, result)
            if RunFlags.JOBLOG in self.flags:
                self.result_sink.put(
                    JobLogMessage(
                        JobLogRecord(
                            job_id=job.job_id,
                            start_time=result.start_time,
                            runtime_ns=result.runtime_ns,
                            exit_value=result.exit_value,
                            signal=result.signal,
                            command=command,
                        ),
                    ),
                )

            if verbose:
                self.reporter.task_complete(job.job_no, job_total, job.input)

        logger.debug("Slot %d finished after %d jobs", self.slot, summary.processed)
        return summary

    def _report_spawn_error(self, job: Job, error: SpawnError) -> None:
        click.echo(f"parallel-exec: command error: {error.message}", file=self.stderr)
        logger.warning("Job %d could not be spawned: %s", job.job_no, error.message)
        self.result_sink.put(
            ErrorMessage(
                job_id=job.job_id,
                message=f"{job.job_no}: {job.input}: {error.message}",
            ),
        )


def _count_result(summary: WorkerSummary, result: ExecutionResult) -> None:
    if result.outcome is JobOutcome.TIMEOUT_KILL:
        summary.timed_out += 1
    if result.exit_value == 0:
        summary.succeeded += 1
    else:
        summary.failed += 1
