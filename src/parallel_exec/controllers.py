"""Controllers for parallel-exec CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from parallel_exec.config import Settings
from parallel_exec.execute import InputCursor, RunFlags, RunSummary, run_parallel, tokenize
from parallel_exec.execute.models import TERMINATE_SIGNAL
from parallel_exec.execute.signals import signal_name

logger = logging.getLogger(__name__)

INPUT_SEPARATOR = ":::"


@dataclass(slots=True)
class ParallelRunCommand:
    """CLI input for one parallel run."""

    arguments: tuple[str, ...]
    arg_files: tuple[Path, ...] = ()
    jobs: int | None = None
    timeout_seconds: float | None = None
    verbose: bool | None = None
    quiet: bool | None = None
    joblog_path: Path | None = None
    log_level: str | None = None


@dataclass(slots=True)
class ParallelRunResult:
    """Run report to render in CLI."""

    lines: list[str]
    exit_code: int
    summary: RunSummary


def split_arguments(arguments: tuple[str, ...]) -> tuple[str, tuple[str, ...] | None]:
    """Split CLI arguments into the command template and ``:::`` inputs.

    Inputs are ``None`` when no separator was given, so they come from files
    or stdin instead.
    """

    if INPUT_SEPARATOR not in arguments:
        return " ".join(arguments), None
    index = arguments.index(INPUT_SEPARATOR)
    return " ".join(arguments[:index]), arguments[index + 1 :]


def resolve_settings(command: ParallelRunCommand) -> Settings:
    """Environment settings with explicit CLI values taking precedence."""

    settings = Settings.from_env()
    execution = settings.execution
    if command.jobs is not None:
        execution.jobs = command.jobs
    if command.timeout_seconds is not None:
        execution.timeout_seconds = command.timeout_seconds
    if command.verbose is not None:
        execution.verbose = command.verbose
    if command.quiet is not None:
        execution.quiet = command.quiet
    if command.joblog_path is not None:
        settings.joblog_path = command.joblog_path
    if command.log_level is not None:
        settings.log_level = command.log_level.upper()
    settings.validate()
    return settings


class ParallelCliController:
    """Turns CLI input into a parallel run and renders its outcome."""

    def run(
        self,
        command: ParallelRunCommand,
        *,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        settings: Settings | None = None,
    ) -> ParallelRunResult:
        settings = settings or resolve_settings(command)
        template_text, inline_inputs = split_arguments(command.arguments)
        template = tokenize(template_text)

        if inline_inputs is not None:
            inputs = InputCursor(list(inline_inputs))
        elif command.arg_files:
            inputs = InputCursor.from_files(command.arg_files)
        elif stdin is not None:
            inputs = InputCursor.from_lines(stdin)
        else:
            inputs = InputCursor([])

        execution = settings.execution
        flags = RunFlags.NONE
        if execution.verbose:
            flags |= RunFlags.VERBOSE
        if execution.quiet:
            flags |= RunFlags.QUIET
        if settings.joblog_path is not None:
            flags |= RunFlags.JOBLOG

        logger.info(
            "Running %r over %d inputs with %d slots",
            template_text,
            inputs.total,
            execution.jobs,
        )
        summary = run_parallel(
            inputs,
            template,
            jobs=execution.jobs,
            timeout_seconds=execution.timeout_seconds,
            flags=flags,
            joblog_path=settings.joblog_path,
            stdout=stdout,
            stderr=stderr,
        )

        lines: list[str] = []
        if execution.verbose:
            lines.extend(_format_summary(summary))
        return ParallelRunResult(lines=lines, exit_code=summary.exit_code, summary=summary)


def _format_summary(summary: RunSummary) -> list[str]:
    lines = [
        "Run finished: "
        f"total={summary.total} succeeded={summary.succeeded} failed={summary.failed} "
        f"timed_out={summary.timed_out} spawn_errors={summary.spawn_errors}",
    ]
    if summary.timed_out:
        lines.append(f"Timed out jobs were terminated with {signal_name(TERMINATE_SIGNAL)}.")
    lines.extend(f"Spawn error: {message}" for message in summary.errors)
    return lines
