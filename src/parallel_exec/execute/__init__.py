"""Parallel command execution engine: input cursor, worker loop, and slot pool."""

from parallel_exec.execute.command import CommandBuilder, SpawnError, SpawnHandle
from parallel_exec.execute.inputs import InputCursor
from parallel_exec.execute.models import (
    ErrorMessage,
    ExecutionResult,
    Job,
    JobLogMessage,
    JobLogRecord,
    JobOutcome,
    OutputMessage,
    RunFlags,
)
from parallel_exec.execute.pool import RunSummary, run_parallel
from parallel_exec.execute.runner import ProcessRunner
from parallel_exec.execute.tokenizer import TemplateError, tokenize
from parallel_exec.execute.worker import WorkerLoop, WorkerSummary

__all__ = [
    "CommandBuilder",
    "ErrorMessage",
    "ExecutionResult",
    "InputCursor",
    "Job",
    "JobLogMessage",
    "JobLogRecord",
    "JobOutcome",
    "OutputMessage",
    "ProcessRunner",
    "RunFlags",
    "RunSummary",
    "SpawnError",
    "SpawnHandle",
    "TemplateError",
    "WorkerLoop",
    "WorkerSummary",
    "run_parallel",
    "tokenize",
]
