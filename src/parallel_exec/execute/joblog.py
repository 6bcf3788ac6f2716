"""Tab-separated job log persistence."""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

from parallel_exec.execute.models import JobLogRecord

JOBLOG_HEADER = ("Seq", "Starttime", "JobRuntime", "Exitval", "Signal", "Command")
_NANOS_PER_SECOND = 1_000_000_000


def format_joblog_row(record: JobLogRecord) -> str:
    start_seconds = record.start_time / _NANOS_PER_SECOND
    runtime_seconds = record.runtime_ns / _NANOS_PER_SECOND
    return "\t".join(
        (
            str(record.job_id + 1),
            f"{start_seconds:.3f}",
            f"{runtime_seconds:.3f}",
            str(record.exit_value),
            str(record.signal),
            record.command,
        ),
    )


class JobLogWriter:
    """Append job log rows in arrival order; only the aggregator thread writes."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._handle: TextIO | None = None

    def __enter__(self) -> JobLogWriter:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("w", encoding="utf-8")
        self._handle.write("\t".join(JOBLOG_HEADER) + "\n")
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def write(self, record: JobLogRecord) -> None:
        if self._handle is None:
            raise RuntimeError("JobLogWriter is not open.")
        self._handle.write(format_joblog_row(record) + "\n")
        self._handle.flush()
