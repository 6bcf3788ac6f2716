"""Progress lines printed when verbose mode is on."""

from __future__ import annotations

import sys
import threading
from typing import TextIO

import rich_click as click


class VerboseReporter:
    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def task_started(self, job_no: int, total: int, input: str) -> None:  # noqa: A002
        self._emit(f"processing task #{job_no} of {total}: {input!r}")

    def task_complete(self, job_no: int, total: int, input: str) -> None:  # noqa: A002
        self._emit(f"completed task #{job_no} of {total}: {input!r}")

    def _emit(self, line: str) -> None:
        with self._lock:
            click.echo(line, file=self.stream)
