"""Shared test fixtures."""

from __future__ import annotations

import queue
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from parallel_exec.execute.models import SinkMessage


@pytest.fixture()
def python_script(tmp_path: Path) -> Callable[[str, str], str]:
    """Write a helper script and return the command prefix that runs it."""

    def _write(name: str, body: str) -> str:
        path = tmp_path / f"{name}.py"
        path.write_text(body.strip() + "\n", "utf-8")
        return f"{sys.executable} {path}"

    return _write


@pytest.fixture()
def clean_env(monkeypatch):
    for name in (
        "PARALLEL_EXEC_JOBS",
        "PARALLEL_EXEC_TIMEOUT",
        "PARALLEL_EXEC_JOBLOG",
        "PARALLEL_EXEC_VERBOSE",
        "PARALLEL_EXEC_QUIET",
        "PARALLEL_EXEC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def drain() -> Callable[[queue.Queue[SinkMessage]], list[SinkMessage]]:
    """Collect every message currently waiting in a result sink."""

    def _drain(result_sink: queue.Queue[SinkMessage]) -> list[SinkMessage]:
        messages: list[SinkMessage] = []
        while True:
            try:
                messages.append(result_sink.get_nowait())
            except queue.Empty:
                return messages

    return _drain
