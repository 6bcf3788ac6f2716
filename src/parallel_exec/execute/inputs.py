"""Shared input cursor handing out jobs exactly once across worker threads."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from pathlib import Path


class InputCursor:
    """Atomic fetch-and-increment over an indexed backing sequence of inputs."""

    def __init__(self, inputs: Sequence[str]) -> None:
        self._inputs = tuple(inputs)
        self._next_index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> InputCursor:
        """Build a cursor from text lines, dropping line endings and blank lines."""

        values = [line.rstrip("\r\n") for line in lines]
        return cls([value for value in values if value])

    @classmethod
    def from_files(cls, paths: Iterable[Path]) -> InputCursor:
        values: list[str] = []
        for path in paths:
            with Path(path).open(encoding="utf-8") as handle:
                values.extend(line.rstrip("\r\n") for line in handle)
        return cls([value for value in values if value])

    @property
    def total(self) -> int:
        return len(self._inputs)

    def __len__(self) -> int:
        return len(self._inputs)

    def try_next(self) -> tuple[int, str] | None:
        """Claim the next ``(job_id, input)`` pair, or ``None`` once exhausted."""

        with self._lock:
            index = self._next_index
            if index >= len(self._inputs):
                return None
            self._next_index = index + 1
        return index, self._inputs[index]
