"""Runtime configuration for parallel runs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class ExecutionSettings:
    """Worker pool and per-job settings."""

    jobs: int = field(default_factory=lambda: os.cpu_count() or 1)
    timeout_seconds: float = 0.0
    verbose: bool = False
    quiet: bool = False


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    execution: ExecutionSettings = field(default_factory=ExecutionSettings)
    joblog_path: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment, falling back to defaults."""

        joblog = os.getenv("PARALLEL_EXEC_JOBLOG", "").strip()
        return cls(
            execution=ExecutionSettings(
                jobs=int(os.getenv("PARALLEL_EXEC_JOBS", str(os.cpu_count() or 1))),
                timeout_seconds=float(os.getenv("PARALLEL_EXEC_TIMEOUT", "0")),
                verbose=_env_bool("PARALLEL_EXEC_VERBOSE", default=False),
                quiet=_env_bool("PARALLEL_EXEC_QUIET", default=False),
            ),
            joblog_path=Path(joblog) if joblog else None,
            log_level=os.getenv("PARALLEL_EXEC_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error for values a run cannot use."""

        if self.execution.jobs < 1:
            raise ValueError("PARALLEL_EXEC_JOBS must be >= 1.")
        if self.execution.timeout_seconds < 0:
            raise ValueError("PARALLEL_EXEC_TIMEOUT must be >= 0 (0 disables the timeout).")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid PARALLEL_EXEC_LOG_LEVEL: {self.log_level!r}. "
                f"Expected one of {', '.join(LOG_LEVELS)}.",
            )

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
