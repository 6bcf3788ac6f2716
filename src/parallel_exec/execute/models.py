"""Domain models for parallel job execution and result reporting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, Flag, auto


class RunFlags(Flag):
    """Run-level switches consulted independently by every worker."""

    NONE = 0
    VERBOSE = auto()
    QUIET = auto()
    JOBLOG = auto()


class JobOutcome(str, Enum):
    """Terminal outcome of one spawned job."""

    NORMAL_EXIT = "normal_exit"
    SIGNALED = "signaled"
    TIMEOUT_KILL = "timeout_kill"
    WAIT_ERROR = "wait_error"


TERMINATE_SIGNAL = 15


@dataclass(frozen=True, slots=True)
class Job:
    """One unit of work claimed from the input cursor."""

    job_id: int
    input: str
    slot: int

    @property
    def job_no(self) -> int:
        return self.job_id + 1


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Timing and exit status of a job whose process was spawned.

    Times are nanoseconds since the epoch. ``exit_value`` is ``-1`` for any
    abnormal termination; ``signal`` is only nonzero when a signal ended it.
    """

    job_id: int
    start_time: int
    end_time: int
    exit_value: int
    signal: int
    outcome: JobOutcome

    @property
    def runtime_ns(self) -> int:
        return max(0, self.end_time - self.start_time)


@dataclass(frozen=True, slots=True)
class JobLogRecord:
    """Structured per-job timing record forwarded when job logging is on."""

    job_id: int
    start_time: int
    runtime_ns: int
    exit_value: int
    signal: int
    command: str


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    """A job whose command could not be spawned."""

    job_id: int
    message: str


@dataclass(frozen=True, slots=True)
class JobLogMessage:
    record: JobLogRecord


@dataclass(frozen=True, slots=True)
class OutputMessage:
    """Captured child output for one job."""

    job_id: int
    input: str
    stdout: str
    stderr: str
    quiet: bool


@dataclass(frozen=True, slots=True)
class WorkerDone:
    """Posted once by each worker after its cursor is exhausted."""

    slot: int


SinkMessage = ErrorMessage | JobLogMessage | OutputMessage | WorkerDone
