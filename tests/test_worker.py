from __future__ import annotations

import io
import queue
import sys
import tempfile
import threading

import allure

from parallel_exec.execute.inputs import InputCursor
from parallel_exec.execute.models import (
    ErrorMessage,
    JobLogMessage,
    OutputMessage,
    RunFlags,
    SinkMessage,
)
from parallel_exec.execute.tokenizer import tokenize
from parallel_exec.execute.verbose import VerboseReporter
from parallel_exec.execute.worker import WorkerLoop

pytestmark = [
    allure.epic("Parallel Execution"),
    allure.feature("Worker Loop"),
]

_ECHO_SCRIPT = """
import sys
print(" ".join(sys.argv[1:]))
"""


def _worker(  # noqa: PLR0913
    *,
    slot: int,
    inputs: InputCursor,
    template: str,
    result_sink: queue.Queue[SinkMessage],
    flags: RunFlags = RunFlags.NONE,
    timeout_seconds: float = 0,
    stdout: io.StringIO | None = None,
    stderr: io.StringIO | None = None,
) -> WorkerLoop:
    return WorkerLoop(
        slot=slot,
        inputs=inputs,
        template=tokenize(template),
        flags=flags,
        timeout_seconds=timeout_seconds,
        result_sink=result_sink,
        reporter=VerboseReporter(stream=stdout or io.StringIO()),
        stderr=stderr or io.StringIO(),
    )


def test_single_slot_runs_every_input_with_normal_exit(python_script, drain) -> None:
    echo = python_script("echo", _ECHO_SCRIPT)
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["a", "b", "c"]),
        template=f"{echo} {{}}",
        result_sink=result_sink,
        flags=RunFlags.JOBLOG,
    )

    summary = worker.run()

    assert summary.processed == 3
    assert summary.succeeded == 3
    assert summary.failed == 0
    messages = drain(result_sink)
    assert not [message for message in messages if isinstance(message, ErrorMessage)]
    records = [message.record for message in messages if isinstance(message, JobLogMessage)]
    assert [record.job_id for record in records] == [0, 1, 2]
    assert all(record.exit_value == 0 and record.signal == 0 for record in records)
    outputs = [message for message in messages if isinstance(message, OutputMessage)]
    assert [output.stdout.strip() for output in outputs] == ["a", "b", "c"]


def test_timed_out_job_is_logged_as_terminated(python_script, drain) -> None:
    sleeper = python_script("sleeper", "import time\ntime.sleep(5)")
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["x"]),
        template=sleeper,
        result_sink=result_sink,
        flags=RunFlags.JOBLOG,
        timeout_seconds=1,
    )

    summary = worker.run()

    assert summary.timed_out == 1
    assert summary.failed == 1
    records = [
        message.record for message in drain(result_sink) if isinstance(message, JobLogMessage)
    ]
    assert len(records) == 1
    assert records[0].exit_value == -1
    assert records[0].signal == 15


def test_spawn_failure_sends_error_and_no_joblog(drain) -> None:
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    stderr = io.StringIO()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["only-input"]),
        template="parallel-exec-missing-binary-xyz {}",
        result_sink=result_sink,
        flags=RunFlags.JOBLOG,
        stderr=stderr,
    )

    summary = worker.run()

    assert summary.spawn_errors == 1
    messages = drain(result_sink)
    errors = [message for message in messages if isinstance(message, ErrorMessage)]
    assert len(errors) == 1
    assert errors[0].job_id == 0
    assert errors[0].message.startswith("1: only-input: I/O error")
    assert not [message for message in messages if isinstance(message, JobLogMessage)]
    assert not [message for message in messages if isinstance(message, OutputMessage)]
    assert stderr.getvalue().startswith("parallel-exec: command error: I/O error")


def test_spawn_failure_does_not_stop_following_jobs(drain) -> None:
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["parallel-exec-missing-binary-xyz", sys.executable]),
        template="{} -c pass",
        result_sink=result_sink,
        flags=RunFlags.JOBLOG,
    )

    summary = worker.run()

    assert summary.processed == 2
    assert summary.spawn_errors == 1
    assert summary.succeeded == 1
    messages = drain(result_sink)
    records = [message.record for message in messages if isinstance(message, JobLogMessage)]
    assert [record.job_id for record in records] == [1]
    errors = [message for message in messages if isinstance(message, ErrorMessage)]
    assert [error.job_id for error in errors] == [0]


def test_capture_file_failure_is_reported_and_loop_continues(
    python_script,
    monkeypatch,
    drain,
) -> None:
    echo = python_script("echo", _ECHO_SCRIPT)
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    stderr = io.StringIO()
    real_temporary_file = tempfile.TemporaryFile
    failures = [OSError(24, "Too many open files")]

    def _temporary_file(*args, **kwargs):
        if failures:
            raise failures.pop()
        return real_temporary_file(*args, **kwargs)

    monkeypatch.setattr(tempfile, "TemporaryFile", _temporary_file)
    worker = _worker(
        slot=1,
        inputs=InputCursor(["a", "b"]),
        template=f"{echo} {{}}",
        result_sink=result_sink,
        flags=RunFlags.JOBLOG,
        stderr=stderr,
    )

    summary = worker.run()

    assert summary.processed == 2
    assert summary.spawn_errors == 1
    assert summary.succeeded == 1
    messages = drain(result_sink)
    errors = [message for message in messages if isinstance(message, ErrorMessage)]
    assert [error.job_id for error in errors] == [0]
    assert errors[0].message.startswith("1: a: I/O error")
    records = [message.record for message in messages if isinstance(message, JobLogMessage)]
    assert [record.job_id for record in records] == [1]
    outputs = [message for message in messages if isinstance(message, OutputMessage)]
    assert [output.stdout.strip() for output in outputs] == ["b"]
    assert "Too many open files" in stderr.getvalue()


def test_inputs_with_spaces_and_quotes_stay_single_arguments(python_script, drain) -> None:
    show_args = python_script("show_args", "import sys\nprint(repr(sys.argv[1:]))")
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["my file.txt", "it's.txt"]),
        template=f"{show_args} {{}}",
        result_sink=result_sink,
    )

    summary = worker.run()

    assert summary.succeeded == 2
    outputs = [message for message in drain(result_sink) if isinstance(message, OutputMessage)]
    assert [output.stdout.strip() for output in outputs] == [
        "['my file.txt']",
        "[\"it's.txt\"]",
    ]


def test_shell_template_does_not_run_input_as_shell_code(python_script, drain) -> None:
    show_args = python_script("show_args", "import sys\nprint(repr(sys.argv[1:]))")
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["a; echo injected $(echo twice)"]),
        template=f"{show_args} {{}} 2>&1",
        result_sink=result_sink,
    )

    summary = worker.run()

    assert summary.succeeded == 1
    outputs = [message for message in drain(result_sink) if isinstance(message, OutputMessage)]
    assert outputs[0].stdout.splitlines() == ["['a; echo injected $(echo twice)']"]


def test_joblog_disabled_sends_no_records(python_script, drain) -> None:
    echo = python_script("echo", _ECHO_SCRIPT)
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["a", "b"]),
        template=f"{echo} {{}}",
        result_sink=result_sink,
    )

    worker.run()

    messages = drain(result_sink)
    assert all(isinstance(message, OutputMessage) for message in messages)
    assert len(messages) == 2


def test_two_slots_produce_one_joblog_record_per_job(python_script, drain) -> None:
    echo = python_script("echo", _ECHO_SCRIPT)
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    inputs = InputCursor(["first", "second"])
    workers = [
        _worker(
            slot=slot,
            inputs=inputs,
            template=f"{echo} {{}} job={{#}}",
            result_sink=result_sink,
            flags=RunFlags.JOBLOG,
        )
        for slot in (1, 2)
    ]
    threads = [threading.Thread(target=worker.run) for worker in workers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    records = {
        message.record.job_id: message.record
        for message in drain(result_sink)
        if isinstance(message, JobLogMessage)
    }
    assert sorted(records) == [0, 1]
    assert records[0].command == f"{echo} first job=1"
    assert records[1].command == f"{echo} second job=2"
    assert all(record.runtime_ns >= 0 for record in records.values())


def test_many_slots_process_every_job_exactly_once(python_script, drain) -> None:
    noop = python_script("noop", "pass")
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    inputs = InputCursor([str(index) for index in range(24)])
    workers = [
        _worker(
            slot=slot,
            inputs=inputs,
            template=f"{noop} {{}}",
            result_sink=result_sink,
            flags=RunFlags.JOBLOG | RunFlags.QUIET,
        )
        for slot in range(1, 5)
    ]
    threads = [threading.Thread(target=worker.run) for worker in workers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    messages = drain(result_sink)
    job_ids = [message.record.job_id for message in messages if isinstance(message, JobLogMessage)]
    assert sorted(job_ids) == list(range(24))
    outputs = [message for message in messages if isinstance(message, OutputMessage)]
    assert len(outputs) == 24
    assert all(output.quiet for output in outputs)


def test_verbose_reports_start_and_completion(python_script) -> None:
    echo = python_script("echo", _ECHO_SCRIPT)
    result_sink: queue.Queue[SinkMessage] = queue.Queue()
    stdout = io.StringIO()
    worker = _worker(
        slot=1,
        inputs=InputCursor(["alpha"]),
        template=f"{echo} {{}}",
        result_sink=result_sink,
        flags=RunFlags.VERBOSE,
        stdout=stdout,
    )

    worker.run()

    assert stdout.getvalue().splitlines() == [
        "processing task #1 of 1: 'alpha'",
        "completed task #1 of 1: 'alpha'",
    ]
