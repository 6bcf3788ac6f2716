"""Forward captured child output to the result sink."""

from __future__ import annotations

import queue
import tempfile
from typing import IO

from parallel_exec.execute.command import SpawnHandle
from parallel_exec.execute.models import OutputMessage, SinkMessage


class OutputRelay:
    """Drain a finished (or killed) child's captured output into the sink.

    Output goes to anonymous temp files rather than pipes, so waiting on the
    child can never deadlock on a full pipe buffer.
    """

    def open_capture(self) -> tuple[IO[bytes], IO[bytes]]:
        stdout = tempfile.TemporaryFile()  # noqa: SIM115
        try:
            stderr = tempfile.TemporaryFile()  # noqa: SIM115
        except OSError:
            stdout.close()
            raise
        return stdout, stderr

    def discard(self, stdout: IO[bytes], stderr: IO[bytes]) -> None:
        stdout.close()
        stderr.close()

    def relay(
        self,
        handle: SpawnHandle,
        *,
        job_id: int,
        input: str,  # noqa: A002
        result_sink: queue.Queue[SinkMessage],
        quiet: bool,
    ) -> None:
        try:
            stdout_text = _read_all(handle.stdout)
            stderr_text = _read_all(handle.stderr)
        finally:
            self.discard(handle.stdout, handle.stderr)
        result_sink.put(
            OutputMessage(
                job_id=job_id,
                input=input,
                stdout=stdout_text,
                stderr=stderr_text,
                quiet=quiet,
            ),
        )


def _read_all(handle: IO[bytes]) -> str:
    handle.flush()
    handle.seek(0)
    return handle.read().decode("utf-8", errors="replace")
