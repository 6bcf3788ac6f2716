"""Materialize and spawn concrete commands from a tokenized template."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import IO

from parallel_exec.execute.tokenizer import Literal, PlaceholderKind, Token

# Any of these in template text means the command has to go through the shell.
SHELL_METACHARACTERS = frozenset("|&;<>()$`\\\"'*?[]#~\n")


class SpawnError(RuntimeError):
    """Command process could not be created."""

    def __init__(self, message: str, *, command: str) -> None:
        super().__init__(message)
        self.message = message
        self.command = command


@dataclass(slots=True)
class SpawnHandle:
    """Live child process plus the exact command text used to launch it."""

    process: subprocess.Popen[bytes]
    command: str
    stdout: IO[bytes]
    stderr: IO[bytes]


class CommandBuilder:
    """Resolve template tokens against one job's values.

    Values derived from the input are quoted, so an input always reaches the
    command as one argument whatever characters it contains.
    """

    def build(
        self,
        *,
        slot: int,
        job_no: int,
        job_total: int,
        input: str,  # noqa: A002
        template: Sequence[Token],
    ) -> str:
        parts: list[str] = []
        for token in template:
            if isinstance(token, Literal):
                parts.append(token.text)
            else:
                parts.append(
                    _resolve_placeholder(
                        token.kind,
                        slot=slot,
                        job_no=job_no,
                        job_total=job_total,
                        value=input,
                    ),
                )
        return "".join(parts)

    def needs_shell(self, template: Sequence[Token]) -> bool:
        """Whether the template's own text uses shell syntax."""

        return any(
            isinstance(token, Literal) and needs_shell(token.text) for token in template
        )


def _resolve_placeholder(
    kind: PlaceholderKind,
    *,
    slot: int,
    job_no: int,
    job_total: int,
    value: str,
) -> str:
    if kind is PlaceholderKind.JOB_NUMBER:
        return str(job_no)
    if kind is PlaceholderKind.JOB_TOTAL:
        return str(job_total)
    if kind is PlaceholderKind.SLOT:
        return str(slot)
    if kind is PlaceholderKind.NO_EXTENSION:
        resolved = os.path.splitext(value)[0]
    elif kind is PlaceholderKind.BASENAME:
        resolved = os.path.basename(value)
    elif kind is PlaceholderKind.DIRNAME:
        resolved = os.path.dirname(value) or "."
    elif kind is PlaceholderKind.BASENAME_NO_EXTENSION:
        resolved = os.path.splitext(os.path.basename(value))[0]
    else:
        resolved = value
    return quote_argument(resolved)


def quote_argument(value: str, *, os_name: str | None = None) -> str:
    if (os_name or os.name) == "nt":
        return subprocess.list2cmdline([value])
    return shlex.quote(value)


def needs_shell(text: str) -> bool:
    return any(char in SHELL_METACHARACTERS for char in text)


def spawn(
    command: str,
    *,
    shell: bool,
    stdout: IO[bytes],
    stderr: IO[bytes],
) -> SpawnHandle:
    """Start ``command`` with output redirected to the given capture files.

    Without ``shell`` the command is split into argv and executed directly, so
    a missing executable surfaces as a spawn failure.
    """

    run_args: str | list[str]
    if shell or os.name == "nt":
        run_args = command
    else:
        try:
            run_args = shlex.split(command)
        except ValueError as error:
            raise SpawnError(f"I/O error: {error}", command=command) from error
    if not run_args:
        raise SpawnError("I/O error: command is empty", command=command)
    try:
        process = subprocess.Popen(  # noqa: S603
            run_args,
            shell=shell,  # noqa: S604
            stdin=subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
        )
    except OSError as error:
        raise SpawnError(f"I/O error: {error}", command=command) from error
    return SpawnHandle(process=process, command=command, stdout=stdout, stderr=stderr)
