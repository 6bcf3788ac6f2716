"""Decode how a child process terminated."""

from __future__ import annotations

import signal


def decode(returncode: int) -> int:
    """Return the signal number that ended the child, or 0 for a normal exit.

    ``subprocess`` reports death by signal ``N`` as return code ``-N`` on POSIX.
    """

    if returncode < 0:
        return -returncode
    return 0


def signal_name(number: int) -> str:
    try:
        return signal.Signals(number).name
    except ValueError:
        return f"SIG{number}"
