from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from typing import cast

from .logging import get_logger

_log = get_logger(__name__)


class Completed:
    """
    Structured result of a finished OS-level command.

    Wraps subprocess.CompletedProcess, keeping the numeric status and decoding
    stdout and stderr into strings so callers can match on error text.
    """

    def __init__(self, proc: subprocess.CompletedProcess):
        self.args = list(proc.args) if not isinstance(proc.args, str) else [proc.args]
        self.returncode = proc.returncode
        self.stdout = (
            proc.stdout.decode(errors="ignore")
            if isinstance(proc.stdout, bytes | bytearray)
            else (proc.stdout or "")
        )
        self.stderr = (
            proc.stderr.decode(errors="ignore")
            if isinstance(proc.stderr, bytes | bytearray)
            else (proc.stderr or "")
        )

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for tools that report errors on either stream."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def run_cmd(
    args: Sequence[str],
    *,
    check: bool = True,
    spawn: bool = False,
    timeout: float | None = None,
) -> Completed | subprocess.Popen:
    """
    Execute a command as a subprocess.

    Args:
        args (Sequence[str]): Command and arguments to execute.
        check (bool): If True, raise CalledProcessError on failure.
        spawn (bool): If True, start the process asynchronously and return a Popen object.
        timeout (float | None): Optional timeout in seconds for waiting for completion.

    Returns:
        Completed | subprocess.Popen:
            - Completed: Result with stdout/stderr as strings (if `spawn=False`)
            - subprocess.Popen: Process object (if `spawn=True`)

    Raises:
        subprocess.CalledProcessError: If `check=True` and process exits with a nonzero code.
    """
    _log.debug("Running command", action="cmd", cmd=shlex.join(args), spawn=spawn)
    if spawn:
        return subprocess.Popen(
            list(args), stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
        )

    proc = subprocess.run(list(args), capture_output=True, timeout=timeout, check=False)

    if check and proc.returncode != 0:
        raise subprocess.CalledProcessError(proc.returncode, list(args), proc.stdout, proc.stderr)

    return Completed(proc)


def run_osascript(script: str, *, check: bool = True) -> Completed:
    """Run an AppleScript snippet through `osascript -e`."""
    return cast(Completed, run_cmd(["osascript", "-e", script], check=check))


__all__ = ["Completed", "run_cmd", "run_osascript"]
