from __future__ import annotations

import subprocess
import sys
from typing import Any

import pytest

from devlaunch.utils.cli import Completed, run_cmd
from devlaunch.utils.url import validate_url


def test_run_cmd_success() -> None:
    """run_cmd should succeed and return decoded stdout on a successful command."""
    # /bin/echo is reliably available
    out = run_cmd(["/bin/echo", "hello"], check=True)
    assert isinstance(out, Completed)
    assert out.returncode == 0
    assert out.ok
    assert "hello" in out.stdout


def test_run_cmd_error_check_true_raises() -> None:
    """When check=True and the command fails, run_cmd must raise CalledProcessError."""
    with pytest.raises(subprocess.CalledProcessError) as exc:
        run_cmd([sys.executable, "-c", "import sys; sys.exit(3)"], check=True)
    assert exc.value.returncode == 3


def test_run_cmd_check_false_keeps_status_and_stderr() -> None:
    """With check=False the status code and stderr text are handed back to the caller."""
    out = run_cmd(
        [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(4)"],
        check=False,
    )
    assert isinstance(out, Completed)
    assert out.returncode == 4
    assert not out.ok
    assert out.stderr == "boom"
    assert out.output == "boom"


def test_run_cmd_spawn(monkeypatch: pytest.MonkeyPatch) -> None:
    """When spawn=True, run_cmd should return the Popen instance without waiting."""
    # Do not spawn a real process - patch Popen
    spawned: dict[str, Any] = {}

    class DummyP:
        def __init__(self, args: list[str], **kwargs: Any) -> None:
            spawned["args"] = args
            spawned["kwargs"] = kwargs

    monkeypatch.setattr("devlaunch.utils.cli.subprocess.Popen", DummyP)
    p = run_cmd(["sleep", "1"], spawn=True)
    assert isinstance(p, DummyP)
    assert spawned["args"] == ["sleep", "1"]


def test_completed_output_joins_both_streams() -> None:
    proc = subprocess.CompletedProcess(["adb"], 0, b"Starting: Intent\n", b"Error type 3")
    out = Completed(proc)
    assert out.stdout == "Starting: Intent\n"
    assert out.output == "Starting: Intent\n\nError type 3"


@pytest.mark.parametrize(
    "url",
    [
        "exp://127.0.0.1:8081",
        "http://localhost:8081/_expo/loading?platform=ios",
        "myapp://expo-development-client/?url=http%3A%2F%2F127.0.0.1%3A8081",
        "myapp://path",
        "localhost:8081",
    ],
)
def test_validate_url_accepts_urls_with_scheme(url: str) -> None:
    assert validate_url(url, require_protocol=True)


@pytest.mark.parametrize(
    "value",
    [
        "com.example.app",
        "host.exp.Exponent",
        "com.example.app/.MainActivity",
        "com.example.app:",
        "",
        "exp:// spaces",
        "http://",
    ],
)
def test_validate_url_rejects_identifiers(value: str) -> None:
    assert not validate_url(value, require_protocol=True)


def test_validate_url_without_protocol_requirement() -> None:
    """Scheme-less strings are valid URLs only when the protocol is not required."""
    assert validate_url("example.com/path")
    assert not validate_url("example.com/path", require_protocol=True)
