from __future__ import annotations

import json
import subprocess
from collections.abc import Callable, Sequence
from typing import Any

import pytest

from devlaunch.utils.cli import Completed

# Modules that import run_cmd into their own namespace
RUN_CMD_TARGETS = (
    "devlaunch.utils.cli.run_cmd",
    "devlaunch.device.ios.simctl.run_cmd",
    "devlaunch.device.ios.best_simulator.run_cmd",
    "devlaunch.device.ios.simulator_app.run_cmd",
    "devlaunch.device.android.adb.run_cmd",
    "devlaunch.device.android.emulator.run_cmd",
)


def completed(args: Sequence[str], rc: int = 0, stdout: str = "", stderr: str = "") -> Completed:
    """Build a Completed result the way run_cmd returns it."""
    return Completed(subprocess.CompletedProcess(list(args), rc, stdout, stderr))


RUNTIME = "com.apple.CoreSimulator.SimRuntime."


def simctl_json(*, booted: tuple[str, ...] = ()) -> str:
    """`simctl list devices --json` output with a few iOS and tvOS simulators."""

    def dev(udid: str, name: str, available: bool = True) -> dict[str, Any]:
        return {
            "udid": udid,
            "name": name,
            "state": "Booted" if udid in booted else "Shutdown",
            "isAvailable": available,
        }

    return json.dumps(
        {
            "devices": {
                RUNTIME + "iOS-17-5": [dev("OLD-1", "iPhone 15")],
                RUNTIME + "iOS-18-5": [
                    dev("NEW-1", "iPhone 16"),
                    dev("NEW-2", "iPhone 16 Pro"),
                    dev("GONE", "iPhone 16e", available=False),
                ],
                RUNTIME + "tvOS-18-0": [dev("TV-1", "Apple TV")],
                RUNTIME + "Unknown-1-0": [dev("X-1", "Mystery")],
            }
        }
    )


class FakePopen:
    def __init__(self, args: list[str]) -> None:
        self.args = args
        self.pid = 4242


Responder = Callable[[list[str]], "Completed | tuple[int, str, str]"]


class FakeShell:
    """
    Stand-in for run_cmd that records every command.

    Responses are registered with `on(...)`: the first rule whose tokens appear
    as a contiguous run in the command wins. Unmatched commands succeed with
    empty output.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.spawned: list[list[str]] = []
        self._rules: list[tuple[tuple[str, ...], Responder]] = []

    def on(
        self,
        *tokens: str,
        rc: int = 0,
        stdout: str = "",
        stderr: str = "",
        respond: Responder | None = None,
    ) -> FakeShell:
        self._rules.append((tokens, respond or (lambda _args: (rc, stdout, stderr))))
        return self

    def __call__(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        spawn: bool = False,
        timeout: float | None = None,
    ) -> Any:
        args = list(args)
        self.calls.append(args)
        if spawn:
            self.spawned.append(args)
            return FakePopen(args)

        result: Completed = completed(args)
        for tokens, respond in self._rules:
            if _contains(args, tokens):
                out = respond(args)
                result = out if isinstance(out, Completed) else completed(args, *out)
                break

        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, args, result.stdout, result.stderr
            )
        return result

    def ran(self, *tokens: str) -> bool:
        return any(_contains(c, tokens) for c in self.calls)

    def count(self, *tokens: str) -> int:
        return sum(1 for c in self.calls if _contains(c, tokens))


def _contains(args: list[str], tokens: tuple[str, ...]) -> bool:
    n = len(tokens)
    if n == 0:
        return True
    return any(tuple(args[i : i + n]) == tokens for i in range(len(args) - n + 1))


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def shell(monkeypatch: pytest.MonkeyPatch) -> FakeShell:
    fake = FakeShell()
    for target in RUN_CMD_TARGETS:
        monkeypatch.setattr(target, fake)
    return fake


@pytest.fixture(autouse=True)
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Polling loops never really sleep in unit tests."""
    fake = FakeClock()
    monkeypatch.setattr("devlaunch.core.waits.time.monotonic", fake.monotonic)
    monkeypatch.setattr("devlaunch.core.waits.time.sleep", fake.sleep)
    return fake


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Keep host configuration and CI flags out of the tests."""
    for name in ("DEVLAUNCH_PLATFORM", "DEVLAUNCH_PROJECT_ROOT", "CI", "HEADLESS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("devlaunch.utils.logging._LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr("devlaunch.utils.logging._LOG_FILE", tmp_path / "logs" / "devlaunch.log")
