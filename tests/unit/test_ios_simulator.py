from __future__ import annotations

import subprocess

import pytest
from conftest import RUNTIME, FakeShell, simctl_json

from devlaunch.device.ios.best_simulator import (
    get_best_booted_simulator,
    get_best_unbooted_simulator,
    get_selectable_simulators,
)
from devlaunch.device.ios.simctl import SimControl, parse_device_list, runtime_version
from devlaunch.device.ios.simulator_app import ensure_simulator_app_running
from devlaunch.errors import DeviceNotFound
from devlaunch.platform import OsKind


def test_runtime_version() -> None:
    assert runtime_version(RUNTIME + "iOS-18-5") == "18.5"
    assert runtime_version(RUNTIME + "watchOS-11-2-1") == "11.2.1"
    assert runtime_version("iOS 17.0.1") == "17.0.1"
    assert runtime_version("garbage") is None


def test_parse_device_list_skips_unavailable_and_unknown_runtimes() -> None:
    devices = parse_device_list(simctl_json(booted=("NEW-2",)))

    assert [d.identifier for d in devices] == ["OLD-1", "NEW-1", "NEW-2", "TV-1"]
    by_id = {d.identifier: d for d in devices}
    assert by_id["NEW-2"].booted
    assert by_id["NEW-2"].os_version == "18.5"
    assert by_id["TV-1"].os_kind is OsKind.TVOS
    assert parse_device_list("not json") == []


def test_booted_pick_prefers_last_used(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json(booted=("NEW-1", "NEW-2")))
    shell.on("defaults", "read", stdout="NEW-2\n")

    device = get_best_booted_simulator(SimControl())

    assert device is not None and device.identifier == "NEW-2"


def test_booted_pick_respects_os_kind(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json(booted=("NEW-1",)))
    shell.on("defaults", "read", rc=1, stderr="does not exist")

    assert get_best_booted_simulator(SimControl(), OsKind.TVOS) is None
    device = get_best_booted_simulator(SimControl())
    assert device is not None and device.identifier == "NEW-1"


def test_unbooted_pick_uses_newest_runtime_first_on_ties(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json())
    shell.on("defaults", "read", rc=1)

    assert get_best_unbooted_simulator(SimControl()).identifier == "NEW-1"


def test_unbooted_pick_prefers_last_used(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json())
    shell.on("defaults", "read", stdout="OLD-1")

    assert get_best_unbooted_simulator(SimControl()).identifier == "OLD-1"


def test_unbooted_pick_without_candidates_raises_with_hint(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json())

    with pytest.raises(DeviceNotFound) as exc:
        get_best_unbooted_simulator(SimControl(), OsKind.WATCHOS)
    assert "Xcode" in (exc.value.hint or "")


def test_selectable_simulators_list_booted_first(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json(booted=("NEW-2",)))

    ids = [d.identifier for d in get_selectable_simulators(SimControl())]
    assert ids == ["NEW-2", "OLD-1", "NEW-1"]


def test_boot_tolerates_already_booted(shell: FakeShell) -> None:
    shell.on(
        "simctl",
        "boot",
        rc=149,
        stderr="Unable to boot device in current state: Booted",
    )
    SimControl().boot("NEW-1")
    assert shell.ran("xcrun", "simctl", "boot", "NEW-1")


def test_boot_failure_propagates(shell: FakeShell) -> None:
    shell.on("simctl", "boot", rc=164, stderr="Invalid device: NOPE")
    with pytest.raises(subprocess.CalledProcessError):
        SimControl().boot("NOPE")


def test_wait_for_device_to_boot_polls_until_booted(shell: FakeShell) -> None:
    listings = iter([simctl_json(), simctl_json(), simctl_json(booted=("NEW-1",))])
    shell.on("simctl", "list", respond=lambda _args: (0, next(listings), ""))

    device = SimControl().wait_for_device_to_boot("NEW-1", timeout=10)

    assert device is not None and device.booted
    assert shell.count("simctl", "boot") == 1
    assert shell.count("simctl", "list") == 3


def test_wait_for_device_to_boot_returns_none_on_timeout(shell: FakeShell) -> None:
    shell.on("simctl", "list", stdout=simctl_json())

    assert SimControl().wait_for_device_to_boot("NEW-1", timeout=3, poll_interval=1) is None


def test_container_path_absent_app(shell: FakeShell) -> None:
    shell.on(
        "get_app_container",
        rc=2,
        stderr="An error was encountered processing the command (domain=NSPOSIXErrorDomain, "
        "code=2):\nNo such file or directory",
    )
    assert SimControl().get_container_path("NEW-1", "com.example.app") is None


def test_container_path_other_errors_propagate(shell: FakeShell) -> None:
    shell.on("get_app_container", rc=164, stderr="Invalid device: NEW-1")
    with pytest.raises(subprocess.CalledProcessError):
        SimControl().get_container_path("NEW-1", "com.example.app")


def test_simulator_app_is_opened_when_not_running(shell: FakeShell) -> None:
    running = iter([False, False, True])
    shell.on("pgrep", respond=lambda _args: (0 if next(running) else 1, "", ""))

    ensure_simulator_app_running("NEW-1")

    assert shell.ran("open", "-a", "Simulator", "--args", "-CurrentDeviceUDID", "NEW-1")


def test_simulator_app_not_reopened_when_running(shell: FakeShell) -> None:
    shell.on("pgrep", stdout="123")
    ensure_simulator_app_running("NEW-1")
    assert not shell.ran("open", "-a")


def test_simulator_app_start_timeout(shell: FakeShell) -> None:
    shell.on("pgrep", rc=1)
    with pytest.raises(TimeoutError):
        ensure_simulator_app_running(timeout=1)
