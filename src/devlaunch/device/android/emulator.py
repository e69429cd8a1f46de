from __future__ import annotations

import os
import subprocess
from typing import Any, cast

from ...core.waits import Waits
from ...errors import DeviceNotFound
from ...platform import OsKind
from ...utils.cli import Completed, run_cmd
from ...utils.logging import get_logger
from ..boot import BootSequencer
from ..handle import DeviceHandle
from .adb import AdbBridge

_log = get_logger(__name__)

# Emulator console ports are even numbers in this range
_MAX_EMULATOR_PORT = 5682


def list_avds(emulator_bin: str = "emulator") -> list[str]:
    """Names of the Android Virtual Devices known to the emulator binary."""
    out = cast(Completed, run_cmd([emulator_bin, "-list-avds"], check=False))
    if not out.ok:
        return []
    # Newer emulators print "INFO | ..." diagnostics before the names
    return [ln.strip() for ln in out.stdout.splitlines() if ln.strip() and "|" not in ln]


def free_emulator_port(used_serials: list[str], start: int = 5554) -> int:
    """First even console port at or above `start` without an attached emulator."""
    used = {s.removeprefix("emulator-") for s in used_serials if s.startswith("emulator-")}
    first = start if start % 2 == 0 else start + 1
    for port in range(first, _MAX_EMULATOR_PORT + 1, 2):
        if str(port) not in used:
            return port
    raise DeviceNotFound("No free emulator console port is available.")


def start_emulator(
    avd: str, port: int, *, emulator_bin: str = "emulator", headless: bool = False
) -> subprocess.Popen[Any]:
    """
    Start the Android emulator process in a separate subprocess.

    Spawns the emulator with the specified AVD name and console port.
    """
    # Extra flags for stable startup and CI environments
    cmd = [
        emulator_bin,
        "-avd",
        avd,
        "-port",
        str(port),
        "-no-boot-anim",
        "-no-snapshot-load",
        "-no-audio",
    ]
    if headless or os.getenv("CI") == "true" or os.getenv("HEADLESS") == "1":
        cmd.append("-no-window")

    _log.info("Starting Android emulator", action="emulator_start", avd=avd, port=port, cmd=" ".join(cmd))
    proc = cast(subprocess.Popen[Any], run_cmd(cmd, spawn=True))
    _log.info(
        "Emulator process started",
        action="emulator_started",
        avd=avd,
        port=port,
        pid=getattr(proc, "pid", None),
    )
    return proc


class EmulatorBootSequencer(BootSequencer):
    """
    Boots Android emulators; attached physical devices count as booted.

    Identifier hints may be an adb serial ("emulator-5554", "R58M123ABC") or an
    AVD name ("Pixel_8").
    """

    timeout_message = "Android emulator didn't boot fast enough."
    timeout_hint = "Try starting the emulator from Android Studio first, then running your app."

    def __init__(
        self,
        adb: AdbBridge,
        *,
        timeout: float,
        poll_interval: float = 1.0,
        emulator_bin: str = "emulator",
        first_port: int = 5554,
        headless: bool = False,
    ) -> None:
        super().__init__(timeout=timeout, poll_interval=poll_interval)
        self.adb = adb
        self.emulator_bin = emulator_bin
        self.first_port = first_port
        self.headless = headless
        # AVD name -> serial of emulators spawned by this sequencer
        self._spawned: dict[str, str] = {}

    def find_booted(self, os_kind: OsKind | None) -> DeviceHandle | None:
        for d in self.adb.attached_devices():
            if d.booted and (d.physical or self.adb.is_boot_completed(d.identifier)):
                return d
        return None

    def pick_unbooted(self, os_kind: OsKind | None) -> DeviceHandle:
        running = {d.name for d in self.adb.attached_devices()}
        for avd in list_avds(self.emulator_bin):
            if avd not in running:
                return DeviceHandle(identifier=avd, name=avd, os_kind=OsKind.ANDROID)
        raise DeviceNotFound(
            "No Android emulators are available to start.",
            hint="Create a virtual device in Android Studio > Device Manager.",
        )

    def boot_and_wait(self, identifier: str) -> DeviceHandle | None:
        attached = self.adb.attached_devices()
        match = next(
            (d for d in attached if identifier in (d.identifier, d.name)),
            None,
        )
        if match is not None and match.physical:
            if not match.booted:
                # Physical devices can't be booted; waiting again won't help
                raise DeviceNotFound(
                    f"{match.name} ({match.identifier}) is connected but not ready for adb.",
                    hint="Unlock the device and authorize USB debugging, or reconnect it.",
                )
            return match

        if match is not None:
            serial, name = match.identifier, match.name
        elif identifier in self._spawned:
            # Spawned on the first attempt but not listed by adb yet
            serial, name = self._spawned[identifier], identifier
        else:
            port = free_emulator_port([d.identifier for d in attached], self.first_port)
            start_emulator(
                identifier, port, emulator_bin=self.emulator_bin, headless=self.headless
            )
            serial, name = f"emulator-{port}", identifier
            self._spawned[identifier] = serial

        booted = Waits.poll_until(
            lambda: self.adb.is_boot_completed(serial),
            timeout=self.timeout,
            polling_ms=int(self.poll_interval * 1000),
            description=f"emulator {name} boot",
        )
        if not booted:
            return None
        return DeviceHandle(identifier=serial, name=name, os_kind=OsKind.ANDROID, booted=True)


__all__ = ["EmulatorBootSequencer", "list_avds", "free_emulator_port", "start_emulator"]
