from __future__ import annotations

import re
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import cast

from ...platform import OsKind
from ...utils.cli import Completed, run_cmd
from ...utils.logging import get_logger
from ..handle import DeviceHandle

# FLAG_ACTIVITY_SINGLE_TOP: reuse a running activity instead of stacking a new one
_SINGLE_TOP = "0x20000000"
_VERSION_NAME_RE = re.compile(r"versionName=(\S+)")
_APK_PACKAGE_RE = re.compile(r"package: name='([^']+)'")


@dataclass(frozen=True, slots=True)
class AttachedDevice:
    """One line of `adb devices -l`."""

    serial: str
    state: str
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_emulator(self) -> bool:
        return self.serial.startswith("emulator-")

    @property
    def online(self) -> bool:
        return self.state == "device"


def parse_devices_output(raw: str) -> list[AttachedDevice]:
    """
    Parse `adb devices -l` output.

    Lines look like:
        emulator-5554  device product:sdk_gphone64 model:sdk_gphone64_arm64 transport_id:1
        R58M123ABC     unauthorized usb:1-1 transport_id:2
    """
    devices: list[AttachedDevice] = []
    for line in raw.splitlines():
        line = line.strip()
        if not line or line.startswith("List of devices") or line.startswith("*"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        props = dict(p.split(":", 1) for p in parts[2:] if ":" in p)
        devices.append(AttachedDevice(serial=parts[0], state=parts[1], properties=props))
    return devices


class AdbBridge:
    """
    Wrapper over the adb commands the device manager needs.

    `adb shell` joins its arguments and the device shell splits them again,
    so values that may carry shell metacharacters are quoted.

    `am start` reports most failures on stdout with a zero status, so launch
    and open calls return the raw result for the caller to interpret.
    """

    def __init__(self, adb_bin: str = "adb") -> None:
        self.adb_bin = adb_bin
        self._log = get_logger(__name__)

    def _adb(self, *args: str, serial: str | None = None, check: bool = True) -> Completed:
        cmd = [self.adb_bin]
        if serial is not None:
            cmd += ["-s", serial]
        return cast(Completed, run_cmd(cmd + list(args), check=check))

    def _shell(self, serial: str, *args: str, check: bool = True) -> Completed:
        return self._adb("shell", *args, serial=serial, check=check)

    # ------------------------
    # Devices
    # ------------------------
    def list_attached(self) -> list[AttachedDevice]:
        return parse_devices_output(self._adb("devices", "-l").stdout)

    def get_avd_name(self, serial: str) -> str | None:
        """Return the AVD name behind an emulator serial via its console."""
        out = self._adb("emu", "avd", "name", serial=serial, check=False)
        if not out.ok:
            return None
        first = next((ln.strip() for ln in out.stdout.splitlines() if ln.strip()), "")
        return first if first and first != "OK" else None

    def attached_devices(self) -> list[DeviceHandle]:
        """Attached devices as handles; `booted` means online."""
        handles: list[DeviceHandle] = []
        for d in self.list_attached():
            if d.is_emulator:
                name = (self.get_avd_name(d.serial) if d.online else None) or d.serial
            else:
                name = d.properties.get("model", d.serial).replace("_", " ")
            handles.append(
                DeviceHandle(
                    identifier=d.serial,
                    name=name,
                    os_kind=OsKind.ANDROID,
                    booted=d.online,
                    physical=not d.is_emulator,
                )
            )
        return handles

    def get_property(self, serial: str, name: str) -> str:
        out = self._shell(serial, "getprop", name, check=False)
        return out.stdout.strip() if out.ok else ""

    def is_boot_completed(self, serial: str) -> bool:
        return self.get_property(serial, "sys.boot_completed") == "1"

    # ------------------------
    # Packages
    # ------------------------
    def is_package_installed(self, serial: str, package: str) -> bool:
        out = self._shell(serial, "pm", "list", "packages", package)
        return f"package:{package}" in (ln.strip() for ln in out.stdout.splitlines())

    def get_package_version(self, serial: str, package: str) -> str | None:
        out = self._shell(serial, "dumpsys", "package", package)
        if "Unable to find package" in out.stdout:
            return None
        m = _VERSION_NAME_RE.search(out.stdout)
        return m.group(1) if m else None

    def install(self, serial: str, apk_path: str) -> None:
        out = self._adb("install", "-r", "-d", apk_path, serial=serial, check=False)
        # Older adb versions exit 0 on "Failure [INSTALL_...]"
        if not out.ok or "Failure" in out.output:
            raise subprocess.CalledProcessError(
                out.returncode or 1, out.args, out.stdout, out.stderr
            )

    def uninstall(self, serial: str, package: str) -> Completed:
        return self._adb("uninstall", package, serial=serial, check=False)

    # ------------------------
    # Launching
    # ------------------------
    def start_activity(self, serial: str, component: str) -> Completed:
        return self._shell(
            serial, "am", "start", "-f", _SINGLE_TOP, "-n", shlex.quote(component), check=False
        )

    def launch_package(self, serial: str, package: str) -> Completed:
        return self._shell(
            serial,
            "monkey",
            "-p",
            package,
            "-c",
            "android.intent.category.LAUNCHER",
            "1",
            check=False,
        )

    def open_url(self, serial: str, url: str) -> Completed:
        return self._shell(
            serial, "am", "start", "-a", "android.intent.action.VIEW", "-d", shlex.quote(url), check=False
        )

    # ------------------------
    # Misc
    # ------------------------
    def reverse(self, serial: str, port: int) -> None:
        """
        Forward device port `port` to the same port on the host.

        Raises:
            subprocess.CalledProcessError: If adb rejects the forward.
        """
        self._log.debug("adb reverse", action="adb_reverse", udid=serial, port=port)
        self._adb("reverse", f"tcp:{port}", f"tcp:{port}", serial=serial)

    def emu_kill(self, serial: str) -> None:
        self._adb("emu", "kill", serial=serial, check=False)


def read_apk_package(apk_path: str, aapt_bin: str = "aapt") -> str | None:
    """Read the package name of an APK with `aapt dump badging`."""
    out = cast(Completed, run_cmd([aapt_bin, "dump", "badging", apk_path], check=False))
    m = _APK_PACKAGE_RE.search(out.stdout)
    return m.group(1) if m else None


__all__ = ["AdbBridge", "AttachedDevice", "parse_devices_output", "read_apk_package"]
