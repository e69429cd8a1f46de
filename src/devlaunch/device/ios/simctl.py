from __future__ import annotations

import json
import re
import subprocess
from typing import Any, cast

from ...core.waits import Waits
from ...platform import OsKind
from ...utils.cli import Completed, run_cmd
from ...utils.logging import get_logger
from ..handle import DeviceHandle

# simctl exit statuses interpreted by the device manager
STATUS_APP_NOT_INSTALLED = 4
STATUS_NO_URI_HANDLER = 194

_ALREADY_BOOTED = "Unable to boot device in current state: Booted"
_RUNTIME_VERSION_RE = re.compile(r"(\d+)[-.](\d+)(?:[-.](\d+))?$")


def runtime_version(runtime: str) -> str | None:
    """
    Extract a dotted version from a simctl runtime key.

    "com.apple.CoreSimulator.SimRuntime.iOS-18-5" -> "18.5", "iOS 17.0.1" -> "17.0.1".
    """
    m = _RUNTIME_VERSION_RE.search(runtime.strip())
    if not m:
        return None
    return ".".join(part for part in m.groups() if part is not None)


def parse_device_list(raw: str) -> list[DeviceHandle]:
    """Parse the JSON printed by `simctl list devices --json` into handles."""
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return []

    devices = cast(dict[str, list[dict[str, Any]]], data.get("devices") or {})
    handles: list[DeviceHandle] = []
    for runtime, devs in devices.items():
        kind = OsKind.from_runtime(runtime)
        if kind is None:
            continue
        version = runtime_version(runtime)
        for d in devs:
            if not d.get("isAvailable", True):
                continue
            handles.append(
                DeviceHandle(
                    identifier=str(d["udid"]),
                    name=str(d.get("name", d["udid"])),
                    os_kind=kind,
                    booted=d.get("state") == "Booted",
                    os_version=version,
                )
            )
    return handles


class SimControl:
    """
    Thin wrapper over `xcrun simctl`.

    Calls that the device manager must interpret by status code (launch,
    openurl) return or raise with the raw status; everything else raises
    CalledProcessError on failure.
    """

    def __init__(self, xcrun_bin: str = "xcrun") -> None:
        self.xcrun_bin = xcrun_bin
        self._log = get_logger(__name__)

    def _simctl(self, *args: str, check: bool = True) -> Completed:
        out = run_cmd([self.xcrun_bin, "simctl", *args], check=check)
        return cast(Completed, out)

    def list_devices(self) -> list[DeviceHandle]:
        out = self._simctl("list", "devices", "--json")
        return parse_device_list(out.stdout)

    def get_device(self, udid: str) -> DeviceHandle | None:
        return next((d for d in self.list_devices() if d.identifier == udid), None)

    def boot(self, udid: str) -> None:
        """Boot a simulator; an already booted one is not an error."""
        out = self._simctl("boot", udid, check=False)
        if out.ok or _ALREADY_BOOTED in out.stderr:
            return
        raise subprocess.CalledProcessError(out.returncode, out.args, out.stdout, out.stderr)

    def wait_for_device_to_boot(
        self, udid: str, *, timeout: float, poll_interval: float = 1.0
    ) -> DeviceHandle | None:
        """
        Boot `udid` and poll until simctl reports it Booted.

        Returns:
            The booted handle, or None if `timeout` seconds elapsed first.
        """
        self.boot(udid)

        def _booted() -> DeviceHandle | None:
            device = self.get_device(udid)
            return device if device is not None and device.booted else None

        return Waits.poll_until(
            _booted,
            timeout=timeout,
            polling_ms=int(poll_interval * 1000),
            description=f"simulator {udid} boot",
        )

    def get_container_path(self, udid: str, bundle_id: str) -> str | None:
        """
        Return the on-disk path of an installed app bundle, or None if not installed.
        """
        out = self._simctl("get_app_container", udid, bundle_id, check=False)
        if out.ok:
            return out.stdout.strip() or None
        if "No such file or directory" in out.stderr or "not installed" in out.stderr:
            return None
        raise subprocess.CalledProcessError(out.returncode, out.args, out.stdout, out.stderr)

    def install(self, udid: str, app_path: str) -> None:
        self._simctl("install", udid, app_path)

    def uninstall(self, udid: str, bundle_id: str) -> None:
        self._simctl("uninstall", udid, bundle_id)

    def launch(self, udid: str, bundle_id: str) -> Completed:
        """Launch an app by bundle id; the caller interprets a non-zero status."""
        return self._simctl("launch", udid, bundle_id, check=False)

    def open_url(self, udid: str, url: str) -> None:
        """
        Open a URL on the simulator.

        Raises:
            subprocess.CalledProcessError: With returncode STATUS_NO_URI_HANDLER
                when no installed app declares the scheme.
        """
        self._simctl("openurl", udid, url)

    def shutdown(self, udid: str) -> None:
        self._simctl("shutdown", udid, check=False)


__all__ = [
    "SimControl",
    "parse_device_list",
    "runtime_version",
    "STATUS_APP_NOT_INSTALLED",
    "STATUS_NO_URI_HANDLER",
]
