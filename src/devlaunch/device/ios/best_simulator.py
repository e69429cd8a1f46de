from __future__ import annotations

from ...errors import DeviceNotFound
from ...platform import OsKind
from ...utils.cli import Completed, run_cmd
from ..handle import DeviceHandle
from .simctl import SimControl


def get_last_used_udid() -> str | None:
    """UDID of the device the Simulator app last showed, if recorded."""
    out = run_cmd(
        ["defaults", "read", "com.apple.iphonesimulator", "CurrentDeviceUDID"], check=False
    )
    if not isinstance(out, Completed) or not out.ok:
        return None
    return out.stdout.strip() or None


def _version_key(device: DeviceHandle) -> tuple[int, ...]:
    try:
        return tuple(int(p) for p in (device.os_version or "0").split("."))
    except ValueError:
        return (0,)


def _matching(simctl: SimControl, os_kind: OsKind | None) -> list[DeviceHandle]:
    kind = os_kind or OsKind.IOS
    return [d for d in simctl.list_devices() if d.os_kind is kind]


def get_best_booted_simulator(
    simctl: SimControl, os_kind: OsKind | None = None
) -> DeviceHandle | None:
    """
    Return a booted simulator of the requested kind (iOS by default).

    The Simulator app's last-used device wins when it is among the booted ones.
    """
    booted = [d for d in _matching(simctl, os_kind) if d.booted]
    if not booted:
        return None
    last_used = get_last_used_udid()
    return next((d for d in booted if d.identifier == last_used), booted[0])


def get_best_unbooted_simulator(
    simctl: SimControl, os_kind: OsKind | None = None
) -> DeviceHandle:
    """
    Pick the simulator to boot: the last-used one when it matches, otherwise
    the device with the newest runtime (first listed on ties).

    Raises:
        DeviceNotFound: If no available simulator matches `os_kind`.
    """
    candidates = _matching(simctl, os_kind)
    if not candidates:
        kind = (os_kind or OsKind.IOS).value
        raise DeviceNotFound(
            f"No {kind} simulators are available.",
            hint=f"Install a {kind} simulator runtime from Xcode > Settings > Platforms.",
        )
    last_used = get_last_used_udid()
    for d in candidates:
        if d.identifier == last_used:
            return d
    newest = max(_version_key(d) for d in candidates)
    return next(d for d in candidates if _version_key(d) == newest)


def get_selectable_simulators(
    simctl: SimControl, os_kind: OsKind | None = None
) -> list[DeviceHandle]:
    """Simulators a user may choose from, booted ones first."""
    devices = _matching(simctl, os_kind)
    return sorted(devices, key=lambda d: not d.booted)


__all__ = [
    "get_best_booted_simulator",
    "get_best_unbooted_simulator",
    "get_selectable_simulators",
    "get_last_used_udid",
]
