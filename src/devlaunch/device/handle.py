from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from ..platform import OsKind


@dataclass(frozen=True, slots=True)
class DeviceHandle:
    """
    One concrete device or simulator instance.

    Immutable: after a state change (e.g. boot) managers re-resolve a fresh
    handle instead of mutating this one.

    Attributes:
        identifier: Simulator UDID, adb serial, or AVD name for an emulator
            that is not running yet.
        name: Human-readable device name.
        os_kind: Operating system of the device.
        booted: Whether the device is booted (virtual) or reachable (physical).
        os_version: Runtime/OS version when known ("18.5", "14").
        physical: True for real hardware.
    """

    identifier: str
    name: str
    os_kind: OsKind
    booted: bool = False
    os_version: str | None = None
    physical: bool = False

    def as_booted(self, identifier: str | None = None) -> DeviceHandle:
        return replace(self, booted=True, identifier=identifier or self.identifier)

    def __str__(self) -> str:
        version = f" {self.os_kind.value} {self.os_version}" if self.os_version else ""
        return f"{self.name} ({self.identifier}){version}"


DevicePrompt = Callable[[Sequence[DeviceHandle]], DeviceHandle]


@dataclass(frozen=True, slots=True)
class ResolveDeviceProps:
    """
    Options for DeviceManager.resolve; used only during resolution.

    Attributes:
        device: Preferred device, as a handle or a bare identifier.
        os_kind: Restrict candidates to one OS kind.
        should_prompt: Let the user choose among selectable devices first.
        prompt: Callback presenting the choice; required with `should_prompt`.
    """

    device: DeviceHandle | str | None = None
    os_kind: OsKind | None = None
    should_prompt: bool = False
    prompt: DevicePrompt | None = None

    @property
    def identifier(self) -> str | None:
        if isinstance(self.device, DeviceHandle):
            return self.device.identifier
        return self.device


__all__ = ["DeviceHandle", "DevicePrompt", "ResolveDeviceProps"]
