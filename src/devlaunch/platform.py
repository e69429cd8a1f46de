from __future__ import annotations

from enum import Enum


class Platform(str, Enum):
    """
    Enumeration for supported device platforms.

    Used to select the device manager, the launch strategy and the
    companion runtime identifier for an open request.
    """

    ANDROID = "android"
    IOS = "ios"


class OsKind(str, Enum):
    """
    Operating system reported by a concrete device or simulator.

    Apple simulators are grouped by runtime family (iOS, tvOS, watchOS, xrOS);
    every Android emulator or phone reports ANDROID.
    """

    IOS = "iOS"
    TVOS = "tvOS"
    WATCHOS = "watchOS"
    XROS = "xrOS"
    ANDROID = "Android"

    @property
    def platform(self) -> Platform:
        return Platform.ANDROID if self is OsKind.ANDROID else Platform.IOS

    @classmethod
    def from_runtime(cls, runtime: str) -> OsKind | None:
        """
        Map a simctl runtime key to an OS kind.

        Accepts both "iOS 18.5" and "com.apple.CoreSimulator.SimRuntime.iOS-18-5".
        """
        label = runtime.split("SimRuntime.")[-1]
        for kind in (cls.IOS, cls.TVOS, cls.WATCHOS, cls.XROS):
            if label.startswith(kind.value):
                return kind
        return None
