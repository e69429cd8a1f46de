from __future__ import annotations

from typing import Any

from ..config.models import Settings
from ..device.android.manager import AndroidDeviceManager
from ..device.base import DeviceManager
from ..device.handle import DeviceHandle
from ..device.ios.manager import AppleDeviceManager
from ..platform import Platform
from .android import create_android_platform_manager
from .base import PlatformManager
from .ios import create_apple_platform_manager


def get_device_manager_class(platform: Platform | str) -> type[DeviceManager[DeviceHandle]]:
    """Return the DeviceManager implementation for `platform`."""
    if Platform(platform) is Platform.IOS:
        return AppleDeviceManager
    return AndroidDeviceManager


def create_platform_manager(
    platform: Platform | str, settings: Settings | None = None
) -> PlatformManager[DeviceHandle, Any]:
    """
    Build the PlatformManager for `platform`.

    Raises:
        ValueError: If `platform` is not "android" or "ios".
    """
    if Platform(platform) is Platform.IOS:
        return create_apple_platform_manager(settings)
    return create_android_platform_manager(settings)


__all__ = ["create_platform_manager", "get_device_manager_class"]
