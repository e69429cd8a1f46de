from .android import AndroidLaunchProps, create_android_platform_manager
from .base import (
    LaunchProps,
    OpenCompanionApp,
    OpenCustom,
    OpenRequest,
    OpenResult,
    OpenWeb,
    PlatformManager,
    PlatformStrategy,
)
from .factory import create_platform_manager, get_device_manager_class
from .ios import AppleLaunchProps, create_apple_platform_manager

__all__ = [
    "LaunchProps",
    "AndroidLaunchProps",
    "AppleLaunchProps",
    "OpenCompanionApp",
    "OpenWeb",
    "OpenCustom",
    "OpenRequest",
    "OpenResult",
    "PlatformStrategy",
    "PlatformManager",
    "create_platform_manager",
    "create_android_platform_manager",
    "create_apple_platform_manager",
    "get_device_manager_class",
]
