from __future__ import annotations

from dataclasses import dataclass

from ..config.models import Settings
from ..device.base import DeviceManager
from ..device.handle import DeviceHandle, ResolveDeviceProps
from ..device.ios.manager import EXPO_GO_BUNDLE_IDENTIFIER, AppleDeviceManager
from ..platform import Platform
from ..project import resolve_application_id
from ..urls import UrlBuilder
from .base import LaunchProps, PlatformManager
from .companion import ensure_companion_runtime


@dataclass(frozen=True, slots=True)
class AppleLaunchProps(LaunchProps):
    """
    Attributes:
        launch_url: URL or bundle identifier to open instead of the project's own
            bundle identifier.
    """

    launch_url: str | None = None


def resolve_alternative_launch_url(
    application_id: str, props: AppleLaunchProps | None = None
) -> str:
    # A bare bundle identifier is launched through simctl
    if props is not None and props.launch_url:
        return props.launch_url
    return application_id


class ApplePlatformStrategy:
    platform = Platform.IOS

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def before_open(self) -> None:
        # Simulators share the host network
        return None

    def after_resolve(self, device_manager: DeviceManager[DeviceHandle]) -> None:
        return None

    def ensure_device_has_valid_companion(self, device_manager: DeviceManager[DeviceHandle]) -> bool:
        return ensure_companion_runtime(
            device_manager,
            EXPO_GO_BUNDLE_IDENTIFIER,
            min_version=self.settings.companion.min_version,
            binary_path=self.settings.companion.ios_binary,
        )

    def resolve_existing_application_id(self) -> str:
        return resolve_application_id(self.settings.project_root, Platform.IOS)

    def resolve_alternative_launch_url(
        self, application_id: str, props: AppleLaunchProps | None = None
    ) -> str:
        return resolve_alternative_launch_url(application_id, props)


def create_apple_platform_manager(
    settings: Settings | None = None,
) -> PlatformManager[DeviceHandle, AppleLaunchProps]:
    settings = settings or Settings()
    urls = UrlBuilder(settings.dev_server)

    def resolve_device(props: ResolveDeviceProps) -> AppleDeviceManager:
        return AppleDeviceManager.resolve(props, settings)

    return PlatformManager(
        ApplePlatformStrategy(settings),
        resolve_device=resolve_device,
        get_dev_server_url=urls.dev_server_url,
        construct_loading_url=lambda: urls.loading_url(Platform.IOS.value),
        construct_manifest_url=urls.manifest_url,
    )


__all__ = [
    "AppleLaunchProps",
    "ApplePlatformStrategy",
    "create_apple_platform_manager",
    "resolve_alternative_launch_url",
]
