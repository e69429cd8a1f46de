from __future__ import annotations

import subprocess
from dataclasses import dataclass

from ..config.models import Settings
from ..device.android.adb import AdbBridge
from ..device.android.manager import EXPO_GO_APPLICATION_IDENTIFIER, AndroidDeviceManager
from ..device.base import DeviceManager
from ..device.handle import DeviceHandle, ResolveDeviceProps
from ..platform import Platform
from ..project import resolve_application_id
from ..urls import UrlBuilder
from ..utils.logging import get_logger
from .base import LaunchProps, PlatformManager
from .companion import ensure_companion_runtime

DEFAULT_LAUNCH_ACTIVITY = ".MainActivity"


@dataclass(frozen=True, slots=True)
class AndroidLaunchProps(LaunchProps):
    """
    Attributes:
        launch_activity: Component to start ("com.app/.SplashActivity"); overrides
            the default "<application id>/.MainActivity".
    """

    launch_activity: str | None = None


def resolve_alternative_launch_url(
    application_id: str,
    props: AndroidLaunchProps | None = None,
    *,
    default_activity: str = DEFAULT_LAUNCH_ACTIVITY,
) -> str:
    if props is not None and props.launch_activity:
        return props.launch_activity
    return f"{application_id}/{default_activity}"


class AndroidPlatformStrategy:
    platform = Platform.ANDROID

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.adb = AdbBridge(settings.android.adb_bin)
        self._log = get_logger(__name__)

    def before_open(self) -> None:
        """
        Make the dev server reachable as 127.0.0.1 from every attached device.

        Best effort: a device that rejects the forward is only logged, the
        resolved target is checked again in `after_resolve`.
        """
        port = self.settings.dev_server.port
        for device in self.adb.list_attached():
            if not device.online:
                self._log.debug(
                    "Skipping offline device", action="adb_reverse", udid=device.serial
                )
                continue
            try:
                self.adb.reverse(device.serial, port)
            except subprocess.CalledProcessError as e:
                self._log.warning(
                    "adb reverse failed",
                    action="adb_reverse",
                    udid=device.serial,
                    port=port,
                    error=str(e),
                )

    def after_resolve(self, device_manager: DeviceManager[DeviceHandle]) -> None:
        # The target may have been booted after `before_open` ran
        if isinstance(device_manager, AndroidDeviceManager):
            device_manager.reverse_port(self.settings.dev_server.port)

    def ensure_device_has_valid_companion(self, device_manager: DeviceManager[DeviceHandle]) -> bool:
        return ensure_companion_runtime(
            device_manager,
            EXPO_GO_APPLICATION_IDENTIFIER,
            min_version=self.settings.companion.min_version,
            binary_path=self.settings.companion.android_binary,
        )

    def resolve_existing_application_id(self) -> str:
        return resolve_application_id(self.settings.project_root, Platform.ANDROID)

    def resolve_alternative_launch_url(
        self, application_id: str, props: AndroidLaunchProps | None = None
    ) -> str:
        return resolve_alternative_launch_url(
            application_id, props, default_activity=self.settings.android.default_activity
        )


def create_android_platform_manager(
    settings: Settings | None = None,
) -> PlatformManager[DeviceHandle, AndroidLaunchProps]:
    settings = settings or Settings()
    urls = UrlBuilder(settings.dev_server)

    def resolve_device(props: ResolveDeviceProps) -> AndroidDeviceManager:
        return AndroidDeviceManager.resolve(props, settings)

    return PlatformManager(
        AndroidPlatformStrategy(settings),
        resolve_device=resolve_device,
        get_dev_server_url=urls.dev_server_url,
        construct_loading_url=lambda: urls.loading_url(Platform.ANDROID.value),
        construct_manifest_url=urls.manifest_url,
    )


__all__ = [
    "AndroidLaunchProps",
    "AndroidPlatformStrategy",
    "DEFAULT_LAUNCH_ACTIVITY",
    "create_android_platform_manager",
    "resolve_alternative_launch_url",
]
