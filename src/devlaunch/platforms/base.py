from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Protocol, TypeVar, Union, assert_never

from ..device.base import DeviceManager
from ..device.handle import DeviceHandle, ResolveDeviceProps
from ..errors import AppNotInstalled, DevServerNotRunning
from ..platform import Platform
from ..utils.logging import get_logger

D = TypeVar("D", bound=DeviceHandle)
P = TypeVar("P", bound="LaunchProps")


@dataclass(frozen=True, slots=True)
class LaunchProps:
    """
    Launch properties of a custom (development build) open request.

    Attributes:
        scheme: Deep-link scheme of the development build; when set, the
            build is opened through its deep link instead of by identifier.
    """

    scheme: str | None = None


# ---- Open requests: one variant per runtime mode ----
@dataclass(frozen=True, slots=True)
class OpenCompanionApp:
    """Open the project in the companion runtime."""

    runtime: ClassVar[str] = "companionApp"


@dataclass(frozen=True, slots=True)
class OpenWeb:
    """Open the web preview of the project."""

    runtime: ClassVar[str] = "web"


@dataclass(frozen=True, slots=True)
class OpenCustom(Generic[P]):
    """Open the project's own development build."""

    props: P | None = None
    runtime: ClassVar[str] = "custom"


OpenRequest = Union[OpenCompanionApp, OpenWeb, OpenCustom[Any]]


@dataclass(frozen=True, slots=True)
class OpenResult:
    """What was opened, for caller-side reporting."""

    url: str
    device: DeviceHandle | None = None


class PlatformStrategy(Protocol[D, P]):
    """
    Platform-specific behavior plugged into PlatformManager.

    `before_open` runs before device resolution, for steps later ones depend on
    (Android forwards the dev-server port with `adb reverse`). `after_resolve`
    runs on the resolved device, which may have been booted in between.
    """

    platform: Platform

    def before_open(self) -> None: ...

    def after_resolve(self, device_manager: DeviceManager[D]) -> None: ...

    def ensure_device_has_valid_companion(self, device_manager: DeviceManager[D]) -> bool: ...

    def resolve_existing_application_id(self) -> str: ...

    def resolve_alternative_launch_url(self, application_id: str, props: P | None = None) -> str: ...


class PlatformManager(Generic[D, P]):
    """
    Platform-agnostic "open" orchestration.

    resolve device -> prepare it -> validate companion runtime -> compute target -> launch.
    Each step depends on the previous one, nothing runs in parallel.
    """

    def __init__(
        self,
        strategy: PlatformStrategy[D, P],
        *,
        resolve_device: Callable[[ResolveDeviceProps], DeviceManager[D]],
        get_dev_server_url: Callable[[], str | None],
        construct_loading_url: Callable[[], str | None],
        construct_manifest_url: Callable[[str | None], str | None],
    ) -> None:
        self.strategy = strategy
        self.resolve_device = resolve_device
        self.get_dev_server_url = get_dev_server_url
        self.construct_loading_url = construct_loading_url
        self.construct_manifest_url = construct_manifest_url
        self._log = get_logger(__name__)

    @property
    def platform(self) -> Platform:
        return self.strategy.platform

    def open(
        self,
        options: OpenRequest,
        resolve_props: ResolveDeviceProps | None = None,
    ) -> OpenResult:
        """
        Open the project on a device of this platform.

        Returns:
            OpenResult: The URL or identifier actually opened, and the device.
        """
        self._log.info(
            "Opening project", action="open", platform=self.platform.value, runtime=options.runtime
        )
        self.strategy.before_open()
        device_manager = self.resolve_device(resolve_props or ResolveDeviceProps())
        self.strategy.after_resolve(device_manager)

        match options:
            case OpenCompanionApp():
                url = self._open_in_companion(device_manager)
            case OpenWeb():
                url = self._open_web(device_manager)
            case OpenCustom(props=props):
                url = self._open_custom(device_manager, props)
            case _:
                assert_never(options)

        return OpenResult(url=url, device=device_manager.device)

    def _open_in_companion(self, device_manager: DeviceManager[D]) -> str:
        self.strategy.ensure_device_has_valid_companion(device_manager)
        url = self.construct_loading_url() or self.construct_manifest_url(None)
        if not url:
            raise DevServerNotRunning("Couldn't build a URL for the companion app.")
        device_manager.open_url(url)
        return url

    def _open_web(self, device_manager: DeviceManager[D]) -> str:
        url = self.get_dev_server_url()
        if not url:
            raise DevServerNotRunning(
                "The web preview is not available.", hint="Start the development server first."
            )
        device_manager.open_url(url)
        return url

    def _open_custom(self, device_manager: DeviceManager[D], props: P | None) -> str:
        application_id = self.strategy.resolve_existing_application_id()
        if not device_manager.is_app_installed(application_id):
            raise AppNotInstalled(
                f"The development build ({application_id}) for this project is not installed "
                f"on {device_manager.name}.",
                hint="Build and install the app on the device first.",
            )

        url = None
        if props is not None and props.scheme:
            url = self.construct_manifest_url(props.scheme)
        if not url:
            url = self.strategy.resolve_alternative_launch_url(application_id, props)

        device_manager.open_url(url)
        return url


__all__ = [
    "LaunchProps",
    "OpenCompanionApp",
    "OpenWeb",
    "OpenCustom",
    "OpenRequest",
    "OpenResult",
    "PlatformStrategy",
    "PlatformManager",
]
