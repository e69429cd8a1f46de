from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Generic, TypeVar

from ..config.models import Settings
from ..errors import UnsupportedOperation
from ..platform import OsKind, Platform
from ..utils.logging import bind_context, get_logger
from ..utils.url import validate_url
from .boot import BootSequencer
from .handle import DeviceHandle, ResolveDeviceProps
from .install import wait_until_installed

D = TypeVar("D", bound=DeviceHandle)
M = TypeVar("M", bound="DeviceManager")


class DeviceManager(ABC, Generic[D]):
    """
    Controller bound to exactly one device for its lifetime.

    Implementations exist per platform; after `resolve` returns, the wrapped
    device is booted (virtual) or reachable (physical). Managers are not
    reentrant: concurrent sessions against the same device must be serialized
    by the caller.
    """

    platform: Platform

    def __init__(self, device: D, settings: Settings | None = None) -> None:
        self.device = device
        self.settings = settings or Settings()
        self._log = get_logger(type(self).__module__)
        bind_context(platform=self.platform.value, device=device.name, udid=device.identifier)

    @property
    def name(self) -> str:
        return self.device.name

    @property
    def identifier(self) -> str:
        return self.device.identifier

    # ------------------------
    # Resolution
    # ------------------------
    @classmethod
    def resolve(
        cls: type[M],
        props: ResolveDeviceProps | None = None,
        settings: Settings | None = None,
    ) -> M:
        """
        Resolve, boot and wrap a device.

        With `props.should_prompt`, selectable devices are listed and the user
        picks one through `props.prompt`; exactly that device is then booted.
        Otherwise the boot sequencer runs with the given filters.
        """
        props = props or ResolveDeviceProps()
        settings = settings or Settings()
        identifier = props.identifier

        if props.should_prompt:
            if props.prompt is None:
                raise UnsupportedOperation("Interactive device selection needs a prompt callback.")
            devices = cls.get_selectable_devices(props.os_kind, settings)
            chosen = props.prompt(devices)
            identifier = chosen.identifier

        sequencer = cls.create_boot_sequencer(settings)
        booted = sequencer.ensure_booted(
            identifier, props.os_kind, allow_retry=settings.boot.allow_retry
        )
        return cls(booted, settings)

    @classmethod
    @abstractmethod
    def create_boot_sequencer(cls, settings: Settings) -> BootSequencer:
        ...

    @classmethod
    @abstractmethod
    def get_selectable_devices(
        cls, os_kind: OsKind | None, settings: Settings
    ) -> Sequence[DeviceHandle]:
        """List devices a user may pick from, booted or not."""
        ...

    # ------------------------
    # Application operations
    # ------------------------
    @abstractmethod
    def get_app_version(self, application_id: str) -> str | None:
        """
        Return the installed version of `application_id`, or None if not installed.

        Raises:
            UnsupportedOperation: If the implementation cannot inspect this app.
        """
        ...

    @abstractmethod
    def is_app_installed(self, application_id: str) -> bool:
        ...

    @abstractmethod
    def uninstall_app(self, application_id: str) -> None:
        """Remove the app; uninstalling an absent app is not an error."""
        ...

    @abstractmethod
    def launch_application_id(self, application_id: str) -> None:
        """
        Launch an installed app.

        Raises:
            LaunchFailed: With `not_installed` set when the OS reports the app missing.
        """
        ...

    @abstractmethod
    def get_application_id_from_binary(self, binary_path: str) -> str:
        ...

    @abstractmethod
    def _install_binary(self, binary_path: str) -> None:
        ...

    @abstractmethod
    def _open_url_on_device(self, url: str) -> None:
        """Ask the OS to open `url`; raise NoUriHandler when no app handles its scheme."""
        ...

    def install_app(self, binary_path: str, application_id: str | None = None) -> None:
        """
        Push a binary to the device and return once the app is visible.

        Raises:
            InstallConvergenceTimeout: If the app never shows up in the registry.
        """
        application_id = application_id or self.get_application_id_from_binary(binary_path)
        self._log.info(
            "Installing app", action="install", app_id=application_id, binary=binary_path
        )
        self._install_binary(binary_path)
        wait_until_installed(self.is_app_installed, application_id, self.settings.install)

    def open_url(self, url: str) -> None:
        """
        Open a URL on the device.

        Strings without a scheme are treated as application identifiers and
        launched with `launch_application_id`.
        """
        if not validate_url(url, require_protocol=True):
            self.launch_application_id(url)
            return
        self._log.info("Opening URL", action="open_url", url=url)
        self._open_url_on_device(url)

    # ------------------------
    # Device lifecycle
    # ------------------------
    def start(self) -> DeviceHandle:
        """
        Ensure the device is booted and, best-effort, in the foreground.

        Window activation failures are logged and ignored once boot succeeded.
        """
        sequencer = self.create_boot_sequencer(self.settings)
        self.device = sequencer.ensure_booted(
            self.device.identifier,
            self.device.os_kind,
            allow_retry=self.settings.boot.allow_retry,
        )
        try:
            self.activate_window()
        except Exception as e:  # noqa: BLE001 - window focus is advisory
            self._log.warning(
                "Could not bring device window to the foreground",
                action="activate_window",
                error=str(e),
            )
        return self.device

    def activate_window(self) -> None:
        """Bring the device window to the foreground; no-op by default."""

    @abstractmethod
    def stop(self) -> None:
        """Shut the device down."""
        ...


__all__ = ["DeviceManager"]
