from __future__ import annotations

import subprocess
from collections.abc import Sequence

from ...config.models import Settings
from ...errors import DevLaunchError, LaunchFailed, NoUriHandler
from ...platform import OsKind, Platform
from ..base import DeviceManager
from ..boot import BootSequencer
from ..handle import DeviceHandle
from .adb import AdbBridge, read_apk_package
from .emulator import EmulatorBootSequencer, list_avds

# Package name of the companion runtime on Android
EXPO_GO_APPLICATION_IDENTIFIER = "host.exp.exponent"

_NOT_INSTALLED_MARKERS = (
    "Error type 3",
    "does not exist",
    "No activities found to run",
)
_NO_HANDLER_MARKER = "unable to resolve Intent"


class AndroidDeviceManager(DeviceManager[DeviceHandle]):
    """
    Device manager for Android emulators and USB/Wi-Fi connected phones.
    """

    platform = Platform.ANDROID

    def __init__(self, device: DeviceHandle, settings: Settings | None = None) -> None:
        super().__init__(device, settings)
        self.adb = AdbBridge(self.settings.android.adb_bin)

    @classmethod
    def create_boot_sequencer(cls, settings: Settings) -> BootSequencer:
        return EmulatorBootSequencer(
            AdbBridge(settings.android.adb_bin),
            timeout=settings.boot.android_timeout,
            poll_interval=settings.boot.poll_interval,
            emulator_bin=settings.android.emulator_bin,
            first_port=settings.android.emulator_port,
            headless=settings.android.headless,
        )

    @classmethod
    def get_selectable_devices(
        cls, os_kind: OsKind | None, settings: Settings
    ) -> Sequence[DeviceHandle]:
        attached = AdbBridge(settings.android.adb_bin).attached_devices()
        running = {d.name for d in attached}
        avds = [
            DeviceHandle(identifier=avd, name=avd, os_kind=OsKind.ANDROID)
            for avd in list_avds(settings.android.emulator_bin)
            if avd not in running
        ]
        return [*attached, *avds]

    def get_app_version(self, application_id: str) -> str | None:
        return self.adb.get_package_version(self.identifier, application_id)

    def is_app_installed(self, application_id: str) -> bool:
        return self.adb.is_package_installed(self.identifier, application_id)

    def uninstall_app(self, application_id: str) -> None:
        if not self.is_app_installed(application_id):
            self._log.debug("App was not installed", action="uninstall", app_id=application_id)
            return
        self._log.info("Uninstalling app", action="uninstall", app_id=application_id)
        out = self.adb.uninstall(self.identifier, application_id)
        if (not out.ok or "Failure" in out.output) and self.is_app_installed(application_id):
            raise subprocess.CalledProcessError(
                out.returncode or 1, out.args, out.stdout, out.stderr
            )

    def launch_application_id(self, application_id: str) -> None:
        """
        Launch an app by component ("pkg/.MainActivity") or by package name.

        Bare package names go through the launcher intent of the package.
        """
        self._log.info("Launching app", action="launch", app_id=application_id)
        if "/" in application_id:
            out = self.adb.start_activity(self.identifier, application_id)
        else:
            out = self.adb.launch_package(self.identifier, application_id)

        text = out.output
        failed = not out.ok or "Error" in text or "aborted" in text
        if not failed:
            return

        not_installed = any(marker in text for marker in _NOT_INSTALLED_MARKERS)
        hint = None
        if not_installed:
            hint = (
                "The app might not be installed, try installing it with: "
                f"devlaunch install <path-to-apk> --platform android --device {self.identifier}"
            )
        raise LaunchFailed(
            application_id,
            self.name,
            status=out.returncode,
            stderr=text,
            not_installed=not_installed,
            hint=hint,
        )

    def get_application_id_from_binary(self, binary_path: str) -> str:
        package = read_apk_package(binary_path)
        if not package:
            raise DevLaunchError(
                f"Couldn't read the package name of {binary_path}.",
                hint="Pass the application id explicitly with --app-id.",
                code="INVALID_BINARY",
            )
        return package

    def _install_binary(self, binary_path: str) -> None:
        self.adb.install(self.identifier, binary_path)

    def _open_url_on_device(self, url: str) -> None:
        out = self.adb.open_url(self.identifier, url)
        if _NO_HANDLER_MARKER in out.output:
            raise NoUriHandler(url, self.name, self.identifier)
        if not out.ok:
            raise subprocess.CalledProcessError(out.returncode, out.args, out.stdout, out.stderr)

    def reverse_port(self, port: int) -> None:
        """Make host port `port` reachable as 127.0.0.1:`port` on this device."""
        try:
            self.adb.reverse(self.identifier, port)
        except subprocess.CalledProcessError as e:
            raise DevLaunchError(
                f"Couldn't forward port {port} to {self.name} with adb reverse.",
                hint=f"Run `adb -s {self.identifier} reverse tcp:{port} tcp:{port}` to see the error.",
                code="ADB_REVERSE_FAILED",
            ) from e

    def stop(self) -> None:
        self._log.info("Stopping Android device", action="emulator_stop", udid=self.identifier)
        if self.device.physical:
            return
        self.adb.emu_kill(self.identifier)


__all__ = ["AndroidDeviceManager", "EXPO_GO_APPLICATION_IDENTIFIER"]
