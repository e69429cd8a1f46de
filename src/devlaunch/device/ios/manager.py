from __future__ import annotations

import plistlib
import re
import subprocess
from collections.abc import Sequence
from pathlib import Path

from ...config.models import Settings
from ...errors import DevLaunchError, LaunchFailed, NoUriHandler, UnsupportedOperation
from ...platform import OsKind, Platform
from ..base import DeviceManager
from ..boot import BootSequencer
from ..handle import DeviceHandle
from .best_simulator import (
    get_best_booted_simulator,
    get_best_unbooted_simulator,
    get_selectable_simulators,
)
from .simctl import STATUS_APP_NOT_INSTALLED, STATUS_NO_URI_HANDLER, SimControl
from .simulator_app import activate_simulator_window, ensure_simulator_app_running

# Bundle identifier of the companion runtime on Apple platforms
EXPO_GO_BUNDLE_IDENTIFIER = "host.exp.Exponent"

# The companion bundle directory embeds its version: ".../Exponent-2.31.2.app"
_COMPANION_VERSION_RE = re.compile(r"Exponent-([0-9.]+).*\.app$")


class SimulatorBootSequencer(BootSequencer):
    """Boots iOS-family simulators through simctl."""

    timeout_message = "Simulator didn't boot fast enough."
    timeout_hint = "Try opening Simulator first, then running your app."

    def __init__(
        self,
        simctl: SimControl,
        *,
        timeout: float,
        poll_interval: float = 1.0,
        app_name: str = "Simulator",
    ) -> None:
        super().__init__(timeout=timeout, poll_interval=poll_interval)
        self.simctl = simctl
        self.app_name = app_name

    def find_booted(self, os_kind: OsKind | None) -> DeviceHandle | None:
        return get_best_booted_simulator(self.simctl, os_kind)

    def pick_unbooted(self, os_kind: OsKind | None) -> DeviceHandle:
        return get_best_unbooted_simulator(self.simctl, os_kind)

    def boot_and_wait(self, identifier: str) -> DeviceHandle | None:
        try:
            ensure_simulator_app_running(identifier, app_name=self.app_name)
        except OSError as e:
            # Booting works headless; the window only matters to the user
            self._log.warning(
                "Simulator app could not be opened",
                action="simulator_app_open",
                udid=identifier,
                error=str(e),
            )
        return self.simctl.wait_for_device_to_boot(
            identifier, timeout=self.timeout, poll_interval=self.poll_interval
        )


class AppleDeviceManager(DeviceManager[DeviceHandle]):
    """
    Device manager for iOS, tvOS, watchOS and visionOS simulators.
    """

    platform = Platform.IOS

    def __init__(self, device: DeviceHandle, settings: Settings | None = None) -> None:
        super().__init__(device, settings)
        self.simctl = SimControl(self.settings.ios.xcrun_bin)

    @classmethod
    def create_boot_sequencer(cls, settings: Settings) -> BootSequencer:
        return SimulatorBootSequencer(
            SimControl(settings.ios.xcrun_bin),
            timeout=settings.boot.ios_timeout,
            poll_interval=settings.boot.poll_interval,
            app_name=settings.ios.simulator_app,
        )

    @classmethod
    def get_selectable_devices(
        cls, os_kind: OsKind | None, settings: Settings
    ) -> Sequence[DeviceHandle]:
        return get_selectable_simulators(SimControl(settings.ios.xcrun_bin), os_kind)

    def get_app_version(self, application_id: str) -> str | None:
        if application_id != EXPO_GO_BUNDLE_IDENTIFIER:
            raise UnsupportedOperation(
                f"Only the companion app ({EXPO_GO_BUNDLE_IDENTIFIER}) supports version "
                f"fetching on iOS, got {application_id}."
            )
        local_path = self.simctl.get_container_path(self.identifier, application_id)
        if not local_path:
            return None

        m = _COMPANION_VERSION_RE.search(local_path)
        if not m:
            return None
        # "1.0.0." -> "1.0.0"
        return m.group(1).rstrip(".")

    def is_app_installed(self, application_id: str) -> bool:
        return bool(self.simctl.get_container_path(self.identifier, application_id))

    def uninstall_app(self, application_id: str) -> None:
        self._log.info("Uninstalling app", action="uninstall", app_id=application_id)
        try:
            self.simctl.uninstall(self.identifier, application_id)
        except subprocess.CalledProcessError:
            if self.is_app_installed(application_id):
                raise
            self._log.debug("App was not installed", action="uninstall", app_id=application_id)

    def launch_application_id(self, application_id: str) -> None:
        self._log.info("Launching app", action="launch", app_id=application_id)
        result = self.simctl.launch(self.identifier, application_id)
        if result.ok:
            self._activate_window_quietly()
            return

        not_installed = result.returncode == STATUS_APP_NOT_INSTALLED
        hint = None
        if not_installed:
            hint = (
                "The app might not be installed, try installing it with: "
                f"devlaunch install <path-to-app> --platform ios --device {self.identifier}"
            )
        raise LaunchFailed(
            application_id,
            self.name,
            status=result.returncode,
            stderr=result.stderr,
            not_installed=not_installed,
            hint=hint,
        )

    def get_application_id_from_binary(self, binary_path: str) -> str:
        info = Path(binary_path) / "Info.plist"
        try:
            with info.open("rb") as f:
                bundle_id = plistlib.load(f).get("CFBundleIdentifier")
        except (OSError, plistlib.InvalidFileException) as e:
            raise DevLaunchError(
                f"Couldn't read the bundle identifier of {binary_path}: {e}",
                code="INVALID_BINARY",
            ) from e
        if not bundle_id:
            raise DevLaunchError(
                f"{info} has no CFBundleIdentifier.", code="INVALID_BINARY"
            )
        return str(bundle_id)

    def _install_binary(self, binary_path: str) -> None:
        self.simctl.install(self.identifier, binary_path)

    def _open_url_on_device(self, url: str) -> None:
        try:
            self.simctl.open_url(self.identifier, url)
        except subprocess.CalledProcessError as e:
            # OSStatus -10814: no app conforms to the URI scheme
            if e.returncode == STATUS_NO_URI_HANDLER:
                raise NoUriHandler(url, self.name, self.identifier) from e
            raise

    def activate_window(self) -> None:
        ensure_simulator_app_running(self.identifier, app_name=self.settings.ios.simulator_app)
        # TODO: focus the window of this particular simulator, not just the app
        activate_simulator_window(self.settings.ios.simulator_app)

    def _activate_window_quietly(self) -> None:
        try:
            self.activate_window()
        except (OSError, subprocess.CalledProcessError) as e:
            self._log.warning(
                "Could not activate simulator window", action="activate_window", error=str(e)
            )

    def stop(self) -> None:
        self._log.info("Stopping simulator", action="simulator_stop", udid=self.identifier)
        self.simctl.shutdown(self.identifier)


__all__ = ["AppleDeviceManager", "SimulatorBootSequencer", "EXPO_GO_BUNDLE_IDENTIFIER"]

