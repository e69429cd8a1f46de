from __future__ import annotations

from typing import Any

from ..device.base import DeviceManager
from ..errors import AppNotInstalled
from ..utils.logging import get_logger

_log = get_logger(__name__)


def _version_tuple(version: str) -> tuple[int, ...]:
    parts: list[int] = []
    for raw in version.split("."):
        digits = "".join(ch for ch in raw if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


def is_outdated(installed: str, minimum: str | None) -> bool:
    if not minimum:
        return False
    return _version_tuple(installed) < _version_tuple(minimum)


def ensure_companion_runtime(
    device_manager: DeviceManager[Any],
    application_id: str,
    *,
    min_version: str | None = None,
    binary_path: str | None = None,
) -> bool:
    """
    Make sure the companion runtime is installed and recent enough.

    Returns:
        True if the runtime was installed or updated by this call.

    Raises:
        AppNotInstalled: If the runtime is missing and no binary is available.
    """
    installed = device_manager.get_app_version(application_id)
    if installed is None and device_manager.is_app_installed(application_id):
        # Installed, but the version can't be read from the bundle
        _log.debug("Companion runtime version unknown", action="companion_check", app_id=application_id)
        return False
    if installed is not None and not is_outdated(installed, min_version):
        _log.debug(
            "Companion runtime is up to date",
            action="companion_check",
            app_id=application_id,
            version=installed,
        )
        return False

    if binary_path is None:
        if installed is None:
            raise AppNotInstalled(
                f"The companion app ({application_id}) is not installed on {device_manager.name}.",
                hint="Install it from the store, or set companion binaries in the devlaunch config.",
            )
        _log.warning(
            "Companion runtime is outdated and no binary is configured to update it",
            action="companion_check",
            app_id=application_id,
            version=installed,
            min_version=min_version,
        )
        return False

    if installed is not None:
        _log.info(
            "Updating companion runtime",
            action="companion_update",
            app_id=application_id,
            version=installed,
            min_version=min_version,
        )
        device_manager.uninstall_app(application_id)
    device_manager.install_app(binary_path, application_id)
    return True


__all__ = ["ensure_companion_runtime", "is_outdated"]
