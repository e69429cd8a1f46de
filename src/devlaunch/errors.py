from __future__ import annotations


class DevLaunchError(Exception):
    """
    Base class for failures reported by device orchestration.

    Every error carries a stable `code` so that callers (the CLI in particular)
    can tell failure kinds apart, and an optional human-readable `hint` with a
    remediation step.
    """

    code = "DEVLAUNCH_ERROR"

    def __init__(self, message: str, *, hint: str | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n{self.hint}"
        return self.message


class BootTimeout(DevLaunchError):
    """Device did not report ready within the allotted wait, after one retry."""

    code = "BOOT_TIMEOUT"

    def __init__(self, message: str, *, identifier: str | None = None, hint: str | None = None):
        super().__init__(message, hint=hint)
        self.identifier = identifier


class LaunchFailed(DevLaunchError):
    """
    The OS refused to launch an application identifier.

    `not_installed` is set when the platform status code says the app is
    missing; in that case `hint` suggests how to install it.
    """

    code = "LAUNCH_FAILED"

    def __init__(
        self,
        application_id: str,
        device_name: str,
        *,
        status: int | None = None,
        stderr: str = "",
        not_installed: bool = False,
        hint: str | None = None,
    ) -> None:
        message = f'Couldn\'t open app with ID "{application_id}" on device "{device_name}".'
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message, hint=hint)
        self.application_id = application_id
        self.device_name = device_name
        self.status = status
        self.stderr = stderr
        self.not_installed = not_installed


class NoUriHandler(DevLaunchError):
    """No application on the device declares the scheme of the URL."""

    code = "NO_URI_HANDLER"

    def __init__(self, url: str, device_name: str, identifier: str) -> None:
        super().__init__(f"Device {device_name} ({identifier}) has no app to handle the URI: {url}")
        self.url = url


class UnsupportedOperation(DevLaunchError):
    code = "UNSUPPORTED_OPERATION"


class InstallConvergenceTimeout(DevLaunchError):
    """An install command returned but the app never became visible on the device."""

    code = "INSTALL_CONVERGENCE_TIMEOUT"

    def __init__(self, application_id: str, timeout: float) -> None:
        super().__init__(
            f'App "{application_id}" was not reported as installed within {timeout} seconds.',
            hint="The install may have failed silently; try installing the binary again.",
        )
        self.application_id = application_id
        self.timeout = timeout


class DeviceNotFound(DevLaunchError):
    code = "DEVICE_NOT_FOUND"


class AppNotInstalled(DevLaunchError):
    code = "APP_NOT_INSTALLED"


class DevServerNotRunning(DevLaunchError):
    code = "DEV_SERVER_NOT_RUNNING"


__all__ = [
    "DevLaunchError",
    "BootTimeout",
    "LaunchFailed",
    "NoUriHandler",
    "UnsupportedOperation",
    "InstallConvergenceTimeout",
    "DeviceNotFound",
    "AppNotInstalled",
    "DevServerNotRunning",
]
