from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from enum import Enum

import typer

from devlaunch.config.loader import load_settings
from devlaunch.config.models import Settings
from devlaunch.device.handle import DeviceHandle, ResolveDeviceProps
from devlaunch.errors import DeviceNotFound, DevLaunchError
from devlaunch.platform import OsKind, Platform
from devlaunch.platforms.android import AndroidLaunchProps
from devlaunch.platforms.base import OpenCompanionApp, OpenCustom, OpenRequest, OpenWeb
from devlaunch.platforms.factory import create_platform_manager, get_device_manager_class
from devlaunch.platforms.ios import AppleLaunchProps
from devlaunch.utils.logging import get_logger

# Create a CLI application using Typer
app = typer.Typer(add_completion=False, help="Boot devices and open projects on them.")

_log = get_logger(__name__)


class Runtime(str, Enum):
    COMPANION = "companion"
    WEB = "web"
    CUSTOM = "custom"


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Print orchestration failures with their hint and exit with status 1."""
    try:
        yield
    except DevLaunchError as e:
        _log.error("Command failed", action="cli", code=e.code, error=e.message)
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1) from e


def _prompt_for_device(devices: Sequence[DeviceHandle]) -> DeviceHandle:
    if not devices:
        raise DeviceNotFound("No devices available to choose from.")
    for index, device in enumerate(devices, start=1):
        state = "booted" if device.booted else "shutdown"
        typer.echo(f"{index}) {device} [{state}]")
    while True:
        choice = typer.prompt("Select a device", type=int)
        if 1 <= choice <= len(devices):
            return devices[choice - 1]
        typer.echo(f"Enter a number between 1 and {len(devices)}.", err=True)


def _resolve_props(
    device: str | None, os_kind: OsKind | None, prompt: bool
) -> ResolveDeviceProps:
    return ResolveDeviceProps(
        device=device,
        os_kind=os_kind,
        should_prompt=prompt,
        prompt=_prompt_for_device if prompt else None,
    )


def _settings_and_platform(
    config: str | None, platform: Platform | None
) -> tuple[Settings, Platform]:
    settings = load_settings(config)
    return settings, platform or settings.platform


def build_open_request(
    runtime: Runtime,
    platform: Platform,
    *,
    scheme: str | None = None,
    launch_activity: str | None = None,
    launch_url: str | None = None,
) -> OpenRequest:
    """
    Map CLI options to an open request.

    Launch overrides only apply to the custom runtime. For Android only
    `launch_activity` is used, for iOS only `launch_url`.
    """
    if runtime is Runtime.COMPANION:
        return OpenCompanionApp()
    if runtime is Runtime.WEB:
        return OpenWeb()
    if platform is Platform.ANDROID:
        return OpenCustom(AndroidLaunchProps(scheme=scheme, launch_activity=launch_activity))
    return OpenCustom(AppleLaunchProps(scheme=scheme, launch_url=launch_url))


@app.command("open")
def open_project(
    platform: Platform = typer.Option(None, help="android|ios (defaults to the config)"),
    runtime: Runtime = typer.Option(Runtime.COMPANION, help="companion|web|custom"),
    device: str = typer.Option(None, help="Device identifier: UDID, adb serial or AVD name"),
    os_kind: OsKind = typer.Option(None, case_sensitive=False, help="iOS|tvOS|watchOS|xrOS|Android"),
    prompt: bool = typer.Option(False, "--prompt", help="Choose the device interactively"),
    launch_activity: str = typer.Option(None, help="Android component to start (custom runtime)"),
    launch_url: str = typer.Option(None, help="iOS URL or bundle id to open (custom runtime)"),
    scheme: str = typer.Option(None, help="Deep-link scheme of the development build"),
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
) -> None:
    """
    Open the project on a device and print the URL or identifier that was opened.

    Example usage:
        devlaunch open --platform android --runtime custom --launch-activity com.app/.Splash
    """
    with _reporting_errors():
        settings, platform = _settings_and_platform(config, platform)
        if scheme is None and not (launch_activity or launch_url):
            scheme = settings.dev_server.scheme
        request = build_open_request(
            runtime,
            platform,
            scheme=scheme,
            launch_activity=launch_activity,
            launch_url=launch_url,
        )
        manager = create_platform_manager(platform, settings)
        result = manager.open(request, _resolve_props(device, os_kind, prompt))
    typer.echo(result.url)


@app.command("devices")
def list_devices(
    platform: Platform = typer.Option(None, help="android|ios (defaults to the config)"),
    os_kind: OsKind = typer.Option(None, case_sensitive=False, help="Filter by OS kind"),
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
) -> None:
    """List the devices that can be selected, booted ones first."""
    with _reporting_errors():
        settings, platform = _settings_and_platform(config, platform)
        devices = get_device_manager_class(platform).get_selectable_devices(os_kind, settings)
    for device in devices:
        typer.echo(f"{device}\t{'booted' if device.booted else 'shutdown'}")


@app.command("install")
def install(
    binary: str = typer.Argument(..., help="Path to the .apk or .app to install"),
    app_id: str = typer.Option(None, help="Application id (read from the binary when omitted)"),
    platform: Platform = typer.Option(None, help="android|ios (defaults to the config)"),
    device: str = typer.Option(None, help="Device identifier: UDID, adb serial or AVD name"),
    os_kind: OsKind = typer.Option(None, case_sensitive=False, help="Filter by OS kind"),
    prompt: bool = typer.Option(False, "--prompt", help="Choose the device interactively"),
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
) -> None:
    """Install a binary and wait until the device reports it installed."""
    with _reporting_errors():
        settings, platform = _settings_and_platform(config, platform)
        manager = get_device_manager_class(platform).resolve(
            _resolve_props(device, os_kind, prompt), settings
        )
        manager.install_app(binary, app_id)
    typer.echo(f"Installed {binary} on {manager.device}")


@app.command("uninstall")
def uninstall(
    app_id: str = typer.Argument(..., help="Application id to remove"),
    platform: Platform = typer.Option(None, help="android|ios (defaults to the config)"),
    device: str = typer.Option(None, help="Device identifier: UDID, adb serial or AVD name"),
    os_kind: OsKind = typer.Option(None, case_sensitive=False, help="Filter by OS kind"),
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
) -> None:
    """Remove an app; removing an app that is not installed succeeds."""
    with _reporting_errors():
        settings, platform = _settings_and_platform(config, platform)
        manager = get_device_manager_class(platform).resolve(
            _resolve_props(device, os_kind, False), settings
        )
        manager.uninstall_app(app_id)
    typer.echo(f"Uninstalled {app_id} from {manager.device}")


if __name__ == "__main__":
    app()
