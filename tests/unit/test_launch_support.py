from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from conftest import FakeShell

from devlaunch.config.models import DevServerSettings, Settings
from devlaunch.device.android.manager import AndroidDeviceManager
from devlaunch.device.ios.manager import AppleDeviceManager
from devlaunch.errors import AppNotInstalled, DevLaunchError
from devlaunch.platform import Platform
from devlaunch.platforms.android import AndroidPlatformStrategy, create_android_platform_manager
from devlaunch.platforms.base import OpenCompanionApp
from devlaunch.platforms.companion import ensure_companion_runtime, is_outdated
from devlaunch.platforms.factory import create_platform_manager, get_device_manager_class
from devlaunch.platforms.ios import ApplePlatformStrategy
from devlaunch.project import read_app_config, resolve_application_id
from devlaunch.urls import UrlBuilder


class CompanionDevice:
    """Just enough of a device manager for the companion checks."""

    name = "Test Phone"

    def __init__(self, version: str | None = None, installed: bool | None = None) -> None:
        self.version = version
        self.installed = installed if installed is not None else version is not None
        self.calls: list[tuple[str, ...]] = []

    def get_app_version(self, application_id: str) -> str | None:
        return self.version

    def is_app_installed(self, application_id: str) -> bool:
        return self.installed

    def uninstall_app(self, application_id: str) -> None:
        self.calls.append(("uninstall", application_id))
        self.installed = False

    def install_app(self, binary_path: str, application_id: str | None = None) -> None:
        self.calls.append(("install", binary_path))
        self.installed = True


# ------------------------
# URLs
# ------------------------
def test_url_builder_defaults() -> None:
    urls = UrlBuilder()

    assert urls.dev_server_url() == "http://127.0.0.1:8081"
    assert urls.loading_url("ios") == "http://127.0.0.1:8081/_expo/loading?platform=ios"
    assert urls.manifest_url() == "exp://127.0.0.1:8081"
    assert urls.manifest_url("exp") == "exp://127.0.0.1:8081"


def test_url_builder_custom_scheme_and_https() -> None:
    urls = UrlBuilder(DevServerSettings(host="192.168.1.20", port=19000, https=True))

    assert urls.dev_server_url() == "https://192.168.1.20:19000"
    assert (
        urls.manifest_url("myapp")
        == "myapp://expo-development-client/?url=https%3A%2F%2F192.168.1.20%3A19000"
    )


# ------------------------
# Project metadata
# ------------------------
def test_resolve_application_id_from_expo_config(tmp_path: Path) -> None:
    (tmp_path / "app.json").write_text(
        json.dumps(
            {
                "expo": {
                    "android": {"package": "com.example.android"},
                    "ios": {"bundleIdentifier": "com.example.ios"},
                }
            }
        ),
        encoding="utf-8",
    )

    assert resolve_application_id(tmp_path, Platform.ANDROID) == "com.example.android"
    assert resolve_application_id(tmp_path, Platform.IOS) == "com.example.ios"


def test_bare_app_config_is_accepted(tmp_path: Path) -> None:
    (tmp_path / "app.json").write_text(json.dumps({"ios": {"bundleIdentifier": "com.bare"}}))

    assert read_app_config(tmp_path) == {"ios": {"bundleIdentifier": "com.bare"}}
    assert resolve_application_id(tmp_path, Platform.IOS) == "com.bare"


def test_missing_application_id(tmp_path: Path) -> None:
    assert read_app_config(tmp_path) == {}
    with pytest.raises(DevLaunchError) as exc:
        resolve_application_id(tmp_path, Platform.ANDROID)
    assert exc.value.code == "NO_APPLICATION_ID"
    assert "android.package" in (exc.value.hint or "")


# ------------------------
# Companion runtime
# ------------------------
def test_is_outdated() -> None:
    assert is_outdated("2.30.9", "2.31.0")
    assert not is_outdated("2.31.0", "2.31.0")
    assert not is_outdated("54.0.1", "2.31.0")
    assert not is_outdated("1.0.0", None)


def test_companion_up_to_date_is_left_alone() -> None:
    device: Any = CompanionDevice("2.31.2")
    assert not ensure_companion_runtime(device, "host.exp.exponent", min_version="2.31.0")
    assert device.calls == []


def test_companion_missing_without_binary() -> None:
    with pytest.raises(AppNotInstalled):
        ensure_companion_runtime(CompanionDevice(), "host.exp.exponent")  # type: ignore[arg-type]


def test_companion_missing_is_installed_from_binary() -> None:
    device: Any = CompanionDevice()
    assert ensure_companion_runtime(device, "host.exp.exponent", binary_path="/bin/go.apk")
    assert device.calls == [("install", "/bin/go.apk")]


def test_outdated_companion_is_replaced() -> None:
    device: Any = CompanionDevice("2.0.0")
    assert ensure_companion_runtime(
        device, "host.exp.exponent", min_version="2.31.0", binary_path="/bin/go.apk"
    )
    assert device.calls == [("uninstall", "host.exp.exponent"), ("install", "/bin/go.apk")]


def test_outdated_companion_without_binary_only_warns() -> None:
    device: Any = CompanionDevice("2.0.0")
    assert not ensure_companion_runtime(device, "host.exp.exponent", min_version="2.31.0")
    assert device.calls == []


def test_companion_with_unreadable_version_counts_as_valid() -> None:
    device: Any = CompanionDevice(None, installed=True)
    assert not ensure_companion_runtime(device, "host.exp.Exponent", binary_path="/bin/Go.app")
    assert device.calls == []


# ------------------------
# Platform strategies
# ------------------------
def test_android_strategy_reverses_dev_server_port(shell: FakeShell) -> None:
    shell.on(
        "devices",
        "-l",
        stdout="List of devices attached\nemulator-5554 device\nR58M123ABC unauthorized\n",
    )
    settings = Settings()
    settings.dev_server.port = 19000

    AndroidPlatformStrategy(settings).before_open()

    assert shell.ran("adb", "-s", "emulator-5554", "reverse", "tcp:19000", "tcp:19000")
    assert not shell.ran("-s", "R58M123ABC", "reverse")


def test_android_strategy_skips_devices_that_reject_reverse(
    shell: FakeShell, capsys: pytest.CaptureFixture[str]
) -> None:
    shell.on(
        "devices",
        "-l",
        stdout="List of devices attached\nR58M123ABC device\nemulator-5554 device\n",
    )
    shell.on("-s", "R58M123ABC", "reverse", rc=1, stderr="error: closed")

    AndroidPlatformStrategy(Settings()).before_open()

    assert shell.ran("adb", "-s", "emulator-5554", "reverse", "tcp:8081", "tcp:8081")
    assert "adb reverse failed" in capsys.readouterr().err


def test_android_open_reverses_port_on_emulator_booted_during_open(shell: FakeShell) -> None:
    shell.on("devices", "-l", stdout="List of devices attached\n\n")
    shell.on("-list-avds", stdout="Pixel_8\n")
    shell.on("getprop", "sys.boot_completed", stdout="1\n")
    shell.on("pm", "list", "packages", stdout="package:host.exp.exponent\n")
    shell.on("dumpsys", "package", stdout="    versionName=2.31.0\n")

    result = create_android_platform_manager(Settings()).open(OpenCompanionApp())

    assert len(shell.spawned) == 1
    assert result.device is not None and result.device.identifier == "emulator-5554"
    reverse = shell.calls.index(["adb", "-s", "emulator-5554", "reverse", "tcp:8081", "tcp:8081"])
    opened = next(i for i, c in enumerate(shell.calls) if "android.intent.action.VIEW" in c)
    assert reverse < opened


def test_strategies_use_platform_defaults(tmp_path: Path) -> None:
    (tmp_path / "app.json").write_text(
        json.dumps({"expo": {"android": {"package": "com.a"}, "ios": {"bundleIdentifier": "com.i"}}})
    )
    settings = Settings(project_root=str(tmp_path))
    settings.android.default_activity = ".LauncherActivity"

    android = AndroidPlatformStrategy(settings)
    apple = ApplePlatformStrategy(settings)

    assert android.resolve_existing_application_id() == "com.a"
    assert android.resolve_alternative_launch_url("com.a") == "com.a/.LauncherActivity"
    assert apple.resolve_existing_application_id() == "com.i"
    assert apple.resolve_alternative_launch_url("com.i") == "com.i"


def test_factories_pick_platform_implementations() -> None:
    assert get_device_manager_class("ios") is AppleDeviceManager
    assert get_device_manager_class(Platform.ANDROID) is AndroidDeviceManager
    assert create_platform_manager("ios").platform is Platform.IOS
    assert create_platform_manager(Platform.ANDROID).platform is Platform.ANDROID
    with pytest.raises(ValueError):
        create_platform_manager("windows")
