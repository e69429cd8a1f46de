from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ..platform import Platform


class BootSettings(BaseModel):
    """Boot and ready-wait policy for virtual devices."""

    ios_timeout: float = 30.0  # Seconds to wait for a simulator to report Booted
    android_timeout: float = 180.0  # Seconds to wait for sys.boot_completed=1
    poll_interval: float = 1.0  # Seconds between readiness checks
    allow_retry: bool = True  # Retry a timed-out boot exactly once


class InstallSettings(BaseModel):
    """
    Install convergence loop.

    After an install command returns, the device package registry is polled
    until the app is visible; the loop fails after `timeout` seconds.
    """

    poll_interval_ms: int = 100  # Initial delay between "is installed?" checks
    backoff: float = 1.5  # Interval multiplier after every miss
    max_interval_ms: int = 1000  # Cap for the growing interval
    timeout: float = 60.0  # Terminal bound for the whole loop (seconds)


class AndroidSettings(BaseModel):
    """Android tooling and launch defaults."""

    adb_bin: str = "adb"  # adb executable
    emulator_bin: str = "emulator"  # Android emulator executable
    emulator_port: int = 5554  # First console port tried for new emulators
    headless: bool = False  # Start emulators with -no-window
    default_activity: str = ".MainActivity"  # Suffix used for the default launch target


class IOSSettings(BaseModel):
    """Apple tooling."""

    xcrun_bin: str = "xcrun"  # xcrun executable (simctl is invoked through it)
    simulator_app: str = "Simulator"  # Name of the simulator host application


class DevServerSettings(BaseModel):
    """Where the development server is reachable from the host."""

    host: str = "127.0.0.1"
    port: int = 8081
    https: bool = False
    scheme: str | None = None  # Custom deep-link scheme of the development build


class CompanionSettings(BaseModel):
    """Companion runtime (prebuilt client app) requirements."""

    min_version: str | None = None  # Oldest acceptable installed version
    android_binary: str | None = None  # APK used to install/update the runtime
    ios_binary: str | None = None  # .app bundle used to install/update the runtime


class Settings(BaseSettings):
    """
    Main configuration class.

    Loads values from the following sources:
    - Environment variables (with prefix DEVLAUNCH_)
    - Initialization values (e.g., from YAML)
    - .env file
    - Secret files
    """

    model_config = SettingsConfigDict(env_prefix="DEVLAUNCH_", env_nested_delimiter="__")

    platform: Platform = Platform.ANDROID  # Target platform: "android" or "ios"
    project_root: str = "."  # Directory holding app.json
    boot: BootSettings = Field(default_factory=BootSettings)
    install: InstallSettings = Field(default_factory=InstallSettings)
    android: AndroidSettings = Field(default_factory=AndroidSettings)
    ios: IOSSettings = Field(default_factory=IOSSettings)
    dev_server: DevServerSettings = Field(default_factory=DevServerSettings)
    companion: CompanionSettings = Field(default_factory=CompanionSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,  # type: type[BaseSettings]
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Configure the order of configuration sources.

        Loading priority:
        1. Environment variables
        2. Initialization values (e.g., from YAML)
        3. .env file
        4. Secret files
        """
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)
