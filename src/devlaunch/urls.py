from __future__ import annotations

from urllib.parse import quote, urlencode

from .config.models import DevServerSettings

DEFAULT_MANIFEST_SCHEME = "exp"


class UrlBuilder:
    """
    Builds the URLs handed to devices from the development server address.

    All URLs point at the host as seen by the device; Android reaches
    127.0.0.1 through `adb reverse`.
    """

    def __init__(self, settings: DevServerSettings | None = None) -> None:
        self.settings = settings or DevServerSettings()

    @property
    def _host_port(self) -> str:
        return f"{self.settings.host}:{self.settings.port}"

    def dev_server_url(self) -> str:
        protocol = "https" if self.settings.https else "http"
        return f"{protocol}://{self._host_port}"

    def loading_url(self, platform: str) -> str:
        """Page that shows a loading screen and redirects into the companion app."""
        return f"{self.dev_server_url()}/_expo/loading?{urlencode({'platform': platform})}"

    def manifest_url(self, scheme: str | None = None) -> str:
        """
        Deep link to the project manifest.

        `exp` (the default) yields "exp://host:port"; any other scheme yields the
        development-client form "scheme://expo-development-client/?url=<dev url>".
        """
        scheme = scheme or DEFAULT_MANIFEST_SCHEME
        if scheme == DEFAULT_MANIFEST_SCHEME:
            return f"{scheme}://{self._host_port}"
        return f"{scheme}://expo-development-client/?url={quote(self.dev_server_url(), safe='')}"


__all__ = ["UrlBuilder", "DEFAULT_MANIFEST_SCHEME"]
