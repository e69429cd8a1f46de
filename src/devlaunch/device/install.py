from __future__ import annotations

from collections.abc import Callable

from ..config.models import InstallSettings
from ..core.waits import Waits
from ..errors import InstallConvergenceTimeout
from ..utils.logging import get_logger

_log = get_logger(__name__)


def wait_until_installed(
    is_installed: Callable[[str], bool],
    application_id: str,
    settings: InstallSettings | None = None,
) -> None:
    """
    Wait until a just-installed app becomes visible in the device package registry.

    Install commands may return before the registry reflects the new package,
    so the registry is polled starting at `poll_interval_ms` and backing off up
    to `max_interval_ms`.

    Raises:
        InstallConvergenceTimeout: If the app is still not visible after
            `settings.timeout` seconds.
    """
    s = settings or InstallSettings()
    found = Waits.poll_until(
        lambda: is_installed(application_id),
        timeout=s.timeout,
        polling_ms=s.poll_interval_ms,
        backoff=s.backoff,
        max_interval_ms=s.max_interval_ms,
        description=f"install of {application_id}",
    )
    if not found:
        _log.error(
            "Installed app never became visible",
            action="install_timeout",
            app_id=application_id,
            timeout=s.timeout,
        )
        raise InstallConvergenceTimeout(application_id, s.timeout)
    _log.info("App install converged", action="installed", app_id=application_id)


__all__ = ["wait_until_installed"]
