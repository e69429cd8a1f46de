from __future__ import annotations

from ...core.waits import Waits
from ...utils.cli import Completed, run_cmd, run_osascript
from ...utils.logging import get_logger

_log = get_logger(__name__)


def is_simulator_app_running(app_name: str = "Simulator") -> bool:
    out = run_cmd(["pgrep", "-x", app_name], check=False)
    return isinstance(out, Completed) and out.ok


def ensure_simulator_app_running(
    udid: str | None = None, *, app_name: str = "Simulator", timeout: float = 20.0
) -> None:
    """
    Start the Simulator app (the process hosting simulator windows) if needed.

    Raises:
        TimeoutError: If the app does not show up as a running process in time.
    """
    if is_simulator_app_running(app_name):
        return

    args = ["open", "-a", app_name]
    if udid:
        args += ["--args", "-CurrentDeviceUDID", udid]
    _log.info("Opening simulator app", action="simulator_app_open", app=app_name, udid=udid)
    run_cmd(args, check=False)

    if not Waits.poll_until(
        lambda: is_simulator_app_running(app_name),
        timeout=timeout,
        polling_ms=250,
        description="simulator app start",
    ):
        raise TimeoutError(f"{app_name} app did not start within {timeout} seconds")


def activate_simulator_window(app_name: str = "Simulator") -> None:
    """Bring the simulator app to the foreground."""
    run_osascript(f'tell application "{app_name}" to activate')
