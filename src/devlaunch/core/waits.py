from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from ..utils.logging import get_logger

# ---- Default values ----
DEFAULT_TIMEOUT_EXPECTATION = 10.0
DEFAULT_POLLING_INTERVAL_MS = 100
DEFAULT_BACKOFF = 1.0  # 1.0 keeps a fixed interval
DEFAULT_MAX_INTERVAL_MS = 1000

T = TypeVar("T")

_log = get_logger(__name__)


class Waits:
    """
    Polling helpers shared by the boot sequencers and install convergence.

    The condition is evaluated first and then at most every `polling_ms`
    milliseconds (growing by `backoff` up to `max_interval_ms`) until it
    returns a truthy value or `timeout` seconds elapse.
    """

    @staticmethod
    def poll_until(
        condition: Callable[[], T | None],
        *,
        timeout: float = DEFAULT_TIMEOUT_EXPECTATION,
        polling_ms: int = DEFAULT_POLLING_INTERVAL_MS,
        backoff: float = DEFAULT_BACKOFF,
        max_interval_ms: int = DEFAULT_MAX_INTERVAL_MS,
        description: str = "condition",
    ) -> T | None:
        """
        Poll `condition` until it returns a truthy value.

        Args:
            condition: Zero-argument callable; its first truthy result is returned.
            timeout (float): Maximum wait time in seconds.
            polling_ms (int): Initial interval between evaluations in milliseconds.
            backoff (float): Multiplier applied to the interval after each miss.
            max_interval_ms (int): Upper bound for the interval.
            description (str): Name used in log records.

        Returns:
            The truthy result, or None if the timeout elapsed first.
        """
        _log.debug(
            "Polling",
            action="poll",
            description=description,
            timeout=timeout,
            polling_ms=polling_ms,
            backoff=backoff,
        )
        interval = max(polling_ms, 1) / 1000.0
        ceiling = max(max_interval_ms, polling_ms) / 1000.0
        deadline = time.monotonic() + timeout
        attempts = 0
        while True:
            attempts += 1
            result = condition()
            if result:
                _log.debug("Poll satisfied", action="poll", description=description, attempts=attempts)
                return result
            if time.monotonic() >= deadline:
                _log.debug("Poll timed out", action="poll", description=description, attempts=attempts)
                return None
            time.sleep(interval)
            interval = min(interval * max(backoff, 1.0), ceiling)


__all__ = ["Waits"]
