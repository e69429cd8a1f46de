from __future__ import annotations

from abc import ABC, abstractmethod

from ..errors import BootTimeout
from ..platform import OsKind
from ..utils.logging import get_logger
from .handle import DeviceHandle


class BootSequencer(ABC):
    """
    Guarantees a virtual device is booted before anything is installed or launched.

    Platform subclasses supply discovery, ranking and the boot-and-wait step;
    this class owns the policy:

    1. Without an identifier hint, an already-booted matching device is returned
       as is (no boot command is issued).
    2. Otherwise the best unbooted candidate is chosen and booted, waiting at
       most `timeout` seconds for it to report ready.
    3. A timed-out wait is retried exactly once; the second timeout raises
       BootTimeout with `timeout_hint`.
    """

    timeout_message = "Device didn't boot fast enough."
    timeout_hint: str | None = None

    def __init__(self, *, timeout: float, poll_interval: float = 1.0) -> None:
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._log = get_logger(__name__)

    @abstractmethod
    def find_booted(self, os_kind: OsKind | None) -> DeviceHandle | None:
        """Return the best already-booted device matching `os_kind`, if any."""
        ...

    @abstractmethod
    def pick_unbooted(self, os_kind: OsKind | None) -> DeviceHandle:
        """
        Return the best candidate to boot.

        Raises:
            DeviceNotFound: If no device matches the filter.
        """
        ...

    @abstractmethod
    def boot_and_wait(self, identifier: str) -> DeviceHandle | None:
        """
        Issue a boot command for `identifier` and wait up to `self.timeout`.

        Returns:
            A fresh handle of the booted device, or None when the wait timed out.

        Raises:
            DeviceNotFound: If the device can't be booted at all, so a retry is pointless.
        """
        ...

    def ensure_booted(
        self,
        identifier: str | None = None,
        os_kind: OsKind | None = None,
        allow_retry: bool = True,
    ) -> DeviceHandle:
        if not identifier:
            booted = self.find_booted(os_kind)
            if booted is not None:
                self._log.info(
                    "Using already booted device",
                    action="boot_skip",
                    device=booted.name,
                    udid=booted.identifier,
                )
                return booted
            identifier = self.pick_unbooted(os_kind).identifier

        self._log.info(
            "Booting device",
            action="boot",
            udid=identifier,
            timeout=self.timeout,
            retry_allowed=allow_retry,
        )
        device = self.boot_and_wait(identifier)
        if device is not None:
            self._log.info("Device booted", action="booted", device=device.name, udid=device.identifier)
            return device

        if allow_retry:
            # Slow machines regularly miss the first deadline
            self._log.warning("Boot wait timed out, retrying once", action="boot_retry", udid=identifier)
            return self.ensure_booted(identifier, os_kind, allow_retry=False)

        self._log.error("Device did not boot within the timeout", action="boot_timeout", udid=identifier)
        raise BootTimeout(self.timeout_message, identifier=identifier, hint=self.timeout_hint)


__all__ = ["BootSequencer"]
