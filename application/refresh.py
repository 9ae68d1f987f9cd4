"""Coalescing of refresh requests around one in-flight fetch."""

import logging

logger = logging.getLogger("taskconsole.refresh")


class RefreshScheduler:
    """Owns the in-flight flag; touched only from the UI thread.

    While a fetch runs, any number of further requests owe exactly one more
    fetch, started when the current one completes.
    """

    def __init__(self) -> None:
        self.in_flight = False
        self.owed = False
        self.started = 0

    def request(self) -> bool:
        """Return True when the caller must start a fetch now."""
        if self.in_flight:
            if not self.owed:
                logger.debug("refresh requested while fetching; one more owed")
            self.owed = True
            return False
        self.in_flight = True
        self.started += 1
        return True

    def complete(self) -> bool:
        """Mark the running fetch done; True when the owed fetch must start."""
        if not self.in_flight:
            return False
        if self.owed:
            self.owed = False
            self.started += 1
            return True
        self.in_flight = False
        return False

    @property
    def busy(self) -> bool:
        return self.in_flight


__all__ = ["RefreshScheduler"]
