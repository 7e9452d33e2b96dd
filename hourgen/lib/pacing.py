"""Interruptible pacing between emitted records."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from hourgen.lib.errors import EmissionInterruptedError

logger = logging.getLogger(__name__)

__all__ = ["HOUR_SECONDS", "RECORDS_PER_FILE", "Pacer", "PacingPolicy", "WaitFn"]

RECORDS_PER_FILE = 100
HOUR_SECONDS = 3600.0

# Blocks for up to N seconds; returns True if cancelled before the timeout
WaitFn = Callable[[float], bool]


@dataclass(frozen=True)
class PacingPolicy:
    """How many records to emit and over what window."""

    quota: int = RECORDS_PER_FILE
    window_seconds: float = HOUR_SECONDS
    quick: bool = False

    @property
    def delay_seconds(self) -> float:
        """Delay before each record: window / quota, or 0 in quick mode."""
        if self.quick or self.quota <= 0:
            return 0.0
        return self.window_seconds / self.quota


class Pacer:
    """Waits ``delay_seconds`` before each record, honouring cancellation.

    The wait primitive defaults to ``cancel_event.wait`` so setting the event
    from another thread ends the current wait immediately. Tests pass their
    own ``wait`` to run without real delays.
    """

    def __init__(
        self,
        delay_seconds: float,
        cancel_event: Optional[threading.Event] = None,
        wait: Optional[WaitFn] = None,
    ) -> None:
        self.delay_seconds = delay_seconds
        self.cancel_event = cancel_event or threading.Event()
        self._wait = wait or self.cancel_event.wait
        self.waits = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def pause(self, records_written: int) -> None:
        """Block before the next record.

        Raises:
            EmissionInterruptedError: If cancellation was requested before
                or during the wait, or the wait was interrupted by Ctrl-C.
        """
        if self.cancelled:
            raise EmissionInterruptedError(
                "Emission cancelled before the next record",
                records_written=records_written,
            )
        if self.delay_seconds <= 0:
            return

        self.waits += 1
        try:
            interrupted = self._wait(self.delay_seconds)
        except KeyboardInterrupt as e:
            raise EmissionInterruptedError(
                "Emission interrupted while waiting between records",
                records_written=records_written,
                cause=e,
            ) from e

        if interrupted or self.cancelled:
            raise EmissionInterruptedError(
                "Emission interrupted while waiting between records",
                records_written=records_written,
            )
