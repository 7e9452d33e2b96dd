"""Paced record emission with a scoped writer.

``emit_hour`` owns the writer for its whole duration: it acquires the writer
through ``open_writer`` at the start, appends ``policy.quota`` records, and
closes the writer exactly once whether the loop finishes, a write fails, or
emission is interrupted.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Protocol

from hourgen.lib.errors import (
    EmissionInterruptedError,
    GeneratorError,
    RecordWriteError,
    WriterReleaseError,
)
from hourgen.lib.pacing import Pacer, PacingPolicy, WaitFn
from hourgen.lib.records import build_record
from hourgen.lib.target import TargetHour, utc_now

logger = logging.getLogger(__name__)

__all__ = ["EmissionReport", "RecordWriter", "emit_hour"]


class RecordWriter(Protocol):
    """What the emitter needs from a writer."""

    def write(self, record: Mapping[str, Any]) -> None: ...

    def close(self) -> None: ...


@dataclass
class EmissionReport:
    """Outcome of a completed emission."""

    records_written: int
    waits: int
    delay_seconds: float
    duration_seconds: float


def emit_hour(
    open_writer: Callable[[], RecordWriter],
    target: TargetHour,
    *,
    policy: Optional[PacingPolicy] = None,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], datetime] = utc_now,
    rng: Optional[random.Random] = None,
    wait: Optional[WaitFn] = None,
) -> EmissionReport:
    """Write one hour of synthetic records.

    Args:
        open_writer: Acquires the writer; called once, before the first record
        target: Hour stamped into every record's ``fdatetime``
        policy: Quota and pacing; defaults to 100 records over one hour
        cancel_event: Setting it aborts emission at the next wait or record
        clock: Current UTC instant, sampled once per record
        rng: Random source for record names
        wait: Replacement timed-wait primitive (see ``Pacer``)

    Returns:
        EmissionReport for a fully successful run

    Raises:
        StorageError: If the writer cannot be acquired
        RecordWriteError: If appending a record fails
        EmissionInterruptedError: If emission is cancelled or interrupted
        WriterReleaseError: If closing the writer fails after all records
            were written
    """
    policy = policy or PacingPolicy()
    pacer = Pacer(policy.delay_seconds, cancel_event=cancel_event, wait=wait)
    started = time.monotonic()

    writer = open_writer()

    try:
        written = _emit_records(writer, target, policy.quota, pacer, clock, rng)
    except BaseException as e:
        _release_after_failure(writer, e)
        raise

    try:
        writer.close()
    except Exception as e:
        raise WriterReleaseError(
            "Failed to finalize output file",
            path=getattr(writer, "path", None) or None,
            cause=e,
        ) from e

    return EmissionReport(
        records_written=written,
        waits=pacer.waits,
        delay_seconds=pacer.delay_seconds,
        duration_seconds=time.monotonic() - started,
    )


def _emit_records(
    writer: RecordWriter,
    target: TargetHour,
    quota: int,
    pacer: Pacer,
    clock: Callable[[], datetime],
    rng: Optional[random.Random],
) -> int:
    written = 0
    for index in range(quota):
        pacer.pause(written)

        record = build_record(index, target, clock(), rng)
        try:
            writer.write(record.to_dict())
        except GeneratorError:
            raise
        except KeyboardInterrupt as e:
            raise EmissionInterruptedError(
                "Emission interrupted while writing a record",
                records_written=written,
                cause=e,
            ) from e
        except Exception as e:
            raise RecordWriteError(
                "Failed to append record",
                record_index=index,
                cause=e,
            ) from e
        written += 1
        logger.debug("Wrote record %d (%s)", record.id, record.fdatetime)

    return written


def _release_after_failure(writer: RecordWriter, error: BaseException) -> None:
    """Best-effort close while ``error`` propagates; a close failure is logged only."""
    try:
        writer.close()
    except Exception as close_error:
        logger.error(
            "Failed to finalize output file after %s: %s",
            type(error).__name__,
            close_error,
        )
