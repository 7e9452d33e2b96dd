"""Run orchestration: settings in, RunResult out.

Walks a run through its states (target resolution, schema load, storage
acquisition, paced emission, close) and converts any failure into a failed
:class:`RunResult`. Nothing here exits the process.
"""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

import pyarrow as pa

from hourgen.lib.emitter import emit_hour
from hourgen.lib.errors import (
    EmissionInterruptedError,
    ErrorKind,
    GeneratorError,
    StorageError,
    WriterReleaseError,
)
from hourgen.lib.observability import get_run_logger
from hourgen.lib.pacing import PacingPolicy, WaitFn
from hourgen.lib.schema import load_schema
from hourgen.lib.settings import GeneratorSettings
from hourgen.lib.storage import StorageBackend, get_storage
from hourgen.lib.target import (
    OutputLocation,
    TargetHour,
    build_output_location,
    resolve_target,
    utc_now,
)
from hourgen.lib.writer import COMPRESSION, ParquetRecordWriter, open_parquet_writer

logger = get_run_logger(__name__)

__all__ = ["RunResult", "RunState", "generate_hourly_file"]

StorageFactory = Callable[..., StorageBackend]


class RunState(Enum):
    """Lifecycle of a single run."""

    INIT = "init"
    RESOLVING_TARGET = "resolving_target"
    WRITER_OPEN = "writer_open"
    EMITTING = "emitting"
    CLOSING = "closing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunResult:
    """Result of a generator run."""

    success: bool
    state: RunState
    target: Optional[TargetHour] = None
    location: Optional[OutputLocation] = None
    records_written: int = 0
    duration_seconds: float = 0.0
    error_kind: Optional[ErrorKind] = None
    error: Optional[GeneratorError] = None
    failed_in: Optional[RunState] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to result dictionary."""
        result: Dict[str, Any] = {
            "success": self.success,
            "state": self.state.value,
            "records_written": self.records_written,
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if self.target:
            result["target"] = self.target.prefix()
        if self.location:
            result["path"] = self.location.uri
        if self.error is not None:
            result["error"] = self.error.to_dict()
            result["failed_in"] = self.failed_in.value if self.failed_in else None
        if self.metadata:
            result["metadata"] = self.metadata
        return result


class _Run:
    """Mutable bookkeeping for one run."""

    def __init__(self) -> None:
        self.state = RunState.INIT
        self.target: Optional[TargetHour] = None
        self.location: Optional[OutputLocation] = None
        self.writer: Optional[ParquetRecordWriter] = None
        self.started = time.monotonic()

    def enter(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state

    def rows_in_writer(self) -> int:
        return self.writer.rows_written if self.writer is not None else 0

    def elapsed(self) -> float:
        return time.monotonic() - self.started


def generate_hourly_file(
    settings: GeneratorSettings,
    *,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], datetime] = utc_now,
    rng: Optional[random.Random] = None,
    wait: Optional[WaitFn] = None,
    storage_factory: StorageFactory = get_storage,
    policy: Optional[PacingPolicy] = None,
) -> RunResult:
    """Generate one hourly Parquet file.

    Args:
        settings: Resolved run settings
        cancel_event: Set it (from any thread) to abort the run
        clock: Current UTC instant, used for the target hour and record stamps
        rng: Random source for the file name and record names
        wait: Replacement timed-wait primitive for pacing
        storage_factory: Builds a StorageBackend for the path prefix
        policy: Quota and pacing; defaults to 100 records over an hour,
            quick when ``settings.quick`` is set

    Returns:
        RunResult; ``success`` is True only if every record was written
        and the file was finalized
    """
    run = _Run()
    policy = policy or PacingPolicy(quick=settings.quick)
    logger.clear_context()
    logger.info("Starting.")

    try:
        run.enter(RunState.RESOLVING_TARGET)
        run.target = resolve_target(settings.datetime_override, clock=clock)
        schema = load_schema(settings.schema_path)
        run.location = build_output_location(run.target, settings.path_prefix, rng=rng)
        logger.set_context(target=run.target.prefix(), output_path=run.location.uri)

        if not policy.quick:
            logger.info(
                "Will sleep for %d milliseconds between writing records.",
                int(policy.delay_seconds * 1000),
            )
        logger.info("Writing to %s", run.location.uri)

        if settings.dry_run:
            logger.info("Dry run: no file written")
            run.enter(RunState.DONE)
            return RunResult(
                success=True,
                state=run.state,
                target=run.target,
                location=run.location,
                duration_seconds=run.elapsed(),
                metadata={"dry_run": True, "schema": schema.names},
            )

        run.enter(RunState.WRITER_OPEN)
        storage = _acquire_storage(storage_factory, settings)
        location = run.location

        def open_writer() -> ParquetRecordWriter:
            run.writer = _open_writer(storage, location, schema)
            run.enter(RunState.EMITTING)
            return run.writer

        report = emit_hour(
            open_writer,
            run.target,
            policy=policy,
            cancel_event=cancel_event,
            clock=clock,
            rng=rng,
            wait=wait,
        )
        run.enter(RunState.CLOSING)
    except GeneratorError as e:
        return _failed(run, e)
    except KeyboardInterrupt as e:
        return _failed(
            run,
            EmissionInterruptedError(
                "Run interrupted",
                records_written=run.rows_in_writer(),
                cause=e,
            ),
        )

    run.enter(RunState.DONE)
    logger.metric("records_written", report.records_written, unit="rows")
    logger.metric("duration_seconds", round(run.elapsed(), 3), unit="seconds")
    logger.info("Finished.")

    return RunResult(
        success=True,
        state=run.state,
        target=run.target,
        location=run.location,
        records_written=report.records_written,
        duration_seconds=run.elapsed(),
        metadata={"compression": COMPRESSION, "waits": report.waits},
    )


def _acquire_storage(factory: StorageFactory, settings: GeneratorSettings) -> StorageBackend:
    try:
        storage = factory(settings.path_prefix, **settings.storage_options)
        storage.connect()
    except GeneratorError:
        raise
    except Exception as e:
        raise StorageError(
            "Could not acquire filesystem for path prefix",
            path=settings.path_prefix,
            operation="connect",
            cause=e,
        ) from e
    return storage


def _open_writer(
    storage: StorageBackend,
    location: OutputLocation,
    schema: pa.Schema,
) -> ParquetRecordWriter:
    # Storage is rooted at the prefix, so it gets paths relative to it
    try:
        storage.makedirs(location.target.partition_path())
    except Exception as e:
        raise StorageError(
            "Could not create partition directory",
            path=location.directory,
            operation="makedirs",
            cause=e,
        ) from e
    return open_parquet_writer(storage, location.relative_path, schema, compression=COMPRESSION)


def _failed(run: _Run, error: GeneratorError) -> RunResult:
    failed_in = RunState.CLOSING if isinstance(error, WriterReleaseError) else run.state
    run.enter(RunState.ABORTED)
    records = run.rows_in_writer()
    logger.error(
        "Run failed in state %s (%s): %s",
        failed_in.value,
        error.kind.value,
        error,
        extra={"error": error.to_dict()},
    )
    return RunResult(
        success=False,
        state=run.state,
        target=run.target,
        location=run.location,
        records_written=records,
        duration_seconds=run.elapsed(),
        error_kind=error.kind,
        error=error,
        failed_in=failed_in,
    )
