"""Tests for hourgen/lib/emitter.py - paced emission and writer lifecycle."""

import re
import threading
from datetime import datetime, timedelta, timezone

import pytest

from hourgen.lib.emitter import emit_hour
from hourgen.lib.errors import (
    EmissionInterruptedError,
    ErrorKind,
    RecordWriteError,
    StorageError,
    WriterReleaseError,
)
from hourgen.lib.pacing import PacingPolicy
from hourgen.lib.target import TargetHour

TARGET = TargetHour(2024, 3, 15, 7)


class TestEmitHourSuccess:
    """Successful emission."""

    def test_writes_exactly_one_hundred_records(self, fake_writer, fixed_clock, rng):
        report = emit_hour(
            lambda: fake_writer,
            TARGET,
            policy=PacingPolicy(quick=True),
            clock=fixed_clock,
            rng=rng,
        )

        assert report.records_written == 100
        assert len(fake_writer.records) == 100
        assert fake_writer.close_calls == 1

    def test_ids_are_contiguous_in_order(self, fake_writer, fixed_clock, rng):
        emit_hour(lambda: fake_writer, TARGET, policy=PacingPolicy(quick=True), clock=fixed_clock, rng=rng)
        assert [r["id"] for r in fake_writer.records] == list(range(100))

    def test_fdatetime_shares_target_prefix(self, fake_writer, rng):
        """Every stamp is 14 digits starting with the target YYYYMMDDHH."""
        ticks = iter(
            datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc) + timedelta(seconds=37 * i)
            for i in range(100)
        )
        emit_hour(lambda: fake_writer, TARGET, policy=PacingPolicy(quick=True), clock=lambda: next(ticks), rng=rng)

        stamps = [r["fdatetime"] for r in fake_writer.records]
        assert all(re.fullmatch(r"\d{14}", s) for s in stamps)
        assert {s[:10] for s in stamps} == {"2024031507"}
        assert stamps[1][10:] == "0037"

    def test_quick_mode_never_waits(self, fake_writer, recording_wait, fixed_clock, rng):
        report = emit_hour(
            lambda: fake_writer,
            TARGET,
            policy=PacingPolicy(quick=True),
            clock=fixed_clock,
            rng=rng,
            wait=recording_wait,
        )

        assert recording_wait.delays == []
        assert report.waits == 0
        assert report.delay_seconds == 0.0

    def test_paced_mode_waits_before_every_record(self, fake_writer, fixed_clock, rng):
        """Each of the 100 records is preceded by a 36 s wait, the first included."""
        events = []

        def wait(seconds):
            events.append(("wait", seconds))
            return False

        original_write = fake_writer.write

        def write(record):
            events.append(("write", record["id"]))
            original_write(record)

        fake_writer.write = write

        report = emit_hour(lambda: fake_writer, TARGET, clock=fixed_clock, rng=rng, wait=wait)

        assert report.waits == 100
        assert events[0] == ("wait", 36.0)
        assert events[1] == ("write", 0)
        assert events[::2] == [("wait", 36.0)] * 100
        assert [e[1] for e in events[1::2]] == list(range(100))

    def test_clock_sampled_per_record(self, fake_writer, rng):
        calls = []

        def clock():
            calls.append(1)
            return datetime(2024, 3, 15, 7, 0, len(calls) % 60, tzinfo=timezone.utc)

        emit_hour(lambda: fake_writer, TARGET, policy=PacingPolicy(quick=True), clock=clock, rng=rng)
        assert len(calls) == 100


class TestEmitHourFailures:
    """Failure paths: the writer is always released exactly once."""

    def test_write_failure_at_record_37(self, make_writer, fixed_clock, rng):
        writer = make_writer(fail_at=37)

        with pytest.raises(RecordWriteError) as exc_info:
            emit_hour(lambda: writer, TARGET, policy=PacingPolicy(quick=True), clock=fixed_clock, rng=rng)

        assert exc_info.value.kind == ErrorKind.WRITE
        assert exc_info.value.record_index == 37
        assert writer.close_calls == 1
        assert [r["id"] for r in writer.records] == list(range(37))

    def test_write_failure_keeps_primary_error_when_close_also_fails(self, make_writer, fixed_clock, rng):
        writer = make_writer(fail_at=10, fail_on_close=True)

        with pytest.raises(RecordWriteError):
            emit_hour(lambda: writer, TARGET, policy=PacingPolicy(quick=True), clock=fixed_clock, rng=rng)
        assert writer.close_calls == 1

    def test_release_failure_after_full_emission(self, make_writer, fixed_clock, rng):
        writer = make_writer(fail_on_close=True)

        with pytest.raises(WriterReleaseError) as exc_info:
            emit_hour(lambda: writer, TARGET, policy=PacingPolicy(quick=True), clock=fixed_clock, rng=rng)

        assert exc_info.value.kind == ErrorKind.RELEASE
        assert len(writer.records) == 100
        assert writer.close_calls == 1

    def test_interrupted_wait_aborts_and_releases(self, fake_writer, make_wait, fixed_clock, rng):
        wait = make_wait(interrupt_on=6)

        with pytest.raises(EmissionInterruptedError) as exc_info:
            emit_hour(lambda: fake_writer, TARGET, clock=fixed_clock, rng=rng, wait=wait)

        assert exc_info.value.records_written == 5
        assert len(fake_writer.records) == 5
        assert fake_writer.close_calls == 1

    def test_cancel_event_set_mid_run(self, fake_writer, fixed_clock, rng):
        event = threading.Event()
        original_write = fake_writer.write

        def write(record):
            original_write(record)
            if record["id"] == 19:
                event.set()

        fake_writer.write = write

        with pytest.raises(EmissionInterruptedError):
            emit_hour(
                lambda: fake_writer,
                TARGET,
                policy=PacingPolicy(quick=True),
                cancel_event=event,
                clock=fixed_clock,
                rng=rng,
            )

        assert len(fake_writer.records) == 20
        assert fake_writer.close_calls == 1

    def test_keyboard_interrupt_during_write(self, fake_writer, fixed_clock, rng):
        def write(record):
            raise KeyboardInterrupt

        fake_writer.write = write

        with pytest.raises(EmissionInterruptedError):
            emit_hour(lambda: fake_writer, TARGET, policy=PacingPolicy(quick=True), clock=fixed_clock, rng=rng)
        assert fake_writer.close_calls == 1

    def test_acquisition_failure_produces_no_records(self, fixed_clock, rng, recording_wait):
        def open_writer():
            raise StorageError("cannot open", path="/nowhere")

        with pytest.raises(StorageError):
            emit_hour(open_writer, TARGET, clock=fixed_clock, rng=rng, wait=recording_wait)
        assert recording_wait.delays == []
