"""Pytest configuration and fixtures."""

import random
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


FIXED_NOW = datetime(2024, 3, 15, 7, 23, 45, tzinfo=timezone.utc)


class FakeWriter:
    """In-memory writer that can fail on a given record or on close."""

    def __init__(self, fail_at: Optional[int] = None, fail_on_close: bool = False):
        self.fail_at = fail_at
        self.fail_on_close = fail_on_close
        self.records: List[Dict[str, Any]] = []
        self.close_calls = 0
        self.path = "memory://fake/out.parquet"

    @property
    def rows_written(self) -> int:
        return len(self.records)

    def write(self, record: Mapping[str, Any]) -> None:
        if self.fail_at is not None and len(self.records) == self.fail_at:
            raise OSError(f"disk full at record {self.fail_at}")
        self.records.append(dict(record))

    def close(self) -> None:
        self.close_calls += 1
        if self.fail_on_close:
            raise OSError("close failed")


class RecordingWait:
    """Wait primitive that returns immediately and remembers each delay."""

    def __init__(self, interrupt_on: Optional[int] = None):
        self.delays: List[float] = []
        self.interrupt_on = interrupt_on

    def __call__(self, seconds: float) -> bool:
        self.delays.append(seconds)
        return self.interrupt_on is not None and len(self.delays) == self.interrupt_on


@pytest.fixture
def fixed_clock():
    """Clock that always returns 2024-03-15 07:23:45 UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def rng():
    """Deterministic random source."""
    return random.Random(1234)


@pytest.fixture
def recording_wait():
    return RecordingWait()


@pytest.fixture
def fake_writer():
    return FakeWriter()


@pytest.fixture
def make_writer():
    """Factory for FakeWriter instances with failure injection."""
    return FakeWriter


@pytest.fixture
def make_wait():
    """Factory for RecordingWait instances with interruption injection."""
    return RecordingWait
