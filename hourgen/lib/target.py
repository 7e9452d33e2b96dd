"""Target hour resolution and partitioned output path derivation."""

from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from hourgen.lib.errors import InvalidDatetimeError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_PATH_PREFIX",
    "FILE_EXTENSION",
    "OutputLocation",
    "TargetHour",
    "build_output_location",
    "random_letters",
    "resolve_target",
    "utc_now",
]

DEFAULT_PATH_PREFIX = "file:///tmp"
FILE_EXTENSION = ".parquet"
BASE_NAME_LENGTH = 10

# (name, start, end) slices of a YYYYMMDDHH override
_DATETIME_FIELDS = (
    ("year", 0, 4),
    ("month", 4, 6),
    ("day", 6, 8),
    ("hour", 8, 10),
)
_DATETIME_LENGTH = 10


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def random_letters(length: int, rng: Optional[random.Random] = None) -> str:
    """Return ``length`` random ASCII letters (upper and lower case)."""
    chooser = rng or random
    return "".join(chooser.choices(string.ascii_letters, k=length))


@dataclass(frozen=True)
class TargetHour:
    """The (year, month, day, hour) a run writes records for.

    Values are kept exactly as parsed; no calendar validation is applied.
    """

    year: int
    month: int
    day: int
    hour: int

    @classmethod
    def from_datetime(cls, value: datetime) -> "TargetHour":
        value = value.astimezone(timezone.utc) if value.tzinfo else value
        return cls(year=value.year, month=value.month, day=value.day, hour=value.hour)

    def partition_path(self) -> str:
        """Return ``year=Y/month=M/day=D/hour=H`` with unpadded integers."""
        return f"year={self.year}/month={self.month}/day={self.day}/hour={self.hour}"

    def prefix(self) -> str:
        """Return the zero-padded ``YYYYMMDDHH`` form used in record timestamps."""
        return f"{self.year:04d}{self.month:02d}{self.day:02d}{self.hour:02d}"

    def is_calendar_valid(self) -> bool:
        return 1 <= self.month <= 12 and 1 <= self.day <= 31 and 0 <= self.hour <= 23


def resolve_target(
    explicit: Optional[str] = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> TargetHour:
    """Resolve the target hour for a run.

    Args:
        explicit: Optional ``YYYYMMDDHH`` override. Only the first 10
            characters are read; anything after them is ignored.
        clock: Returns the current UTC instant when no override is given.

    Returns:
        TargetHour with all four fields populated

    Raises:
        InvalidDatetimeError: If the override is shorter than 10 characters
            or any of its first 10 characters is not an ASCII digit.
    """
    if explicit is None:
        target = TargetHour.from_datetime(clock())
        logger.debug("Resolved target hour %s from wall clock", target.prefix())
        return target

    if len(explicit) < _DATETIME_LENGTH:
        raise InvalidDatetimeError(
            "Optional argument datetime must be in format YYYYMMDDHH",
            value=explicit,
        )

    parsed = {}
    for name, start, end in _DATETIME_FIELDS:
        chunk = explicit[start:end]
        # str.isdigit() also accepts non-ASCII digits that int() rejects
        if not (chunk.isascii() and chunk.isdigit()):
            raise InvalidDatetimeError(
                f"Datetime override has a non-numeric {name}: {chunk!r}",
                value=explicit,
            )
        parsed[name] = int(chunk, 10)

    target = TargetHour(**parsed)
    if not target.is_calendar_valid():
        logger.warning(
            "Datetime override %s is outside calendar ranges; using it unchanged",
            explicit[:_DATETIME_LENGTH],
        )
    return target


@dataclass(frozen=True)
class OutputLocation:
    """Where a run's single Parquet file is written."""

    prefix: str
    target: TargetHour
    base_name: str
    extension: str = FILE_EXTENSION

    @property
    def directory(self) -> str:
        return _join(self.prefix, self.target.partition_path())

    @property
    def filename(self) -> str:
        return f"{self.base_name}{self.extension}"

    @property
    def uri(self) -> str:
        return f"{self.directory}/{self.filename}"

    @property
    def relative_path(self) -> str:
        """Path of the file below ``prefix``."""
        return f"{self.target.partition_path()}/{self.filename}"

    def __str__(self) -> str:
        return self.uri


def _join(prefix: str, relative: str) -> str:
    if prefix.endswith("/"):
        return f"{prefix}{relative}"
    return f"{prefix}/{relative}"


def build_output_location(
    target: TargetHour,
    prefix: Optional[str] = None,
    *,
    rng: Optional[random.Random] = None,
) -> OutputLocation:
    """Derive the partitioned output location for ``target``.

    Args:
        target: Resolved target hour
        prefix: Path prefix (local path or fsspec URI); defaults to
            ``file:///tmp``
        rng: Random source for the base file name

    Returns:
        OutputLocation under ``<prefix>/year=/month=/day=/hour=/``

    Example:
        >>> loc = build_output_location(TargetHour(2024, 3, 15, 7), "s3://bucket/raw")
        >>> loc.directory
        's3://bucket/raw/year=2024/month=3/day=15/hour=7'
    """
    return OutputLocation(
        prefix=prefix or DEFAULT_PATH_PREFIX,
        target=target,
        base_name=random_letters(BASE_NAME_LENGTH, rng),
    )
