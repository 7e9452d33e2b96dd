"""Synthetic record construction."""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hourgen.lib.target import TargetHour, random_letters

__all__ = ["NAME_LENGTH", "SyntheticRecord", "build_record", "format_fdatetime"]

NAME_LENGTH = 10


@dataclass(frozen=True)
class SyntheticRecord:
    """One generated row: sequence id, random name, YYYYMMDDHHMMSS stamp."""

    id: int
    name: str
    fdatetime: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def format_fdatetime(target: TargetHour, minute: int, second: int) -> str:
    """Combine the target hour with a sampled minute and second.

    >>> format_fdatetime(TargetHour(2024, 3, 15, 7), 5, 9)
    '20240315070509'
    """
    return f"{target.prefix()}{minute:02d}{second:02d}"


def build_record(
    index: int,
    target: TargetHour,
    now: datetime,
    rng: Optional[random.Random] = None,
) -> SyntheticRecord:
    """Build the record at position ``index``.

    Year, month, day and hour come from ``target``; minute and second come
    from ``now`` (converted to UTC when aware).
    """
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return SyntheticRecord(
        id=index,
        name=random_letters(NAME_LENGTH, rng),
        fdatetime=format_fdatetime(target, now.minute, now.second),
    )
