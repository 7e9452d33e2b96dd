"""Local filesystem backend for plain paths and ``file://`` prefixes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from hourgen.lib.storage.base import StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["LocalStorage", "strip_file_scheme"]


def strip_file_scheme(path: str) -> str:
    """``file:///tmp/x`` -> ``/tmp/x``; anything else is returned as is."""
    if path.startswith("file://"):
        return path[len("file://"):] or "/"
    return path


class LocalStorage(StorageBackend):
    """Writes under a local directory.

    Example:
        >>> storage = LocalStorage("file:///tmp")
        >>> with storage.open_output("year=2024/month=3/day=15/hour=7/abc.parquet") as f:
        ...     f.write(b"...")
    """

    @property
    def scheme(self) -> str:
        return "local"

    def _resolve(self, path: str) -> Path:
        # Joining an absolute path onto the base replaces the base
        root = Path(strip_file_scheme(self.base_path))
        return (root / strip_file_scheme(path)).resolve()

    def open_output(self, path: str) -> BinaryIO:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Opening %s for writing", target)
        return target.open("wb")

    def makedirs(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)
