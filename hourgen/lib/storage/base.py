"""Storage backend interface.

A backend is rooted at the run's path prefix. Paths handed to it are
relative to that prefix unless they are full URIs or absolute paths.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, BinaryIO

__all__ = ["StorageBackend"]


class StorageBackend(ABC):
    """Where the generated Parquet file goes.

    Subclasses wrap one filesystem family. ``connect`` is called once per run
    before anything is opened so that an unreachable filesystem is reported
    as a storage acquisition failure rather than a write failure.
    """

    def __init__(self, base_path: str, **options: Any) -> None:
        """
        Args:
            base_path: Path prefix (plain path or URI)
            **options: Backend options, e.g. fsspec credentials or endpoint
        """
        self.base_path = base_path
        self.options = options

    @property
    @abstractmethod
    def scheme(self) -> str:
        """'local' or the fsspec protocol name."""

    def connect(self) -> None:
        """Acquire the filesystem handle; a no-op for backends that need none."""

    @abstractmethod
    def open_output(self, path: str) -> BinaryIO:
        """Open ``path`` for binary writing, creating parent directories.

        The caller owns the returned handle and must close it.
        """

    @abstractmethod
    def makedirs(self, path: str) -> None:
        """Create ``path`` and its parents; existing directories are fine."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_path={self.base_path!r})"
