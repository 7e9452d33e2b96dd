"""Storage backend abstraction for hourgen.

Usage:
    from hourgen.lib.storage import get_storage

    # Local filesystem
    storage = get_storage("file:///tmp")
    storage = get_storage("./out")

    # Any fsspec protocol
    storage = get_storage("s3://my-bucket/raw/")
    storage = get_storage("hdfs://namenode:8020/data/testfiles")
"""

from __future__ import annotations

from typing import Any

from hourgen.lib.storage.base import StorageBackend
from hourgen.lib.storage.fsspec_backend import FsspecStorage
from hourgen.lib.storage.local import LocalStorage

__all__ = [
    "FsspecStorage",
    "LocalStorage",
    "StorageBackend",
    "get_storage",
    "parse_uri",
]


def parse_uri(path: str) -> tuple[str, str]:
    """Parse a storage URI into scheme and path.

    Args:
        path: Storage path (local path or URI)

    Returns:
        Tuple of (scheme, path) where scheme is 'local' for plain paths and
        ``file://`` URIs, otherwise the URI protocol

    Examples:
        >>> parse_uri("/tmp/out")
        ('local', '/tmp/out')
        >>> parse_uri("file:///tmp/out")
        ('local', '/tmp/out')
        >>> parse_uri("s3://my-bucket/raw/")
        ('s3', 'my-bucket/raw/')
    """
    if path.startswith("file://"):
        return ("local", path[len("file://"):] or "/")
    if "://" in path:
        scheme, rest = path.split("://", 1)
        return (scheme.lower(), rest)
    return ("local", path)


def get_storage(path: str, **options: Any) -> StorageBackend:
    """Get the appropriate storage backend for a path.

    Args:
        path: Storage path (local path or URI)
        **options: Backend-specific options (credentials, endpoint, etc.)

    Returns:
        LocalStorage for local paths, FsspecStorage for everything else
    """
    scheme, _ = parse_uri(path)

    if scheme == "local":
        return LocalStorage(path, **options)
    return FsspecStorage(path, **options)
