"""fsspec backend for remote path prefixes.

Any protocol fsspec knows works here: ``hdfs://`` (through pyarrow),
``s3://`` (install the ``s3`` extra for s3fs), ``gs://`` (gcsfs),
``abfs://``/``az://`` (adlfs), ``ftp://`` and ``memory://``.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Optional, Tuple

from fsspec.core import url_to_fs
from fsspec.spec import AbstractFileSystem

from hourgen.lib.storage.base import StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["FsspecStorage", "OBJECT_STORE_PROTOCOLS"]

# Flat key spaces; directories exist only as key prefixes
OBJECT_STORE_PROTOCOLS = frozenset({"s3", "s3a", "gs", "gcs", "az", "abfs", "abfss", "memory"})


class FsspecStorage(StorageBackend):
    """Writes under an fsspec URI prefix.

    The filesystem is resolved from the whole prefix, so the authority part
    reaches it: ``hdfs://namenode:8020/data`` connects to ``namenode`` on port
    8020, ``ftp://host:2121/out`` to ``host``. Explicit options are merged on
    top and win over values parsed from the URI:

        >>> storage = FsspecStorage("s3://bucket/testfiles", endpoint_url="http://localhost:9000")
        >>> storage.connect()

    Credentials otherwise come from the usual places for the protocol
    (``AWS_ACCESS_KEY_ID``, ``GOOGLE_APPLICATION_CREDENTIALS``, Hadoop config).
    """

    def __init__(self, base_path: str, **options: Any) -> None:
        super().__init__(base_path, **options)
        self._protocol = base_path.split("://", 1)[0].lower() if "://" in base_path else "file"
        self._fs: Optional[AbstractFileSystem] = None
        self._root = ""

    @property
    def scheme(self) -> str:
        return self._protocol

    @property
    def is_object_store(self) -> bool:
        return self._protocol in OBJECT_STORE_PROTOCOLS

    def _resolve(self) -> Tuple[AbstractFileSystem, str]:
        if self._fs is None:
            self._fs, self._root = url_to_fs(self.base_path, **self.options)
        return self._fs, self._root

    @property
    def fs(self) -> AbstractFileSystem:
        return self._resolve()[0]

    @property
    def root(self) -> str:
        """The prefix as a filesystem path, without protocol or authority."""
        return self._resolve()[1]

    def connect(self) -> None:
        fs = self.fs
        logger.debug("Using %s for %s (root %s)", type(fs).__name__, self.base_path, self._root)

    def _full(self, path: str) -> str:
        if "://" in path:
            return self.fs._strip_protocol(path)
        root = self.root.rstrip("/")
        return f"{root}/{path.lstrip('/')}" if path else root

    def open_output(self, path: str) -> BinaryIO:
        full = self._full(path)
        if not self.is_object_store:
            self.fs.makedirs(self.fs._parent(full), exist_ok=True)
        logger.debug("Opening %s for writing", full)
        handle: BinaryIO = self.fs.open(full, "wb")
        return handle

    def makedirs(self, path: str) -> None:
        if self.is_object_store:
            return
        self.fs.makedirs(self._full(path), exist_ok=True)
