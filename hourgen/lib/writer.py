"""Row-record append writer on top of ``pyarrow.parquet.ParquetWriter``."""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Dict, List, Mapping

import pyarrow as pa
import pyarrow.parquet as pq

from hourgen.lib.errors import StorageError
from hourgen.lib.storage import StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["COMPRESSION", "DEFAULT_ROW_GROUP_SIZE", "ParquetRecordWriter", "open_parquet_writer"]

COMPRESSION = "snappy"
DEFAULT_ROW_GROUP_SIZE = 10_000


class ParquetRecordWriter:
    """Append dict-like records to a Parquet file one at a time.

    Records are buffered and flushed as a row group once ``row_group_size``
    rows are pending, and on close. Closing writes the Parquet footer and
    closes the underlying sink.

    Example:
        >>> with storage.open_output(path) as sink:
        ...     writer = ParquetRecordWriter(sink, schema)
        ...     writer.write({"id": 0, "name": "abc", "fdatetime": "20240315070000"})
        ...     writer.close()
    """

    def __init__(
        self,
        sink: BinaryIO,
        schema: pa.Schema,
        *,
        compression: str = COMPRESSION,
        row_group_size: int = DEFAULT_ROW_GROUP_SIZE,
        path: str = "",
    ) -> None:
        self.schema = schema
        self.compression = compression
        self.row_group_size = max(1, row_group_size)
        self.path = path
        self.rows_written = 0
        self._sink = sink
        self._buffer: List[Dict[str, Any]] = []
        self._closed = False
        self._writer = pq.ParquetWriter(sink, schema, compression=compression)

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, record: Mapping[str, Any]) -> None:
        """Append one record; flushes a row group when the buffer is full."""
        if self._closed:
            raise ValueError(f"Cannot write to closed writer for {self.path or 'sink'}")
        self._buffer.append(dict(record))
        self.rows_written += 1
        if len(self._buffer) >= self.row_group_size:
            self.flush()

    def flush(self) -> None:
        """Write buffered records as a row group."""
        if not self._buffer:
            return
        table = pa.Table.from_pylist(self._buffer, schema=self.schema)
        self._buffer.clear()
        self._writer.write_table(table)

    def close(self) -> None:
        """Flush, write the footer and close the sink.

        The sink is closed even if flushing or finalizing fails; the first
        error is re-raised.
        """
        if self._closed:
            return
        self._closed = True
        try:
            try:
                self.flush()
            finally:
                self._writer.close()
        finally:
            self._sink.close()
        logger.debug("Closed %s after %d rows", self.path or "sink", self.rows_written)


def open_parquet_writer(
    storage: StorageBackend,
    path: str,
    schema: pa.Schema,
    *,
    compression: str = COMPRESSION,
    row_group_size: int = DEFAULT_ROW_GROUP_SIZE,
) -> ParquetRecordWriter:
    """Open ``path`` on ``storage`` and wrap it in a ParquetRecordWriter.

    Raises:
        StorageError: If the output file cannot be opened
    """
    try:
        sink = storage.open_output(path)
    except Exception as e:
        raise StorageError(
            "Could not open output file",
            path=path,
            operation="open",
            cause=e,
        ) from e

    try:
        return ParquetRecordWriter(
            sink,
            schema,
            compression=compression,
            row_group_size=row_group_size,
            path=path,
        )
    except Exception as e:
        sink.close()
        raise StorageError(
            "Could not create Parquet writer",
            path=path,
            operation="open",
            cause=e,
        ) from e
