"""Generator library modules."""

from hourgen.lib.emitter import EmissionReport, emit_hour
from hourgen.lib.errors import (
    ConfigurationError,
    EmissionInterruptedError,
    ErrorKind,
    GeneratorError,
    InvalidDatetimeError,
    RecordWriteError,
    SchemaError,
    StorageError,
    WriterReleaseError,
)
from hourgen.lib.pacing import HOUR_SECONDS, RECORDS_PER_FILE, Pacer, PacingPolicy
from hourgen.lib.records import SyntheticRecord, build_record, format_fdatetime
from hourgen.lib.runner import RunResult, RunState, generate_hourly_file
from hourgen.lib.schema import load_schema
from hourgen.lib.settings import GeneratorSettings
from hourgen.lib.target import (
    DEFAULT_PATH_PREFIX,
    OutputLocation,
    TargetHour,
    build_output_location,
    resolve_target,
)
from hourgen.lib.writer import ParquetRecordWriter, open_parquet_writer

__all__ = [
    # Target resolution
    "DEFAULT_PATH_PREFIX",
    "OutputLocation",
    "TargetHour",
    "build_output_location",
    "resolve_target",
    # Emission
    "EmissionReport",
    "HOUR_SECONDS",
    "Pacer",
    "PacingPolicy",
    "RECORDS_PER_FILE",
    "SyntheticRecord",
    "build_record",
    "emit_hour",
    "format_fdatetime",
    # Writing
    "ParquetRecordWriter",
    "load_schema",
    "open_parquet_writer",
    # Runs
    "GeneratorSettings",
    "RunResult",
    "RunState",
    "generate_hourly_file",
    # Errors
    "ConfigurationError",
    "EmissionInterruptedError",
    "ErrorKind",
    "GeneratorError",
    "InvalidDatetimeError",
    "RecordWriteError",
    "SchemaError",
    "StorageError",
    "WriterReleaseError",
]
