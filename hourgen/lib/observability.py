"""Logging setup for hourgen.

Console output is human readable by default. ``--log-format json`` switches
every handler to :class:`JSONFormatter` for log shippers. The run
orchestrator logs through :class:`RunLogger`, which stamps the target hour
and output path onto each record.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from hourgen.lib.errors import ConfigurationError

__all__ = ["JSONFormatter", "RunLogger", "get_run_logger", "setup_logging"]

HUMAN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers that are chatty at INFO and say nothing useful about a run
QUIET_LOGGERS = ("fsspec", "s3fs", "botocore", "aiobotocore", "urllib3")

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Anything passed through ``extra=`` (run context, metric fields, the
    serialised error of a failed run) lands under ``"extra"``:

        {"timestamp": "2024-03-15T07:23:45.120Z", "level": "INFO",
         "logger": "hourgen.lib.runner", "message": "Writing to ...",
         "extra": {"target": "2024031507", "output_path": "..."}}
    """

    def __init__(self, exclude_fields: Optional[Iterable[str]] = None) -> None:
        super().__init__()
        self.exclude_fields = frozenset(exclude_fields or ())

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {"file": record.pathname, "line": record.lineno, "function": record.funcName},
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in self.exclude_fields
        }
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, default=str)


class RunLogger:
    """Wraps a stdlib logger and adds the current run's context to every record."""

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)
        self._context: Dict[str, Any] = {}

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def set_context(self, **fields: Any) -> None:
        self._context.update(fields)

    def clear_context(self) -> None:
        self._context.clear()

    def log(self, level: int, msg: str, *args: Any, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        merged = dict(self._context)
        if extra:
            merged.update(extra)
        self._logger.log(level, msg, *args, extra=merged, stacklevel=3, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def metric(self, name: str, value: Any, unit: Optional[str] = None, **tags: Any) -> None:
        """Log ``METRIC name=value`` with the value also attached as fields."""
        fields: Dict[str, Any] = {"metric_name": name, "metric_value": value, **tags}
        if unit:
            fields["metric_unit"] = unit
        self.log(logging.INFO, "METRIC %s=%s", name, value, extra=fields)


def get_run_logger(name: str) -> RunLogger:
    return RunLogger(name)


def setup_logging(verbose: bool = False, json_format: bool = False, log_file: Optional[str] = None) -> None:
    """Replace the root logger's handlers.

    Args:
        verbose: Log at DEBUG instead of INFO
        json_format: Use JSONFormatter instead of the human format
        log_file: Also write to this file, same format

    Raises:
        ConfigurationError: If ``log_file`` cannot be opened
    """
    level = logging.DEBUG if verbose else logging.INFO
    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(HUMAN_FORMAT, datefmt=HUMAN_DATEFMT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            raise ConfigurationError(
                "Could not open log file",
                field="log_file",
                value=log_file,
                cause=e,
            ) from e

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
