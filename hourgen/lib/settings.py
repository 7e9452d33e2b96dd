"""Run settings resolved from CLI flags, environment variables and defaults.

``GeneratorSettings`` is a pydantic-settings model: values passed to the
constructor (the CLI flags) win over ``HOURGEN_*`` environment variables and
a ``.env`` file in the working directory, which win over the defaults.

Environment Variables:
    HOURGEN_PATH: Output path prefix (default file:///tmp)
    HOURGEN_SCHEMA: Schema file (default: bundled samplerec.avsc)
    HOURGEN_QUICK: Disable pacing ('true', '1', 'yes', 'on')
    HOURGEN_LOG_FORMAT: 'human' or 'json'
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Literal, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hourgen.lib.env import expand_options
from hourgen.lib.errors import ConfigurationError
from hourgen.lib.target import DEFAULT_PATH_PREFIX

__all__ = ["GeneratorSettings", "parse_storage_options"]


def parse_storage_options(pairs: Optional[Iterable[str]]) -> Dict[str, Any]:
    """Turn ``KEY=VALUE`` strings into a storage options dict.

    ``${VAR}`` references in values are expanded from the environment.

    Raises:
        ConfigurationError: If an entry has no ``=`` or an empty key
    """
    options: Dict[str, Any] = {}
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(
                "Storage options must be given as KEY=VALUE",
                field="storage_option",
                value=pair,
            )
        options[key] = value
    return expand_options(options)


class GeneratorSettings(BaseSettings):
    """Everything a single run needs to know.

    Example:
        >>> # HOURGEN_PATH=hdfs://namenode:8020/data/testfiles
        >>> settings = GeneratorSettings(quick=True)
        >>> settings.path_prefix
        'hdfs://namenode:8020/data/testfiles'
    """

    datetime_override: Optional[str] = Field(default=None, description="YYYYMMDDHH target hour override")
    path_prefix: str = Field(
        default=DEFAULT_PATH_PREFIX,
        validation_alias=AliasChoices("path_prefix", "hourgen_path"),
        description="Output path prefix (local path or fsspec URI)",
    )
    quick: bool = Field(default=False, description="Write all records without pacing")
    schema_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("schema_path", "hourgen_schema"),
        description="Record schema file; the bundled samplerec.avsc when unset",
    )
    storage_options: Dict[str, Any] = Field(default_factory=dict, description="fsspec filesystem options")
    dry_run: bool = Field(default=False, description="Resolve everything but write nothing")
    log_format: Literal["human", "json"] = Field(default="human", description="Console log format")

    model_config = SettingsConfigDict(
        env_prefix="HOURGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @classmethod
    def resolve(
        cls,
        *,
        datetime_override: Optional[str] = None,
        path_prefix: Optional[str] = None,
        quick: bool = False,
        schema_path: Optional[str] = None,
        storage_options: Optional[Iterable[str]] = None,
        dry_run: bool = False,
        log_format: Optional[str] = None,
    ) -> "GeneratorSettings":
        """Build settings from CLI values; unset flags fall back to the environment.

        Raises:
            ConfigurationError: If a storage option is malformed or a value
                fails validation
        """
        cli_values: Dict[str, Any] = {
            "datetime_override": datetime_override,
            "path_prefix": path_prefix,
            "quick": quick or None,
            "schema_path": schema_path,
            "storage_options": parse_storage_options(storage_options) or None,
            "dry_run": dry_run or None,
            "log_format": log_format,
        }
        try:
            return cls(**{name: value for name, value in cli_values.items() if value is not None})
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise ConfigurationError(
                f"Invalid setting '{field}': {error['msg']}",
                field=field,
                value=error.get("input"),
                suggestion="Check the command-line flag or the matching HOURGEN_* variable",
                cause=e,
            ) from e
