"""Record schema loading.

Schemas are Avro-style record definitions, either as ``.avsc`` JSON or the
same structure written in YAML:

    type: record
    name: SampleRec
    fields:
      - {name: id, type: int}
      - {name: name, type: string}
      - {name: fdatetime, type: string}

They are converted to a ``pyarrow.Schema`` for the Parquet writer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pyarrow as pa
import yaml

from hourgen.lib.errors import SchemaError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_SCHEMA_PATH",
    "REQUIRED_FIELDS",
    "load_schema",
    "parse_schema",
    "validate_record_schema",
]

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "samplerec.avsc"

AVRO_TO_ARROW: Dict[str, pa.DataType] = {
    "int": pa.int32(),
    "long": pa.int64(),
    "float": pa.float32(),
    "double": pa.float64(),
    "boolean": pa.bool_(),
    "string": pa.string(),
    "bytes": pa.binary(),
}

# Field name -> predicate on its arrow type
REQUIRED_FIELDS = {
    "id": pa.types.is_integer,
    "name": pa.types.is_string,
    "fdatetime": pa.types.is_string,
}


def _field_type(name: str, avro_type: Any) -> tuple[pa.DataType, bool]:
    """Return (arrow type, nullable) for an Avro field type."""
    if isinstance(avro_type, list):
        members = [t for t in avro_type if t != "null"]
        if len(members) != 1:
            raise SchemaError(
                f"Field '{name}' uses an unsupported union: {avro_type}",
                suggestion="Only [\"null\", <type>] unions are supported",
            )
        arrow_type, _ = _field_type(name, members[0])
        return arrow_type, "null" in avro_type

    if isinstance(avro_type, dict):
        avro_type = avro_type.get("type")

    if not isinstance(avro_type, str) or avro_type not in AVRO_TO_ARROW:
        raise SchemaError(
            f"Field '{name}' has unsupported type: {avro_type!r}",
            details={"supported_types": ", ".join(sorted(AVRO_TO_ARROW))},
        )
    return AVRO_TO_ARROW[avro_type], False


def parse_schema(definition: Dict[str, Any]) -> pa.Schema:
    """Convert a parsed Avro record definition to a pyarrow schema.

    Args:
        definition: Mapping with ``type: record`` and a ``fields`` list

    Returns:
        pyarrow.Schema with one field per record field, in order

    Raises:
        SchemaError: If the definition is not a record or uses
            unsupported types
    """
    if not isinstance(definition, dict) or definition.get("type") != "record":
        raise SchemaError("Schema must be an Avro record definition")

    fields = definition.get("fields")
    if not isinstance(fields, list) or not fields:
        raise SchemaError("Schema record must define a non-empty 'fields' list")

    arrow_fields: List[pa.Field] = []
    for entry in fields:
        if not isinstance(entry, dict) or "name" not in entry or "type" not in entry:
            raise SchemaError(f"Malformed schema field: {entry!r}")
        arrow_type, nullable = _field_type(entry["name"], entry["type"])
        arrow_fields.append(pa.field(entry["name"], arrow_type, nullable=nullable))

    metadata = {}
    if definition.get("name"):
        metadata["avro.name"] = str(definition["name"])
    if definition.get("namespace"):
        metadata["avro.namespace"] = str(definition["namespace"])

    return pa.schema(arrow_fields, metadata=metadata or None)


def validate_record_schema(schema: pa.Schema) -> None:
    """Check that ``schema`` can hold generated records."""
    missing: List[str] = []
    for name, predicate in REQUIRED_FIELDS.items():
        index = schema.get_field_index(name)
        if index < 0 or not predicate(schema.field(index).type):
            missing.append(name)

    if missing:
        raise SchemaError(
            "Schema is missing required record fields",
            details={"missing_or_mistyped": ", ".join(missing)},
            suggestion="Define an integer 'id' and string 'name' and 'fdatetime' fields",
        )


def load_schema(path: Optional[Union[str, Path]] = None) -> pa.Schema:
    """Load, convert and validate the record schema.

    Args:
        path: Schema file (``.avsc``/``.json`` or ``.yaml``/``.yml``);
            defaults to the bundled ``samplerec.avsc``

    Returns:
        Validated pyarrow schema

    Raises:
        SchemaError: If the file cannot be read or parsed, or the schema
            lacks the required fields
    """
    schema_path = Path(path) if path else DEFAULT_SCHEMA_PATH

    try:
        text = schema_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaError("Could not read schema file", schema_path=str(schema_path), cause=e) from e

    try:
        if schema_path.suffix.lower() in (".yaml", ".yml"):
            definition = yaml.safe_load(text)
        else:
            definition = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaError("Could not parse schema file", schema_path=str(schema_path), cause=e) from e

    try:
        schema = parse_schema(definition)
        validate_record_schema(schema)
    except SchemaError as e:
        raise SchemaError(
            e.message,
            schema_path=str(schema_path),
            details=dict(e.details),
            suggestion=e.suggestion,
        ) from e

    logger.debug("Loaded schema %s with fields %s", schema_path, schema.names)
    return schema
