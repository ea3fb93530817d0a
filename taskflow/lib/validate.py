"""
Schema validation for the task store.

Enforces JSON Schema validation at every file boundary.
Fails hard with MalformedData rather than returning partially-typed data.
"""

import json
from pathlib import Path
from typing import Any

import jsonschema

from taskflow.lib.errors import MalformedData, NotFound


# Cache loaded schemas
_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    """Get path to schemas directory."""
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise NotFound(schema_path, f"Schema '{schema_name}'")
        _schema_cache[schema_name] = json.loads(schema_path.read_text())
    return _schema_cache[schema_name]


def validate(data: Any, schema_name: str, source: Path | str = "(memory)") -> None:
    """
    Validate data against named schema.

    Args:
        data: Parsed JSON to validate
        schema_name: Schema name (e.g., "task", "feature", "project_index")
        source: Where the data came from, for the error message

    Raises:
        MalformedData: If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise MalformedData(source, f"[{schema_name}] {e.message} at {path}") from None


def validate_file(filepath: Path, schema_name: str) -> dict:
    """
    Load JSON file and validate against schema.

    Returns:
        Parsed and validated data

    Raises:
        NotFound: If the file does not exist
        MalformedData: If the file is not JSON or doesn't match schema
    """
    if not filepath.exists():
        raise NotFound(filepath)

    try:
        data = json.loads(filepath.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedData(filepath, f"Not valid UTF-8: {e}") from None
    except json.JSONDecodeError as e:
        raise MalformedData(filepath, f"Invalid JSON: {e}") from None

    validate(data, schema_name, filepath)
    return data


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.

    Raises:
        MalformedData: If data doesn't match schema
    """
    try:
        validate(data, schema_name, filepath)
    except MalformedData as e:
        raise MalformedData(filepath, f"Refusing to write invalid data: {e.detail}") from None


def write_json(filepath: Path, data: dict, schema_name: str) -> None:
    """Validate, then overwrite the whole file."""
    validate_before_write(data, schema_name, filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(json.dumps(data, indent=2) + "\n")
