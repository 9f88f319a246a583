"""
Schema checks for board files read from disk.

Only config.yaml has a schema today. Every violation is reported in one
error so a user fixes the file in one pass.
"""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema

from projectboard.lib.errors import ConfigError

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


class ValidationError(ConfigError):
    """A board file does not match its schema.

    `path` is the dotted location of the first violation, "(root)" for
    problems with the mapping itself (unknown keys).
    """

    def __init__(self, schema_name: str, message: str, path: str | None = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> dict:
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
    return json.loads(schema_path.read_text())


def _location(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str) -> None:
    """Check data against a named schema.

    Raises:
        ValidationError: Listing every violation, ordered by location.
    """
    validator = jsonschema.Draft7Validator(load_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    if not errors:
        return

    first = errors[0]
    message = first.message
    if len(errors) > 1:
        others = "; ".join(f"{_location(e)}: {e.message}" for e in errors[1:])
        message += f" (also: {others})"
    raise ValidationError(schema_name, message, _location(first))
