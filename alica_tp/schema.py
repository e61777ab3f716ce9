"""JSON Schema validation infrastructure.

Provides the schema machinery the message validators are built on:
- A cross-reference registry for all bundled ALICA message schemas, so nested
  schemas (capnzero id, entry point robots, sync data) compose through ``$ref``
- A Draft 2020-12 validator with strict integers: ``1.0`` and ``true`` are not
  integers, matching what a 64-bit JSON integer reader accepts
- Cached validators for performance

Bundled schemas carry no ``$schema`` keyword. A referenced resource declaring
one would make jsonschema switch to the stock validator class mid-document and
lose the strict integer check.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

from jsonschema import Draft202012Validator, validators
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from alica_tp.core import SCHEMAS_DIR, load_json

SCHEMA_BASE_URI = "https://schemas.alica-messages.org/alica/"
SCHEMA_SUFFIX = ".schema.json"


def _is_strict_integer(checker: Any, instance: Any) -> bool:
    return isinstance(instance, int) and not isinstance(instance, bool)


StrictDraft202012Validator = validators.extend(
    Draft202012Validator,
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine("integer", _is_strict_integer),
)


def schema_uri(name: str) -> str:
    """Return the ``$id`` of the bundled schema called ``name``."""
    return f"{SCHEMA_BASE_URI}{name}{SCHEMA_SUFFIX}"


def available_schemas(schemas_dir: Path = SCHEMAS_DIR) -> List[str]:
    """List the names of all bundled schemas (``engine-info``, ``capnzero-id``, ...)."""
    return sorted(p.name[: -len(SCHEMA_SUFFIX)] for p in schemas_dir.glob(f"*{SCHEMA_SUFFIX}"))


@lru_cache(maxsize=4)
def _load_schemas(schemas_dir: Path = SCHEMAS_DIR) -> Dict[str, Dict[str, Any]]:
    schemas: Dict[str, Dict[str, Any]] = {}
    for schema_path in sorted(schemas_dir.glob(f"*{SCHEMA_SUFFIX}")):
        schema = load_json(schema_path)
        if not isinstance(schema, dict):
            raise ValueError(f"schema must be a JSON object: {schema_path}")
        schemas[schema_path.name[: -len(SCHEMA_SUFFIX)]] = schema
    return schemas


@lru_cache(maxsize=4)
def schema_registry(schemas_dir: Path = SCHEMAS_DIR) -> Registry:
    """Build a registry for all bundled schemas.

    This enables $ref resolution across the schema corpus.
    Cached for performance.
    """
    resources: List[Tuple[str, Resource]] = []
    for name, schema in _load_schemas(schemas_dir).items():
        # Use $id from schema, or derive from filename
        schema_id = schema.get("$id") or schema_uri(name)
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


def load_schema(name: str, schemas_dir: Path = SCHEMAS_DIR) -> Dict[str, Any]:
    """Return the bundled schema document called ``name``.

    Raises:
        KeyError: no such schema is bundled
    """
    schemas = _load_schemas(schemas_dir)
    if name not in schemas:
        raise KeyError(f"unknown schema: {name}")
    return schemas[name]


def schema_validator(schema: Dict[str, Any], schemas_dir: Path = SCHEMAS_DIR) -> Draft202012Validator:
    """Create a strict validator for ``schema`` (a whole document or a subschema).

    Args:
        schema: The JSON Schema to validate against
        schemas_dir: Directory the reference registry is built from

    Returns:
        A configured validator sharing the cached registry
    """
    return StrictDraft202012Validator(schema, registry=schema_registry(schemas_dir))


def validate_against_schema(obj: Any, name: str, schemas_dir: Path = SCHEMAS_DIR) -> List[str]:
    """Validate an object against a bundled schema.

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = schema_validator(load_schema(name, schemas_dir), schemas_dir)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    ]
