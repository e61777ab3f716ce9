"""ALICA message validators and the message-type registry.

Each transaction embeds one ALICA message as JSON. The payload's message type
selects a validator from a ``MessageValidatorRegistry``; a type without a
registered validator is rejected outright.

Validators are backed by the bundled JSON schemas. Fields are checked one at a
time in the order of the schema's ``required`` list and the first failure
wins, so the reported error is deterministic:

    ALICA_ENGINE_INFO                 engine-info
    ALICA_ALLOCATION_AUTHORITY_INFO   allocation-authority-info
    ALICA_PLAN_TREE_INFO              plan-tree-info
    ALICA_ROLE_SWITCH                 role-switch
    ALICA_SYNC_READY                  sync-ready
    ALICA_SYNC_TALK                   sync-talk

Nested documents (capnzero ids, entry point robots, sync data) are validated by
composing their schemas through ``$ref``; they have validators of their own
(see ``validator_for_schema``) but no message type.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from alica_tp.errors import (
    InvalidFieldType,
    MessageNotJson,
    MessageNotUtf8,
    MissingField,
    RootNotObject,
    UnknownMessageType,
)
from alica_tp.schema import load_schema, schema_validator

ENGINE_INFO = "ALICA_ENGINE_INFO"
ALLOCATION_AUTHORITY_INFO = "ALICA_ALLOCATION_AUTHORITY_INFO"
PLAN_TREE_INFO = "ALICA_PLAN_TREE_INFO"
ROLE_SWITCH = "ALICA_ROLE_SWITCH"
SYNC_READY = "ALICA_SYNC_READY"
SYNC_TALK = "ALICA_SYNC_TALK"

MESSAGE_TYPE_SCHEMAS: Dict[str, str] = {
    ENGINE_INFO: "engine-info",
    ALLOCATION_AUTHORITY_INFO: "allocation-authority-info",
    PLAN_TREE_INFO: "plan-tree-info",
    ROLE_SWITCH: "role-switch",
    SYNC_READY: "sync-ready",
    SYNC_TALK: "sync-talk",
}


def json_type_name(value: Any) -> str:
    """Name of the JSON type ``value`` was decoded from."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def decode_message(message_bytes: bytes) -> Any:
    """Decode message bytes as UTF-8 JSON.

    Raises:
        MessageNotUtf8: the bytes are not valid UTF-8
        MessageNotJson: the text is not a JSON document (NaN/Infinity included)
    """
    try:
        text = bytes(message_bytes).decode("utf-8")
    except UnicodeDecodeError:
        raise MessageNotUtf8() from None

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise MessageNotJson(str(e)) from None


class MessageValidator(Protocol):
    """Protocol for validators of embedded ALICA messages."""

    def validate(self, message_bytes: bytes) -> None:
        """Return if the message is valid, raise a ``ValidationError`` otherwise."""
        ...


class JsonSchemaMessageValidator:
    """Validates messages against one bundled schema, field by field."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        schema = load_schema(schema_name)
        properties = schema.get("properties") or {}
        self._field_checks: List[Tuple[str, Draft202012Validator]] = [
            (field, schema_validator(properties.get(field, {})))
            for field in schema.get("required") or []
        ]

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(field for field, _ in self._field_checks)

    def validate(self, message_bytes: bytes) -> None:
        self.validate_document(decode_message(message_bytes))

    def validate_document(self, document: Any) -> None:
        """Validate an already decoded JSON document."""
        if not isinstance(document, dict):
            raise RootNotObject(json_type_name(document))

        for field, validator in self._field_checks:
            if field not in document:
                raise MissingField(field)
            error = best_match(validator.iter_errors(document[field]))
            if error is not None:
                raise InvalidFieldType(field, error.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.schema_name!r})"


@lru_cache(maxsize=None)
def validator_for_schema(schema_name: str) -> JsonSchemaMessageValidator:
    """Return the (shared, stateless) validator for a bundled schema."""
    return JsonSchemaMessageValidator(schema_name)


class MessageValidatorRegistry:
    """Maps message-type tags to message validators.

    Built explicitly at startup::

        registry = (
            MessageValidatorRegistry()
            .register(ENGINE_INFO, validator_for_schema("engine-info"))
            .register(ROLE_SWITCH, validator_for_schema("role-switch"))
        )
    """

    def __init__(self) -> None:
        self._validators: Dict[str, MessageValidator] = {}

    def register(self, message_type: str, validator: MessageValidator) -> "MessageValidatorRegistry":
        """Register ``validator`` for ``message_type``, replacing any previous one."""
        self._validators[message_type] = validator
        return self

    def lookup(self, message_type: str) -> Optional[MessageValidator]:
        return self._validators.get(message_type)

    def validate(self, message_type: str, message_bytes: bytes) -> None:
        """Validate a message with the validator registered for its type.

        Raises:
            UnknownMessageType: nothing is registered for ``message_type``
            ValidationError: the message does not satisfy its schema
        """
        validator = self.lookup(message_type)
        if validator is None:
            raise UnknownMessageType(message_type)
        validator.validate(message_bytes)

    @property
    def message_types(self) -> List[str]:
        return sorted(self._validators)

    def __contains__(self, message_type: object) -> bool:
        return message_type in self._validators

    def __len__(self) -> int:
        return len(self._validators)

    def __iter__(self) -> Iterator[str]:
        return iter(self.message_types)


def default_validator_registry() -> MessageValidatorRegistry:
    """Build a registry with validators for every known ALICA message type."""
    registry = MessageValidatorRegistry()
    for message_type, schema_name in MESSAGE_TYPE_SCHEMAS.items():
        registry.register(message_type, validator_for_schema(schema_name))
    return registry
