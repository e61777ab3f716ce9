"""ALICA messages transaction processor, v0.1.0

Validation-and-commit core of the ``alica_messages`` ledger transaction family.

Architecture:
    alica_tp/
    ├── __init__.py       # Package entry, version, public API
    ├── core.py           # Primitives: sha512, JSON, YAML, paths
    ├── errors.py         # Transaction error taxonomy
    ├── payload.py        # agent|type|message|timestamp payload parsing
    ├── schema.py         # JSON Schema validation infrastructure
    ├── messages.py       # ALICA message validators and type registry
    ├── addressing.py     # Namespace and state address derivation
    ├── store.py          # State store protocol and in-memory store
    ├── handler.py        # Parse/validate/address/commit protocol
    ├── config.py         # YAML + environment configuration
    ├── observability.py  # Structured logging
    └── schemas/          # Bundled ALICA message JSON schemas

Typical use::

    handler = build_handler()
    outcome = handler.apply(payload_bytes, store, signer_public_key)
    if outcome.committed:
        ...
"""

__version__ = "0.1.0"

from alica_tp.addressing import (
    ADDRESS_LENGTH,
    TransactionFamily,
    address_for,
    is_valid_address,
    namespace_for,
)
from alica_tp.errors import (
    DuplicateEntry,
    InconsistentState,
    InvalidFieldType,
    InvalidTimestamp,
    MessageNotJson,
    MessageNotUtf8,
    MissingField,
    ParseError,
    PayloadNotUtf8,
    RootNotObject,
    StoreError,
    TransactionError,
    UnformattablePayload,
    UnknownMessageType,
    ValidationError,
    WrongPartCount,
)
from alica_tp.handler import (
    CommitOutcome,
    CommitStatus,
    ProtocolPhase,
    TransactionApplicator,
    TransactionHandler,
    build_handler,
)
from alica_tp.messages import (
    JsonSchemaMessageValidator,
    MessageValidator,
    MessageValidatorRegistry,
    default_validator_registry,
    validator_for_schema,
)
from alica_tp.payload import PipeSeparatedPayloadFormat, TransactionPayload, parse_payload
from alica_tp.store import InMemoryStateStore, StateStore

__all__ = [
    "__version__",
    "ADDRESS_LENGTH",
    "TransactionFamily",
    "address_for",
    "is_valid_address",
    "namespace_for",
    "TransactionError",
    "ParseError",
    "PayloadNotUtf8",
    "WrongPartCount",
    "InvalidTimestamp",
    "UnformattablePayload",
    "ValidationError",
    "MissingField",
    "InvalidFieldType",
    "MessageNotUtf8",
    "MessageNotJson",
    "RootNotObject",
    "UnknownMessageType",
    "StoreError",
    "DuplicateEntry",
    "InconsistentState",
    "CommitOutcome",
    "CommitStatus",
    "ProtocolPhase",
    "TransactionApplicator",
    "TransactionHandler",
    "build_handler",
    "JsonSchemaMessageValidator",
    "MessageValidator",
    "MessageValidatorRegistry",
    "default_validator_registry",
    "validator_for_schema",
    "PipeSeparatedPayloadFormat",
    "TransactionPayload",
    "parse_payload",
    "InMemoryStateStore",
    "StateStore",
]
