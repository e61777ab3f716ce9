"""Error taxonomy for the ALICA messages transaction processor.

Every failure the commit protocol can observe is an exception rooted at
``TransactionError``. Each class carries a stable ``code`` that is emitted as
the ``error_code`` of structured log events, so operators can filter on it
without parsing messages.

    TransactionError
    ├── ParseError            malformed or unformattable ``agent|type|message|timestamp``
    ├── ValidationError       embedded message fails its schema
    ├── StoreError            state store could not be read or written
    ├── DuplicateEntry        address already holds exactly one entry
    └── InconsistentState     address holds more than one entry (fatal)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TransactionError(Exception):
    """Base exception for every transaction-level failure."""

    code = "TRANSACTION_ERROR"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

class ParseError(TransactionError):
    """The raw payload is structurally malformed."""

    code = "PARSE_ERROR"


class PayloadNotUtf8(ParseError):
    code = "PAYLOAD_NOT_UTF8"

    def __init__(self) -> None:
        super().__init__("Payload is no UTF-8 string")


class WrongPartCount(ParseError):
    code = "WRONG_PART_COUNT"

    def __init__(self, part_count: int, expected: int = 4):
        self.part_count = part_count
        self.expected = expected
        super().__init__(
            f"Payload needs to have exactly {expected} parts, got {part_count}"
        )


class InvalidTimestamp(ParseError):
    code = "INVALID_TIMESTAMP"

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Payload contains invalid timestamp: {raw!r}")


class UnformattablePayload(ParseError):
    """A payload whose fields cannot be written in the wire form and read back."""

    code = "UNFORMATTABLE_PAYLOAD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Payload field '{field}' cannot be formatted: {reason}")


# =============================================================================
# MESSAGE VALIDATION
# =============================================================================

class ValidationError(TransactionError):
    """The embedded ALICA message does not satisfy its schema."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        if self.field is not None:
            d["field"] = self.field
        return d


class MissingField(ValidationError):
    code = "MISSING_FIELD"

    def __init__(self, field: str):
        super().__init__(f"Required field {field!r} is missing", field=field)


class InvalidFieldType(ValidationError):
    code = "INVALID_FIELD_TYPE"

    def __init__(self, field: str, detail: str = ""):
        self.detail = detail
        message = f"Field {field!r} has an invalid type"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, field=field)


class MessageNotUtf8(ValidationError):
    code = "MESSAGE_NOT_UTF8"

    def __init__(self) -> None:
        super().__init__("Message is no UTF-8 string")


class MessageNotJson(ValidationError):
    code = "MESSAGE_NOT_JSON"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"Message is no valid JSON{': ' + detail if detail else ''}")


class RootNotObject(ValidationError):
    code = "ROOT_NOT_OBJECT"

    def __init__(self, actual_type: str):
        self.actual_type = actual_type
        super().__init__(f"Message root must be a JSON object, got {actual_type}")


class UnknownMessageType(ValidationError):
    code = "UNKNOWN_MESSAGE_TYPE"

    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(f"No matching message validator for {message_type!r} available")


# =============================================================================
# STATE STORE
# =============================================================================

class StoreError(TransactionError):
    """The state store could not be queried or written.

    This is not a verdict on the transaction itself; whether a retry makes sense
    is up to the store contract, hence ``retryable`` is true here and left to the
    caller to honour.
    """

    code = "STORE_ERROR"
    retryable = True


class DuplicateEntry(TransactionError):
    code = "DUPLICATE_ENTRY"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Message with address {address} already exists")


class InconsistentState(TransactionError):
    """More than one entry was reported for a single address.

    Signals corruption of the store's own invariants. Never retryable and never
    to be conflated with ``DuplicateEntry``.
    """

    code = "INCONSISTENT_STATE"

    def __init__(self, address: str, entry_count: int):
        self.address = address
        self.entry_count = entry_count
        super().__init__(
            f"Found {entry_count} state entries for address {address}, expected at most 1"
        )
