"""Transaction payload parsing.

Payload syntax (UTF-8 text, exactly four pipe-separated parts)::

    agent_id|message_type|message|timestamp

The timestamp is a base-10 unsigned 64-bit integer. Nothing beyond the
structure is checked here: an empty agent id is a perfectly parseable payload.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from alica_tp.errors import InvalidTimestamp, PayloadNotUtf8, UnformattablePayload, WrongPartCount

PART_SEPARATOR = "|"
REQUIRED_PART_COUNT = 4
U64_MAX = 2**64 - 1

# Optional plus sign, ASCII digits only. int() alone would also accept
# whitespace, underscores and non-ASCII digits.
_U64_LITERAL = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class TransactionPayload:
    """The parsed unit of work carried by one transaction."""

    agent_id: str
    message_type: str
    message_bytes: bytes
    timestamp: int

    def to_bytes(self) -> bytes:
        """Render the payload in its pipe-separated wire form.

        Raises ``UnformattablePayload`` when the result would not parse back
        into the same fields.
        """
        try:
            message = self.message_bytes.decode("utf-8")
        except UnicodeDecodeError:
            raise UnformattablePayload("message_bytes", "not valid UTF-8") from None
        fields = [
            ("agent_id", self.agent_id),
            ("message_type", self.message_type),
            ("message_bytes", message),
        ]
        for name, value in fields:
            if PART_SEPARATOR in value:
                raise UnformattablePayload(name, f"contains the separator {PART_SEPARATOR!r}")
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int) or not 0 <= self.timestamp <= U64_MAX:
            raise UnformattablePayload("timestamp", "not an unsigned 64-bit integer")
        return PART_SEPARATOR.join([value for _, value in fields] + [str(self.timestamp)]).encode("utf-8")


def parse_timestamp(raw: str) -> int:
    if not _U64_LITERAL.fullmatch(raw):
        raise InvalidTimestamp(raw)
    value = int(raw)
    if value > U64_MAX:
        raise InvalidTimestamp(raw)
    return value


def parse_payload(data: bytes) -> TransactionPayload:
    """Parse raw payload bytes into a ``TransactionPayload``.

    Raises:
        PayloadNotUtf8: the bytes are not valid UTF-8
        WrongPartCount: the text does not split into exactly four parts
        InvalidTimestamp: the fourth part is not an unsigned 64-bit integer
    """
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        raise PayloadNotUtf8() from None

    parts = text.split(PART_SEPARATOR)
    if len(parts) != REQUIRED_PART_COUNT:
        raise WrongPartCount(len(parts), REQUIRED_PART_COUNT)

    agent_id, message_type, message, raw_timestamp = parts
    return TransactionPayload(
        agent_id=agent_id,
        message_type=message_type,
        message_bytes=message.encode("utf-8"),
        timestamp=parse_timestamp(raw_timestamp),
    )


class PayloadFormat(Protocol):
    """Protocol for payload wire formats accepted by the transaction handler."""

    def parse(self, data: bytes) -> TransactionPayload:
        ...

    def format(self, payload: TransactionPayload) -> bytes:
        ...


class PipeSeparatedPayloadFormat:
    """The ``agent_id|message_type|message|timestamp`` wire format."""

    def parse(self, data: bytes) -> TransactionPayload:
        return parse_payload(data)

    def format(self, payload: TransactionPayload) -> bytes:
        return payload.to_bytes()
