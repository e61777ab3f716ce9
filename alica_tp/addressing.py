"""State addressing for the ``alica_messages`` transaction family.

A state address is 70 lowercase hex characters::

    sha512(family_name)[:6] + sha512(agent_id + message_type + timestamp)[:64]

The record part deliberately ignores the message content: two payloads sharing
``(agent_id, message_type, timestamp)`` land on the same address, and the
create-once commit rejects the second one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from alica_tp.core import is_lower_hex, sha512_hex
from alica_tp.payload import TransactionPayload

NAMESPACE_LENGTH = 6
RECORD_KEY_LENGTH = 64
ADDRESS_LENGTH = NAMESPACE_LENGTH + RECORD_KEY_LENGTH

DEFAULT_FAMILY_NAME = "alica_messages"
DEFAULT_FAMILY_VERSIONS = ("0.1.0",)


def namespace_for(family_name: str) -> str:
    """Namespace prefix of a transaction family."""
    return sha512_hex(family_name)[:NAMESPACE_LENGTH]


def record_key_for(payload: TransactionPayload) -> str:
    """Record part of the address; depends on agent, type and timestamp only."""
    return sha512_hex(f"{payload.agent_id}{payload.message_type}{payload.timestamp}")[:RECORD_KEY_LENGTH]


def address_for(family_name: str, payload: TransactionPayload) -> str:
    """Compute the state address of ``payload`` within ``family_name``."""
    return namespace_for(family_name) + record_key_for(payload)


def is_valid_address(value: Any) -> bool:
    """Check if ``value`` has the shape of a state address."""
    return is_lower_hex(value, ADDRESS_LENGTH)


def address_in_namespace(address: str, family_name: str) -> bool:
    return is_valid_address(address) and address[:NAMESPACE_LENGTH] == namespace_for(family_name)


@dataclass(frozen=True)
class TransactionFamily:
    """Identity of the transaction family a handler serves."""

    name: str = DEFAULT_FAMILY_NAME
    versions: Tuple[str, ...] = DEFAULT_FAMILY_VERSIONS

    def __post_init__(self) -> None:
        object.__setattr__(self, "versions", tuple(self.versions))
        if not self.name:
            raise ValueError("transaction family name must not be empty")
        if not self.versions:
            raise ValueError(f"transaction family {self.name} needs at least one version")

    @property
    def namespace(self) -> str:
        return namespace_for(self.name)

    def address_for(self, payload: TransactionPayload) -> str:
        return address_for(self.name, payload)
