"""
Transaction handler for the ``alica_messages`` family.

Applies one transaction through a fixed sequence of phases:

    RECEIVED ──parse──▶ PARSED ──validate──▶ VALIDATED ──address──▶ ADDRESSED
        │                  │                                           │
        ▼                  ▼                                           ▼
    REJECTED_INVALID   REJECTED_INVALID            COMMITTED │ REJECTED_DUPLICATE
                                                  REJECTED_INCONSISTENT │ FAILED_STORE

The commit step reads the computed address and writes only if it is empty.
Read and write are two separate store calls: this handler does not make them
atomic. Conflicting transactions for the same address must be serialized by
the ledger runtime that invokes it.

Nothing is retried here. Every outcome is returned to the caller, which
decides whether to retry, reschedule or discard the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from alica_tp.addressing import TransactionFamily
from alica_tp.config import ProcessorConfig
from alica_tp.errors import (
    DuplicateEntry,
    InconsistentState,
    ParseError,
    StoreError,
    TransactionError,
    ValidationError,
)
from alica_tp.messages import MessageValidator, MessageValidatorRegistry, default_validator_registry
from alica_tp.observability import ProcessorStage, correlation_scope, get_logger, timed_operation
from alica_tp.payload import PayloadFormat, PipeSeparatedPayloadFormat, TransactionPayload
from alica_tp.store import StateEntry, StateStore

_handler_log = get_logger("handler", ProcessorStage.HANDLER)
_parse_log = get_logger("payload", ProcessorStage.PARSE)
_validate_log = get_logger("messages", ProcessorStage.VALIDATE)
_commit_log = get_logger("applicator", ProcessorStage.COMMIT)


# =============================================================================
# PROTOCOL STATES
# =============================================================================

class ProtocolPhase(Enum):
    """Non-terminal phases a transaction passes through."""
    RECEIVED = "received"
    PARSED = "parsed"
    VALIDATED = "validated"
    ADDRESSED = "addressed"


class CommitStatus(Enum):
    """Terminal outcome of applying a transaction."""
    COMMITTED = "committed"
    REJECTED_INVALID = "rejected_invalid"
    REJECTED_DUPLICATE = "rejected_duplicate"
    REJECTED_INCONSISTENT = "rejected_inconsistent"
    FAILED_STORE = "failed_store"


@dataclass(frozen=True)
class CommitOutcome:
    """Result of ``TransactionHandler.apply``.

    ``phase`` is the last phase reached before the outcome was decided;
    ``address`` is set once the address has been computed.
    """
    status: CommitStatus
    phase: ProtocolPhase
    address: Optional[str] = None
    error: Optional[TransactionError] = None

    @property
    def committed(self) -> bool:
        return self.status is CommitStatus.COMMITTED

    @property
    def rejected(self) -> bool:
        return self.status in (
            CommitStatus.REJECTED_INVALID,
            CommitStatus.REJECTED_DUPLICATE,
            CommitStatus.REJECTED_INCONSISTENT,
        )

    @property
    def failed(self) -> bool:
        return self.status is CommitStatus.FAILED_STORE

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"status": self.status.value, "phase": self.phase.value}
        if self.address is not None:
            d["address"] = self.address
        if self.error is not None:
            d["error"] = self.error.to_dict()
        return d


# =============================================================================
# CHECK-THEN-WRITE
# =============================================================================

class TransactionApplicator:
    """Create-once writes against a state store."""

    def __init__(self, store: StateStore):
        self._store = store

    def fetch(self, address: str) -> List[StateEntry]:
        try:
            return list(self._store.get_state_entries([address]))
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Reading state at {address} failed: {e}") from e

    def create_at(self, address: str, data: bytes) -> None:
        """Write ``data`` at ``address`` unless the address is occupied.

        Raises:
            DuplicateEntry: exactly one entry exists at the address
            InconsistentState: more than one entry exists at the address
            StoreError: the store could not be read or written
        """
        entries = self.fetch(address)
        if len(entries) == 1:
            raise DuplicateEntry(address)
        if len(entries) > 1:
            raise InconsistentState(address, len(entries))
        self._store_at(address, data)

    def _store_at(self, address: str, data: bytes) -> None:
        try:
            self._store.set_state_entries([(address, bytes(data))])
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Writing state at {address} failed: {e}") from e


# =============================================================================
# HANDLER
# =============================================================================

class TransactionHandler:
    """Validates ALICA message transactions and commits them create-once."""

    def __init__(
        self,
        family: Optional[TransactionFamily] = None,
        validators: Optional[MessageValidatorRegistry] = None,
        payload_format: Optional[PayloadFormat] = None,
    ):
        self.family = family or TransactionFamily()
        self.validators = validators if validators is not None else MessageValidatorRegistry()
        self.payload_format = payload_format or PipeSeparatedPayloadFormat()

    @property
    def family_name(self) -> str:
        return self.family.name

    @property
    def family_versions(self) -> List[str]:
        return list(self.family.versions)

    @property
    def namespaces(self) -> List[str]:
        return [self.family.namespace]

    def with_validator_for(self, message_type: str, validator: MessageValidator) -> "TransactionHandler":
        self.validators.register(message_type, validator)
        return self

    def apply(
        self,
        payload_bytes: bytes,
        store: StateStore,
        signer_public_key: str = "",
    ) -> CommitOutcome:
        """Apply one transaction payload against ``store``."""
        with correlation_scope():
            _handler_log.info(
                f"Transaction received from {signer_public_key[:6] or 'unknown signer'}",
                operation="receive",
                payload_size=len(payload_bytes),
            )
            return self._apply(payload_bytes, store)

    @timed_operation(_handler_log, "apply")
    def _apply(self, payload_bytes: bytes, store: StateStore) -> CommitOutcome:
        try:
            payload = self.payload_format.parse(payload_bytes)
        except ParseError as e:
            _parse_log.warning(
                f"Rejecting transaction, error parsing payload: {e}",
                operation="parse",
                error_code=e.code,
            )
            return CommitOutcome(CommitStatus.REJECTED_INVALID, ProtocolPhase.RECEIVED, error=e)
        _parse_log.debug("Payload format valid: pipe separated", operation="parse",
                         agent_id=payload.agent_id, message_type=payload.message_type)

        try:
            self.validators.validate(payload.message_type, payload.message_bytes)
        except ValidationError as e:
            _validate_log.warning(
                f"Rejecting transaction, message validation failed: {e}",
                operation="validate",
                error_code=e.code,
                message_type=payload.message_type,
            )
            return CommitOutcome(CommitStatus.REJECTED_INVALID, ProtocolPhase.PARSED, error=e)
        _validate_log.debug(f"Message of type {payload.message_type} is valid", operation="validate")

        address = self.family.address_for(payload)
        return self._commit(payload, address, store)

    def _commit(self, payload: TransactionPayload, address: str, store: StateStore) -> CommitOutcome:
        _commit_log.debug(f"Trying to create state entry for address {address}", operation="commit")
        try:
            TransactionApplicator(store).create_at(address, payload.message_bytes)
        except DuplicateEntry as e:
            _commit_log.warning(str(e), operation="commit", error_code=e.code, address=address)
            return CommitOutcome(CommitStatus.REJECTED_DUPLICATE, ProtocolPhase.ADDRESSED, address, e)
        except InconsistentState as e:
            _commit_log.critical(
                f"State store invariant violated: {e}",
                error_code=e.code,
                operation="commit",
                address=address,
                entry_count=e.entry_count,
            )
            return CommitOutcome(CommitStatus.REJECTED_INCONSISTENT, ProtocolPhase.ADDRESSED, address, e)
        except StoreError as e:
            _commit_log.error(
                f"State store failure: {e}",
                error_code=e.code,
                operation="commit",
                address=address,
            )
            return CommitOutcome(CommitStatus.FAILED_STORE, ProtocolPhase.ADDRESSED, address, e)

        _commit_log.info(
            f"State entry created at {address}",
            operation="commit",
            agent_id=payload.agent_id,
            message_type=payload.message_type,
        )
        return CommitOutcome(CommitStatus.COMMITTED, ProtocolPhase.ADDRESSED, address)


def build_handler(config: Optional[ProcessorConfig] = None) -> TransactionHandler:
    """Wire a handler for every known message type from ``config``."""
    config = config or ProcessorConfig()
    family = TransactionFamily(
        name=config.family.name.get(),
        versions=tuple(config.family.versions.get()),
    )
    return TransactionHandler(family=family, validators=default_validator_registry())
