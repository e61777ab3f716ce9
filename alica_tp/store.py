"""State store interface.

The store is owned by the ledger runtime; the commit protocol only reads and
conditionally writes one address per transaction through this protocol.
Implementations report any failure as ``StoreError``.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from alica_tp.addressing import is_valid_address
from alica_tp.errors import StoreError

StateEntry = Tuple[str, bytes]


class StateStore(Protocol):
    """Protocol for the key-value state the transaction is applied against."""

    def get_state_entries(self, addresses: Sequence[str]) -> List[StateEntry]:
        """
        Fetch entries for ``addresses``.

        Only entries that exist are returned.
        """
        ...

    def set_state_entries(self, entries: Sequence[StateEntry]) -> None:
        """Write ``entries``, raising ``StoreError`` on failure."""
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATION (for tests and local tooling)
# =============================================================================

class InMemoryStateStore:
    """Dictionary-backed state store.

    Optionally restricted to a set of namespaces, mirroring a ledger context
    that only grants access to the family's own address prefixes. Every call is
    recorded so tests can assert on the exact store traffic.
    """

    def __init__(
        self,
        entries: Optional[Dict[str, bytes]] = None,
        namespaces: Optional[Iterable[str]] = None,
    ):
        self._entries: Dict[str, bytes] = dict(entries or {})
        self._namespaces = tuple(namespaces) if namespaces is not None else None
        self._lock = threading.Lock()
        self.get_calls: List[List[str]] = []
        self.set_calls: List[List[StateEntry]] = []

    def _check_address(self, address: str) -> None:
        if not is_valid_address(address):
            raise StoreError(f"invalid state address: {address!r}")
        if self._namespaces is not None and not address.startswith(self._namespaces):
            raise StoreError(f"address {address} is outside of the authorized namespaces")

    def get_state_entries(self, addresses: Sequence[str]) -> List[StateEntry]:
        addresses = list(addresses)
        with self._lock:
            self.get_calls.append(addresses)
            for address in addresses:
                self._check_address(address)
            return [(a, self._entries[a]) for a in addresses if a in self._entries]

    def set_state_entries(self, entries: Sequence[StateEntry]) -> None:
        entries = [(address, bytes(data)) for address, data in entries]
        with self._lock:
            self.set_calls.append(entries)
            for address, _ in entries:
                self._check_address(address)
            self._entries.update(entries)

    def get(self, address: str) -> Optional[bytes]:
        with self._lock:
            return self._entries.get(address)

    def __contains__(self, address: object) -> bool:
        with self._lock:
            return address in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
