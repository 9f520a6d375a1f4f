"""
events.py - Observable Event Records and the Append-Only Event Log

Every committed call leaves exactly one event in the ledger's EventLog:

    Transfer(from, to, token_id)                    single-unit transfer, NFT mint
    TransferToken(from, to, token_id, quantity)     quantity transfer, fungible mint
    BatchTransfer(from, to, token_ids, quantities)  batch transfer
    ApprovalForAll(owner, operator, approved)       operator approval change

Mints are transfer-shaped events whose from_account is NULL_ACCOUNT.
The log is written only after a call has fully committed, so the event log
is also the audit trail used by TokenLedger.replay().
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Iterator, List, Optional, Tuple, Union

from .core import NULL_ACCOUNT


@dataclass(frozen=True, slots=True)
class Transfer:
    from_account: str
    to: str
    token_id: int
    sequence_number: int = -1

    @property
    def is_mint(self) -> bool:
        return self.from_account == NULL_ACCOUNT


@dataclass(frozen=True, slots=True)
class TransferToken:
    from_account: str
    to: str
    token_id: int
    quantity: int
    sequence_number: int = -1

    @property
    def is_mint(self) -> bool:
        return self.from_account == NULL_ACCOUNT


@dataclass(frozen=True, slots=True)
class BatchTransfer:
    from_account: str
    to: str
    token_ids: Tuple[int, ...]
    quantities: Tuple[int, ...]
    sequence_number: int = -1


@dataclass(frozen=True, slots=True)
class ApprovalForAll:
    owner: str
    operator: str
    approved: bool
    sequence_number: int = -1


LedgerEvent = Union[Transfer, TransferToken, BatchTransfer, ApprovalForAll]


class EventLog:
    """
    Append-only sequence of committed events.

    append() stamps each event with a monotonic sequence number. There is
    no way to remove or rewrite an entry.
    """

    def __init__(self):
        self._events: List[LedgerEvent] = []

    def append(self, event: LedgerEvent) -> LedgerEvent:
        """Stamp event with the next sequence number and store it."""
        stamped = replace(event, sequence_number=len(self._events))
        self._events.append(stamped)
        return stamped

    def of_type(self, name: str) -> List[LedgerEvent]:
        """All events whose class name is name, in log order."""
        return [e for e in self._events if type(e).__name__ == name]

    def last(self) -> Optional[LedgerEvent]:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[LedgerEvent]:
        return iter(list(self._events))

    def __getitem__(self, index: int) -> LedgerEvent:
        return self._events[index]

    def copy(self) -> EventLog:
        cloned = EventLog()
        cloned._events = list(self._events)
        return cloned
