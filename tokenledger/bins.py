"""
bins.py - Packed Balance Storage

Balances are stored several-to-a-word: each account owns a set of bins,
each bin is one wide integer holding a fixed number of fixed-width slots.

    bin index   = token_id // slots_per_bin
    slot offset = token_id %  slots_per_bin

1. BinLayout - slot width and arity, plus token id -> (bin, offset) addressing
2. Bin - immutable fixed-size array of slots with bounds-checked accessors
3. PackedBalanceStore - per-account bins with get/set by token id

All bit manipulation happens inside Bin. Writing a slot never disturbs
its siblings, and a quantity that does not fit the slot is rejected with
Overflow - values are never clamped or wrapped.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from .core import SLOT_BITS, SLOTS_PER_BIN, Overflow, check_token_id


@dataclass(frozen=True, slots=True)
class BinLayout:
    """
    Geometry of packed balance storage.

    Attributes:
        slot_bits: Width of one balance slot in bits.
        slots_per_bin: Number of slots packed into one bin word.
    """
    slot_bits: int = SLOT_BITS
    slots_per_bin: int = SLOTS_PER_BIN

    def __post_init__(self):
        if self.slot_bits <= 0:
            raise ValueError(f"slot_bits must be positive, got {self.slot_bits}")
        if self.slots_per_bin <= 0:
            raise ValueError(f"slots_per_bin must be positive, got {self.slots_per_bin}")

    @property
    def max_quantity(self) -> int:
        """Largest value a single slot can hold."""
        return (1 << self.slot_bits) - 1

    @property
    def word_bits(self) -> int:
        return self.slot_bits * self.slots_per_bin

    def locate(self, token_id: int) -> Tuple[int, int]:
        """Return (bin_index, slot_offset) for a token id."""
        return divmod(token_id, self.slots_per_bin)

    def token_id(self, bin_index: int, offset: int) -> int:
        """Inverse of locate()."""
        return bin_index * self.slots_per_bin + offset


@dataclass(frozen=True, slots=True)
class Bin:
    """
    A fixed-size array of balance slots packed into one integer word.

    Slot i occupies bits [i * slot_bits, (i + 1) * slot_bits). Bins are
    immutable: set() returns a new Bin.

    Example:
        b = Bin(BinLayout()).set(3, 500)
        b.get(3)   # 500
        b.get(4)   # 0
    """
    layout: BinLayout = field(default_factory=BinLayout)
    word: int = 0

    def __post_init__(self):
        if self.word < 0 or self.word >> self.layout.word_bits:
            raise ValueError(f"word does not fit in {self.layout.word_bits} bits")

    def _check_offset(self, offset: int) -> None:
        if not 0 <= offset < self.layout.slots_per_bin:
            raise IndexError(
                f"slot offset {offset} outside bin of {self.layout.slots_per_bin} slots"
            )

    def get(self, offset: int) -> int:
        """Read the slot at offset."""
        self._check_offset(offset)
        shift = offset * self.layout.slot_bits
        return (self.word >> shift) & self.layout.max_quantity

    def set(self, offset: int, value: int) -> Bin:
        """
        Return a copy of this bin with the slot at offset replaced.

        Raises:
            IndexError: If offset is outside the bin
            ValueError: If value is negative
            Overflow: If value exceeds the slot width
        """
        self._check_offset(offset)
        if value < 0:
            raise ValueError(f"slot value cannot be negative, got {value}")
        if value > self.layout.max_quantity:
            raise Overflow(
                f"slot value {value} exceeds capacity {self.layout.max_quantity}"
            )
        shift = offset * self.layout.slot_bits
        mask = self.layout.max_quantity << shift
        return Bin(self.layout, (self.word & ~mask) | (value << shift))

    def slots(self) -> Tuple[int, ...]:
        """All slot values in offset order."""
        return tuple(self.get(i) for i in range(self.layout.slots_per_bin))

    def is_empty(self) -> bool:
        return self.word == 0

    def __repr__(self) -> str:
        occupied = {i: v for i, v in enumerate(self.slots()) if v}
        return f"Bin({occupied})"


class PackedBalanceStore:
    """
    Per-account balance storage grouped into fixed-capacity bins.

    Only non-empty bins are stored; a bin whose every slot returns to zero
    is dropped. The store knows nothing about kinds, owners or counters:
    callers observe the previous value returned by set() to drive their
    own bookkeeping.

    Example:
        store = PackedBalanceStore()
        store.set("alice", 17, 10)   # bin 1, offset 1
        store.get("alice", 17)       # 10
        store.set("alice", 17, 70000)  # raises Overflow, slot still 10
    """

    def __init__(self, layout: BinLayout = None):
        self.layout = layout or BinLayout()
        self._bins: Dict[str, Dict[int, Bin]] = {}

    @property
    def max_quantity(self) -> int:
        return self.layout.max_quantity

    def get(self, account: str, token_id: int) -> int:
        """Return the quantity of token_id held by account (0 if none)."""
        check_token_id(token_id)
        bin_index, offset = self.layout.locate(token_id)
        bin_ = self._bins.get(account, {}).get(bin_index)
        if bin_ is None:
            return 0
        return bin_.get(offset)

    def set(self, account: str, token_id: int, quantity: int) -> int:
        """
        Overwrite one slot.

        Args:
            account: Account whose slot is written
            token_id: Token id addressing the slot
            quantity: New slot value

        Returns:
            The previous slot value

        Raises:
            Overflow: If quantity exceeds the slot capacity (slot unchanged)
            ValueError: If quantity is negative (slot unchanged)
        """
        check_token_id(token_id)
        bin_index, offset = self.layout.locate(token_id)
        account_bins = self._bins.get(account, {})
        current = account_bins.get(bin_index) or Bin(self.layout)
        updated = current.set(offset, quantity)

        if updated.is_empty():
            account_bins.pop(bin_index, None)
            if not account_bins:
                self._bins.pop(account, None)
        else:
            self._bins.setdefault(account, account_bins)[bin_index] = updated
        return current.get(offset)

    def bins_of(self, account: str) -> Dict[int, Bin]:
        """Return a copy of account's non-empty bins keyed by bin index."""
        return dict(self._bins.get(account, {}))

    def token_ids(self, account: str) -> List[int]:
        """Token ids held by account in positive quantity, ascending."""
        ids = []
        for bin_index in sorted(self._bins.get(account, {})):
            for offset, value in enumerate(self._bins[account][bin_index].slots()):
                if value:
                    ids.append(self.layout.token_id(bin_index, offset))
        return ids

    def accounts(self) -> List[str]:
        """Accounts with at least one non-empty bin, sorted."""
        return sorted(self._bins)

    def iter_slots(self) -> Iterator[Tuple[str, int, int]]:
        """Yield (account, token_id, quantity) for every positive slot."""
        for account in self.accounts():
            for token_id in self.token_ids(account):
                yield account, token_id, self.get(account, token_id)

    def copy(self) -> PackedBalanceStore:
        """Independent copy (bins are immutable, so dicts are copied shallowly)."""
        cloned = PackedBalanceStore(self.layout)
        cloned._bins = {account: dict(bins) for account, bins in self._bins.items()}
        return cloned
