"""
counters.py - Incremental Distinct-Token Accounting

Backs the aggregate queries without scanning balance slots:
    - total_minted: distinct token ids ever minted (totalSupply)
    - distinct_held(account): token ids held in positive quantity (balanceOf)

The ledger reports every slot write through on_balance_transition() and
every first mint through on_new_token_id().
"""

from __future__ import annotations
from typing import Dict, List


class DistinctTokenCounters:
    """Global and per-account distinct token counts, maintained incrementally."""

    def __init__(self):
        self.total_minted: int = 0
        self._held: Dict[str, int] = {}

    def on_balance_transition(self, account: str, token_id: int, old_qty: int, new_qty: int) -> None:
        """
        Adjust account's distinct count after one slot write.

        0 -> positive increments, positive -> 0 decrements, anything else is a no-op.
        """
        if old_qty == 0 and new_qty > 0:
            self._held[account] = self._held.get(account, 0) + 1
        elif old_qty > 0 and new_qty == 0:
            remaining = self._held.get(account, 0) - 1
            if remaining < 0:
                raise RuntimeError(
                    f"distinct count for {account} went negative at token #{token_id}"
                )
            if remaining:
                self._held[account] = remaining
            else:
                self._held.pop(account, None)

    def on_new_token_id(self, token_id: int) -> None:
        """Count a token id minted for the first time."""
        self.total_minted += 1

    def on_token_id_unassigned(self, token_id: int) -> None:
        """Undo on_new_token_id() for a call that is being rolled back."""
        self.total_minted -= 1

    def distinct_held(self, account: str) -> int:
        return self._held.get(account, 0)

    def accounts(self) -> List[str]:
        """Accounts currently holding at least one token id, sorted."""
        return sorted(self._held)

    def copy(self) -> DistinctTokenCounters:
        cloned = DistinctTokenCounters()
        cloned.total_minted = self.total_minted
        cloned._held = dict(self._held)
        return cloned
