"""
fake_view.py - Test Helper for TokenLedgerView

Provides a minimal TokenLedgerView implementation for testing the pure
transfer builders without requiring a full TokenLedger instance.
"""

from __future__ import annotations
from typing import Dict, Optional, Set, Tuple

from tokenledger import TokenKind, MAX_SLOT_QUANTITY


class FakeView:
    """
    Minimal TokenLedgerView implementation for testing builder functions.

    Example:
        view = FakeView(
            balances={'alice': {0: 5, 7: 1}},
            kinds={0: TokenKind.FUNGIBLE, 7: TokenKind.NON_FUNGIBLE},
            approvals={('alice', 'carol')},
        )

        view.balance_of_coin('alice', 0)
        # Returns: 5
    """

    def __init__(
        self,
        balances: Dict[str, Dict[int, int]],
        kinds: Optional[Dict[int, TokenKind]] = None,
        approvals: Optional[Set[Tuple[str, str]]] = None,
        max_quantity: int = MAX_SLOT_QUANTITY,
    ):
        self._balances = balances
        self._kinds = kinds or {}
        self._approvals = approvals or set()
        self._max_quantity = max_quantity

    @property
    def max_quantity(self) -> int:
        return self._max_quantity

    def balance_of_coin(self, account: str, token_id: int) -> int:
        return self._balances.get(account, {}).get(token_id, 0)

    def balance_of(self, account: str) -> int:
        return sum(1 for qty in self._balances.get(account, {}).values() if qty > 0)

    def token_kind(self, token_id: int) -> TokenKind:
        return self._kinds.get(token_id, TokenKind.UNASSIGNED)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return (owner, operator) in self._approvals
