"""
registry.py - Token Kind and Operator Approval Tables

1. TokenTypeRegistry - locks each token id to NON_FUNGIBLE or FUNGIBLE at first mint
2. ApprovalRegistry - owner -> operator blanket authorization

Both are plain tables owned by TokenLedger. They raise on conflicts but
never emit events; the ledger emits after the whole call commits.
"""

from __future__ import annotations
from typing import Dict, List

from .core import TokenKind, KindConflict


def check_mint_kind(token_id: int, current: TokenKind, requested: TokenKind) -> None:
    """
    Verify that a token id currently of kind `current` may be minted as `requested`.

    Raises:
        KindConflict: If the id is locked to a different kind, or is an
                      already-minted non-fungible id.
    """
    if current is TokenKind.UNASSIGNED:
        return
    if current is not requested:
        raise KindConflict(
            f"token #{token_id} is {current.value}, cannot mint as {requested.value}"
        )
    if current is TokenKind.NON_FUNGIBLE:
        raise KindConflict(f"non-fungible token #{token_id} already minted")


class TokenTypeRegistry:
    """
    Per token id kind table.

    The first successful mint records the kind; every later mint must ask
    for the same kind. A non-fungible id can be minted only once.
    """

    def __init__(self):
        self._kinds: Dict[int, TokenKind] = {}

    def kind_of(self, token_id: int) -> TokenKind:
        return self._kinds.get(token_id, TokenKind.UNASSIGNED)

    def check(self, token_id: int, requested: TokenKind) -> None:
        """Raise KindConflict unless token_id may be minted as requested."""
        check_mint_kind(token_id, self.kind_of(token_id), requested)

    def assign_or_check(self, token_id: int, requested: TokenKind) -> bool:
        """
        Record the kind on first reference, otherwise require an exact match.

        Returns:
            True if this call assigned the kind (first mint of the id)

        Raises:
            KindConflict: See check()
        """
        self.check(token_id, requested)
        if token_id in self._kinds:
            return False
        self._kinds[token_id] = requested
        return True

    def unassign(self, token_id: int) -> None:
        """Forget a kind assigned by a call that is being rolled back."""
        self._kinds.pop(token_id, None)

    def assigned_ids(self) -> List[int]:
        return sorted(self._kinds)

    def __len__(self) -> int:
        return len(self._kinds)

    def copy(self) -> TokenTypeRegistry:
        cloned = TokenTypeRegistry()
        cloned._kinds = dict(self._kinds)
        return cloned


class ApprovalRegistry:
    """
    Operator approval table: (owner, operator) -> bool.

    An approved operator may act as the owner for all of the owner's
    present and future token ids until revoked. Writes are unconditional
    overwrites; there is no self-approval restriction.
    """

    def __init__(self):
        self._approvals: Dict[str, Dict[str, bool]] = {}

    def set_approval(self, owner: str, operator: str, approved: bool) -> None:
        self._approvals.setdefault(owner, {})[operator] = bool(approved)

    def is_approved(self, owner: str, operator: str) -> bool:
        return self._approvals.get(owner, {}).get(operator, False)

    def operators_of(self, owner: str) -> List[str]:
        """Operators currently approved by owner, sorted."""
        return sorted(op for op, ok in self._approvals.get(owner, {}).items() if ok)

    def copy(self) -> ApprovalRegistry:
        cloned = ApprovalRegistry()
        cloned._approvals = {owner: dict(ops) for owner, ops in self._approvals.items()}
        return cloned
