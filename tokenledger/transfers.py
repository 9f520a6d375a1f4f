"""
transfers.py - Transfer Engine Planning

Pure functions that turn public calls into PendingTransfer objects:
1. build_mint() - issue a non-fungible or fungible token
2. build_transfer() - move the single unit of a token (quantity 1)
3. build_quantity_transfer() - move an explicit quantity
4. build_batch_transfer() - move many (token id, quantity) pairs at once
5. validate_pending() - every precondition check, against a read-only view
6. event_for() - the event a committed PendingTransfer emits

Builders validate eagerly so callers fail fast; TokenLedger.execute()
validates again against the state current at execution time.

All functions take TokenLedgerView (read-only) and return immutable results.
"""

from __future__ import annotations
from typing import Sequence

from .core import (
    TokenLedgerView, MintRequest, Move, PendingTransfer, TokenKind, TransferData,
    NULL_ACCOUNT,
    Unauthorized, InsufficientBalance, Overflow, LengthMismatch,
    OP_MINT, OP_TRANSFER, OP_TRANSFER_QUANTITY, OP_BATCH_TRANSFER,
    check_account, net_changes,
)
from .events import LedgerEvent, Transfer, TransferToken, BatchTransfer
from .registry import check_mint_kind


# ============================================================================
# VALIDATION
# ============================================================================

def check_authorized(view: TokenLedgerView, caller: str, holder: str) -> None:
    """
    Require caller to be the holder or an operator approved by the holder.

    Raises:
        Unauthorized: If neither applies
    """
    if caller == holder:
        return
    if view.is_approved_for_all(holder, caller):
        return
    raise Unauthorized(f"{caller} is not {holder} nor an approved operator")


def validate_pending(view: TokenLedgerView, pending: PendingTransfer) -> None:
    """
    Validate a pending transfer against all constraints.

    Structural checks (a mint is backed by its request, nothing else
    originates at NULL_ACCOUNT) already ran when the PendingTransfer was
    constructed; these are the checks that depend on ledger state.

    Checks performed:
    1. Authorization (skipped for mints, which have no holder)
    2. Kind locking for every mint request
    3. Balance sufficiency: cumulative debits per (account, id) <= slot
    4. Slot capacity: resulting slot <= view.max_quantity

    Raises:
        Unauthorized, KindConflict, InsufficientBalance, Overflow
    """
    if not pending.is_mint:
        check_authorized(view, pending.caller, pending.source)

    for request in pending.mints:
        check_mint_kind(request.token_id, view.token_kind(request.token_id), request.kind)

    debits, credits = net_changes(pending.moves)

    for (account, token_id), debit in debits.items():
        current = view.balance_of_coin(account, token_id)
        if debit > current:
            raise InsufficientBalance(
                f"{account} holds {current} of #{token_id}, needs {debit}"
            )

    limit = view.max_quantity
    for (account, token_id), credit in credits.items():
        current = view.balance_of_coin(account, token_id)
        proposed = current - debits.get((account, token_id), 0) + credit
        if proposed > limit:
            raise Overflow(
                f"{account} #{token_id}: {proposed} > slot capacity {limit}"
            )


def event_for(pending: PendingTransfer) -> LedgerEvent:
    """Return the event a committed pending transfer emits."""
    if pending.operation == OP_MINT:
        request = pending.mints[0]
        if request.kind is TokenKind.NON_FUNGIBLE:
            return Transfer(NULL_ACCOUNT, request.to, request.token_id)
        return TransferToken(NULL_ACCOUNT, request.to, request.token_id, request.quantity)
    if pending.operation == OP_TRANSFER:
        move = pending.moves[0]
        return Transfer(pending.source, pending.dest, move.token_id)
    if pending.operation == OP_TRANSFER_QUANTITY:
        move = pending.moves[0]
        return TransferToken(pending.source, pending.dest, move.token_id, move.quantity)
    if pending.operation == OP_BATCH_TRANSFER:
        return BatchTransfer(pending.source, pending.dest, pending.token_ids, pending.quantities)
    raise ValueError(f"Unknown operation: {pending.operation}")


# ============================================================================
# BUILDERS
# ============================================================================

def build_mint(view: TokenLedgerView, request: MintRequest) -> PendingTransfer:
    """
    Build the issuance of a token described by a tagged MintRequest.

    Args:
        view: Read-only ledger access
        request: Built with non_fungible() or fungible()

    Returns:
        PendingTransfer with one move from NULL_ACCOUNT and the kind assignment

    Raises:
        KindConflict: If the id is locked to the other kind, or is a minted NFT
        Overflow: If the recipient slot cannot hold the new quantity
    """
    pending = PendingTransfer(
        operation=OP_MINT,
        caller=None,
        source=NULL_ACCOUNT,
        dest=request.to,
        moves=(Move(request.token_id, request.quantity, NULL_ACCOUNT, request.to),),
        mints=(request,),
    )
    validate_pending(view, pending)
    return pending


def _check_parties(caller: str, from_account: str, to: str) -> None:
    check_account(caller, "caller")
    check_account(from_account, "from")
    check_account(to, "to")
    if from_account == NULL_ACCOUNT:
        raise ValueError("Cannot transfer from the null account")
    if to == NULL_ACCOUNT:
        raise ValueError("Cannot transfer to the null account")


def build_transfer(
    view: TokenLedgerView,
    caller: str,
    from_account: str,
    to: str,
    token_id: int,
    data: TransferData = None,
) -> PendingTransfer:
    """
    Build a single-unit transfer (the non-fungible call shape).

    The call shape does not constrain the kind: a fungible id moves one
    unit through this path as long as from_account holds at least one.

    Raises:
        Unauthorized, InsufficientBalance, Overflow
    """
    return build_quantity_transfer(
        view, caller, from_account, to, token_id, 1, data, operation=OP_TRANSFER
    )


def build_quantity_transfer(
    view: TokenLedgerView,
    caller: str,
    from_account: str,
    to: str,
    token_id: int,
    quantity: int,
    data: TransferData = None,
    operation: str = OP_TRANSFER_QUANTITY,
) -> PendingTransfer:
    """
    Build a transfer of an explicit quantity of one token id.

    Example:
        pending = build_quantity_transfer(ledger, "alice", "alice", "bob", 0, 3)
        ledger.execute(pending)

    Raises:
        Unauthorized, InsufficientBalance, Overflow
    """
    _check_parties(caller, from_account, to)
    pending = PendingTransfer(
        operation=operation,
        caller=caller,
        source=from_account,
        dest=to,
        moves=(Move(token_id, quantity, from_account, to),),
        data=data,
    )
    validate_pending(view, pending)
    return pending


def build_batch_transfer(
    view: TokenLedgerView,
    caller: str,
    from_account: str,
    to: str,
    token_ids: Sequence[int],
    quantities: Sequence[int],
    data: TransferData = None,
) -> PendingTransfer:
    """
    Build a batch transfer of many token ids between the same two accounts.

    One authorization check covers the whole batch. Every pair is checked
    before anything is written, so a single failing pair rejects the batch.

    Raises:
        LengthMismatch: If token_ids and quantities differ in length
        Unauthorized, InsufficientBalance, Overflow
    """
    if len(token_ids) != len(quantities):
        raise LengthMismatch(
            f"{len(token_ids)} token ids but {len(quantities)} quantities"
        )
    _check_parties(caller, from_account, to)
    pending = PendingTransfer(
        operation=OP_BATCH_TRANSFER,
        caller=caller,
        source=from_account,
        dest=to,
        moves=tuple(
            Move(token_id, quantity, from_account, to)
            for token_id, quantity in zip(token_ids, quantities)
        ),
        data=data,
    )
    validate_pending(view, pending)
    return pending
