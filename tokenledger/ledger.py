"""
ledger.py - Stateful Hybrid Token Ledger

The TokenLedger class is the central state manager for the token ledger.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements TokenLedgerView for safe read-only access by pure builders
    - Executes pending transfers atomically (every write commits or none does)
    - Owns the packed balance store, kind table, owner-of table, approval
      table, distinct counters and per-token supply
    - Appends to the event log only after a call has fully committed
    - Always validates - no exceptions
"""

from __future__ import annotations
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Any

from .bins import BinLayout, PackedBalanceStore
from .core import (
    # Types
    MintRequest, PendingTransfer, TokenKind, TokenReceiver, TransferData,
    # Constants
    DEFAULT_BASE_URI, DEFAULT_NAME, DEFAULT_SYMBOL,
    # Exceptions
    LedgerError, KindConflict, NonexistentToken, ReceiverRejected, ReentrantCall,
    check_account,
)
from .counters import DistinctTokenCounters
from .events import (
    EventLog, LedgerEvent, Transfer, TransferToken, BatchTransfer, ApprovalForAll,
)
from .registry import TokenTypeRegistry, ApprovalRegistry
from .transfers import (
    build_mint, build_transfer, build_quantity_transfer, build_batch_transfer,
    validate_pending, event_for,
)
from .uri import URIResolver


# Undo journal entries recorded while a call is applied.
UndoStep = Callable[[], None]


class TokenLedger:
    """
    Hybrid fungible / non-fungible token ledger with full validation and audit trail.

    Implements the TokenLedgerView protocol, allowing the ledger to be passed
    to the pure builders in transfers.py.

    Design Principles:
        - Always validates: every pending transfer is checked against
          authorization, kind locking, balances and slot capacity right
          before it is applied, even if its builder already checked.
        - All-or-nothing: writes are journaled while a call is applied; if
          a receiver hook refuses, the journal is unwound and nothing of the
          call remains.
        - Always logs: every committed call appends exactly one event.

    Thread Safety:
        Not thread-safe. Calls must be serialized by the caller.

    Example:
        ledger = TokenLedger()
        ledger.mint(fungible(0, "alice", 5))
        ledger.transfer_quantity("alice", "alice", "bob", 0, 3)
        ledger.balance_of_coin("bob", 0)   # 3
        ledger.balance_of("bob")           # 1
    """

    def __init__(
        self,
        name: str = DEFAULT_NAME,
        symbol: str = DEFAULT_SYMBOL,
        base_uri: str = DEFAULT_BASE_URI,
        layout: Optional[BinLayout] = None,
        verbose: bool = False,
    ):
        """
        Create a ledger.

        Args:
            name: Collection name (default: "Card")
            symbol: Collection symbol (default: "CRD")
            base_uri: Base path for token metadata URIs
            layout: Balance slot geometry (default: 16 slots of 16 bits per bin)
            verbose: Print one line per applied or rejected call (default: False)
        """
        self.name = name
        self.symbol = symbol
        self.verbose = verbose
        self.store = PackedBalanceStore(layout)
        self.kinds = TokenTypeRegistry()
        self.approvals = ApprovalRegistry()
        self.counters = DistinctTokenCounters()
        self.uri_resolver = URIResolver(base_uri)
        self.event_log = EventLog()
        self.owners: Dict[int, str] = {}
        self.supply: Dict[int, int] = {}
        self.receivers: Dict[str, TokenReceiver] = {}
        self._executing = False

    # ========================================================================
    # TokenLedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def max_quantity(self) -> int:
        """Largest quantity a single balance slot can hold."""
        return self.store.max_quantity

    def balance_of_coin(self, account: str, token_id: int) -> int:
        """Quantity of token_id held by account (0 if none)."""
        return self.store.get(account, token_id)

    def balance_of(self, account: str) -> int:
        """Number of distinct token ids held by account in positive quantity."""
        return self.counters.distinct_held(account)

    def token_kind(self, token_id: int) -> TokenKind:
        """Kind recorded for token_id (UNASSIGNED if never minted)."""
        return self.kinds.kind_of(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        """True if operator may act on all of owner's tokens."""
        return self.approvals.is_approved(owner, operator)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def total_supply(self) -> int:
        """Number of distinct token ids ever minted."""
        return self.counters.total_minted

    def owner_of(self, token_id: int) -> str:
        """
        Current holder of a non-fungible token.

        Raises:
            NonexistentToken: If token_id has never been minted
            KindConflict: If token_id is fungible
        """
        kind = self.kinds.kind_of(token_id)
        if kind is TokenKind.UNASSIGNED:
            raise NonexistentToken(f"token #{token_id} does not exist")
        if kind is TokenKind.FUNGIBLE:
            raise KindConflict(f"token #{token_id} is fungible and has no single owner")
        return self.owners[token_id]

    def exists(self, token_id: int) -> bool:
        return self.kinds.kind_of(token_id) is not TokenKind.UNASSIGNED

    def individual_supply(self, token_id: int) -> int:
        """Total units of token_id across all accounts (1 for a minted NFT)."""
        return self.supply.get(token_id, 0)

    def tokens_owned(self, account: str) -> Tuple[List[int], List[int]]:
        """
        Token ids held by account and their balances, ascending by id.

        Scans only the account's non-empty bins.
        """
        ids = self.store.token_ids(account)
        return ids, [self.store.get(account, token_id) for token_id in ids]

    def token_uri(self, token_id: int) -> str:
        """Metadata URI for token_id, e.g. '<base>/000000.json'."""
        return self.uri_resolver.resolve(token_id)

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_receiver(self, account: str, hook: TokenReceiver) -> None:
        """
        Mark account as a receiving contract.

        hook(operator, from_account, token_ids, quantities, data) is called
        whenever a transfer credits account. A falsy return value or an
        exception aborts the transfer.
        """
        check_account(account, "receiver")
        self.receivers[account] = hook

    def unregister_receiver(self, account: str) -> None:
        self.receivers.pop(account, None)

    # ========================================================================
    # PUBLIC OPERATIONS (Mutating)
    # ========================================================================

    def mint(self, request: MintRequest) -> LedgerEvent:
        """
        Issue a token described by a tagged request.

        Example:
            ledger.mint(non_fungible(0, "alice"))
            ledger.mint(fungible(1, "alice", 10))

        Raises:
            KindConflict, Overflow
        """
        return self._build_and_execute(build_mint, request)

    def transfer(
        self,
        caller: str,
        from_account: str,
        to: str,
        token_id: int,
        data: TransferData = None,
    ) -> LedgerEvent:
        """
        Move the single unit of a token (quantity 1). Emits Transfer.

        Raises:
            Unauthorized, InsufficientBalance, Overflow, ReceiverRejected
        """
        return self._build_and_execute(build_transfer, caller, from_account, to, token_id, data)

    def transfer_quantity(
        self,
        caller: str,
        from_account: str,
        to: str,
        token_id: int,
        quantity: int,
        data: TransferData = None,
    ) -> LedgerEvent:
        """
        Move quantity units of one token id. Emits TransferToken.

        Raises:
            Unauthorized, InsufficientBalance, Overflow, ReceiverRejected
        """
        return self._build_and_execute(
            build_quantity_transfer, caller, from_account, to, token_id, quantity, data
        )

    def batch_transfer(
        self,
        caller: str,
        from_account: str,
        to: str,
        token_ids: Sequence[int],
        quantities: Sequence[int],
        data: TransferData = None,
    ) -> LedgerEvent:
        """
        Move many (token id, quantity) pairs atomically. Emits one BatchTransfer.

        Raises:
            LengthMismatch, Unauthorized, InsufficientBalance, Overflow, ReceiverRejected
        """
        return self._build_and_execute(
            build_batch_transfer, caller, from_account, to, token_ids, quantities, data
        )

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> LedgerEvent:
        """
        Grant or revoke operator authority over all of owner's tokens.

        Unconditional overwrite. Emits ApprovalForAll.
        """
        self._check_not_executing()
        check_account(owner, "owner")
        check_account(operator, "operator")
        self.approvals.set_approval(owner, operator, approved)
        event = self.event_log.append(ApprovalForAll(owner, operator, bool(approved)))
        if self.verbose:
            print(f"✓ APPLIED: approval {owner} → {operator} = {bool(approved)}")
        return event

    def _build_and_execute(self, builder, *args) -> LedgerEvent:
        self._check_not_executing()
        try:
            pending = builder(self, *args)
        except LedgerError as e:
            if self.verbose:
                print(f"✗ REJECTED: {e}")
            raise
        return self.execute(pending)

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def execute(self, pending: PendingTransfer) -> LedgerEvent:
        """
        Execute a PendingTransfer atomically.

        The pending transfer is re-validated against current state, applied
        with an undo journal, offered to receiver hooks, and only then
        committed by appending its event.

        Until it returns, every mutating call on this ledger raises
        ReentrantCall, so a receiver hook can read state but not change it;
        a hook that tries is treated as a refusal.

        Args:
            pending: PendingTransfer built by one of the transfers.py builders

        Returns:
            The committed event (stamped with its sequence number)

        Raises:
            Unauthorized, KindConflict, InsufficientBalance, Overflow:
                validation failed; nothing was written
            ReceiverRejected: a receiver hook refused; every write was undone
            ReentrantCall: called while another call is still executing
        """
        self._check_not_executing()
        try:
            validate_pending(self, pending)
        except LedgerError as e:
            if self.verbose:
                print(f"✗ REJECTED: {e}")
            raise

        self._executing = True
        try:
            undo = self._apply(pending)
            try:
                self._notify_receivers(pending)
            except ReceiverRejected as e:
                self._unwind(undo)
                if self.verbose:
                    print(f"✗ REJECTED: {e}")
                raise
            event = self.event_log.append(event_for(pending))
        finally:
            self._executing = False
        if self.verbose:
            print(f"✓ APPLIED: {event}")
        return event

    def _check_not_executing(self) -> None:
        if self._executing:
            raise ReentrantCall("ledger is mid-call; mutating calls are not allowed from a receiver hook")

    def _apply(self, pending: PendingTransfer) -> List[UndoStep]:
        """
        Write every effect of a validated pending transfer.

        Returns:
            Undo journal: calling its steps in reverse writes back the prior
            values, so it does not depend on what happened in between
        """
        undo: List[UndoStep] = []

        for request in pending.mints:
            if self.kinds.assign_or_check(request.token_id, request.kind):
                self.counters.on_new_token_id(request.token_id)
                undo.append(partial(self._unassign_kind, request.token_id))
            previous_supply = self.supply.get(request.token_id, 0)
            self.supply[request.token_id] = previous_supply + request.quantity
            undo.append(partial(self._restore_supply, request.token_id, previous_supply))

        for move in pending.moves:
            if not move.is_mint:
                previous = self._adjust_slot(move.source, move.token_id, -move.quantity)
                undo.append(partial(self._write_slot, move.source, move.token_id, previous))
            previous = self._adjust_slot(move.dest, move.token_id, move.quantity)
            undo.append(partial(self._write_slot, move.dest, move.token_id, previous))

            if self.kinds.kind_of(move.token_id) is TokenKind.NON_FUNGIBLE:
                previous_owner = self.owners.get(move.token_id)
                self.owners[move.token_id] = move.dest
                undo.append(partial(self._restore_owner, move.token_id, previous_owner))

        return undo

    def _unwind(self, undo: List[UndoStep]) -> None:
        for step in reversed(undo):
            step()

    def _adjust_slot(self, account: str, token_id: int, delta: int) -> int:
        """Add delta to one slot; return the value it held before."""
        return self._write_slot(account, token_id, self.store.get(account, token_id) + delta)

    def _write_slot(self, account: str, token_id: int, quantity: int) -> int:
        """Overwrite one slot, report the transition to the distinct counters, return the old value."""
        old_qty = self.store.set(account, token_id, quantity)
        self.counters.on_balance_transition(account, token_id, old_qty, quantity)
        return old_qty

    def _unassign_kind(self, token_id: int) -> None:
        self.kinds.unassign(token_id)
        self.counters.on_token_id_unassigned(token_id)

    def _restore_supply(self, token_id: int, quantity: int) -> None:
        if quantity:
            self.supply[token_id] = quantity
        else:
            self.supply.pop(token_id, None)

    def _restore_owner(self, token_id: int, owner: Optional[str]) -> None:
        if owner is None:
            self.owners.pop(token_id, None)
        else:
            self.owners[token_id] = owner

    def _notify_receivers(self, pending: PendingTransfer) -> None:
        """
        Offer a transfer to the destination's receiver hook, if any.

        Mints are not offered. The hook sees balances already written.

        Raises:
            ReceiverRejected: If the hook returns falsy or raises
        """
        if pending.is_mint:
            return
        hook = self.receivers.get(pending.dest)
        if hook is None:
            return
        try:
            accepted = hook(
                pending.caller, pending.source, pending.token_ids, pending.quantities, pending.data
            )
        except Exception as e:
            raise ReceiverRejected(f"receiver {pending.dest} failed: {e}") from e
        if not accepted:
            raise ReceiverRejected(f"receiver {pending.dest} rejected the transfer")

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Verify every ledger invariant by scanning all balance slots.

        This is the expensive full scan the incremental counters exist to
        avoid; use it in tests and audits only. Slot capacity is not
        rechecked here: Bin refuses any word or write wider than its slots.

        Checks:
        - Every assigned id: slot sum equals recorded supply
        - Non-fungible ids: supply 1, exactly one holder, owner-of matches it
        - Per-account distinct count equals the number of positive slots
        - Global distinct count equals the number of assigned ids
        - No balance exists for an unassigned id

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'supplies': Dict[int, int] - slot sum per token id
            - 'discrepancies': List[Dict] - one entry per violation
        """
        supplies: Dict[int, int] = {}
        holders: Dict[int, List[str]] = {}
        positive: Dict[str, int] = {}
        discrepancies: List[Dict[str, Any]] = []

        for account, token_id, quantity in self.store.iter_slots():
            supplies[token_id] = supplies.get(token_id, 0) + quantity
            holders.setdefault(token_id, []).append(account)
            positive[account] = positive.get(account, 0) + 1

        for token_id in self.kinds.assigned_ids():
            kind = self.kinds.kind_of(token_id)
            actual = supplies.get(token_id, 0)
            expected = self.supply.get(token_id, 0)
            if actual != expected:
                discrepancies.append({
                    'check': 'supply', 'token_id': token_id,
                    'expected': expected, 'actual': actual,
                })
            if kind is TokenKind.NON_FUNGIBLE:
                token_holders = holders.get(token_id, [])
                if actual != 1 or len(token_holders) != 1:
                    discrepancies.append({
                        'check': 'nft_unique', 'token_id': token_id,
                        'holders': token_holders, 'actual': actual,
                    })
                elif self.owners.get(token_id) != token_holders[0]:
                    discrepancies.append({
                        'check': 'owner_of', 'token_id': token_id,
                        'expected': token_holders[0], 'actual': self.owners.get(token_id),
                    })

        for token_id in supplies:
            if not self.exists(token_id):
                discrepancies.append({
                    'check': 'unassigned_balance', 'token_id': token_id,
                    'actual': supplies[token_id],
                })

        for account in set(positive) | set(self.counters.accounts()):
            expected = positive.get(account, 0)
            actual = self.counters.distinct_held(account)
            if actual != expected:
                discrepancies.append({
                    'check': 'distinct_held', 'account': account,
                    'expected': expected, 'actual': actual,
                })

        if self.counters.total_minted != len(self.kinds):
            discrepancies.append({
                'check': 'total_minted',
                'expected': len(self.kinds), 'actual': self.counters.total_minted,
            })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    def clone(self) -> TokenLedger:
        """
        Create a fully independent copy of this ledger.

        Cloned state includes balances, kinds, owners, supplies, approvals,
        counters, the event log and configuration. Receiver hooks are shared
        by reference.
        """
        cloned = TokenLedger.__new__(TokenLedger)
        cloned.name = self.name
        cloned.symbol = self.symbol
        cloned.verbose = self.verbose
        cloned.store = self.store.copy()
        cloned.kinds = self.kinds.copy()
        cloned.approvals = self.approvals.copy()
        cloned.counters = self.counters.copy()
        cloned.uri_resolver = self.uri_resolver
        cloned.event_log = self.event_log.copy()
        cloned.owners = dict(self.owners)
        cloned.supply = dict(self.supply)
        cloned.receivers = dict(self.receivers)
        cloned._executing = False
        return cloned

    def replay(self) -> TokenLedger:
        """
        Create a new ledger by replaying the event log.

        Each event is a committed fact, so it is re-executed on the
        authority of its from_account. Receiver hooks are not registered on
        the new ledger.

        Returns:
            New TokenLedger with identical balances, kinds, owners,
            approvals, counters and supplies

        Raises:
            LedgerError: If an event cannot be re-applied
        """
        new_ledger = TokenLedger(
            name=self.name,
            symbol=self.symbol,
            base_uri=self.uri_resolver.base_uri,
            layout=self.store.layout,
            verbose=self.verbose,
        )
        for event in self.event_log:
            try:
                new_ledger._replay_event(event)
            except LedgerError as e:
                raise LedgerError(f"Replay failed at event {event.sequence_number}: {e}") from e
        return new_ledger

    def _replay_event(self, event: LedgerEvent) -> None:
        if isinstance(event, ApprovalForAll):
            self.set_approval_for_all(event.owner, event.operator, event.approved)
        elif isinstance(event, Transfer):
            if event.is_mint:
                self.mint(MintRequest(event.token_id, event.to, TokenKind.NON_FUNGIBLE))
            else:
                self.transfer(event.from_account, event.from_account, event.to, event.token_id)
        elif isinstance(event, TransferToken):
            if event.is_mint:
                self.mint(MintRequest(event.token_id, event.to, TokenKind.FUNGIBLE, event.quantity))
            else:
                self.transfer_quantity(
                    event.from_account, event.from_account, event.to, event.token_id, event.quantity
                )
        elif isinstance(event, BatchTransfer):
            self.batch_transfer(
                event.from_account, event.from_account, event.to, event.token_ids, event.quantities
            )
        else:
            raise LedgerError(f"Unknown event type: {type(event).__name__}")

    def __repr__(self) -> str:
        return (
            f"TokenLedger({self.name!r}, {self.symbol!r}, "
            f"{self.total_supply()} tokens, {len(self.event_log)} events)"
        )
