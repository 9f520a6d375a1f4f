"""
Core types and pure helpers for the hybrid token ledger.

This module provides the foundational data structures and protocols for the ledger:
1. Protocols: TokenLedgerView for read-only ledger access
2. Immutable data structures: MintRequest, Move, PendingTransfer
3. Exceptions: LedgerError and the failure taxonomy of every public call
4. Constants: slot geometry, token id bounds, the null account

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import (
    Dict, Tuple, Optional, Any, Protocol, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Width of one balance slot in bits, and how many slots share one bin word.
# 16 x 16 bits fills exactly one 256-bit word.
SLOT_BITS = 16
SLOTS_PER_BIN = 16
MAX_SLOT_QUANTITY = (1 << SLOT_BITS) - 1

# Token ids live in an unsigned 256-bit namespace.
MAX_TOKEN_ID = (1 << 256) - 1

# Origin of mint events. Never holds a balance and cannot be a transfer party.
NULL_ACCOUNT = "0x" + "0" * 40

# Token URI rendering.
DEFAULT_BASE_URI = "https://rinkeby.loom.games/erc721/zmb"
URI_DIGITS = 6
URI_SUFFIX = ".json"

DEFAULT_NAME = "Card"
DEFAULT_SYMBOL = "CRD"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Opaque payload forwarded to receiver hooks.
TransferData = Optional[bytes]

# Public operations a PendingTransfer can describe.
OP_MINT = "mint"
OP_TRANSFER = "transfer"
OP_TRANSFER_QUANTITY = "transfer_quantity"
OP_BATCH_TRANSFER = "batch_transfer"
OPERATIONS = (OP_MINT, OP_TRANSFER, OP_TRANSFER_QUANTITY, OP_BATCH_TRANSFER)


# ============================================================================
# ENUMS
# ============================================================================

class TokenKind(Enum):
    """
    Classification of a token id.

    UNASSIGNED: The id has never been minted.
    NON_FUNGIBLE: Exactly one unit exists, held by exactly one account.
    FUNGIBLE: Divisible quantity with a running total supply.

    Set on the first successful mint and fixed for the lifetime of the id.
    """
    UNASSIGNED = "unassigned"
    NON_FUNGIBLE = "non_fungible"
    FUNGIBLE = "fungible"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class Overflow(LedgerError):
    """Raised when a balance slot would exceed its fixed-width capacity."""
    pass


class KindConflict(LedgerError):
    """Raised when a token id is already locked to a different kind, or a non-fungible id is minted twice."""
    pass


class Unauthorized(LedgerError):
    """Raised when the caller is neither the holder nor an approved operator of the holder."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when a transfer asks for more than the holder's slot contains."""
    pass


class LengthMismatch(LedgerError):
    """Raised when batch token id and quantity arrays differ in length."""
    pass


class NonexistentToken(LedgerError):
    """Raised when querying the owner of a token id that has never been minted."""
    pass


class ReceiverRejected(LedgerError):
    """Raised when a destination's receiver hook refuses or fails during a transfer."""
    pass


class ReentrantCall(LedgerError):
    """Raised when a mutating call is made while another call is still executing, e.g. from a receiver hook."""
    pass


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenLedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Builders and validators accept a TokenLedgerView to declare that they
    only query state. TokenLedger implements this protocol; tests use
    FakeView for an in-memory implementation.
    """

    def balance_of_coin(self, account: str, token_id: int) -> int:
        """Return the quantity of token_id held by account (0 if none)."""
        ...

    def balance_of(self, account: str) -> int:
        """Return the number of distinct token ids held by account in positive quantity."""
        ...

    def token_kind(self, token_id: int) -> TokenKind:
        """Return the kind recorded for token_id (UNASSIGNED if never minted)."""
        ...

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        """Return True if operator may act on all of owner's tokens."""
        ...

    @property
    def max_quantity(self) -> int:
        """Largest quantity a single balance slot can hold."""
        ...


class TokenReceiver(Protocol):
    """
    Hook invoked when tokens arrive at an account registered as a receiver.

    Returning a falsy value or raising aborts the whole transfer.
    """

    def __call__(
        self,
        operator: str,
        from_account: str,
        token_ids: Tuple[int, ...],
        quantities: Tuple[int, ...],
        data: TransferData,
    ) -> bool:
        ...


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def check_token_id(token_id: Any) -> None:
    """Raise ValueError unless token_id is an int in the uint256 range."""
    if isinstance(token_id, bool) or not isinstance(token_id, int):
        raise ValueError(f"token id must be int, got {type(token_id).__name__}")
    if token_id < 0 or token_id > MAX_TOKEN_ID:
        raise ValueError(f"token id out of range: {token_id}")


def check_quantity(quantity: Any) -> None:
    """Raise ValueError unless quantity is a positive int."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValueError(f"quantity must be int, got {type(quantity).__name__}")
    if quantity <= 0:
        raise ValueError(f"quantity must be positive, got {quantity}")


def check_account(account: Any, role: str) -> None:
    """Raise ValueError unless account is a non-empty string."""
    if not isinstance(account, str) or not account.strip():
        raise ValueError(f"{role} account cannot be empty")


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class MintRequest:
    """
    Tagged request to issue units of a token id.

    The kind is explicit rather than inferred from whether a quantity was
    passed, so "no quantity" and "quantity 1" can never be confused.
    Use non_fungible() or fungible() to build one.

    Attributes:
        token_id: Token id to mint.
        to: Receiving account.
        kind: NON_FUNGIBLE or FUNGIBLE.
        quantity: Units to mint; always 1 for NON_FUNGIBLE.
    """
    token_id: int
    to: str
    kind: TokenKind
    quantity: int = 1

    def __post_init__(self):
        check_token_id(self.token_id)
        check_account(self.to, "recipient")
        if self.to == NULL_ACCOUNT:
            raise ValueError("Cannot mint to the null account")
        if self.kind is TokenKind.UNASSIGNED:
            raise ValueError("Mint kind must be NON_FUNGIBLE or FUNGIBLE")
        check_quantity(self.quantity)
        if self.kind is TokenKind.NON_FUNGIBLE and self.quantity != 1:
            raise ValueError(f"Non-fungible mint quantity must be 1, got {self.quantity}")

    def __repr__(self) -> str:
        if self.kind is TokenKind.NON_FUNGIBLE:
            return f"MintRequest(NFT #{self.token_id} → {self.to})"
        return f"MintRequest({self.quantity} x #{self.token_id} → {self.to})"


def non_fungible(token_id: int, to: str) -> MintRequest:
    """
    Request minting the single unit of a non-fungible token.

    Example:
        ledger.mint(non_fungible(0, "alice"))
    """
    return MintRequest(token_id=token_id, to=to, kind=TokenKind.NON_FUNGIBLE, quantity=1)


def fungible(token_id: int, to: str, quantity: int) -> MintRequest:
    """
    Request minting quantity units of a fungible token.

    An explicit quantity of 1 still requests a fungible token.

    Example:
        ledger.mint(fungible(0, "alice", 5))
    """
    return MintRequest(token_id=token_id, to=to, kind=TokenKind.FUNGIBLE, quantity=quantity)


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of units of one token id between two accounts.

    Mints are moves whose source is NULL_ACCOUNT; the null account never
    holds a balance, so only the destination slot is written.

    Attributes:
        token_id: Token id being moved.
        quantity: Units to move (positive int).
        source: Account debited.
        dest: Account credited.
    """
    token_id: int
    quantity: int
    source: str
    dest: str

    def __post_init__(self):
        check_token_id(self.token_id)
        check_quantity(self.quantity)
        check_account(self.source, "source")
        check_account(self.dest, "dest")
        if self.dest == NULL_ACCOUNT:
            raise ValueError("Move dest cannot be the null account")

    @property
    def is_mint(self) -> bool:
        return self.source == NULL_ACCOUNT

    def __repr__(self) -> str:
        return f"Move({self.quantity} x #{self.token_id}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class PendingTransfer:
    """
    A ledger mutation before execution - represents INTENT.

    Created by the builders in transfers.py and submitted to
    TokenLedger.execute(), which validates it against current state and
    applies it atomically.

    Construction checks the shape of the intent, so a hand-built instance
    cannot pass off a transfer as issuance: only OP_MINT may originate at
    NULL_ACCOUNT, and its single move must match its single MintRequest.
    Every move runs source→dest, and only batches move more than one id.

    Attributes:
        operation: Name of the public operation ("mint", "transfer",
                   "transfer_quantity", "batch_transfer").
        caller: Account on whose authority the moves happen (None for mints).
        source: Account debited by every move (NULL_ACCOUNT for mints).
        dest: Account credited by every move.
        moves: Tuple of slot movements, in call order.
        mints: Kind assignments requested alongside the moves (mints only).
        data: Payload forwarded to receiver hooks.
    """
    operation: str
    caller: Optional[str]
    source: str
    dest: str
    moves: Tuple[Move, ...]
    mints: Tuple[MintRequest, ...] = ()
    data: TransferData = None

    def __post_init__(self):
        if self.operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {self.operation}")
        for move in self.moves:
            if (move.source, move.dest) != (self.source, self.dest):
                raise ValueError(
                    f"{move!r} does not run {self.source}→{self.dest}"
                )

        if self.operation == OP_MINT:
            # Issuance from the null account is only legal backed by one mint request.
            if self.caller is not None or self.source != NULL_ACCOUNT:
                raise ValueError("A mint has no caller and originates at the null account")
            if len(self.mints) != 1:
                raise ValueError(f"A mint carries exactly one request, got {len(self.mints)}")
            request = self.mints[0]
            expected = (Move(request.token_id, request.quantity, NULL_ACCOUNT, request.to),)
            if self.dest != request.to or self.moves != expected:
                raise ValueError(f"Moves do not match {request!r}")
            return

        check_account(self.caller, "caller")
        if self.source == NULL_ACCOUNT:
            raise ValueError(f"Only {OP_MINT} may originate at the null account")
        if self.mints:
            raise ValueError(f"Only {OP_MINT} may carry mint requests")
        if self.operation != OP_BATCH_TRANSFER and len(self.moves) != 1:
            raise ValueError(f"{self.operation} moves exactly one token id")
        if self.operation == OP_TRANSFER and self.moves[0].quantity != 1:
            raise ValueError(f"{OP_TRANSFER} moves a single unit")

    @property
    def token_ids(self) -> Tuple[int, ...]:
        return tuple(m.token_id for m in self.moves)

    @property
    def quantities(self) -> Tuple[int, ...]:
        return tuple(m.quantity for m in self.moves)

    @property
    def is_mint(self) -> bool:
        return self.source == NULL_ACCOUNT

    def __repr__(self) -> str:
        return f"PendingTransfer({self.operation}, {len(self.moves)} moves, {self.source}→{self.dest})"


def net_changes(moves: Tuple[Move, ...]) -> Tuple[Dict[Tuple[str, int], int], Dict[Tuple[str, int], int]]:
    """
    Aggregate debits and credits per (account, token id).

    Debits against NULL_ACCOUNT are not recorded: issuance has no source slot.

    Returns:
        (debits, credits) keyed by (account, token_id).
    """
    debits: Dict[Tuple[str, int], int] = {}
    credits: Dict[Tuple[str, int], int] = {}
    for move in moves:
        if not move.is_mint:
            key = (move.source, move.token_id)
            debits[key] = debits.get(key, 0) + move.quantity
        key = (move.dest, move.token_id)
        credits[key] = credits.get(key, 0) + move.quantity
    return debits, credits

