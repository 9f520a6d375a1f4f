"""
tokenledger - Hybrid Fungible / Non-Fungible Token Ledger

One token id namespace holds either non-fungible tokens (a single unit,
one holder) or fungible tokens (bounded quantity per account, many
holders). Balances are packed sixteen 16-bit slots to a bin.

Usage:
    from tokenledger import TokenLedger, fungible, non_fungible

    ledger = TokenLedger()

    # Kind is fixed by the first mint of an id
    ledger.mint(non_fungible(0, "alice"))
    ledger.mint(fungible(1, "alice", 10))

    # Transfers by the holder or an approved operator
    ledger.transfer("alice", "alice", "bob", 0)
    ledger.set_approval_for_all("alice", "carol", True)
    ledger.transfer_quantity("carol", "alice", "bob", 1, 4)

    ledger.owner_of(0)            # 'bob'
    ledger.balance_of("bob")      # 2 distinct token ids
    ledger.total_supply()         # 2 token ids minted
"""

# Core types
from .core import (
    TokenLedgerView,
    TokenReceiver,
    TokenKind,
    MintRequest,
    Move,
    PendingTransfer,
    non_fungible,
    fungible,
    net_changes,
    check_token_id,
    check_quantity,
    check_account,
    TransferData,
    LedgerError,
    Overflow,
    KindConflict,
    Unauthorized,
    InsufficientBalance,
    LengthMismatch,
    NonexistentToken,
    ReceiverRejected,
    ReentrantCall,
    NULL_ACCOUNT,
    SLOT_BITS,
    SLOTS_PER_BIN,
    MAX_SLOT_QUANTITY,
    MAX_TOKEN_ID,
    DEFAULT_BASE_URI,
    DEFAULT_NAME,
    DEFAULT_SYMBOL,
)

# Storage
from .bins import BinLayout, Bin, PackedBalanceStore

# Tables and counters
from .registry import TokenTypeRegistry, ApprovalRegistry, check_mint_kind
from .counters import DistinctTokenCounters

# Events
from .events import (
    Transfer,
    TransferToken,
    BatchTransfer,
    ApprovalForAll,
    EventLog,
)

# Transfer planning
from .transfers import (
    build_mint,
    build_transfer,
    build_quantity_transfer,
    build_batch_transfer,
    validate_pending,
    check_authorized,
    event_for,
    OP_MINT,
    OP_TRANSFER,
    OP_TRANSFER_QUANTITY,
    OP_BATCH_TRANSFER,
)

# URIs
from .uri import URIResolver

# Ledger
from .ledger import TokenLedger

__all__ = [
    # Core
    'TokenLedgerView', 'TokenReceiver', 'TokenKind',
    'MintRequest', 'Move', 'PendingTransfer', 'non_fungible', 'fungible',
    'net_changes', 'check_token_id', 'check_quantity', 'check_account', 'TransferData',
    'LedgerError', 'Overflow', 'KindConflict', 'Unauthorized',
    'InsufficientBalance', 'LengthMismatch', 'NonexistentToken', 'ReceiverRejected',
    'ReentrantCall',
    'NULL_ACCOUNT', 'SLOT_BITS', 'SLOTS_PER_BIN', 'MAX_SLOT_QUANTITY', 'MAX_TOKEN_ID',
    'DEFAULT_BASE_URI', 'DEFAULT_NAME', 'DEFAULT_SYMBOL',
    # Storage
    'BinLayout', 'Bin', 'PackedBalanceStore',
    # Tables and counters
    'TokenTypeRegistry', 'ApprovalRegistry', 'check_mint_kind', 'DistinctTokenCounters',
    # Events
    'Transfer', 'TransferToken', 'BatchTransfer', 'ApprovalForAll', 'EventLog',
    # Transfer planning
    'build_mint', 'build_transfer', 'build_quantity_transfer', 'build_batch_transfer',
    'validate_pending', 'check_authorized', 'event_for',
    'OP_MINT', 'OP_TRANSFER', 'OP_TRANSFER_QUANTITY', 'OP_BATCH_TRANSFER',
    # URIs
    'URIResolver',
    # Ledger
    'TokenLedger',
]

__version__ = '1.0.0'
