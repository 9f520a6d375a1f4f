"""
conftest.py - Shared pytest fixtures for TokenLedger tests

Provides common fixtures used across unit, functional and conformance tests:
- Basic ledgers (empty, with an NFT and a fungible token minted)
- Receiver hooks that accept, refuse or fail
- Invariant assertion helper
- Hypothesis strategies for random operation sequences
"""

import pytest
from hypothesis import strategies as st
from typing import List, Tuple

from tokenledger import TokenLedger, LedgerError, fungible, non_fungible

from tests.fake_view import FakeView


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def assert_invariants(ledger: TokenLedger) -> None:
    """Fail with the discrepancy list if any ledger invariant is violated."""
    result = ledger.verify_invariants()
    assert result['valid'], f"Invariants violated: {result['discrepancies']}"


def snapshot(ledger: TokenLedger) -> dict:
    """Capture every observable piece of ledger state for before/after comparison."""
    accounts = set(ledger.store.accounts()) | set(ledger.counters.accounts())
    return {
        'slots': sorted(ledger.store.iter_slots()),
        'distinct': {a: ledger.balance_of(a) for a in accounts},
        'total_supply': ledger.total_supply(),
        'kinds': {i: ledger.token_kind(i) for i in ledger.kinds.assigned_ids()},
        'owners': dict(ledger.owners),
        'supply': dict(ledger.supply),
        'events': len(ledger.event_log),
    }


class RecordingReceiver:
    """Receiver hook that records every call and returns a fixed answer."""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.calls: List[Tuple] = []

    def __call__(self, operator, from_account, token_ids, quantities, data):
        self.calls.append((operator, from_account, token_ids, quantities, data))
        return self.accept


def failing_receiver(operator, from_account, token_ids, quantities, data):
    raise RuntimeError("receiver exploded")


# =============================================================================
# RANDOM OPERATION SEQUENCES
# =============================================================================

ACCOUNTS = ["alice", "bob", "carol", "dave"]

# Small id space spread over two bins so generated calls collide often.
TOKEN_IDS = st.sampled_from([0, 1, 2, 15, 16, 17, 40])

account_st = st.sampled_from(ACCOUNTS)

operation_st = st.one_of(
    st.tuples(st.just("mint_nft"), TOKEN_IDS, account_st),
    st.tuples(st.just("mint_ft"), TOKEN_IDS, account_st, st.integers(1, 40000)),
    st.tuples(st.just("transfer"), account_st, account_st, account_st, TOKEN_IDS),
    st.tuples(st.just("transfer_quantity"), account_st, account_st, account_st,
              TOKEN_IDS, st.integers(1, 30000)),
    st.tuples(st.just("batch"), account_st, account_st, account_st,
              st.lists(st.tuples(TOKEN_IDS, st.integers(1, 20000)), max_size=5)),
    st.tuples(st.just("approve"), account_st, account_st, st.booleans()),
)

operations_st = st.lists(operation_st, max_size=30)


def apply_operation(ledger: TokenLedger, op: Tuple) -> bool:
    """
    Run one generated operation.

    Returns:
        True if it committed, False if the ledger rejected it with a LedgerError
    """
    kind = op[0]
    try:
        if kind == "mint_nft":
            ledger.mint(non_fungible(op[1], op[2]))
        elif kind == "mint_ft":
            ledger.mint(fungible(op[1], op[2], op[3]))
        elif kind == "transfer":
            ledger.transfer(op[1], op[2], op[3], op[4])
        elif kind == "transfer_quantity":
            ledger.transfer_quantity(op[1], op[2], op[3], op[4], op[5])
        elif kind == "batch":
            pairs = op[4]
            ledger.batch_transfer(op[1], op[2], op[3],
                                  [p[0] for p in pairs], [p[1] for p in pairs])
        elif kind == "approve":
            ledger.set_approval_for_all(op[1], op[2], op[3])
        else:
            raise ValueError(f"unknown generated operation {kind}")
    except LedgerError:
        return False
    return True


def run_operations(ledger: TokenLedger, ops: List[Tuple]) -> int:
    """Apply every operation in order; return how many committed."""
    return sum(apply_operation(ledger, op) for op in ops)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Fresh ledger with default Card configuration."""
    return TokenLedger()


@pytest.fixture
def minted_ledger():
    """Ledger with NFT #0 held by alice and 10 units of fungible #1 held by alice."""
    ledger = TokenLedger()
    ledger.mint(non_fungible(0, "alice"))
    ledger.mint(fungible(1, "alice", 10))
    return ledger


@pytest.fixture
def empty_view():
    """FakeView with no balances."""
    return FakeView(balances={})
