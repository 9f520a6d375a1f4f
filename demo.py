#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Token Ledger Step by Step

A walk through the hybrid fungible / non-fungible ledger behind the Card
collection. Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation      - The empty ledger, minting both kinds, kind locking
  4-6:   Core Mechanics  - Transfers, operators, rejections and atomicity
  7-8:   Storage         - Packed bins, slot capacity, batch transfers
  9-10:  Audit           - Receiver hooks, event log, replay and invariants

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from tokenledger import (
    # Ledger
    TokenLedger,
    # Mint requests
    non_fungible, fungible,
    # Constants
    MAX_SLOT_QUANTITY, NULL_ACCOUNT,
    # Errors
    LedgerError, KindConflict, Overflow, Unauthorized, ReceiverRejected,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    hero_card: int = 0
    gold_coin: int = 1
    gold_minted: int = 500
    gold_paid: int = 120

    # Batch step: ids 300..399, as in the Card contract test-suite
    batch_first_id: int = 300
    batch_size: int = 100
    batch_copies: int = 10


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_holdings(ledger: TokenLedger, *accounts: str):
    for account in accounts:
        ids, balances = ledger.tokens_owned(account)
        held = ", ".join(f"#{i} x{q}" for i, q in zip(ids, balances)) or "(nothing)"
        print(f"{account:>6}: {ledger.balance_of(account)} distinct  | {held}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_ledger() -> TokenLedger:
    step_header(1, "The Empty Ledger",
        "A ledger starts with no token ids, no balances and no events.")

    print(">>> ledger = TokenLedger(verbose=True)")
    ledger = TokenLedger(verbose=True)

    section_header("Initial State")
    print(f"Name / symbol:   {ledger.name} / {ledger.symbol}")
    print(f"Total supply:    {ledger.total_supply()} token ids")
    print(f"Slot capacity:   {ledger.max_quantity} units per (account, id)")
    print(f"Event log:       {len(ledger.event_log)} entries")
    print(f"URI of #7:       {ledger.token_uri(7)}")
    return ledger


def step_02_mint(ledger: TokenLedger) -> TokenLedger:
    step_header(2, "Minting Both Kinds",
        "One id namespace holds unique cards and divisible coins.")

    print(f">>> ledger.mint(non_fungible({CONFIG.hero_card}, 'alice'))")
    ledger.mint(non_fungible(CONFIG.hero_card, "alice"))
    print(f">>> ledger.mint(fungible({CONFIG.gold_coin}, 'alice', {CONFIG.gold_minted}))")
    ledger.mint(fungible(CONFIG.gold_coin, "alice", CONFIG.gold_minted))

    section_header("Holdings")
    show_holdings(ledger, "alice")
    print(f"\nowner_of({CONFIG.hero_card}) = {ledger.owner_of(CONFIG.hero_card)}")
    print(f"total_supply()  = {ledger.total_supply()}")

    section_header("Key Insight")
    print(f"""
    Mints are transfers from the null account {NULL_ACCOUNT[:10]}...
    The request says which kind it is; fungible(id, to, 1) is still fungible.
    """)
    return ledger


def step_03_kind_locking(ledger: TokenLedger) -> TokenLedger:
    step_header(3, "Kind Locking",
        "The first mint of an id fixes its kind forever.")

    for request in (non_fungible(CONFIG.hero_card, "bob"),
                    fungible(CONFIG.hero_card, "bob", 5),
                    non_fungible(CONFIG.gold_coin, "bob")):
        print(f">>> ledger.mint({request!r})")
        try:
            ledger.mint(request)
        except KindConflict:
            pass

    print(f"\ntotal_supply() still {ledger.total_supply()}")
    return ledger


# ============================================================================
# PHASE 2: CORE MECHANICS (Steps 4-6)
# ============================================================================

def step_04_transfers(ledger: TokenLedger) -> TokenLedger:
    step_header(4, "Transfers",
        "Holders move a card with transfer() and coins with transfer_quantity().")

    print(f">>> ledger.transfer('alice', 'alice', 'bob', {CONFIG.hero_card})")
    ledger.transfer("alice", "alice", "bob", CONFIG.hero_card)
    print(f">>> ledger.transfer_quantity('alice', 'alice', 'bob', {CONFIG.gold_coin}, {CONFIG.gold_paid})")
    ledger.transfer_quantity("alice", "alice", "bob", CONFIG.gold_coin, CONFIG.gold_paid)

    section_header("Holdings")
    show_holdings(ledger, "alice", "bob")
    return ledger


def step_05_operators(ledger: TokenLedger) -> TokenLedger:
    step_header(5, "Operators",
        "An approved operator may move everything its owner holds.")

    print(">>> ledger.set_approval_for_all('bob', 'carol', True)")
    ledger.set_approval_for_all("bob", "carol", True)
    print(f">>> ledger.transfer('carol', 'bob', 'alice', {CONFIG.hero_card})")
    ledger.transfer("carol", "bob", "alice", CONFIG.hero_card)

    section_header("A stranger tries the same")
    print(f">>> ledger.transfer('carlos', 'alice', 'carlos', {CONFIG.hero_card})")
    try:
        ledger.transfer("carlos", "alice", "carlos", CONFIG.hero_card)
    except Unauthorized:
        pass
    print(f"\nowner_of({CONFIG.hero_card}) = {ledger.owner_of(CONFIG.hero_card)}")
    return ledger


def step_06_atomicity(ledger: TokenLedger) -> TokenLedger:
    step_header(6, "Atomicity",
        "A failing call leaves no trace: no writes, no counters, no event.")

    events_before = len(ledger.event_log)
    print(f">>> ledger.batch_transfer('alice', 'alice', 'bob', [{CONFIG.gold_coin}, 99], [1, 1])")
    try:
        ledger.batch_transfer("alice", "alice", "bob", [CONFIG.gold_coin, 99], [1, 1])
    except LedgerError:
        pass

    section_header("After the rejected batch")
    show_holdings(ledger, "alice", "bob")
    print(f"\nEvents before / after: {events_before} / {len(ledger.event_log)}")
    return ledger


# ============================================================================
# PHASE 3: STORAGE (Steps 7-8)
# ============================================================================

def step_07_slot_capacity(ledger: TokenLedger) -> TokenLedger:
    step_header(7, "Slot Capacity",
        "Each balance is a 16-bit slot; sixteen slots share one bin.")

    print(">>> ledger.mint(fungible(2, 'dave', 150000))")
    try:
        ledger.mint(fungible(2, "dave", 150000))
    except Overflow:
        pass
    print(f">>> ledger.mint(fungible(2, 'dave', {MAX_SLOT_QUANTITY}))")
    ledger.mint(fungible(2, "dave", MAX_SLOT_QUANTITY))

    section_header("Dave's bins")
    for index, b in ledger.store.bins_of("dave").items():
        print(f"bin {index}: word=0x{b.word:064x}")
        print(f"        slots={b.slots()}")
    return ledger


def step_08_batch(ledger: TokenLedger) -> TokenLedger:
    step_header(8, "Batch Transfers",
        "Many ids move in one all-or-nothing call with a single event.")

    ledger.verbose = False
    ids = list(range(CONFIG.batch_first_id, CONFIG.batch_first_id + CONFIG.batch_size))
    for token_id in ids:
        ledger.mint(fungible(token_id, "alice", CONFIG.batch_copies))
    ledger.verbose = True
    print(f"Minted {len(ids)} ids x{CONFIG.batch_copies} to alice")

    print(f">>> ledger.batch_transfer('alice', 'alice', 'bob', ids, [{CONFIG.batch_copies}] * {len(ids)})")
    ledger.batch_transfer("alice", "alice", "bob", ids, [CONFIG.batch_copies] * len(ids))

    section_header("Distinct counts")
    print(f"alice: {ledger.balance_of('alice')}   bob: {ledger.balance_of('bob')}")
    print(f"bob's bins: {sorted(ledger.store.bins_of('bob'))}")
    return ledger


# ============================================================================
# PHASE 4: AUDIT (Steps 9-10)
# ============================================================================

def step_09_receivers(ledger: TokenLedger) -> TokenLedger:
    step_header(9, "Receiving Contracts",
        "A receiver hook can refuse a deposit; the whole call is undone.")

    def closed_vault(operator, from_account, token_ids, quantities, data):
        print(f"    vault asked to accept {quantities} of {token_ids} from {from_account}")
        return False

    ledger.register_receiver("vault", closed_vault)
    print(f">>> ledger.transfer_quantity('bob', 'bob', 'vault', {CONFIG.gold_coin}, 10)")
    try:
        ledger.transfer_quantity("bob", "bob", "vault", CONFIG.gold_coin, 10)
    except ReceiverRejected:
        pass
    show_holdings(ledger, "vault")
    ledger.unregister_receiver("vault")
    return ledger


def step_10_audit(ledger: TokenLedger) -> TokenLedger:
    step_header(10, "Event Log, Replay and Invariants",
        "The event log alone rebuilds the ledger exactly.")

    section_header("Last events")
    for event in list(ledger.event_log)[-4:]:
        print(f"  [{event.sequence_number}] {event}")

    replayed = ledger.replay()
    same = (sorted(replayed.store.iter_slots()) == sorted(ledger.store.iter_slots()))
    print(f"\nReplayed {len(replayed.event_log)} events: balances identical = {same}")

    result = ledger.verify_invariants()
    print(f"verify_invariants(): valid = {result['valid']}, "
          f"{len(result['supplies'])} ids audited")
    return ledger


def main():
    print("=" * 70)
    print("       TOKEN LEDGER TUTORIAL")
    print("=" * 70)

    ledger = step_01_empty_ledger()
    for step in (step_02_mint, step_03_kind_locking, step_04_transfers,
                 step_05_operators, step_06_atomicity, step_07_slot_capacity,
                 step_08_batch, step_09_receivers, step_10_audit):
        wait_for_enter()
        ledger = step(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See tokenledger/transfers.py for the pure builders
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
