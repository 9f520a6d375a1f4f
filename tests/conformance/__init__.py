"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the token ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Supply is created only by mints and never destroyed
2. atomicity.py - All-or-nothing call semantics, receiver rollback included
3. kind_locking.py - A token id's kind is fixed by its first mint
4. slot_capacity.py - No slot ever exceeds its fixed width
5. distinct_counts.py - Incremental counters match a full slot scan
6. determinism.py - Replay and re-execution reproduce identical state

These tests use hypothesis for property-based testing.
"""
