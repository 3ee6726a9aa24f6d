"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the rebase ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. accrual.py - Linear growth at the frozen rate
2. idempotency.py - Settlement is invisible to balances and idempotent
3. conservation.py - Transfers conserve effective balance
4. atomicity.py - Rejected operations and rolled-back blocks change nothing
5. determinism.py - Replay and clone reproduce identical state
6. canonicalization.py - State digests ignore representation order
7. temporal.py - Time moves forward only; balances never decrease with time

These tests use hypothesis for property-based testing.
"""
