"""
Temporal Conformance Tests

INVARIANT: Time-based operations respect ordering and causality.

    ∀ events e1, e2:
        seq(e1) < seq(e2) ⟹ time(e1) <= time(e2)

    ∀ holder h, t1 <= t2 with no operations between:
        balance(h, t1) <= balance(h, t2)

This ensures:
- Time can only advance forward
- Events record the logical time they were applied at
- Balances never shrink by the passage of time alone
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from datetime import timedelta

from rebase_ledger import HolderRecord, calculate_settlement

from tests.helpers import START, ONE_HOUR, make_ledger


class TestTemporalOrdering:
    """Tests for temporal ordering of events."""

    @given(st.lists(st.integers(min_value=0, max_value=10 ** 6), min_size=1, max_size=20))
    @settings(max_examples=50)
    def test_event_timestamps_non_decreasing(self, steps):
        ledger = make_ledger()
        now = START
        for i, step in enumerate(steps):
            now += timedelta(seconds=step)
            ledger.advance_time(now)
            ledger.mint(f"h{i % 3}", step + 1, caller="minter")
        timestamps = [e.timestamp for e in ledger.event_log]
        assert timestamps == sorted(timestamps)
        assert ledger.event_log[-1].timestamp == now

    def test_time_cannot_go_backwards(self, ledger):
        ledger.advance_time(START + ONE_HOUR)
        with pytest.raises(ValueError):
            ledger.advance_time(START)
        assert ledger.current_time == START + ONE_HOUR

    def test_advance_to_same_time_allowed(self, ledger):
        ledger.advance_time(START)
        assert ledger.current_time == START


class TestMonotonicGrowth:

    @given(
        st.integers(min_value=0, max_value=10 ** 24),
        st.integers(min_value=0, max_value=10 ** 14),
        st.lists(st.integers(min_value=0, max_value=10 ** 7), min_size=2, max_size=10),
    )
    @settings(max_examples=100)
    def test_balance_never_decreases_with_time(self, principal, rate, steps):
        ledger = make_ledger(initial_rate=rate)
        ledger.mint("alice", principal, caller="minter")
        now = START
        previous = ledger.balance_of("alice")
        for step in steps:
            now += timedelta(seconds=step)
            ledger.advance_time(now)
            current = ledger.balance_of("alice")
            assert current >= previous
            previous = current

    def test_settlement_before_last_settled_is_noop(self):
        record = HolderRecord(100, 10 ** 16, START + ONE_HOUR)
        settled = calculate_settlement(record, START)
        assert settled.principal == 100
        assert settled.last_settled == START + ONE_HOUR

    def test_reads_do_not_move_the_clock(self, funded_ledger):
        funded_ledger.advance_time(START + ONE_HOUR)
        funded_ledger.balance_of("alice")
        funded_ledger.total_supply()
        assert funded_ledger.get_holder("alice").last_settled == START
