"""
test_analytics.py - Unit tests for analytics.py

Tests:
- Annual <-> per-second rate conversion
- Vectorized balance projections
- Holder projections through a LedgerView
- Time to reach a target balance
"""

import pytest
import numpy as np
from datetime import timedelta
from decimal import Decimal

from rebase_ledger import (
    LedgerView, RebaseLedger,
    annual_rate_to_per_second, per_second_rate_to_annual,
    project_balances, project_holder_balances, seconds_until_balance,
    calculate_effective_balance, HolderRecord,
    DEFAULT_INTEREST_RATE, PRECISION_FACTOR, SECONDS_PER_YEAR,
)

from tests.fake_view import FakeView
from tests.helpers import START, make_ledger


class TestRateConversion:
    """Tests for rate conversions."""

    def test_five_percent(self):
        assert annual_rate_to_per_second("0.05") == 1585489599

    def test_rounds_down(self):
        rate = annual_rate_to_per_second(0.05)
        assert rate * SECONDS_PER_YEAR <= PRECISION_FACTOR // 20

    def test_zero(self):
        assert annual_rate_to_per_second(0) == 0

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            annual_rate_to_per_second(-0.01)

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            annual_rate_to_per_second(float("nan"))

    def test_default_rate_to_annual(self):
        assert per_second_rate_to_annual(DEFAULT_INTEREST_RATE) == Decimal("1.5768")


class TestProjectBalances:
    """Tests for project_balances."""

    def test_scalar(self):
        assert project_balances(100_000, DEFAULT_INTEREST_RATE, 3600) == pytest.approx(100_018.0)

    def test_vectorized(self):
        horizons = np.array([0, 3600, 7200])
        result = project_balances(100_000, DEFAULT_INTEREST_RATE, horizons)
        assert result.shape == (3,)
        np.testing.assert_allclose(result, [100_000.0, 100_018.0, 100_036.0])

    def test_matches_integer_formula_within_one_unit(self):
        principal = 123_456_789
        record = HolderRecord(principal, DEFAULT_INTEREST_RATE, START)
        horizons = np.array([1, 60, 3600, 86_400, SECONDS_PER_YEAR])
        projected = project_balances(principal, DEFAULT_INTEREST_RATE, horizons)
        exact = [
            calculate_effective_balance(record, START + timedelta(seconds=int(t)))
            for t in horizons
        ]
        np.testing.assert_allclose(projected, exact, atol=1.0)

    def test_negative_horizon_rejected(self):
        with pytest.raises(ValueError):
            project_balances(1, 1, np.array([1, -1]))


class TestProjectHolderBalances:

    def test_fake_view(self):
        view = FakeView(holders={'alice': (100_000, 100_018, DEFAULT_INTEREST_RATE)})
        result = project_holder_balances(view, 'alice', np.array([0, 3600]))
        np.testing.assert_allclose(result, [100_018.0, 100_036.0])

    def test_unknown_holder_is_zero(self):
        view = FakeView(holders={})
        result = project_holder_balances(view, 'nobody', np.array([0, 10 ** 6]))
        np.testing.assert_allclose(result, [0.0, 0.0])

    def test_fake_view_satisfies_protocol(self):
        assert isinstance(FakeView(holders={}), LedgerView)

    def test_real_ledger(self, funded_ledger):
        result = project_holder_balances(funded_ledger, 'alice', 3600)
        assert result == pytest.approx(100_018.0)

    def test_ledger_satisfies_protocol(self):
        assert isinstance(RebaseLedger("x", verbose=False), LedgerView)


class TestSecondsUntilBalance:
    """Tests for seconds_until_balance."""

    def test_one_hour(self):
        assert seconds_until_balance(100_000, DEFAULT_INTEREST_RATE, 100_018) == 3600

    def test_already_reached(self):
        assert seconds_until_balance(100_000, DEFAULT_INTEREST_RATE, 100_000) == 0

    def test_agrees_with_ledger(self):
        ledger = make_ledger()
        ledger.mint("alice", 100_000, caller="minter")
        seconds = seconds_until_balance(100_000, DEFAULT_INTEREST_RATE, 100_019)
        ledger.advance_time(START + timedelta(seconds=seconds - 1))
        assert ledger.balance_of("alice") < 100_019
        ledger.advance_time(START + timedelta(seconds=seconds))
        assert ledger.balance_of("alice") == 100_019

    def test_unreachable(self):
        with pytest.raises(ValueError, match="never reaches"):
            seconds_until_balance(100_000, 0, 100_001)
        with pytest.raises(ValueError):
            seconds_until_balance(0, DEFAULT_INTEREST_RATE, 1)
