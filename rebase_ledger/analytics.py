"""
analytics.py - Rate conversions and balance projections

Reporting helpers on top of the accrual formula. Nothing here mutates a
ledger; functions either take explicit inputs or a read-only LedgerView.

Provides:
- Conversions between annual rates and per-second fixed-point rates
- Vectorized projections of effective balance over a grid of horizons
- Exact time needed for a balance to reach a target

Projections are float approximations for display and planning. Ledger
arithmetic itself stays in integers (see core.calculate_effective_balance).
"""

from decimal import Decimal, ROUND_DOWN
from typing import Union

import numpy as np

from .core import LedgerView, PRECISION_FACTOR, SECONDS_PER_YEAR, validate_rate


# Type alias for scalar or array inputs
Numeric = Union[int, float, np.ndarray]


# ============================================================================
# RATE CONVERSIONS
# ============================================================================

def annual_rate_to_per_second(annual_rate: Union[Decimal, float, str]) -> int:
    """
    Convert a simple annual rate (0.05 for 5%) to a per-second scaled rate.

    Rounds down, so the converted rate never pays more than requested.
    """
    annual = Decimal(str(annual_rate))
    if not annual.is_finite() or annual < 0:
        raise ValueError(f"annual rate must be non-negative and finite, got {annual_rate}")
    scaled = annual * PRECISION_FACTOR / SECONDS_PER_YEAR
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def per_second_rate_to_annual(rate: int) -> Decimal:
    """Simple annual rate for a per-second scaled rate (5 * 10**10 -> ~1.5768)."""
    validate_rate(rate)
    return Decimal(rate) * SECONDS_PER_YEAR / Decimal(PRECISION_FACTOR)


# ============================================================================
# PROJECTIONS
# ============================================================================

def _validate_horizons(elapsed_seconds: Numeric) -> np.ndarray:
    t = np.asarray(elapsed_seconds, dtype=float)
    if not np.all(np.isfinite(t)) or np.any(t < 0):
        raise ValueError("elapsed seconds must be non-negative and finite")
    return t


def project_balances(principal: int, rate: int, elapsed_seconds: Numeric) -> Numeric:
    """
    Effective balance of `principal` at `rate` after each elapsed horizon.

    balance(t) = principal * (1 + rate / PRECISION_FACTOR * t)

    Vectorized: elapsed_seconds may be a scalar or an array.
    """
    validate_rate(rate)
    t = _validate_horizons(elapsed_seconds)
    return float(principal) * (1.0 + (rate / PRECISION_FACTOR) * t)


def project_holder_balances(view: LedgerView, holder: str, horizons: Numeric) -> Numeric:
    """
    Projected effective balance of a holder `horizons` seconds after now.

    Growth is linear in the principal, so the projection is the current
    balance plus principal * rate * t, with no settlement assumed.
    """
    t = _validate_horizons(horizons)
    balance = float(view.balance_of(holder))
    slope = view.principal_balance_of(holder) * (view.get_user_rate(holder) / PRECISION_FACTOR)
    return balance + slope * t


def seconds_until_balance(principal: int, rate: int, target: int) -> int:
    """
    Smallest whole number of seconds after which the effective balance of a
    freshly settled `principal` reaches `target`.

    Exact integer arithmetic, matching the ledger's rounding.

    Raises:
        ValueError: If the target can never be reached (no principal or zero rate)
    """
    validate_rate(rate)
    if target <= principal:
        return 0
    if principal <= 0 or rate == 0:
        raise ValueError(f"balance {principal} at rate {rate} never reaches {target}")
    shortfall = (target - principal) * PRECISION_FACTOR
    growth = principal * rate
    return -(-shortfall // growth)
