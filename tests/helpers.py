"""
helpers.py - Constants and builders shared by the test suites
"""

from datetime import datetime, timedelta
from typing import Dict, Any

from rebase_ledger import RebaseLedger, PRECISION_FACTOR


START = datetime(2025, 1, 1)
ONE_HOUR = timedelta(hours=1)
ONE_DAY = timedelta(days=1)
ONE_ETH = 10 ** 18


def expected_interest(principal: int, rate: int, seconds: int) -> int:
    """Interest of a freshly settled principal after `seconds`, floored."""
    return principal * rate * seconds // PRECISION_FACTOR


def make_ledger(name: str = "test", **kwargs) -> RebaseLedger:
    """Ledger at START with 'minter' holding the mint-and-burn role."""
    kwargs.setdefault("initial_time", START)
    kwargs.setdefault("verbose", False)
    ledger = RebaseLedger(name, **kwargs)
    ledger.grant_mint_and_burn_role("minter", caller=ledger.owner)
    return ledger


def holder_snapshot(ledger: RebaseLedger) -> Dict[str, Any]:
    """Everything a failed call must leave untouched."""
    return {
        "holders": {h: ledger.get_holder(h) for h in ledger.list_holders()},
        "global_rate": ledger.get_global_rate(),
        "events": len(ledger.event_log),
    }
