"""
conftest.py - Shared pytest fixtures for rebase ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Ledgers (empty, with a minter, with funded holders)
- Asset books and vaults wired to a ledger
"""

import pytest

from rebase_ledger import RebaseLedger, AssetBook, Vault

from tests.helpers import START, ONE_ETH, make_ledger


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no holders and no minters."""
    return RebaseLedger("test", START, verbose=False)


@pytest.fixture
def ledger():
    """Ledger whose 'minter' account may mint and burn."""
    return make_ledger()


@pytest.fixture
def funded_ledger(ledger):
    """Ledger with alice holding 100_000 and bob 50_000 at the default rate."""
    ledger.mint("alice", 100_000, caller="minter")
    ledger.mint("bob", 50_000, caller="minter")
    return ledger


# =============================================================================
# VAULT FIXTURES
# =============================================================================

@pytest.fixture
def assets():
    """Asset book with alice, bob and treasury funded."""
    book = AssetBook("ETH", verbose=False)
    for wallet, amount in [("alice", 100 * ONE_ETH), ("bob", 100 * ONE_ETH),
                           ("treasury", 1_000 * ONE_ETH)]:
        book.register_wallet(wallet)
        book.issue(wallet, amount)
    return book


@pytest.fixture
def vault(assets):
    """Vault over a fresh ledger, holding the mint-and-burn role."""
    rebase = RebaseLedger("rebase", START, verbose=False)
    v = Vault(rebase, assets)
    rebase.grant_mint_and_burn_role(v.vault_id, caller=rebase.owner)
    return v
