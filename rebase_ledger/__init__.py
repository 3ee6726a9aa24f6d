"""
rebase_ledger - Yield-Bearing Rebase Ledger

A ledger whose per-holder balance grows linearly with time at a rate frozen
for each holder, plus a vault exchanging a base asset for ledger credits 1:1.

Usage:
    from rebase_ledger import RebaseLedger, AssetBook, Vault, Amount

    ledger = RebaseLedger("rebase", datetime(2025, 1, 1))
    assets = AssetBook("ETH")
    vault = Vault(ledger, assets)
    ledger.grant_mint_and_burn_role(vault.vault_id, caller="owner")

    assets.register_wallet("alice")
    assets.issue("alice", 100_000)
    vault.deposit("alice", 100_000)

    ledger.advance_time(datetime(2025, 1, 1, 1))
    ledger.balance_of("alice")        # principal plus one hour of interest

    vault.add_rewards("treasury", ledger.balance_of("alice") - 100_000)
    vault.redeem("alice", Amount.ALL)
"""

# Core types
from .core import (
    LedgerView,
    Amount,
    HolderRecord,
    LedgerEvent,
    EventType,
    RatePolicy,
    LedgerError,
    InsufficientBalance,
    RateDirectionViolation,
    Unauthorized,
    TransferFailed,
    WalletNotRegistered,
    as_amount,
    calculate_effective_balance,
    calculate_accrued_interest,
    calculate_settlement,
    check_rate_direction,
    elapsed_seconds,
    interest_factor,
    PRECISION_FACTOR,
    DEFAULT_INTEREST_RATE,
    SECONDS_PER_YEAR,
    MINT_AND_BURN_ROLE,
    DEFAULT_OWNER,
    VAULT_WALLET,
    SYSTEM_WALLET,
)

# Access control
from .access import AccessControl

# Ledger
from .ledger import RebaseLedger

# Asset custody
from .assets import AssetBook, AssetMove

# Vault
from .vault import Vault

# Analytics
from .analytics import (
    annual_rate_to_per_second,
    per_second_rate_to_annual,
    project_balances,
    project_holder_balances,
    seconds_until_balance,
)

__all__ = [
    # Core
    'LedgerView', 'Amount', 'HolderRecord', 'LedgerEvent', 'EventType', 'RatePolicy',
    'LedgerError', 'InsufficientBalance', 'RateDirectionViolation', 'Unauthorized',
    'TransferFailed', 'WalletNotRegistered',
    'as_amount', 'calculate_effective_balance', 'calculate_accrued_interest',
    'calculate_settlement', 'check_rate_direction', 'elapsed_seconds', 'interest_factor',
    'PRECISION_FACTOR', 'DEFAULT_INTEREST_RATE', 'SECONDS_PER_YEAR',
    'MINT_AND_BURN_ROLE', 'DEFAULT_OWNER', 'VAULT_WALLET', 'SYSTEM_WALLET',
    # Access control
    'AccessControl',
    # Ledger
    'RebaseLedger',
    # Assets
    'AssetBook', 'AssetMove',
    # Vault
    'Vault',
    # Analytics
    'annual_rate_to_per_second', 'per_second_rate_to_annual',
    'project_balances', 'project_holder_balances', 'seconds_until_balance',
]

__version__ = '1.0.0'
