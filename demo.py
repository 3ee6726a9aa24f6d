#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Rebase Ledger Step by Step

This is a pedagogical demonstration of how the rebase ledger and its vault work.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - The empty ledger, the vault, the first deposit
  4-6:  Accrual      - Lazy interest, settlement, frozen rates
  7-9:  Safety       - Rejections, rolled-back redemptions, solvency
  10:   Determinism  - Replay and state digests

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from rebase_ledger import (
    RebaseLedger, AssetBook, Vault, Amount,
    InsufficientBalance, TransferFailed, RateDirectionViolation,
    DEFAULT_OWNER, PRECISION_FACTOR,
    annual_rate_to_per_second, per_second_rate_to_annual,
    project_holder_balances,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # Base asset funding, in base units
    alice_initial: int = 1_000_000
    bob_initial: int = 1_000_000
    treasury_initial: int = 10_000_000

    alice_deposit: int = 100_000
    bob_deposit: int = 250_000

    # Annual simple rate applied after alice's deposit
    raised_annual_rate: str = "3.00"


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
    print(f"\n--- {text} ---\n")


def show_holders(ledger: RebaseLedger):
    print(f"{'holder':<10} {'principal':>12} {'balance':>12} {'rate/s':>14}")
    for holder in ledger.list_holders():
        print(f"{holder:<10} {ledger.principal_balance_of(holder):>12} "
              f"{ledger.balance_of(holder):>12} {ledger.get_user_rate(holder):>14}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_ledger():
    """Create the ledger and look at its initial state."""
    step_header(1, "The Empty Ledger",
        "A rebase ledger starts with no holders, a clock and a global rate.")

    ledger = RebaseLedger("rebase", CONFIG.start_time, verbose=True)

    section_header("Initial State")
    rate = ledger.get_global_rate()
    print(f"Ledger name:   {ledger.name}")
    print(f"Current time:  {ledger.current_time}")
    print(f"Global rate:   {rate} per second (scaled by {PRECISION_FACTOR:.0e})")
    print(f"  as annual:   {per_second_rate_to_annual(rate):.4f}")
    print(f"Holders:       {ledger.list_holders()}")
    print(f"Owner:         {ledger.owner}")
    return ledger


def step_02_vault(ledger: RebaseLedger):
    """Wire a vault to the ledger and fund the participants."""
    step_header(2, "The Vault",
        "The vault exchanges base asset for ledger credits 1:1 and must hold the mint role.")

    assets = AssetBook("ETH", verbose=False)
    for wallet, amount in [("alice", CONFIG.alice_initial), ("bob", CONFIG.bob_initial),
                           ("treasury", CONFIG.treasury_initial)]:
        assets.register_wallet(wallet)
        assets.issue(wallet, amount)

    vault = Vault(ledger, assets)
    ledger.grant_mint_and_burn_role(vault.vault_id, caller=DEFAULT_OWNER)

    section_header("Asset balances")
    for wallet in sorted(assets.list_wallets()):
        print(f"{wallet:<10} {assets.balance_of(wallet):>12}")
    print("\nThe system wallet is negative: it issued everything in circulation.")
    return vault


def step_03_first_deposit(vault: Vault):
    step_header(3, "First Deposit",
        "Depositing mints credits and freezes the current global rate for the holder.")

    vault.deposit("alice", CONFIG.alice_deposit)
    show_holders(vault.ledger)
    print(f"\nVault reserve: {vault.reserve()}")
    return vault


# ============================================================================
# PHASE 2: ACCRUAL (Steps 4-6)
# ============================================================================

def step_04_lazy_interest(vault: Vault):
    """Advance time and read balances without touching state."""
    step_header(4, "Lazy Interest",
        "Balances grow linearly on read. Nothing is written until the holder is touched.")

    ledger = vault.ledger
    ledger.advance_time(CONFIG.start_time + timedelta(hours=1))
    show_holders(ledger)
    print("\nPrincipal is unchanged; balance includes one hour of interest.")

    section_header("Projection")
    horizons = [0, 86_400, 30 * 86_400]
    projected = project_holder_balances(ledger, "alice", horizons)
    for seconds, value in zip(horizons, projected):
        print(f"  +{seconds:>8}s  ~{value:,.2f}")
    return vault


def step_05_settlement(vault: Vault):
    step_header(5, "Settlement",
        "Any touch folds pending interest into principal. A zero mint is the smallest touch.")

    ledger = vault.ledger
    ledger.grant_mint_and_burn_role("operator", caller=DEFAULT_OWNER)
    ledger.mint("alice", 0, caller="operator")
    show_holders(ledger)
    print(f"\nlast_settled: {ledger.get_holder('alice').last_settled}")
    return vault


def step_06_frozen_rates(vault: Vault):
    """Raise the global rate and show it only reaches new holders."""
    step_header(6, "Frozen Rates",
        "A rate change applies to holders who arrive later, never to existing holders.")

    new_rate = annual_rate_to_per_second(CONFIG.raised_annual_rate)
    vault.set_interest_rate(DEFAULT_OWNER, new_rate)
    vault.deposit("bob", CONFIG.bob_deposit)
    vault.ledger.transfer("alice", "carol", 10_000)
    show_holders(vault.ledger)
    print("\nbob and carol hold the new rate; alice keeps hers.")
    return vault


# ============================================================================
# PHASE 3: SAFETY (Steps 7-9)
# ============================================================================

def step_07_rejections(vault: Vault):
    step_header(7, "Rejections",
        "Invalid operations raise and leave no trace.")

    ledger = vault.ledger
    try:
        ledger.transfer("carol", "bob", 10 ** 9)
    except InsufficientBalance as e:
        print(f"InsufficientBalance: {e}")
    try:
        ledger.set_global_rate(0, caller=DEFAULT_OWNER)
    except RateDirectionViolation as e:
        print(f"RateDirectionViolation: {e}")
    return vault


def step_08_failed_redeem(vault: Vault):
    """A redemption whose payout is refused is rolled back."""
    step_header(8, "Rolled-back Redemption",
        "The burn and the payout are one unit. If the payout fails, the burn is undone.")

    ledger = vault.ledger
    ledger.advance_time(ledger.current_time + timedelta(days=30))
    vault.assets.set_accept_inbound("alice", False)
    print(f"alice balance before: {ledger.balance_of('alice')}")
    try:
        vault.redeem("alice", Amount.ALL)
    except TransferFailed as e:
        print(f"TransferFailed: {e}")
    print(f"alice balance after:  {ledger.balance_of('alice')}")
    vault.assets.set_accept_inbound("alice", True)
    return vault


def step_09_solvency(vault: Vault):
    step_header(9, "Solvency",
        "add_rewards tops up the reserve so every holder can exit.")

    report = vault.check_solvency()
    print(f"Before: {report}")
    if report['shortfall']:
        vault.add_rewards("treasury", report['shortfall'])
    print(f"After:  {vault.check_solvency()}")

    redeemed = vault.redeem("alice", Amount.ALL)
    print(f"\nalice redeemed {redeemed} (deposited {CONFIG.alice_deposit})")
    return vault


# ============================================================================
# PHASE 4: DETERMINISM (Step 10)
# ============================================================================

def step_10_replay(vault: Vault):
    step_header(10, "Replay",
        "Re-applying the event log rebuilds identical holder records.")

    ledger = vault.ledger
    previous = ledger.verbose
    ledger.verbose = False
    replayed = ledger.replay()
    ledger.verbose = previous
    print(f"Events:          {len(ledger.event_log)}")
    print(f"Original digest: {ledger.state_digest()}")
    print(f"Replayed digest: {replayed.state_digest()}")
    print(f"Match:           {ledger.state_digest() == replayed.state_digest()}")
    return vault


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       REBASE LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_empty_ledger()
    wait_for_enter()

    vault = step_02_vault(ledger)
    wait_for_enter()

    for step in (step_03_first_deposit, step_04_lazy_interest, step_05_settlement,
                 step_06_frozen_rates, step_07_rejections, step_08_failed_redeem,
                 step_09_solvency, step_10_replay):
        vault = step(vault)
        wait_for_enter()

    print("""
    SUMMARY

      - Balances grow linearly at each holder's frozen rate
      - Settlement happens on touch and never changes a balance
      - Rates only move in the permitted direction, and only for newcomers
      - The vault pays interest from its reserve; keep it solvent with rewards
      - Failed operations leave no trace; replay reproduces state exactly

    Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
