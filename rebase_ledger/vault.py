"""
vault.py - Exchange between the base asset and rebase ledger credits

The vault holds the base asset in its AssetBook wallet and exchanges it 1:1
for ledger credits:

    deposit:  asset caller -> vault,  ledger.mint(caller)
    redeem:   ledger.burn(caller),    asset vault -> caller

It has no accrual logic of its own. Interest paid on redemption comes out of
the reserve, so the reserve must be topped up with add_rewards() to stay at
or above the ledger's total effective supply (see check_solvency()).

Each operation runs inside both components' atomic() blocks: a rejected
payout rolls back the burn, a short depositor rolls back the mint.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Union

from .assets import AssetBook
from .core import (
    Amount, EventType, LedgerEvent,
    VAULT_WALLET,
    InsufficientBalance, TransferFailed,
    as_amount, _validate_holder_id, _validate_quantity,
)
from .ledger import RebaseLedger


def _positive(amount: int, operation: str) -> int:
    quantity = _validate_quantity(amount)
    if quantity == 0:
        raise ValueError(f"{operation} amount must be positive")
    return quantity


class Vault:
    """
    Base-asset vault backing a RebaseLedger.

    The vault's wallet ID must hold the ledger's mint-and-burn role.

    Example:
        ledger = RebaseLedger("rebase", datetime(2025, 1, 1), verbose=False)
        assets = AssetBook("ETH", verbose=False)
        vault = Vault(ledger, assets)
        ledger.grant_mint_and_burn_role(vault.vault_id, caller="owner")

        assets.register_wallet("alice")
        assets.issue("alice", 1_000)
        vault.deposit("alice", 1_000)
        vault.redeem("alice", Amount.ALL)
    """

    def __init__(
        self,
        ledger: RebaseLedger,
        assets: AssetBook,
        vault_id: str = VAULT_WALLET,
        verbose: Optional[bool] = None,
    ):
        self.ledger = ledger
        self.assets = assets
        self.vault_id = _validate_holder_id(vault_id, "vault_id")
        self.verbose = ledger.verbose if verbose is None else verbose
        if not assets.is_registered(vault_id):
            assets.register_wallet(vault_id)
        self.event_log: List[LedgerEvent] = []
        self._next_sequence: int = 0

    # ========================================================================
    # EXCHANGE OPERATIONS
    # ========================================================================

    def deposit(self, caller: str, amount: int) -> int:
        """
        Exchange `amount` of base asset for the same amount of ledger credits.

        Returns:
            The quantity deposited

        Raises:
            ValueError: If amount is not a positive int
            Unauthorized: If the vault lacks the mint-and-burn role
            InsufficientBalance: If caller holds less asset than amount
        """
        _validate_holder_id(caller, "caller")
        quantity = _positive(amount, "deposit")
        with self.assets.atomic(), self.ledger.atomic():
            self.ledger.mint(caller, quantity, caller=self.vault_id)
            self.assets.transfer(caller, self.vault_id, quantity, reference="deposit")
        self._record(EventType.DEPOSIT, holder=caller, amount=quantity)
        self._log(f"✓ DEPOSIT: {quantity} from {caller}")
        return quantity

    def redeem(self, caller: str, amount: Union[int, Amount] = Amount.ALL) -> int:
        """
        Burn ledger credits and pay out the same amount of base asset.

        Amount.ALL redeems the caller's full effective balance, including
        interest accrued up to now.

        Returns:
            The quantity redeemed

        Raises:
            ValueError: If the resolved amount is zero
            Unauthorized: If the vault lacks the mint-and-burn role
            InsufficientBalance: If amount exceeds the caller's balance
            TransferFailed: If the payout is refused or the reserve is short;
                            the burn is rolled back
        """
        _validate_holder_id(caller, "caller")
        requested = as_amount(amount)
        with self.assets.atomic(), self.ledger.atomic():
            if requested.is_all:
                quantity = self.ledger.balance_of(caller)
            else:
                quantity = requested.quantity
            _positive(quantity, "redeem")
            self.ledger.burn(caller, quantity, caller=self.vault_id)
            try:
                self.assets.transfer(self.vault_id, caller, quantity, reference="redeem")
            except InsufficientBalance as e:
                self._log(f"✗ REJECTED: redeem {quantity} to {caller}: reserve short")
                raise TransferFailed(
                    f"Vault reserve cannot pay {quantity} to {caller}"
                ) from e
        self._record(EventType.REDEEM, holder=caller, amount=quantity)
        self._log(f"✓ REDEEM: {quantity} to {caller}")
        return quantity

    def add_rewards(self, caller: str, amount: int) -> int:
        """
        Fund the reserve with base asset so accrued interest can be paid out.

        Does not touch the global rate and mints no credits.
        """
        _validate_holder_id(caller, "caller")
        quantity = _positive(amount, "rewards")
        self.assets.transfer(caller, self.vault_id, quantity, reference="rewards")
        self._record(EventType.REWARDS_ADDED, holder=caller, amount=quantity)
        self._log(f"✓ REWARDS_ADDED: {quantity} from {caller}")
        return quantity

    def set_interest_rate(self, caller: str, new_rate: int) -> None:
        """Forward a global rate change to the ledger; the ledger checks the owner."""
        self.ledger.set_global_rate(new_rate, caller=caller)

    # ========================================================================
    # RESERVE AND SOLVENCY
    # ========================================================================

    def reserve(self) -> int:
        """Base asset currently held by the vault."""
        return self.assets.balance_of(self.vault_id)

    def liabilities(self) -> int:
        """Sum of all holders' effective balances, payable on demand."""
        return self.ledger.total_supply()

    def check_solvency(self) -> Dict[str, Any]:
        """
        Verify the reserve covers every holder's effective balance.

        Returns:
            Dict with keys:
            - 'valid': bool - True if reserve >= liabilities
            - 'reserve': int
            - 'liabilities': int
            - 'shortfall': int - rewards needed to restore solvency (0 if valid)
        """
        with self.assets.atomic(), self.ledger.atomic():
            reserve = self.reserve()
            liabilities = self.liabilities()
        shortfall = max(0, liabilities - reserve)
        return {
            'valid': shortfall == 0,
            'reserve': reserve,
            'liabilities': liabilities,
            'shortfall': shortfall,
        }

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _record(self, event_type: EventType, **fields) -> LedgerEvent:
        event = LedgerEvent(
            sequence_number=self._next_sequence,
            event_type=event_type,
            timestamp=self.ledger.current_time,
            source=self.vault_id,
            **fields,
        )
        self._next_sequence += 1
        self.event_log.append(event)
        return event

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[{self.vault_id} {self.ledger.current_time.isoformat()}] {message}")
