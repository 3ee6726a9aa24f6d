"""
assets.py - Double-entry custody of the base asset

The vault exchanges this asset for ledger credits. AssetBook keeps one
integer balance per wallet and moves value only through validated AssetMoves,
so the sum over all wallets (including SYSTEM_WALLET) is always zero.

SYSTEM_WALLET is the issuance wallet: it is exempt from balance validation
and goes negative when new asset is issued to a wallet.

A wallet can refuse inbound transfers (set_accept_inbound). A refused move
raises TransferFailed, which is how a recipient rejecting a payout is modelled.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Set
import threading

from .core import (
    SYSTEM_WALLET,
    InsufficientBalance, TransferFailed, WalletNotRegistered,
    _validate_holder_id, _validate_quantity,
)


@dataclass(frozen=True, slots=True)
class AssetMove:
    """
    A single transfer of base asset between two wallets.

    Attributes:
        quantity: Amount to transfer, in base units (positive int)
        source: Wallet debited
        dest: Wallet credited
        reference: Why the move happened (e.g. "deposit", "redeem")
    """
    quantity: int
    source: str
    dest: str
    reference: str

    def __post_init__(self):
        _validate_holder_id(self.source, "source")
        _validate_holder_id(self.dest, "dest")
        if not self.reference or not self.reference.strip():
            raise ValueError("AssetMove reference cannot be empty")
        _validate_quantity(self.quantity, "quantity")
        if self.quantity == 0:
            raise ValueError("AssetMove quantity must be positive")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"AssetMove({self.quantity}: {self.source}→{self.dest}, {self.reference})"


class AssetBook:
    """
    Balances of a single base asset, with an audit trail of moves.

    Thread Safety:
        Public methods run under a re-entrant lock; atomic() holds it across
        several calls and restores balances if the block raises.

    Example:
        assets = AssetBook("ETH", verbose=False)
        assets.register_wallet("alice")
        assets.issue("alice", 1_000)
        assets.register_wallet("vault")
        assets.transfer("alice", "vault", 400, reference="deposit")
    """

    def __init__(self, symbol: str = "ETH", verbose: bool = True):
        self.symbol = _validate_holder_id(symbol, "symbol")
        self.verbose = verbose
        self.balances: Dict[str, int] = {SYSTEM_WALLET: 0}
        self._refuses_inbound: Set[str] = set()
        self.transfer_log: List[AssetMove] = []
        self._lock = threading.RLock()

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_wallet(self, wallet_id: str, accept_inbound: bool = True) -> str:
        """
        Register a new wallet with a zero balance.

        Raises:
            ValueError: If the wallet is already registered
        """
        _validate_holder_id(wallet_id, "wallet_id")
        with self._lock:
            if wallet_id in self.balances:
                raise ValueError(f"Wallet {wallet_id} already registered")
            self.balances[wallet_id] = 0
            if not accept_inbound:
                self._refuses_inbound.add(wallet_id)
            return wallet_id

    def is_registered(self, wallet_id: str) -> bool:
        with self._lock:
            return wallet_id in self.balances

    def list_wallets(self) -> Set[str]:
        with self._lock:
            return set(self.balances)

    def set_accept_inbound(self, wallet_id: str, accept: bool) -> None:
        """Choose whether `wallet_id` accepts incoming transfers."""
        with self._lock:
            self._require_registered(wallet_id)
            if accept:
                self._refuses_inbound.discard(wallet_id)
            else:
                self._refuses_inbound.add(wallet_id)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def balance_of(self, wallet_id: str) -> int:
        with self._lock:
            self._require_registered(wallet_id)
            return self.balances[wallet_id]

    def total_supply(self) -> int:
        """Sum over every wallet including SYSTEM_WALLET. Always zero."""
        with self._lock:
            return sum(self.balances[w] for w in sorted(self.balances))

    def circulating_supply(self) -> int:
        """Asset issued and held outside SYSTEM_WALLET."""
        with self._lock:
            return -self.balances[SYSTEM_WALLET]

    # ========================================================================
    # MOVES (Mutating)
    # ========================================================================

    def issue(self, wallet_id: str, amount: int) -> AssetMove:
        """Create new asset in `wallet_id`, debiting SYSTEM_WALLET."""
        return self.transfer(SYSTEM_WALLET, wallet_id, amount, reference="issuance")

    def transfer(self, source: str, dest: str, amount: int, reference: str = "transfer") -> AssetMove:
        """
        Move `amount` from source to dest.

        Validation happens before any balance changes.

        Raises:
            WalletNotRegistered: If either wallet is unknown
            InsufficientBalance: If source (other than SYSTEM_WALLET) holds less than amount
            TransferFailed: If dest refuses inbound transfers
        """
        move = AssetMove(amount, source, dest, reference)
        with self._lock:
            self._require_registered(source)
            self._require_registered(dest)
            if dest in self._refuses_inbound:
                self._log(f"✗ REJECTED: {move}: {dest} refuses inbound {self.symbol}")
                raise TransferFailed(f"{dest} rejected {move.quantity} {self.symbol}")
            if source != SYSTEM_WALLET and self.balances[source] < move.quantity:
                self._log(f"✗ REJECTED: {move}: balance {self.balances[source]}")
                raise InsufficientBalance(
                    f"{source}: {move.quantity} {self.symbol} exceeds balance {self.balances[source]}"
                )
            self.balances[source] -= move.quantity
            self.balances[dest] += move.quantity
            self.transfer_log.append(move)
            self._log(f"✓ {move}")
            return move

    @contextmanager
    def atomic(self) -> Iterator[AssetBook]:
        """All-or-nothing block: balances and transfer_log restored if it raises."""
        with self._lock:
            balances = dict(self.balances)
            log_length = len(self.transfer_log)
            try:
                yield self
            except Exception:
                self.balances = balances
                del self.transfer_log[log_length:]
                self._log("↺ ROLLED BACK")
                raise

    def _require_registered(self, wallet_id: str) -> None:
        if wallet_id not in self.balances:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[{self.symbol}] {message}")
