"""
Core types and pure functions for the rebase ledger.

This module provides the foundational data structures and protocols for the ledger:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: HolderRecord, LedgerEvent, Amount
3. Exceptions: LedgerError and domain-specific error types
4. Pure accrual functions: effective balance, settlement, rate direction checks
5. Canonical serialization for content-addressable state digests

All functions in this module are pure and operate on explicit inputs.
No function can mutate ledger state directly.

Key Formula:
    effective = (principal * (PRECISION_FACTOR + rate * elapsed) + remainder) // PRECISION_FACTOR

Interest is simple (linear in time), never compounded between settlements.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
import hashlib
from typing import (
    Dict, List, Optional, Any, Protocol, Union, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale for rates and for the accrual remainder.
PRECISION_FACTOR = 10 ** 18

# Initial global rate, per second, scaled by PRECISION_FACTOR.
DEFAULT_INTEREST_RATE = 5 * 10 ** 10

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Role allowed to mint and burn ledger credits (granted to the vault).
MINT_AND_BURN_ROLE = "MINT_AND_BURN_ROLE"

DEFAULT_OWNER = "owner"

# Wallet that custodies the base asset on behalf of the vault.
VAULT_WALLET = "vault"

# Reserved asset wallet for issuance. Exempt from balance validation.
SYSTEM_WALLET = "system"

EPOCH = datetime(1970, 1, 1)

ONE_SECOND = timedelta(seconds=1)


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from holder ID to that holder's persisted record.
Holders = Dict[str, 'HolderRecord']

# Serialized ledger state, as produced by RebaseLedger.to_state_dict().
StateDict = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to rebase ledger state.

    Analytics and reporting functions accept a LedgerView to declare that they
    only read. RebaseLedger implements this protocol; tests use FakeView.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def balance_of(self, holder: str) -> int:
        """Return the effective balance (principal plus pending interest)."""
        ...

    def principal_balance_of(self, holder: str) -> int:
        """Return the stored principal, without pending interest."""
        ...

    def get_user_rate(self, holder: str) -> int:
        """Return the holder's frozen interest rate."""
        ...

    def get_global_rate(self) -> int:
        """Return the rate offered to new holders."""
        ...

    def list_holders(self) -> List[str]:
        """Return all holder IDs that have a record."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class EventType(Enum):
    """Kinds of records written to a component's event_log."""
    MINT = "mint"
    BURN = "burn"
    TRANSFER = "transfer"
    INTEREST_SETTLED = "interest_settled"
    RATE_CHANGED = "rate_changed"
    ROLE_GRANTED = "role_granted"
    ROLE_REVOKED = "role_revoked"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"
    DEPOSIT = "deposit"
    REDEEM = "redeem"
    REWARDS_ADDED = "rewards_added"


class RatePolicy(Enum):
    """
    Permitted direction for changes of the global rate.

    NON_DECREASING: the rate may stay equal or rise (rate floor for early holders).
    NON_INCREASING: the rate may stay equal or fall.
    """
    NON_DECREASING = "non_decreasing"
    NON_INCREASING = "non_increasing"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when a burn or transfer exceeds the settled balance."""
    pass


class RateDirectionViolation(LedgerError):
    """Raised when a global rate change moves the rate in the forbidden direction."""
    pass


class Unauthorized(LedgerError):
    """Raised when the caller lacks the owner capability or a required role."""
    pass


class TransferFailed(LedgerError):
    """Raised when an outbound asset transfer is rejected or cannot be paid."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when operating on an asset wallet that has not been registered."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _validate_holder_id(holder: str, field_name: str = "holder") -> str:
    if not isinstance(holder, str) or not holder.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return holder


def _validate_quantity(value: int, field_name: str = "amount") -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{field_name} must be non-negative, got {value}")
    return value


def validate_rate(rate: int) -> int:
    """Check that a rate is a non-negative fixed-point integer."""
    return _validate_quantity(rate, "rate")


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Amount:
    """
    Quantity argument for burn, transfer and redeem.

    Either an exact number of base units, or ALL: the holder's full settled
    balance. Always resolved to a concrete int before any state is touched.

    Example:
        ledger.transfer("alice", "bob", Amount.exact(100))
        vault.redeem("alice", Amount.ALL)
    """
    quantity: Optional[int] = None

    def __post_init__(self):
        if self.quantity is not None:
            _validate_quantity(self.quantity)

    @classmethod
    def exact(cls, quantity: int) -> Amount:
        return cls(quantity)

    @property
    def is_all(self) -> bool:
        return self.quantity is None

    def resolve(self, available: int) -> int:
        """Return the concrete quantity, substituting `available` for ALL."""
        if self.quantity is None:
            return available
        return self.quantity

    def __repr__(self) -> str:
        if self.quantity is None:
            return "Amount.ALL"
        return f"Amount({self.quantity})"


Amount.ALL = Amount()


def as_amount(value: Union[int, Amount]) -> Amount:
    """Accept a plain int or an Amount."""
    if isinstance(value, Amount):
        return value
    return Amount.exact(_validate_quantity(value))


@dataclass(frozen=True, slots=True)
class HolderRecord:
    """
    Persisted state of one holder.

    Attributes:
        principal: Balance actually credited. Changes only through settlement,
                   mint, burn and transfer.
        frozen_rate: Per-second rate (scaled) locked in at the last
                     zero-to-nonzero transition of the balance.
        last_settled: Logical time up to which interest has been folded into
                      principal. None until the first settlement.
        accrual_remainder: Sub-unit interest carried between settlements,
                           scaled by PRECISION_FACTOR.
    """
    principal: int = 0
    frozen_rate: int = 0
    last_settled: Optional[datetime] = None
    accrual_remainder: int = 0

    def __post_init__(self):
        _validate_quantity(self.principal, "principal")
        _validate_quantity(self.frozen_rate, "frozen_rate")
        _validate_quantity(self.accrual_remainder, "accrual_remainder")
        if self.accrual_remainder >= PRECISION_FACTOR:
            raise ValueError(
                f"accrual_remainder must be below {PRECISION_FACTOR}, got {self.accrual_remainder}"
            )


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """
    Immutable audit record of an applied operation.

    Attributes:
        sequence_number: Monotonic position within the emitting component
        event_type: What happened
        timestamp: Logical time at which it happened
        holder: Primary party (recipient of a mint, sender of a transfer, ...)
        counterparty: Second party, if any
        amount: Quantity moved, in base units
        rate: Rate involved (assigned, settled at, or newly set)
        detail: Free-form qualifier (role name for role events)
        source: Name of the emitting component
    """
    sequence_number: int
    event_type: EventType
    timestamp: datetime
    holder: Optional[str] = None
    counterparty: Optional[str] = None
    amount: int = 0
    rate: Optional[int] = None
    detail: Optional[str] = None
    source: str = ""

    def __repr__(self) -> str:
        parts = [f"#{self.sequence_number} {self.event_type.value}"]
        if self.holder:
            parts.append(self.holder)
        if self.counterparty:
            parts.append(f"-> {self.counterparty}")
        if self.amount:
            parts.append(f"amount={self.amount}")
        if self.rate is not None:
            parts.append(f"rate={self.rate}")
        if self.detail:
            parts.append(self.detail)
        return f"LedgerEvent({' '.join(parts)} @ {self.timestamp.isoformat()})"


# ============================================================================
# PURE ACCRUAL FUNCTIONS
# ============================================================================

def elapsed_seconds(last_settled: Optional[datetime], current_time: datetime) -> int:
    """
    Whole seconds elapsed since the last settlement.

    Returns 0 for a holder that was never settled or if current_time is not
    after last_settled.
    """
    if last_settled is None or current_time <= last_settled:
        return 0
    return (current_time - last_settled) // ONE_SECOND


def interest_factor(rate: int, seconds: int) -> int:
    """Linear growth factor, scaled: PRECISION_FACTOR + rate * seconds."""
    return PRECISION_FACTOR + rate * seconds


def _scaled_balance(record: HolderRecord, seconds: int) -> int:
    # Multiply before dividing; Python ints do not overflow.
    return record.principal * interest_factor(record.frozen_rate, seconds) + record.accrual_remainder


def calculate_effective_balance(record: HolderRecord, current_time: datetime) -> int:
    """
    Effective balance of a holder at current_time.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Never less than record.principal, since rate and elapsed time are
    non-negative.
    """
    seconds = elapsed_seconds(record.last_settled, current_time)
    return _scaled_balance(record, seconds) // PRECISION_FACTOR


def calculate_accrued_interest(record: HolderRecord, current_time: datetime) -> int:
    """Interest pending since last_settled (effective minus principal)."""
    return calculate_effective_balance(record, current_time) - record.principal


def calculate_settlement(record: HolderRecord, current_time: datetime) -> HolderRecord:
    """
    Fold pending interest into principal.

    PURE FUNCTION - returns a new HolderRecord, the input is untouched.

    The sub-unit part of the interest is kept in accrual_remainder, and
    last_settled advances by whole seconds only, so nothing accrued is lost
    across repeated settlements. Immediately after settlement the effective
    balance equals the principal.

    Args:
        record: Holder state before settlement
        current_time: Logical time to settle up to

    Returns:
        Settled HolderRecord
    """
    if record.last_settled is None:
        return replace(record, last_settled=current_time)

    seconds = elapsed_seconds(record.last_settled, current_time)
    if seconds == 0:
        return record

    principal, remainder = divmod(_scaled_balance(record, seconds), PRECISION_FACTOR)
    return replace(
        record,
        principal=principal,
        accrual_remainder=remainder,
        last_settled=record.last_settled + seconds * ONE_SECOND,
    )


def check_rate_direction(policy: RatePolicy, current_rate: int, new_rate: int) -> None:
    """
    Enforce the rate policy for a proposed global rate change.

    Raises:
        RateDirectionViolation: If new_rate moves the wrong way
    """
    if policy is RatePolicy.NON_DECREASING and new_rate < current_rate:
        raise RateDirectionViolation(
            f"Interest rate can only increase: {new_rate} < current {current_rate}"
        )
    if policy is RatePolicy.NON_INCREASING and new_rate > current_rate:
        raise RateDirectionViolation(
            f"Interest rate can only decrease: {new_rate} > current {current_rate}"
        )


# ============================================================================
# CANONICAL SERIALIZATION
# ============================================================================

def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Output is independent of dict insertion order.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"I:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, Enum):
        return f"E:{value.value}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    return f"R:{repr(value)}"


def compute_state_digest(state: StateDict) -> str:
    """Deterministic content hash of a serialized state."""
    return hashlib.sha256(_canonicalize(state).encode()).hexdigest()[:16]
