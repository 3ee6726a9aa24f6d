"""
ledger.py - Stateful Rebase Ledger

The RebaseLedger class is the central state manager for holder balances.
It is the only module that mutates accrual state.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Settles pending interest into principal before every balance change
    - Assigns each holder's frozen rate on a zero-to-nonzero transition
    - Tracks logical time and provides clone() and replay()
    - Every operation is validated before commit; every commit is logged
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator, List, Optional, Tuple, Union
import threading

from .access import AccessControl
from .core import (
    # Types
    Amount, EventType, HolderRecord, Holders, LedgerEvent, RatePolicy, StateDict,
    # Constants
    DEFAULT_INTEREST_RATE, DEFAULT_OWNER, EPOCH, MINT_AND_BURN_ROLE,
    # Exceptions
    InsufficientBalance, LedgerError,
    # Functions
    as_amount, calculate_effective_balance, calculate_settlement,
    check_rate_direction, compute_state_digest, validate_rate,
    _validate_holder_id, _validate_quantity,
)


class RebaseLedger:
    """
    Yield-bearing ledger with lazy, per-holder linear accrual.

    No process ever sweeps all holders. A holder's effective balance is
    computed on read from (principal, frozen_rate, last_settled), and is
    crystallized into principal whenever the holder is touched by mint,
    burn or transfer.

    Thread Safety:
        Every public method runs under one re-entrant lock, so settle+mutate
        on a holder (or on both holders of a transfer) is a single unit.
        atomic() holds the lock across several calls.

    Example:
        ledger = RebaseLedger("main", datetime(2025, 1, 1))
        ledger.grant_mint_and_burn_role("vault", caller="owner")
        ledger.mint("alice", 100_000, caller="vault")
        ledger.advance_time(datetime(2025, 1, 1, 1))
        ledger.balance_of("alice")   # > 100_000
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        initial_rate: int = DEFAULT_INTEREST_RATE,
        owner: str = DEFAULT_OWNER,
        rate_policy: RatePolicy = RatePolicy.NON_DECREASING,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting logical time (default: 1970-01-01)
            initial_rate: Global rate offered to the first holders
            owner: Holder of the owner capability (rate changes, role grants)
            rate_policy: Permitted direction for global rate changes
            verbose: Print one line per applied or rejected operation
        """
        self.name = name
        self._current_time: datetime = initial_time or EPOCH
        self._initial_time = self._current_time
        self._initial_rate = validate_rate(initial_rate)
        self._initial_owner = owner
        self._global_rate = self._initial_rate
        self.rate_policy = rate_policy
        self.access = AccessControl(owner)
        self.verbose = verbose
        self._holders: Holders = {}
        self._initial_holders: Holders = {}
        self.event_log: List[LedgerEvent] = []
        self._next_sequence: int = 0
        self._lock = threading.RLock()

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def balance_of(self, holder: str) -> int:
        """
        Effective balance: principal plus interest accrued since last settlement.

        Pure read, never mutates state. Returns 0 for unknown holders.
        """
        _validate_holder_id(holder)
        with self._lock:
            record = self._holders.get(holder)
            if record is None:
                return 0
            return calculate_effective_balance(record, self._current_time)

    def principal_balance_of(self, holder: str) -> int:
        """Stored principal, with no accrual applied."""
        _validate_holder_id(holder)
        with self._lock:
            return self._holders.get(holder, HolderRecord()).principal

    def get_user_rate(self, holder: str) -> int:
        """Rate frozen for the holder (0 if the holder never received credits)."""
        _validate_holder_id(holder)
        with self._lock:
            return self._holders.get(holder, HolderRecord()).frozen_rate

    def get_global_rate(self) -> int:
        """Rate that will be frozen for the next new holder."""
        with self._lock:
            return self._global_rate

    def get_holder(self, holder: str) -> HolderRecord:
        """Return the holder's persisted record (an empty record if unknown)."""
        _validate_holder_id(holder)
        with self._lock:
            return self._holders.get(holder, HolderRecord())

    def list_holders(self) -> List[str]:
        """All holder IDs with a record, sorted."""
        with self._lock:
            return sorted(self._holders)

    def total_principal(self) -> int:
        """Sum of stored principals across all holders."""
        with self._lock:
            return sum(r.principal for r in self._holders.values())

    def total_supply(self) -> int:
        """
        Sum of effective balances across all holders.

        Holders are summed in sorted order for deterministic accumulation.
        """
        with self._lock:
            now = self._current_time
            return sum(
                calculate_effective_balance(self._holders[h], now)
                for h in sorted(self._holders)
            )

    def has_mint_and_burn_role(self, account: str) -> bool:
        with self._lock:
            return self.access.has_role(MINT_AND_BURN_ROLE, account)

    @property
    def owner(self) -> str:
        return self.access.owner

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # ACCESS CONTROL (Mutating)
    # ========================================================================

    def grant_mint_and_burn_role(self, account: str, *, caller: str) -> None:
        """Allow `account` to mint and burn. Owner only."""
        with self._lock:
            self.access.require_owner(caller)
            self.access.grant_role(MINT_AND_BURN_ROLE, account)
            self._record(EventType.ROLE_GRANTED, holder=account, detail=MINT_AND_BURN_ROLE)
            self._log(f"✓ ROLE_GRANTED: {MINT_AND_BURN_ROLE} -> {account}")

    def revoke_mint_and_burn_role(self, account: str, *, caller: str) -> None:
        """Withdraw the mint-and-burn role. Owner only."""
        with self._lock:
            self.access.require_owner(caller)
            self.access.revoke_role(MINT_AND_BURN_ROLE, account)
            self._record(EventType.ROLE_REVOKED, holder=account, detail=MINT_AND_BURN_ROLE)
            self._log(f"✓ ROLE_REVOKED: {MINT_AND_BURN_ROLE} <- {account}")

    def transfer_ownership(self, new_owner: str, *, caller: str) -> None:
        """Hand the owner capability to `new_owner`. Owner only."""
        with self._lock:
            self.access.require_owner(caller)
            self.access.set_owner(new_owner)
            self._record(EventType.OWNERSHIP_TRANSFERRED, holder=new_owner, counterparty=caller)
            self._log(f"✓ OWNERSHIP_TRANSFERRED: {caller} -> {new_owner}")

    # ========================================================================
    # RATE MANAGEMENT (Mutating)
    # ========================================================================

    def set_global_rate(self, new_rate: int, *, caller: str) -> None:
        """
        Replace the global rate offered to new holders.

        Holders that already have a frozen rate are unaffected.

        Raises:
            Unauthorized: If caller is not the owner
            ValueError: If new_rate is not a non-negative int
            RateDirectionViolation: If the change breaks the rate policy
        """
        with self._lock:
            self.access.require_owner(caller)
            try:
                self._set_global_rate(new_rate)
            except LedgerError as e:
                self._log(f"✗ REJECTED: {e}")
                raise

    def _set_global_rate(self, new_rate: int) -> None:
        validate_rate(new_rate)
        check_rate_direction(self.rate_policy, self._global_rate, new_rate)
        old_rate = self._global_rate
        self._global_rate = new_rate
        self._record(EventType.RATE_CHANGED, rate=new_rate)
        self._log(f"✓ RATE_CHANGED: {old_rate} -> {new_rate}")

    # ========================================================================
    # BALANCE OPERATIONS (Mutating)
    # ========================================================================

    def mint(self, to: str, amount: int, *, caller: str) -> int:
        """
        Credit `amount` to `to`, settling pending interest first.

        If `to` held nothing before this call, its frozen rate becomes the
        current global rate.

        Returns:
            The quantity minted

        Raises:
            Unauthorized: If caller lacks the mint-and-burn role
        """
        with self._lock:
            self.access.require_role(MINT_AND_BURN_ROLE, caller)
            return self._mint(to, amount)

    def _mint(self, to: str, amount: int) -> int:
        _validate_holder_id(to, "to")
        quantity = _validate_quantity(amount)
        before, settled = self._settled(to)
        rate = settled.frozen_rate
        if quantity > 0 and self._is_empty(before):
            rate = self._global_rate
        after = replace(settled, principal=settled.principal + quantity, frozen_rate=rate)
        self._store(to, settled, after)
        self._record(EventType.MINT, holder=to, amount=quantity, rate=rate)
        self._log(f"✓ MINT: {quantity} -> {to} (rate={rate})")
        return quantity

    def burn(self, from_: str, amount: Union[int, Amount], *, caller: str) -> int:
        """
        Debit `amount` from `from_` after settling pending interest.

        Amount.ALL burns the full settled balance.

        Returns:
            The quantity burned

        Raises:
            Unauthorized: If caller lacks the mint-and-burn role
            InsufficientBalance: If amount exceeds the settled principal
        """
        with self._lock:
            self.access.require_role(MINT_AND_BURN_ROLE, caller)
            return self._burn(from_, amount)

    def _burn(self, from_: str, amount: Union[int, Amount]) -> int:
        _validate_holder_id(from_, "from_")
        requested = as_amount(amount)
        _, settled = self._settled(from_)
        quantity = requested.resolve(settled.principal)
        if quantity > settled.principal:
            self._log(f"✗ REJECTED: burn {quantity} from {from_}: balance {settled.principal}")
            raise InsufficientBalance(
                f"{from_}: burn {quantity} exceeds balance {settled.principal}"
            )
        after = replace(settled, principal=settled.principal - quantity)
        self._store(from_, settled, after)
        self._record(EventType.BURN, holder=from_, amount=quantity)
        self._log(f"✓ BURN: {quantity} <- {from_}")
        return quantity

    def transfer(self, sender: str, recipient: str, amount: Union[int, Amount]) -> int:
        """
        Move credits from sender to recipient, settling both first.

        Amount.ALL moves the sender's full settled balance. A recipient that
        held nothing before the call receives the current global rate, not
        the sender's rate.

        Returns:
            The quantity transferred

        Raises:
            InsufficientBalance: If amount exceeds the sender's settled principal
        """
        with self._lock:
            return self._transfer(sender, recipient, amount)

    def _transfer(self, sender: str, recipient: str, amount: Union[int, Amount]) -> int:
        _validate_holder_id(sender, "sender")
        _validate_holder_id(recipient, "recipient")
        requested = as_amount(amount)

        _, sender_settled = self._settled(sender)
        quantity = requested.resolve(sender_settled.principal)
        if quantity > sender_settled.principal:
            self._log(
                f"✗ REJECTED: transfer {quantity} {sender} -> {recipient}: "
                f"balance {sender_settled.principal}"
            )
            raise InsufficientBalance(
                f"{sender}: transfer {quantity} exceeds balance {sender_settled.principal}"
            )

        if sender == recipient:
            self._store(sender, sender_settled, sender_settled)
            self._record(EventType.TRANSFER, holder=sender, counterparty=recipient,
                         amount=quantity, rate=sender_settled.frozen_rate)
            self._log(f"✓ TRANSFER: {quantity} {sender} -> {recipient}")
            return quantity

        recipient_before, recipient_settled = self._settled(recipient)
        rate = recipient_settled.frozen_rate
        if quantity > 0 and self._is_empty(recipient_before):
            rate = self._global_rate

        sender_after = replace(sender_settled, principal=sender_settled.principal - quantity)
        recipient_after = replace(
            recipient_settled,
            principal=recipient_settled.principal + quantity,
            frozen_rate=rate,
        )
        self._store(sender, sender_settled, sender_after)
        self._store(recipient, recipient_settled, recipient_after)
        self._record(EventType.TRANSFER, holder=sender, counterparty=recipient,
                     amount=quantity, rate=rate)
        self._log(f"✓ TRANSFER: {quantity} {sender} -> {recipient} (rate={rate})")
        return quantity

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _is_empty(self, record: HolderRecord) -> bool:
        return calculate_effective_balance(record, self._current_time) == 0

    def _settled(self, holder: str) -> Tuple[HolderRecord, HolderRecord]:
        """Return (stored record, record settled to now). Nothing is written."""
        before = self._holders.get(holder, HolderRecord())
        return before, calculate_settlement(before, self._current_time)

    def _store(self, holder: str, settled: HolderRecord, updated: HolderRecord) -> None:
        if holder not in self._holders and updated.principal == 0 and updated.accrual_remainder == 0:
            # Zero-amount calls on an unknown holder leave no record
            return
        previous = self._holders.get(holder, HolderRecord())
        accrued = settled.principal - previous.principal
        self._holders[holder] = updated
        if accrued > 0:
            self._record(EventType.INTEREST_SETTLED, holder=holder,
                         amount=accrued, rate=settled.frozen_rate)

    def _record(self, event_type: EventType, **fields) -> LedgerEvent:
        event = LedgerEvent(
            sequence_number=self._next_sequence,
            event_type=event_type,
            timestamp=self._current_time,
            source=self.name,
            **fields,
        )
        self._next_sequence += 1
        self.event_log.append(event)
        return event

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[{self.name} {self._current_time.isoformat()}] {message}")

    # ========================================================================
    # ATOMICITY, CLONING AND REPLAY
    # ========================================================================

    @contextmanager
    def atomic(self) -> Iterator[RebaseLedger]:
        """
        Run several operations as one all-or-nothing unit.

        Holds the ledger lock for the whole block. If the block raises,
        holder records, the global rate, roles and the event log are restored
        to their state at entry and the exception propagates.

        Example:
            with ledger.atomic():
                ledger.burn("alice", 100, caller="vault")
                pay_out("alice", 100)          # raising here undoes the burn
        """
        with self._lock:
            holders = dict(self._holders)
            global_rate = self._global_rate
            log_length = len(self.event_log)
            sequence = self._next_sequence
            access = self.access.snapshot()
            try:
                yield self
            except Exception:
                self._holders = holders
                self._global_rate = global_rate
                del self.event_log[log_length:]
                self._next_sequence = sequence
                self.access.restore(access)
                self._log("↺ ROLLED BACK")
                raise

    def clone(self) -> RebaseLedger:
        """
        Create an independent copy of this ledger.

        HolderRecord and LedgerEvent are immutable, so copying the containers
        is enough.
        """
        with self._lock:
            cloned = RebaseLedger.__new__(RebaseLedger)
            cloned.name = self.name
            cloned._current_time = self._current_time
            cloned._initial_time = self._initial_time
            cloned._initial_rate = self._initial_rate
            cloned._initial_owner = self._initial_owner
            cloned._global_rate = self._global_rate
            cloned.rate_policy = self.rate_policy
            cloned.access = self.access.clone()
            cloned.verbose = self.verbose
            cloned._holders = dict(self._holders)
            cloned._initial_holders = dict(self._initial_holders)
            cloned.event_log = list(self.event_log)
            cloned._next_sequence = self._next_sequence
            cloned._lock = threading.RLock()
            return cloned

    def replay(self) -> RebaseLedger:
        """
        Rebuild a ledger by re-applying the event log at its recorded times.

        INTEREST_SETTLED events are not re-applied; the replayed operations
        derive them again. The replayed ledger starts from the holder records
        this ledger started from: none for a new ledger, the loaded records
        for one built with from_state_dict(). The result has the same
        state_digest() as this ledger.

        Raises:
            LedgerError: If an event cannot be re-applied
        """
        with self._lock:
            events = list(self.event_log)
            initial_holders = dict(self._initial_holders)

        new_ledger = RebaseLedger(
            name=f"{self.name}_replayed",
            initial_time=self._initial_time,
            initial_rate=self._initial_rate,
            owner=self._initial_owner,
            rate_policy=self.rate_policy,
            verbose=self.verbose,
        )
        new_ledger._holders = dict(initial_holders)
        new_ledger._initial_holders = initial_holders

        for event in events:
            if event.timestamp > new_ledger.current_time:
                new_ledger.advance_time(event.timestamp)
            try:
                new_ledger._apply_event(event)
            except (LedgerError, ValueError) as e:
                raise LedgerError(f"Replay failed at event {event.sequence_number}: {e}") from e

        return new_ledger

    def _apply_event(self, event: LedgerEvent) -> None:
        if event.event_type is EventType.MINT:
            self._mint(event.holder, event.amount)
        elif event.event_type is EventType.BURN:
            self._burn(event.holder, Amount.exact(event.amount))
        elif event.event_type is EventType.TRANSFER:
            self._transfer(event.holder, event.counterparty, Amount.exact(event.amount))
        elif event.event_type is EventType.RATE_CHANGED:
            self._set_global_rate(event.rate)
        elif event.event_type is EventType.ROLE_GRANTED:
            self.access.grant_role(event.detail, event.holder)
            self._record(EventType.ROLE_GRANTED, holder=event.holder, detail=event.detail)
        elif event.event_type is EventType.ROLE_REVOKED:
            self.access.revoke_role(event.detail, event.holder)
            self._record(EventType.ROLE_REVOKED, holder=event.holder, detail=event.detail)
        elif event.event_type is EventType.OWNERSHIP_TRANSFERRED:
            self.access.set_owner(event.holder)
            self._record(EventType.OWNERSHIP_TRANSFERRED, holder=event.holder,
                         counterparty=event.counterparty)

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def to_state_dict(self) -> StateDict:
        """
        Serialize the persisted state: global rate and one record per holder.
        """
        with self._lock:
            return {
                'global_rate': self._global_rate,
                'rate_policy': self.rate_policy.value,
                'current_time': self._current_time,
                'holders': {
                    holder: {
                        'principal': r.principal,
                        'frozen_rate': r.frozen_rate,
                        'last_settled': r.last_settled,
                        'accrual_remainder': r.accrual_remainder,
                    }
                    for holder, r in self._holders.items()
                },
            }

    @classmethod
    def from_state_dict(
        cls,
        name: str,
        state: StateDict,
        owner: str = DEFAULT_OWNER,
        verbose: bool = True,
    ) -> RebaseLedger:
        """
        Restore a ledger from to_state_dict() output.

        Roles are not part of the persisted state and must be granted again.
        """
        ledger = cls(
            name,
            initial_time=state['current_time'],
            initial_rate=state['global_rate'],
            owner=owner,
            rate_policy=RatePolicy(state.get('rate_policy', RatePolicy.NON_DECREASING.value)),
            verbose=verbose,
        )
        for holder, raw in state.get('holders', {}).items():
            ledger._holders[_validate_holder_id(holder)] = HolderRecord(
                principal=raw.get('principal', 0),
                frozen_rate=raw.get('frozen_rate', 0),
                last_settled=raw.get('last_settled'),
                accrual_remainder=raw.get('accrual_remainder', 0),
            )
        ledger._initial_holders = dict(ledger._holders)
        return ledger

    def state_digest(self) -> str:
        """Content hash of the global rate and holder records (not time, name or log)."""
        state = self.to_state_dict()
        del state['current_time']
        return compute_state_digest(state)
