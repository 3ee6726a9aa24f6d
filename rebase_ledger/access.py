"""
access.py - Owner capability and role membership

The ledger trusts this layer to answer one question before any state is
touched: may this caller do this? Checks raise Unauthorized; they never
return a flag that callers could forget to test.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, FrozenSet, Set, Tuple

from .core import Unauthorized, _validate_holder_id


# (owner, role -> members)
AccessSnapshot = Tuple[str, Dict[str, FrozenSet[str]]]


class AccessControl:
    """
    Single owner plus named roles.

    Example:
        access = AccessControl("owner")
        access.grant_role(MINT_AND_BURN_ROLE, "vault")
        access.require_role(MINT_AND_BURN_ROLE, "vault")   # ok
        access.require_owner("mallory")                     # raises Unauthorized
    """

    def __init__(self, owner: str):
        self.owner = _validate_holder_id(owner, "owner")
        self._roles: Dict[str, Set[str]] = defaultdict(set)

    def is_owner(self, caller: str) -> bool:
        return caller == self.owner

    def has_role(self, role: str, account: str) -> bool:
        return account in self._roles.get(role, ())

    def members(self, role: str) -> Set[str]:
        return set(self._roles.get(role, ()))

    def require_owner(self, caller: str) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(f"{caller!r} is not the owner")

    def require_role(self, role: str, caller: str) -> None:
        if not self.has_role(role, caller):
            raise Unauthorized(f"{caller!r} lacks role {role}")

    def grant_role(self, role: str, account: str) -> None:
        self._roles[role].add(_validate_holder_id(account, "account"))

    def revoke_role(self, role: str, account: str) -> None:
        self._roles[role].discard(account)

    def set_owner(self, new_owner: str) -> None:
        self.owner = _validate_holder_id(new_owner, "owner")

    def snapshot(self) -> AccessSnapshot:
        return self.owner, {role: frozenset(m) for role, m in self._roles.items()}

    def restore(self, snapshot: AccessSnapshot) -> None:
        owner, roles = snapshot
        self.owner = owner
        self._roles = defaultdict(set, {role: set(m) for role, m in roles.items()})

    def clone(self) -> AccessControl:
        cloned = AccessControl(self.owner)
        cloned.restore(self.snapshot())
        return cloned
