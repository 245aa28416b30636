"""
ilock.governance.gates
======================

The two boolean gates every state-changing call consults:

- **Ownable**: who the owner (the treasury role) is, and `require_owner`.
- **Pausable**: whether the system is paused, and `require_not_paused`.

Neither gate decides *who* may flip it. Ownership moves and un-pausing are
multisig-authorized by the contract facade; pausing is open to any signatory.
"""

from __future__ import annotations

from ilock.core.errors import CallerNotOwner, ContractPaused, ZeroAddress
from ilock.runtime.env import Address, is_zero


class Ownable:
    JOURNALED = ("owner",)

    def __init__(self, owner: Address) -> None:
        if is_zero(owner):
            raise ZeroAddress("owner cannot be the zero address")
        self.owner: Address = owner

    def is_owner(self, addr: Address) -> bool:
        return addr == self.owner

    def require_owner(self, caller: Address) -> None:
        if caller != self.owner:
            raise CallerNotOwner(caller=caller)

    def set_owner(self, new_owner: Address) -> Address:
        """Unchecked owner swap; returns the previous owner."""
        if is_zero(new_owner):
            raise ZeroAddress("new owner cannot be the zero address")
        previous, self.owner = self.owner, new_owner
        return previous


class Pausable:
    JOURNALED = ("paused",)

    def __init__(self, paused: bool = False) -> None:
        self.paused = paused

    def require_not_paused(self) -> None:
        if self.paused:
            raise ContractPaused()

    def set_paused(self, flag: bool) -> bool:
        """Returns True when the flag actually changed."""
        changed = self.paused != flag
        self.paused = flag
        return changed


__all__ = ["Ownable", "Pausable"]
