"""
ilock.token.ledger: balances, allowances and capped circulating supply.

Treasury accounting
-------------------
The owner address is a *role*, not an ordinary balance entry:

- `balance_of(owner)` is the notional reserve `SUPPLY_CAP - total_supply`.
- A transfer **from** the owner is emission: circulating supply grows.
- A transfer **to** the owner is retirement: circulating supply shrinks and
  the amount is credited back to the REWARDS pool.

`balances` therefore holds circulating accounts only, and at every observable
point `total_supply == sum(balances.values()) <= SUPPLY_CAP`.

Every mutating method computes all new values with checked math first and
assigns them only once nothing can fail any more.
"""

from __future__ import annotations

from typing import Tuple

from ilock.core.errors import InsufficientAllowance, InsufficientBalance, Overflow, ZeroAddress
from ilock.core.logging import get_logger
from ilock.governance.gates import Ownable, Pausable
from ilock.math import require_u128, u128_add, u128_sub
from ilock.runtime.env import Address, is_zero
from ilock.runtime.events import Approval, EventSink, Transfer
from ilock.state.journal import JournaledMap
from ilock.token.pools import SUPPLY_CAP, Pool, PoolRegistry

log = get_logger(__name__)


def _require_nonzero(**addrs: Address) -> None:
    for role, addr in addrs.items():
        if is_zero(addr):
            raise ZeroAddress(role=role)


class Ledger:
    JOURNALED = ("balances", "allowances", "total_supply")

    def __init__(self, ownable: Ownable, pools: PoolRegistry, pausable: Pausable, sink: EventSink) -> None:
        self.ownable = ownable
        self.pools = pools
        self.pausable = pausable
        self.sink = sink
        self.balances: JournaledMap[Address, int] = JournaledMap()
        self.allowances: JournaledMap[Tuple[Address, Address], int] = JournaledMap()
        self.total_supply: int = 0

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def is_treasury(self, addr: Address) -> bool:
        return self.ownable.is_owner(addr)

    @property
    def treasury(self) -> Address:
        return self.ownable.owner

    @property
    def reserve(self) -> int:
        return SUPPLY_CAP - self.total_supply

    def balance_of(self, addr: Address) -> int:
        if self.is_treasury(addr):
            return self.reserve
        return self.balances.get(addr, 0)

    def allowance(self, owner: Address, spender: Address) -> int:
        return self.allowances.get((owner, spender), 0)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer(self, src: Address, dst: Address, amount: int) -> None:
        _require_nonzero(sender=src, recipient=dst)
        self.pausable.require_not_paused()
        require_u128(amount)
        self._check_balance(src, amount)

        self._move(src, dst, amount)
        self.sink.emit(Transfer(src, dst, amount))

    def transfer_from(self, caller: Address, src: Address, dst: Address, amount: int) -> None:
        """`caller` spends `amount` of `src`'s allowance, moving it to `dst`."""
        _require_nonzero(spender=caller, sender=src, recipient=dst)
        self.pausable.require_not_paused()
        require_u128(amount)
        current = self.allowance(src, caller)
        if amount > current:
            raise InsufficientAllowance(owner=src, spender=caller, allowance=current, amount=amount)
        self._check_balance(src, amount)

        remaining = current - amount
        self._move(src, dst, amount)
        self._set_allowance(src, caller, remaining)
        self.sink.emit(Transfer(src, dst, amount))

    def _check_balance(self, src: Address, amount: int) -> None:
        available = self.balance_of(src)
        if amount > available:
            raise InsufficientBalance(account=src, balance=available, amount=amount)

    def _move(self, src: Address, dst: Address, amount: int) -> None:
        """Apply a validated transfer, including treasury emission/retirement."""
        if src == dst:
            return

        if self.is_treasury(src):
            supply = self._grown_supply(amount)
            new_dst = u128_add(self.balances.get(dst, 0), amount)
            self.total_supply = supply
            self.balances[dst] = new_dst
            log.debug("emission", extra={"to": dst, "amount": amount})
            return

        new_src = u128_sub(self.balances.get(src, 0), amount)
        if self.is_treasury(dst):
            supply = u128_sub(self.total_supply, amount)
            self.pools.check_replenish(Pool.REWARDS, amount)
            self.total_supply = supply
            self._set_balance(src, new_src)
            self.pools.replenish(Pool.REWARDS, amount)
            log.debug("retirement", extra={"src": src, "amount": amount})
            return

        new_dst = u128_add(self.balances.get(dst, 0), amount)
        self._set_balance(src, new_src)
        self.balances[dst] = new_dst

    def _grown_supply(self, amount: int) -> int:
        supply = u128_add(self.total_supply, amount)
        if supply > SUPPLY_CAP:
            raise Overflow("supply cap exceeded", total_supply=self.total_supply, amount=amount)
        return supply

    def _set_balance(self, addr: Address, value: int) -> None:
        if value:
            self.balances[addr] = value
        else:
            self.balances.pop(addr, None)

    # ------------------------------------------------------------------
    # Allowances
    # ------------------------------------------------------------------

    def approve(self, owner: Address, spender: Address, amount: int) -> None:
        _require_nonzero(owner=owner, spender=spender)
        self.pausable.require_not_paused()
        require_u128(amount)
        self._set_allowance(owner, spender, amount)

    def increase_allowance(self, owner: Address, spender: Address, added: int) -> int:
        _require_nonzero(owner=owner, spender=spender)
        self.pausable.require_not_paused()
        value = u128_add(self.allowance(owner, spender), added)
        self._set_allowance(owner, spender, value)
        return value

    def decrease_allowance(self, owner: Address, spender: Address, subtracted: int) -> int:
        _require_nonzero(owner=owner, spender=spender)
        self.pausable.require_not_paused()
        require_u128(subtracted)
        current = self.allowance(owner, spender)
        if subtracted > current:
            raise InsufficientAllowance(owner=owner, spender=spender, allowance=current, amount=subtracted)
        self._set_allowance(owner, spender, current - subtracted)
        return current - subtracted

    def _set_allowance(self, owner: Address, spender: Address, amount: int) -> None:
        if amount:
            self.allowances[(owner, spender)] = amount
        else:
            self.allowances.pop((owner, spender), None)
        self.sink.emit(Approval(owner, spender, amount))

    # ------------------------------------------------------------------
    # Pool releases
    # ------------------------------------------------------------------

    def issue(self, pool: Pool, to: Address, amount: int) -> None:
        """
        Release `amount` from `pool` into `to`'s balance and circulating supply.

        Issuing to the treasury itself is emission followed by retirement: the
        pool is debited and REWARDS credited, circulating supply is unchanged.
        Validation is complete before anything is written.
        """
        _require_nonzero(recipient=to)
        require_u128(amount)
        self.pools.check_release(pool, amount)

        if self.is_treasury(to):
            # No circulating balance moves, so no Transfer is emitted.
            self.pools.check_replenish(Pool.REWARDS, amount)
            self.pools.release(pool, amount)
            self.pools.replenish(Pool.REWARDS, amount)
            log.info("issued to treasury", extra={"pool": pool, "amount": amount})
            return

        supply = self._grown_supply(amount)
        new_to = u128_add(self.balances.get(to, 0), amount)
        self.pools.release(pool, amount)
        self.total_supply = supply
        self.balances[to] = new_to
        self.sink.emit(Transfer(self.treasury, to, amount))

    # ------------------------------------------------------------------
    # Treasury hand-over
    # ------------------------------------------------------------------

    def holds_circulating(self, addr: Address) -> bool:
        return self.balances.get(addr, 0) > 0


__all__ = ["Ledger"]
