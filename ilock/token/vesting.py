"""
ilock.token.vesting: stakeholder registration and per-period payouts.

Lifecycle per (address, pool):

    Unregistered -> Registered -> Locked (p < cliff) -> Vesting -> FullyPaid

A stakeholder with share ``S`` in a pool with ``vest = V`` receives ``S // V``
per payout, and the final (V-th) payout additionally carries ``S % V``, so the
schedule sums to exactly ``S``. At most one payout is taken per period; a
stakeholder who skips periods keeps collecting one installment per period
after the nominal schedule end until the share is complete.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from ilock.core.errors import (
    CliffNotPassed,
    PayoutTooEarly,
    StakeholderAlreadyRegistered,
    StakeholderNotFound,
    StakeholderSharePaid,
    ZeroAddress,
)
from ilock.core.logging import get_logger
from ilock.governance.gates import Ownable
from ilock.math import require_u128
from ilock.runtime.env import Address, Clock, is_zero
from ilock.state.journal import JournaledMap
from ilock.token.ledger import Ledger
from ilock.token.pools import Pool, PoolRef, PoolSpec, parse_pool, pool_spec

log = get_logger(__name__)


class VestingState(str, Enum):
    REGISTERED = "registered"
    LOCKED = "locked"
    VESTING = "vesting"
    FULLY_PAID = "fully_paid"


@dataclass(frozen=True)
class StakeholderRecord:
    address: Address
    pool: Pool
    share: int
    paid: int = 0
    payouts: int = 0
    last_period: Optional[int] = None
    flag: int = 0
    registered: bool = True

    @property
    def remaining(self) -> int:
        return self.share - self.paid


def installment(share: int, vest: int, index: int) -> int:
    """Amount of the `index`-th (0-based) payout of a `vest`-period schedule."""
    if index < 0 or index >= vest:
        raise ValueError(f"installment index {index} outside schedule of {vest}")
    base = share // vest
    return base + share % vest if index == vest - 1 else base


def schedule(share: int, pool: PoolRef) -> List[Tuple[int, int]]:
    """Nominal (period, amount) pairs for a stakeholder paid on time every period."""
    spec = pool_spec(pool)
    return [
        (spec.cliff_periods + i, installment(share, spec.vest_periods, i))
        for i in range(spec.vest_periods)
    ]


class VestingScheduler:
    JOURNALED = ("stakeholders",)

    def __init__(self, ledger: Ledger, ownable: Ownable, clock: Clock) -> None:
        self.ledger = ledger
        self.ownable = ownable
        self.clock = clock
        self.stakeholders: JournaledMap[Tuple[Address, Pool], StakeholderRecord] = JournaledMap()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_stakeholder(
        self, caller: Address, address: Address, share: int, pool: PoolRef, flag: int = 0
    ) -> StakeholderRecord:
        self.ownable.require_owner(caller)
        if is_zero(address):
            raise ZeroAddress(role="stakeholder")
        p = parse_pool(pool)
        require_u128(share)
        if (address, p) in self.stakeholders:
            raise StakeholderAlreadyRegistered(address=address, pool=p)

        record = StakeholderRecord(address=address, pool=p, share=share, flag=int(flag))
        self.stakeholders[(address, p)] = record
        log.info("stakeholder registered", extra={"address": address, "pool": p, "share": share})
        return record

    # ------------------------------------------------------------------
    # Payout
    # ------------------------------------------------------------------

    def distribute_tokens(self, caller: Address, address: Address, pool: PoolRef) -> int:
        """Pay the current installment; returns the amount paid."""
        self.ownable.require_owner(caller)
        p = parse_pool(pool)
        record = self.stakeholder_data(address, p)
        spec = pool_spec(p)
        period = self.clock.current_period()

        if period < spec.cliff_periods:
            raise CliffNotPassed(address=address, pool=p, period=period, cliff=spec.cliff_periods)
        if record.paid == record.share:
            raise StakeholderSharePaid(address=address, pool=p)
        if record.last_period == period:
            raise PayoutTooEarly(address=address, pool=p, period=period)

        amount = installment(record.share, spec.vest_periods, record.payouts)
        self.ledger.issue(p, address, amount)
        self.stakeholders[(address, p)] = replace(
            record,
            paid=record.paid + amount,
            payouts=record.payouts + 1,
            last_period=period,
        )
        log.info(
            "vesting payout",
            extra={"address": address, "pool": p, "period": period, "amount": amount},
        )
        return amount

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def stakeholder_data(self, address: Address, pool: PoolRef) -> StakeholderRecord:
        p = parse_pool(pool)
        record = self.stakeholders.get((address, p))
        if record is None:
            raise StakeholderNotFound(address=address, pool=p)
        return record

    def get_stakes(self, address: Address) -> List[StakeholderRecord]:
        stakes = [r for (a, _), r in sorted(self.stakeholders.items(), key=lambda kv: kv[0][1]) if a == address]
        if not stakes:
            raise StakeholderNotFound(address=address)
        return stakes

    def state_of(self, address: Address, pool: PoolRef) -> VestingState:
        record = self.stakeholder_data(address, pool)
        spec: PoolSpec = pool_spec(record.pool)
        if record.paid == record.share:
            return VestingState.FULLY_PAID
        period = self.clock.current_period()
        if period < spec.cliff_periods:
            return VestingState.LOCKED
        if record.payouts == 0:
            return VestingState.REGISTERED
        return VestingState.VESTING

    def months_passed(self) -> int:
        return self.clock.current_period()


__all__ = [
    "VestingState",
    "StakeholderRecord",
    "installment",
    "schedule",
    "VestingScheduler",
]
