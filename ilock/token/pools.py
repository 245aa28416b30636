"""
ilock.token.pools: the fixed pool table and per-pool remaining allocation.

The table is closed and ordered: pools are addressed by the `Pool` enum, and
the only place a loosely-typed pool reference is accepted is `parse_pool`
(used at the string-keyed payout boundary and when decoding external input).

Each pool starts with its full allocation as "allocated but not yet
released". `release` moves tokens out (vesting payouts, direct payouts,
rewards); `replenish` takes retired tokens back in (REWARDS only, through
the ledger's treasury path). Both are checked.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final, FrozenSet, Tuple, Union

from ilock.core.errors import InvalidPool, Overflow, PaymentTooLarge
from ilock.math import try_add, u128_add, u128_sub
from ilock.state.journal import JournaledMap

DECIMALS: Final[int] = 18
UNIT: Final[int] = 10**DECIMALS
SUPPLY_CAP: Final[int] = 1_000_000_000 * UNIT


class Pool(IntEnum):
    REWARDS = 0
    TEAM = 1
    PARTNERS = 2
    COMMUNITY = 3
    PUBLIC = 4


@dataclass(frozen=True)
class PoolSpec:
    pool: Pool
    token_allocation: int
    cliff_periods: int
    vest_periods: int

    @property
    def name(self) -> str:
        return self.pool.name

    @property
    def last_period(self) -> int:
        return self.cliff_periods + self.vest_periods - 1


POOL_TABLE: Final[Tuple[PoolSpec, ...]] = (
    PoolSpec(Pool.REWARDS, 300_000_000 * UNIT, cliff_periods=0, vest_periods=1),
    PoolSpec(Pool.TEAM, 200_000_000 * UNIT, cliff_periods=6, vest_periods=36),
    PoolSpec(Pool.PARTNERS, 150_000_000 * UNIT, cliff_periods=0, vest_periods=1),
    PoolSpec(Pool.COMMUNITY, 150_000_000 * UNIT, cliff_periods=0, vest_periods=48),
    PoolSpec(Pool.PUBLIC, 200_000_000 * UNIT, cliff_periods=0, vest_periods=48),
)

# Pools that may be disbursed immediately through `payout_tokens`.
PAYOUT_POOLS: Final[FrozenSet[Pool]] = frozenset({Pool.PARTNERS, Pool.COMMUNITY, Pool.PUBLIC})

assert sum(p.token_allocation for p in POOL_TABLE) == SUPPLY_CAP
assert tuple(p.pool for p in POOL_TABLE) == tuple(Pool)

PoolRef = Union[Pool, int, str]


def parse_pool(value: PoolRef) -> Pool:
    """Resolve an enum, index or case-insensitive name; InvalidPool otherwise."""
    if isinstance(value, Pool):
        return value
    if isinstance(value, str):
        try:
            return Pool[value.strip().upper()]
        except KeyError:
            raise InvalidPool(pool=value) from None
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return Pool(value)
        except ValueError:
            raise InvalidPool(pool=value) from None
    raise InvalidPool(pool=repr(value))


def pool_spec(pool: PoolRef) -> PoolSpec:
    return POOL_TABLE[parse_pool(pool)]


class PoolRegistry:
    """Remaining allocation per pool plus released/returned tallies."""

    JOURNALED = ("balances", "released", "returned")

    def __init__(self) -> None:
        self.balances: JournaledMap[Pool, int] = JournaledMap({s.pool: s.token_allocation for s in POOL_TABLE})
        self.released: JournaledMap[Pool, int] = JournaledMap({p: 0 for p in Pool})
        self.returned: JournaledMap[Pool, int] = JournaledMap({p: 0 for p in Pool})

    def pool_balance(self, pool: PoolRef) -> int:
        return self.balances[parse_pool(pool)]

    def spec(self, pool: PoolRef) -> PoolSpec:
        return pool_spec(pool)

    def check_release(self, pool: Pool, amount: int) -> None:
        """Validation half of `release`, for callers planning several effects."""
        if amount > self.balances[pool]:
            raise PaymentTooLarge(pool=pool, amount=amount, available=self.balances[pool])
        if not try_add(self.released[pool], amount)[0]:
            raise Overflow("released tally overflow", pool=pool, amount=amount)

    def check_replenish(self, pool: Pool, amount: int) -> None:
        """Validation half of `replenish`."""
        for tally in (self.balances, self.returned):
            if not try_add(tally[pool], amount)[0]:
                raise Overflow("pool overflow", pool=pool, amount=amount)

    def release(self, pool: Pool, amount: int) -> int:
        """Take `amount` out of the pool; returns the remaining balance."""
        self.check_release(pool, amount)
        released = u128_add(self.released[pool], amount)
        self.balances[pool] = u128_sub(self.balances[pool], amount)
        self.released[pool] = released
        return self.balances[pool]

    def replenish(self, pool: Pool, amount: int) -> int:
        self.balances[pool] = u128_add(self.balances[pool], amount)
        self.returned[pool] = u128_add(self.returned[pool], amount)
        return self.balances[pool]

    def table(self) -> Tuple[Tuple[PoolSpec, int], ...]:
        """(spec, live balance) for every pool in table order."""
        return tuple((s, self.balances[s.pool]) for s in POOL_TABLE)


__all__ = [
    "DECIMALS",
    "UNIT",
    "SUPPLY_CAP",
    "Pool",
    "PoolSpec",
    "POOL_TABLE",
    "PAYOUT_POOLS",
    "PoolRef",
    "parse_pool",
    "pool_spec",
    "PoolRegistry",
]
