"""
ilock.token.rewards: incentive payouts from the REWARDS pool.

Keeps a global `rewarded_total` and a per-recipient tally. Both counters are
computed with checked math before the ledger is touched, so an overflow
rejects the whole call.
"""

from __future__ import annotations


from ilock.core.errors import ZeroAddress
from ilock.core.logging import get_logger
from ilock.governance.gates import Ownable
from ilock.math import require_u128, u128_add
from ilock.runtime.env import Address, is_zero
from ilock.runtime.events import EventSink, Reward
from ilock.state.journal import JournaledMap
from ilock.token.ledger import Ledger
from ilock.token.pools import Pool

log = get_logger(__name__)


class RewardDistributor:
    JOURNALED = ("total", "per_interlocker")

    def __init__(self, ledger: Ledger, ownable: Ownable, sink: EventSink) -> None:
        self.ledger = ledger
        self.ownable = ownable
        self.sink = sink
        self.total: int = 0
        self.per_interlocker: JournaledMap[Address, int] = JournaledMap()

    def reward_interlocker(self, caller: Address, amount: int, recipient: Address) -> int:
        """Reward `recipient`; returns their new rewarded total."""
        self.ownable.require_owner(caller)
        if is_zero(recipient):
            raise ZeroAddress(role="recipient")
        require_u128(amount)
        self.ledger.pools.check_release(Pool.REWARDS, amount)

        total = u128_add(self.total, amount)
        mine = u128_add(self.per_interlocker.get(recipient, 0), amount)

        self.ledger.issue(Pool.REWARDS, recipient, amount)
        self.total = total
        self.per_interlocker[recipient] = mine
        self.sink.emit(Reward(recipient, amount))
        log.info("reward", extra={"to": recipient, "amount": amount, "rewarded": mine})
        return mine

    def rewarded_total(self) -> int:
        return self.total

    def rewarded_interlocker_total(self, address: Address) -> int:
        return self.per_interlocker.get(address, 0)


__all__ = ["RewardDistributor"]
