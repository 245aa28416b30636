"""
ilock.token.payouts: direct (non-vested) disbursement from spendable pools.

Only PARTNERS, COMMUNITY and PUBLIC may be paid out this way. The pool is
named by string at this boundary, so this is where an unknown or ineligible
pool name surfaces as InvalidPool.
"""

from __future__ import annotations

from ilock.core.errors import InvalidPool, ZeroAddress
from ilock.core.logging import get_logger
from ilock.governance.gates import Ownable
from ilock.runtime.env import Address, is_zero
from ilock.token.ledger import Ledger
from ilock.token.pools import PAYOUT_POOLS, PoolRef, parse_pool

log = get_logger(__name__)


class PayoutDispenser:
    JOURNALED = ()

    def __init__(self, ledger: Ledger, ownable: Ownable) -> None:
        self.ledger = ledger
        self.ownable = ownable

    def payout_tokens(self, caller: Address, recipient: Address, amount: int, pool_name: PoolRef) -> None:
        self.ownable.require_owner(caller)
        if is_zero(recipient):
            raise ZeroAddress(role="recipient")
        pool = parse_pool(pool_name)
        if pool not in PAYOUT_POOLS:
            raise InvalidPool("pool is not eligible for direct payouts", pool=pool)
        self.ledger.issue(pool, recipient, amount)
        log.info("payout", extra={"to": recipient, "pool": pool, "amount": amount})


__all__ = ["PayoutDispenser"]
