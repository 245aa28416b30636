from __future__ import annotations

import pytest

from ilock.core.errors import CallerNotOwner, InvalidPool, Overflow, PaymentTooLarge, ZeroAddress
from ilock.math import U128_MAX
from ilock.runtime.env import ZERO_ADDRESS
from ilock.runtime.events import Reward, Transfer
from ilock.token.pools import PAYOUT_POOLS, POOL_TABLE, SUPPLY_CAP, UNIT, Pool, PoolRegistry, parse_pool


def test_pool_table_is_closed_and_sums_to_cap():
    assert [s.pool for s in POOL_TABLE] == list(Pool)
    assert sum(s.token_allocation for s in POOL_TABLE) == SUPPLY_CAP
    assert POOL_TABLE[Pool.TEAM].token_allocation == 200_000_000 * UNIT
    assert (POOL_TABLE[Pool.TEAM].cliff_periods, POOL_TABLE[Pool.TEAM].vest_periods) == (6, 36)
    assert POOL_TABLE[Pool.TEAM].last_period == 41
    assert PAYOUT_POOLS == {Pool.PARTNERS, Pool.COMMUNITY, Pool.PUBLIC}


@pytest.mark.parametrize("ref", ["PUBLIC", "public", 4, Pool.PUBLIC])
def test_parse_pool_accepts_name_index_enum(ref):
    assert parse_pool(ref) is Pool.PUBLIC


@pytest.mark.parametrize("ref", ["TREASURY", 5, -1, 2.0, True])
def test_parse_pool_rejects_unknown(ref):
    with pytest.raises(InvalidPool):
        parse_pool(ref)


def test_registry_release_and_replenish():
    reg = PoolRegistry()
    start = reg.pool_balance(Pool.REWARDS)
    assert reg.release(Pool.REWARDS, 10) == start - 10
    with pytest.raises(PaymentTooLarge):
        reg.release(Pool.REWARDS, start)
    assert reg.replenish(Pool.REWARDS, 4) == start - 6
    assert (reg.released[Pool.REWARDS], reg.returned[Pool.REWARDS]) == (10, 4)


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------


def test_payout_tokens_moves_pool_into_circulation(env, token, owner, alice, check_invariants):
    before = token.pool_balance(Pool.PARTNERS)
    with env.calling(owner):
        token.payout_tokens(alice, 500, "PARTNERS")
    assert token.pool_balance(Pool.PARTNERS) == before - 500
    assert token.balance_of(alice) == 500
    assert token.total_supply() == 500
    assert env.sink.last(Transfer) == Transfer(owner, alice, 500)
    check_invariants(token)


@pytest.mark.parametrize("name", ["TEAM", "REWARDS", "MOON"])
def test_payout_rejects_ineligible_pools(env, token, owner, alice, name):
    with env.calling(owner):
        with pytest.raises(InvalidPool):
            token.payout_tokens(alice, 1, name)
    assert token.total_supply() == 0


def test_payout_rejections(env, token, owner, alice):
    with env.calling(alice):
        with pytest.raises(CallerNotOwner):
            token.payout_tokens(alice, 1, "PUBLIC")
    with env.calling(owner):
        with pytest.raises(PaymentTooLarge):
            token.payout_tokens(alice, token.pool_balance(Pool.PUBLIC) + 1, "PUBLIC")
        with pytest.raises(ZeroAddress):
            token.payout_tokens(ZERO_ADDRESS, 1, "PUBLIC")


@pytest.mark.parametrize("name", ["MOON", "TEAM", "PUBLIC"])
def test_payout_zero_recipient_is_checked_before_the_pool(env, token, owner, name):
    with env.calling(owner):
        with pytest.raises(ZeroAddress):
            token.payout_tokens(ZERO_ADDRESS, 1, name)


def test_retirement_refused_when_rewards_tally_would_overflow(env, token, owner, alice):
    with env.calling(owner):
        token.payout_tokens(alice, 10, "PUBLIC")
    token.pools.returned[Pool.REWARDS] = U128_MAX
    rewards = token.pool_balance(Pool.REWARDS)

    with env.calling(alice):
        with pytest.raises(Overflow):
            token.transfer(owner, 5)
    assert token.balance_of(alice) == 10
    assert token.total_supply() == 10
    assert token.pool_balance(Pool.REWARDS) == rewards


def test_payout_to_treasury_routes_into_rewards(env, token, owner, check_invariants):
    rewards = token.pool_balance(Pool.REWARDS)
    with env.calling(owner):
        token.payout_tokens(owner, 70, "COMMUNITY")
    assert token.total_supply() == 0
    assert token.pool_balance(Pool.REWARDS) == rewards + 70
    assert env.sink.of_type(Transfer) == []
    check_invariants(token)


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


def test_reward_interlocker_updates_counters(env, token, owner, alice, bob, check_invariants):
    with env.calling(owner):
        assert token.reward_interlocker(100, alice) == 100
        assert token.reward_interlocker(50, alice) == 150
        token.reward_interlocker(7, bob)

    assert token.rewarded_total() == 157
    assert token.rewarded_interlocker_total(alice) == 150
    assert token.rewarded_interlocker_total(bob) == 7
    assert token.balance_of(alice) == 150
    assert env.sink.last(Reward) == Reward(bob, 7)
    check_invariants(token)


def test_reward_rejections_leave_state(env, token, owner, alice):
    with env.calling(alice):
        with pytest.raises(CallerNotOwner):
            token.reward_interlocker(1, alice)
    with env.calling(owner):
        with pytest.raises(PaymentTooLarge):
            token.reward_interlocker(token.pool_balance(Pool.REWARDS) + 1, alice)
    assert token.rewarded_total() == 0
    assert token.balance_of(alice) == 0


def test_reward_counter_overflow_is_atomic(env, token, owner, alice):
    token.rewards.total = U128_MAX
    with env.calling(owner):
        with pytest.raises(Overflow):
            token.reward_interlocker(1, alice)
    assert token.balance_of(alice) == 0
    assert token.rewarded_interlocker_total(alice) == 0
    assert token.rewards.total == U128_MAX
