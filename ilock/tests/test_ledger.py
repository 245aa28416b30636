from __future__ import annotations

import pytest

from ilock.core.errors import (
    ContractPaused,
    InsufficientAllowance,
    InsufficientBalance,
    Overflow,
    Underflow,
    ZeroAddress,
)
from ilock.math import U128_MAX
from ilock.runtime.env import ZERO_ADDRESS
from ilock.runtime.events import Approval, Transfer
from ilock.token.pools import SUPPLY_CAP, Pool


def test_genesis_state(token, owner, alice):
    assert token.total_supply() == 0
    assert token.balance_of(owner) == SUPPLY_CAP
    assert token.balance_of(alice) == 0
    assert token.cap() == SUPPLY_CAP
    assert token.token_name() == "Interlock Network"
    assert token.token_symbol() == "ILOCK"
    assert token.token_decimals() == 18


def test_transfer_from_owner_is_emission(env, token, owner, alice, check_invariants):
    with env.calling(owner):
        token.transfer(alice, 1_000)
    assert token.balance_of(alice) == 1_000
    assert token.total_supply() == 1_000
    assert token.balance_of(owner) == SUPPLY_CAP - 1_000
    assert env.sink.last(Transfer) == Transfer(owner, alice, 1_000)
    check_invariants(token)


def test_transfer_to_owner_is_retirement_into_rewards(env, token, owner, alice, check_invariants):
    with env.calling(owner):
        token.transfer(alice, 1_000)
    rewards_before = token.pool_balance(Pool.REWARDS)

    with env.calling(alice):
        token.transfer(owner, 400)

    assert token.total_supply() == 600
    assert token.balance_of(alice) == 600
    assert token.pool_balance(Pool.REWARDS) == rewards_before + 400
    assert token.balance_of(owner) == SUPPLY_CAP - 600
    check_invariants(token)


def test_plain_transfer_between_holders(env, token, owner, alice, bob, check_invariants):
    with env.calling(owner):
        token.transfer(alice, 50)
    with env.calling(alice):
        token.transfer(bob, 20)
    assert (token.balance_of(alice), token.balance_of(bob)) == (30, 20)
    assert token.total_supply() == 50
    check_invariants(token)


def test_self_transfer_changes_nothing(env, token, owner, alice):
    with env.calling(owner):
        token.transfer(alice, 10)
        token.transfer(owner, 5)
    with env.calling(alice):
        token.transfer(alice, 10)
    assert token.balance_of(alice) == 10
    assert token.total_supply() == 10


def test_transfer_rejects_zero_address_before_balance(env, token, alice):
    with env.calling(alice):
        with pytest.raises(ZeroAddress):
            token.transfer(ZERO_ADDRESS, 10**30)
    with env.calling(ZERO_ADDRESS):
        with pytest.raises(ZeroAddress):
            token.transfer(alice, 1)


def test_transfer_insufficient_balance_leaves_state(env, token, owner, alice, bob):
    with env.calling(owner):
        token.transfer(alice, 5)
    n_events = len(env.sink.events)
    with env.calling(alice):
        with pytest.raises(InsufficientBalance):
            token.transfer(bob, 6)
    assert token.balance_of(alice) == 5
    assert token.balance_of(bob) == 0
    assert len(env.sink.events) == n_events


def test_owner_cannot_emit_past_cap(env, token, owner, alice):
    with env.calling(owner):
        with pytest.raises(InsufficientBalance):
            token.transfer(alice, SUPPLY_CAP + 1)
        token.transfer(alice, SUPPLY_CAP)
    assert token.total_supply() == SUPPLY_CAP
    assert token.balance_of(owner) == 0


def test_negative_and_oversized_amounts(env, token, owner, alice):
    with env.calling(owner):
        with pytest.raises(Underflow):
            token.transfer(alice, -1)
        with pytest.raises(Overflow):
            token.approve(alice, U128_MAX + 1)


def test_transfer_from_decrements_allowance_exactly(env, token, owner, alice, bob, check_invariants):
    with env.calling(owner):
        token.transfer(alice, 100)
    with env.calling(alice):
        token.approve(bob, 60)
    with env.calling(bob):
        token.transfer_from(alice, bob, 25)

    assert token.allowance(alice, bob) == 35
    assert token.balance_of(bob) == 25
    assert env.sink.of_type(Approval)[-1] == Approval(alice, bob, 35)
    assert env.sink.last(Transfer) == Transfer(alice, bob, 25)
    check_invariants(token)


def test_transfer_from_failures_keep_allowance(env, token, owner, alice, bob):
    with env.calling(owner):
        token.transfer(alice, 10)
    with env.calling(alice):
        token.approve(bob, 50)

    with env.calling(bob):
        with pytest.raises(InsufficientAllowance):
            token.transfer_from(alice, bob, 51)
        with pytest.raises(InsufficientBalance):
            token.transfer_from(alice, bob, 11)
        with pytest.raises(ZeroAddress):
            token.transfer_from(alice, ZERO_ADDRESS, 1)

    assert token.allowance(alice, bob) == 50
    assert token.balance_of(alice) == 10


def test_transfer_from_into_treasury_retires(env, token, owner, alice, bob):
    with env.calling(owner):
        token.transfer(alice, 10)
    rewards = token.pool_balance(Pool.REWARDS)
    with env.calling(alice):
        token.approve(bob, 10)
    with env.calling(bob):
        token.transfer_from(alice, owner, 10)
    assert token.total_supply() == 0
    assert token.pool_balance(Pool.REWARDS) == rewards + 10
    assert token.allowance(alice, bob) == 0


def test_increase_and_decrease_allowance(env, token, alice, bob):
    with env.calling(alice):
        assert token.increase_allowance(bob, 5) == 5
        assert token.increase_allowance(bob, 7) == 12
        assert token.decrease_allowance(bob, 2) == 10
        with pytest.raises(InsufficientAllowance):
            token.decrease_allowance(bob, 11)
    assert token.allowance(alice, bob) == 10


def test_paused_blocks_transfers_but_not_views(env, token, owner, alice, s2):
    with env.calling(owner):
        token.transfer(alice, 10)
    with env.calling(s2):
        token.pause()
    assert token.paused()
    with env.calling(alice):
        with pytest.raises(ContractPaused):
            token.transfer(owner, 1)
        with pytest.raises(ContractPaused):
            token.approve(owner, 1)
    assert token.balance_of(alice) == 10
