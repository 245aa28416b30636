from __future__ import annotations

import pytest

from ilock.contract import ILockToken
from ilock.core.errors import (
    AlreadySignatory,
    AlreadySigned,
    CallerNotSignatory,
    CannotReorder,
    ConstructionError,
    InvalidCodeHash,
    InvalidFunction,
    NewOwnerHasBalance,
    NoSignatory,
    NotEnoughSignatures,
    TooFewSignatories,
    TransactionAlreadyOrdered,
    TransactionStale,
    UnderThresholdMin,
    UnderTimeLimit,
    WrongFunction,
    ZeroAddress,
)
from ilock.governance.multisig import TIME_LIMIT_MIN, Function, TxState
from ilock.runtime.env import ZERO_ADDRESS, Env, ManualClock
from ilock.runtime.events import OwnershipTransferred
from ilock.tests.conftest import addr
from ilock.token.pools import SUPPLY_CAP


def approve_function(env, token, function, orderer, *signers):
    with env.calling(orderer):
        token.order_multisigtx(function)
    for s in signers:
        with env.calling(s):
            token.sign_multisigtx(function)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_deployer_is_first_signatory(env, token, owner, s2, s3):
    with env.calling(owner):
        assert token.signatories() == [owner, s2, s3]
    assert token.signatory_count() == 3
    assert token.threshold() == 2
    assert token.timelimit() == TIME_LIMIT_MIN
    assert token.multisig_state() is TxState.IDLE


@pytest.mark.parametrize(
    "signatories, kwargs",
    [
        (("owner", "s3"), {}),
        (("s2", "s2"), {}),
        (("s2", "s3"), {"timelimit": TIME_LIMIT_MIN - 1}),
        (("s2", "s3"), {"threshold": 3}),
        (("s2", "zero"), {}),
    ],
)
def test_construction_invariants(owner, signatories, kwargs):
    env = Env(clock=ManualClock())
    names = {"owner": owner, "s2": addr("signatory-2"), "s3": addr("signatory-3"), "zero": ZERO_ADDRESS}
    with env.calling(owner):
        with pytest.raises(ConstructionError):
            ILockToken(env, signatories=tuple(names[n] for n in signatories), **kwargs)


# ---------------------------------------------------------------------------
# Ordering & signing
# ---------------------------------------------------------------------------


def test_order_counts_as_first_signature(env, clock, token, s2):
    clock.advance(5_000)
    with env.calling(s2):
        tx = token.order_multisigtx("ADD_SIGNATORY")
        assert [(s.signer, s.time) for s in token.check_signatures()] == [(s2, 5_000)]
    assert tx.function is Function.ADD_SIGNATORY
    assert tx.orderer == s2
    assert token.signature_count() == 1
    assert token.multisig_state() is TxState.SIGNING


def test_order_rejections(env, clock, token, owner, alice):
    with env.calling(alice):
        with pytest.raises(CallerNotSignatory):
            token.order_multisigtx(Function.UNPAUSE)
    with env.calling(owner):
        with pytest.raises(InvalidFunction):
            token.order_multisigtx("SELF_DESTRUCT")
        token.order_multisigtx(Function.UNPAUSE)
        with pytest.raises(TransactionAlreadyOrdered):
            token.order_multisigtx(Function.CHANGE_THRESHOLD)


def test_sign_rejections(env, clock, token, owner, s2, s3, alice):
    with env.calling(owner):
        token.order_multisigtx(Function.CHANGE_TIMELIMIT)
        with pytest.raises(AlreadySigned):
            token.sign_multisigtx(Function.CHANGE_TIMELIMIT)
    with env.calling(alice):
        with pytest.raises(CallerNotSignatory):
            token.sign_multisigtx(Function.CHANGE_TIMELIMIT)
    with env.calling(s2):
        with pytest.raises(InvalidFunction):
            token.sign_multisigtx("NOPE")
        with pytest.raises(WrongFunction):
            token.sign_multisigtx(Function.ADD_SIGNATORY)
        token.sign_multisigtx(Function.CHANGE_TIMELIMIT)
    assert token.multisig_state() is TxState.READY

    clock.advance(TIME_LIMIT_MIN)
    with env.calling(s3):
        with pytest.raises(TransactionStale):
            token.sign_multisigtx(Function.CHANGE_TIMELIMIT)
        with pytest.raises(TransactionStale):
            token.check_signatures()


def test_anti_jamming(env, clock, token, owner, s2):
    with env.calling(owner):
        token.order_multisigtx(Function.UNPAUSE)
    clock.advance(TIME_LIMIT_MIN)
    assert token.multisig_state() is TxState.STALE
    with env.calling(owner):
        with pytest.raises(CannotReorder):
            token.order_multisigtx(Function.UNPAUSE)
    with env.calling(s2):
        token.order_multisigtx(Function.UNPAUSE)
    assert token.multisig.tx.orderer == s2


# ---------------------------------------------------------------------------
# Quorum-gated operations
# ---------------------------------------------------------------------------


def test_add_signatory_with_quorum(env, token, owner, s2, alice):
    approve_function(env, token, Function.ADD_SIGNATORY, owner, s2)
    with env.calling(s2):
        token.add_signatory(alice, Function.ADD_SIGNATORY)
    assert token.signatory_count() == 4
    assert token.multisig_state() is TxState.CONSUMED

    # consumed transactions cannot be replayed
    with env.calling(s2):
        with pytest.raises(TransactionStale):
            token.add_signatory(addr("dave"), Function.ADD_SIGNATORY)
    # the previous orderer may order again once the slot is consumed
    with env.calling(owner):
        token.order_multisigtx(Function.ADD_SIGNATORY)


def test_add_signatory_needs_threshold(env, token, owner, alice):
    with env.calling(owner):
        token.order_multisigtx(Function.ADD_SIGNATORY)
        with pytest.raises(NotEnoughSignatures):
            token.add_signatory(alice, Function.ADD_SIGNATORY)
    assert token.signatory_count() == 3


def test_add_signatory_rejections(env, token, owner, s2, s3):
    approve_function(env, token, Function.ADD_SIGNATORY, owner, s2)
    with env.calling(owner):
        with pytest.raises(AlreadySignatory):
            token.add_signatory(s3, Function.ADD_SIGNATORY)
        with pytest.raises(ZeroAddress):
            token.add_signatory(ZERO_ADDRESS, Function.ADD_SIGNATORY)
    assert token.multisig_state() is TxState.READY


def test_quorum_is_bound_to_the_ordered_function(env, token, owner, s2, alice):
    approve_function(env, token, Function.CHANGE_TIMELIMIT, owner, s2)
    with env.calling(owner):
        # naming the ordered function for a different operation is refused
        with pytest.raises(WrongFunction):
            token.add_signatory(alice, Function.CHANGE_TIMELIMIT)
        with pytest.raises(WrongFunction):
            token.add_signatory(alice, Function.ADD_SIGNATORY)
    assert token.signatory_count() == 3


def test_stale_quorum_blocks_execution(env, clock, token, owner, s2):
    approve_function(env, token, Function.CHANGE_THRESHOLD, owner, s2)
    clock.advance(TIME_LIMIT_MIN)
    with env.calling(owner):
        with pytest.raises(TransactionStale):
            token.change_threshold(2, Function.CHANGE_THRESHOLD)


def test_remove_signatory_respects_floor(env, token, owner, s2, s3, alice):
    approve_function(env, token, Function.REMOVE_SIGNATORY, owner, s2)
    with env.calling(owner):
        with pytest.raises(TooFewSignatories):
            token.remove_signatory(s3, Function.REMOVE_SIGNATORY)
        with pytest.raises(NoSignatory):
            token.remove_signatory(alice, Function.REMOVE_SIGNATORY)

    # grow to four, then removal is allowed
    token.multisig.consume()
    approve_function(env, token, Function.ADD_SIGNATORY, s2, s3)
    with env.calling(s2):
        token.add_signatory(alice, Function.ADD_SIGNATORY)
    approve_function(env, token, Function.REMOVE_SIGNATORY, s3, alice)
    with env.calling(s3):
        token.remove_signatory(s2, Function.REMOVE_SIGNATORY)
    with env.calling(owner):
        assert token.signatories() == [owner, s3, alice]


def test_change_threshold_bounds(env, token, owner, s2, s3, alice):
    approve_function(env, token, Function.CHANGE_THRESHOLD, owner, s2)
    with env.calling(owner):
        with pytest.raises(UnderThresholdMin):
            token.change_threshold(1, Function.CHANGE_THRESHOLD)
        with pytest.raises(TooFewSignatories):
            token.change_threshold(3, Function.CHANGE_THRESHOLD)
    token.multisig.consume()

    approve_function(env, token, Function.ADD_SIGNATORY, s2, s3)
    with env.calling(s2):
        token.add_signatory(alice, Function.ADD_SIGNATORY)
    approve_function(env, token, Function.CHANGE_THRESHOLD, s3, owner)
    with env.calling(s3):
        token.change_threshold(3, Function.CHANGE_THRESHOLD)
    assert token.threshold() == 3


def test_change_timelimit(env, token, owner, s2):
    approve_function(env, token, Function.CHANGE_TIMELIMIT, owner, s2)
    with env.calling(s2):
        with pytest.raises(UnderTimeLimit):
            token.change_timelimit(TIME_LIMIT_MIN - 1, Function.CHANGE_TIMELIMIT)
        token.change_timelimit(2 * TIME_LIMIT_MIN, Function.CHANGE_TIMELIMIT)
    assert token.timelimit() == 2 * TIME_LIMIT_MIN


# ---------------------------------------------------------------------------
# Contract controls
# ---------------------------------------------------------------------------


def test_pause_any_signatory_unpause_needs_quorum(env, token, owner, s2, s3, alice):
    with env.calling(alice):
        with pytest.raises(CallerNotSignatory):
            token.pause()
    with env.calling(s3):
        token.pause()
    with env.calling(s3):
        token.order_multisigtx(Function.UNPAUSE)
        with pytest.raises(NotEnoughSignatures):
            token.unpause(Function.UNPAUSE)
    assert token.paused()
    with env.calling(s2):
        token.sign_multisigtx(Function.UNPAUSE)
        token.unpause(Function.UNPAUSE)
    assert not token.paused()


def test_transfer_ownership_moves_treasury_role(env, token, owner, s2, alice, carol, check_invariants):
    with env.calling(owner):
        token.transfer(alice, 100)
    approve_function(env, token, Function.TRANSFER_OWNERSHIP, owner, s2)
    with env.calling(owner):
        with pytest.raises(ZeroAddress):
            token.transfer_ownership(ZERO_ADDRESS, Function.TRANSFER_OWNERSHIP)
        with pytest.raises(NewOwnerHasBalance):
            token.transfer_ownership(alice, Function.TRANSFER_OWNERSHIP)
        token.transfer_ownership(carol, Function.TRANSFER_OWNERSHIP)

    assert token.owner() == carol
    assert token.balance_of(carol) == SUPPLY_CAP - 100
    assert token.balance_of(owner) == 0
    assert env.sink.last(OwnershipTransferred) == OwnershipTransferred(owner, carol)
    check_invariants(token)


def test_update_contract(env, token, owner, s2):
    approve_function(env, token, Function.UPDATE_CONTRACT, owner, s2)
    with env.calling(s2):
        with pytest.raises(InvalidCodeHash):
            token.update_contract(b"\x01" * 31, Function.UPDATE_CONTRACT)
        token.update_contract(b"\x01" * 32, Function.UPDATE_CONTRACT)
    assert token.code_hash() == b"\x01" * 32
