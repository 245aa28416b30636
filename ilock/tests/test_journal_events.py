from __future__ import annotations

import pytest

from ilock.core.errors import InsufficientBalance
from ilock.runtime.events import EventSink, Transfer
from ilock.state.journal import Journal, JournaledMap


class Box:
    JOURNALED = ("items", "count")

    def __init__(self) -> None:
        self.items = JournaledMap({"a": 1})
        self.count = 0
        self.untracked = "x"


def test_atomic_restores_journaled_attributes_only():
    box = Box()
    j = Journal([box])
    with pytest.raises(RuntimeError):
        with j.atomic():
            box.items["b"] = 2
            box.count = 5
            box.untracked = "y"
            raise RuntimeError("late failure")
    assert box.items == {"a": 1}
    assert box.count == 0
    assert box.untracked == "y"
    assert j.depth() == 0


def test_nested_checkpoints():
    box = Box()
    j = Journal([box])
    with j.atomic():
        box.count = 1
        with pytest.raises(ValueError):
            with j.atomic():
                box.count = 2
                raise ValueError
        assert box.count == 1
    assert box.count == 1


def test_outer_revert_undoes_committed_inner_writes():
    box = Box()
    j = Journal([box])
    with pytest.raises(RuntimeError):
        with j.atomic():
            with j.atomic():
                box.items["b"] = 2
                del box.items["a"]
            box.items["b"] = 3
            raise RuntimeError
    assert box.items == {"a": 1}


def test_undo_log_holds_only_written_keys():
    m = JournaledMap({i: i for i in range(1_000)})
    m.checkpoint()
    m[3] = 30
    m[3] = 31
    m[5000] = 1
    m.pop(7)
    assert m.pending_keys() == {3, 5000, 7}
    m.revert()
    assert m[3] == 3 and m[7] == 7 and 5000 not in m
    assert m.pending_keys() == set()


def test_transfer_touches_only_the_two_accounts(env, token, owner, alice, bob):
    holders = [bytes([i % 256, i // 256]) * 16 for i in range(1, 500)]
    with env.calling(owner):
        for h in holders:
            token.transfer(h, 1)
        token.transfer(alice, 10)

    ledger = token.ledger
    with token.journal.atomic():
        ledger.transfer(alice, bob, 4)
        assert ledger.balances.pending_keys() == {alice, bob}
        assert ledger.allowances.pending_keys() == set()


def test_mutable_plain_attributes_are_rejected():
    class Loose:
        JOURNALED = ("items",)

        def __init__(self) -> None:
            self.items = {}

    with pytest.raises(TypeError):
        Journal([Loose()]).begin()


def test_sink_publishes_only_committed_frames():
    sink = EventSink()
    published = []
    sink.subscribe(published.append)
    sink.begin()
    sink.emit(Transfer(b"a", b"b", 1))
    sink.begin()
    sink.emit(Transfer(b"a", b"c", 2))
    sink.rollback()
    sink.commit()
    assert sink.events == (Transfer(b"a", b"b", 1),)
    assert published == [Transfer(b"a", b"b", 1)]


def test_digest_is_stable_and_order_sensitive():
    a, b = EventSink(), EventSink()
    for s in (a, b):
        s.emit(Transfer(b"x", b"y", 1))
        s.emit(Transfer(b"y", b"x", 1))
    assert a.digest() == b.digest()
    c = EventSink()
    c.emit(Transfer(b"y", b"x", 1))
    c.emit(Transfer(b"x", b"y", 1))
    assert c.digest() != a.digest()


def test_failed_public_call_emits_nothing(env, token, alice, bob):
    before = env.sink.digest()
    with env.calling(alice):
        with pytest.raises(InsufficientBalance):
            token.transfer(bob, 1)
    assert env.sink.digest() == before
    assert env.sink.depth == 0
