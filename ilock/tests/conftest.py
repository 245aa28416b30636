"""
ilock.tests.conftest
====================

Shared fixtures: a manual-clock environment, stable addresses derived from
labels, a freshly deployed token, and an invariant checker that every ledger
test can call after each step.
"""
from __future__ import annotations

import hashlib
import os
from typing import Callable

import pytest

from ilock.contract import ILockToken
from ilock.runtime.env import Env, ManualClock
from ilock.token.pools import POOL_TABLE, SUPPLY_CAP

os.environ.setdefault("TZ", "UTC")


def addr(label: str) -> bytes:
    """Deterministic 32-byte address for a human label."""
    return hashlib.sha3_256(b"ilock-test:" + label.encode("utf-8")).digest()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def env(clock: ManualClock) -> Env:
    return Env(clock=clock)


@pytest.fixture
def owner() -> bytes:
    return addr("owner")


@pytest.fixture
def s2() -> bytes:
    return addr("signatory-2")


@pytest.fixture
def s3() -> bytes:
    return addr("signatory-3")


@pytest.fixture
def alice() -> bytes:
    return addr("alice")


@pytest.fixture
def bob() -> bytes:
    return addr("bob")


@pytest.fixture
def carol() -> bytes:
    return addr("carol")


@pytest.fixture
def token(env: Env, owner: bytes, s2: bytes, s3: bytes) -> ILockToken:
    with env.calling(owner):
        return ILockToken(env, signatories=(s2, s3))


@pytest.fixture
def check_invariants() -> Callable[[ILockToken], None]:
    """Conservation of supply and of every pool."""

    def _check(token: ILockToken) -> None:
        ledger = token.ledger
        assert ledger.total_supply == sum(ledger.balances.values())
        assert ledger.total_supply <= SUPPLY_CAP
        assert token.balance_of(token.owner()) + ledger.total_supply == SUPPLY_CAP
        assert all(v > 0 for v in ledger.balances.values())
        for spec in POOL_TABLE:
            pools = token.pools
            assert spec.token_allocation == (
                pools.balances[spec.pool] + pools.released[spec.pool] - pools.returned[spec.pool]
            )

    return _check
