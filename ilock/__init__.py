"""
ilock: token-issuance and governance engine for the ILOCK token.

A hard-capped ledger with pool-scoped custody, time-gated vesting, direct
payouts and rewards, gated by an n-of-m multisig for privileged changes.

Only the version is re-exported here; import components from their modules
(`ilock.contract.ILockToken`, `ilock.token.pools.Pool`, ...).
"""

from __future__ import annotations

from .version import __version__


def get_version() -> str:
    """Return the version string for this package."""
    return __version__


__all__ = ["__version__", "get_version"]
