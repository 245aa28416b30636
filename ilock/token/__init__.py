"""Accounting substrate: pools, ledger, vesting, payouts, rewards, sockets."""
