"""Authorization: owner and pause gates plus the multisig coordinator."""
