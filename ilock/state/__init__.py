"""State journaling for all-or-nothing public calls."""
