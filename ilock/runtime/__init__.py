"""Host-facing runtime pieces: clocks, caller context, events."""
