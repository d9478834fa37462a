"""Desktop host for running the effect in a window."""
