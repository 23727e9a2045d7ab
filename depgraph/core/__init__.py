"""Error hierarchy."""
