"""Version catalog, channel parsing, resolution and staleness checks."""
