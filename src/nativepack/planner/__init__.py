"""Build planning: version gates and per-platform decision tables."""
