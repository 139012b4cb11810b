"""Domain layer - values, records, cache and locking."""
