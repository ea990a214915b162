"""Core runtime helpers (settings, database)."""
