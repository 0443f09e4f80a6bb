"""Infrastructure adapters (database, repositories)."""
