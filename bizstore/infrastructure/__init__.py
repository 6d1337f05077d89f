"""Infrastructure adapters (storage substrate, repositories)."""
