"""Domain models, ports and pure query helpers."""
