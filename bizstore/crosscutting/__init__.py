"""Cross-cutting concerns: config, logging, errors, pagination."""
