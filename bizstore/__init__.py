"""
bizstore: local persistence and audit core for the admin back office.

Layers:
  - domain: records, collection specs, audit entries, pure queries, ports
  - infrastructure: key-value substrates (memory / JSON file / Redis), repositories
  - application: audit log, backup/restore, bulk/import/export, panel services
  - container: composition root
"""

__version__ = "0.1.0"
