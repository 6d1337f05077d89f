"""
Name: SiteSettingsService

Responsibilities:
  - Sectioned site settings (general / notifications / security / display)
    stored as one object under <namespace>settings
  - Defaults for missing sections; shallow merge per section
  - Audit every section update (update / settings / <section>)

Collaborators:
  - KeyValueStore (substrate)
  - AuditSink (audit log)

Notes:
  - Unknown sections are a normal miss (None), not an error
"""

from __future__ import annotations

import copy
from threading import Lock
from typing import Any, Mapping, Optional

from ..domain.repositories import AuditSink, KeyValueStore

DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
    "general": {
        "siteName": "DB General Construction",
        "siteEmail": "info@dbconstruction.com",
        "sitePhone": "+251-911-590-12",
        "timezone": "Africa/Addis_Ababa",
        "language": "en",
    },
    "notifications": {
        "emailNotifications": True,
        "smsNotifications": False,
        "pushNotifications": True,
        "notifyOnNewInquiry": True,
        "notifyOnNewQuote": True,
        "notifyOnProjectUpdate": True,
    },
    "security": {
        "sessionTimeout": 30,
        "requireStrongPassword": True,
        "twoFactorAuth": False,
        "loginAttempts": 5,
    },
    "display": {
        "theme": "light",
        "itemsPerPage": 10,
        "dateFormat": "MM/DD/YYYY",
        "currency": "ETB",
    },
}


class SiteSettingsService:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        namespace: str = "db_admin_",
        audit: AuditSink | None = None,
    ) -> None:
        self._store = store
        self._key = f"{namespace}settings"
        self._audit = audit
        self._lock = Lock()

    def _load(self) -> dict[str, dict[str, Any]]:
        stored = self._store.get(self._key, {})
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        if isinstance(stored, dict):
            for section, values in stored.items():
                if isinstance(values, dict):
                    settings[section] = {**settings.get(section, {}), **values}
        return settings

    def get_settings(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return self._load()

    def get_section(self, section: str) -> Optional[dict[str, Any]]:
        return self.get_settings().get(section)

    def update_section(
        self, section: str, changes: Mapping[str, Any]
    ) -> Optional[dict[str, Any]]:
        with self._lock:
            settings = self._load()
            if section not in settings:
                return None
            settings[section] = {**settings[section], **copy.deepcopy(dict(changes))}
            self._store.set(self._key, settings)
            updated = copy.deepcopy(settings[section])

        if self._audit is not None:
            self._audit.log_action("update", "settings", section, dict(changes))
        return updated
