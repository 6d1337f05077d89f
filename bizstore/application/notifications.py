"""
Name: NotificationService

Responsibilities:
  - Admin notifications stored newest-first and capped (collection spec)
  - Mark one / all as read, unread count

Collaborators:
  - RecordStore for "notifications" (prepend + max_items, not audited)
"""

from __future__ import annotations

from typing import Any, List, Optional

from ..domain.repositories import RecordStore


class NotificationService:
    def __init__(self, repository: RecordStore) -> None:
        self._repository = repository

    def add(
        self,
        message: str,
        *,
        title: str = "",
        type: str = "info",
        link: str = "#",
    ) -> dict[str, Any]:
        return self._repository.add(
            {"title": title, "message": message, "type": type, "link": link}
        )

    def list(self, *, unread_only: bool = False) -> List[dict[str, Any]]:
        items = self._repository.list()
        if unread_only:
            return [n for n in items if not n.get("read")]
        return items

    def mark_as_read(self, notification_id: Any) -> Optional[dict[str, Any]]:
        return self._repository.update(notification_id, {"read": True})

    def mark_all_as_read(self) -> int:
        unread = [n["id"] for n in self.list(unread_only=True)]
        return self._repository.update_many(unread, {"read": True})

    def delete(self, notification_id: Any) -> bool:
        return self._repository.delete(notification_id)

    def unread_count(self) -> int:
        return len(self.list(unread_only=True))
