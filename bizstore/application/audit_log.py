"""
===============================================================================
TARJETA CRC — application/audit_log.py (Audit Log)
===============================================================================

Responsabilidades:
  - Registrar acciones administrativas atribuidas al actor actual.
  - Fail-closed: sin actor o con falla del substrate, loguea un warning y
    devuelve None (nunca rompe la operación que disparó la auditoría).
  - Consultar: filtros AND (action / target_type / actor / rango / search),
    paginación, estadísticas en una sola pasada.
  - Exportar a CSV con columnas fijas y podar entradas por antigüedad.

Colaboradores:
  - domain.repositories.AuditLogRepository (persistencia)
  - domain.audit.AuditLogEntry / Actor
  - context.get_actor (actor ambiente)
  - crosscutting.pagination.paginate
  - application.serialization.csv_with_header

Patrones aplicados:
  - Best-effort logging (igual que la emisión de eventos de auditoría)

Decisiones:
  - details se sanitiza a valores JSON; lo no serializable se stringifica.
  - targetId se guarda como texto para que el search sea uniforme.
===============================================================================
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..context import get_actor
from ..crosscutting.logger import logger
from ..crosscutting.pagination import Page, paginate
from ..domain.audit import Actor, AuditLogEntry, new_audit_id
from ..domain.clock import now_iso, parse_timestamp, today_stamp, utc_now
from ..domain.repositories import AuditLogRepository
from .serialization import csv_with_header

AUDIT_CSV_HEADER = [
    "Timestamp",
    "Actor Name",
    "Actor Email",
    "Action",
    "Target Type",
    "Target ID",
    "Details",
    "Origin",
]

_ACTION_LABELS = {
    "create": "Created",
    "update": "Updated",
    "delete": "Deleted",
    "archive": "Archived",
    "restore": "Restored",
    "publish": "Published",
    "unpublish": "Unpublished",
    "login": "Logged In",
    "logout": "Logged Out",
    "upload": "Uploaded",
    "download": "Downloaded",
    "send": "Sent",
    "approve": "Approved",
    "reject": "Rejected",
}


def format_action(action: str) -> str:
    """Display label for an action (unknown actions are capitalized)."""
    if action in _ACTION_LABELS:
        return _ACTION_LABELS[action]
    return action[:1].upper() + action[1:]


def _sanitize(value: Any) -> Any:
    """
    Convierte valores a tipos serializables para JSON.
    - primitives -> OK
    - dict/list/tuple -> sanitiza recursivamente
    - otros -> str(value)
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, dict):
        return {str(k): _sanitize(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_sanitize(v) for v in value]

    return str(value)


@dataclass
class AuditStatistics:
    total_entries: int = 0
    action_counts: dict[str, int] = field(default_factory=dict)
    target_type_counts: dict[str, int] = field(default_factory=dict)
    actor_counts: dict[str, int] = field(default_factory=dict)
    recent_activity: List[AuditLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalEntries": self.total_entries,
            "actionCounts": dict(self.action_counts),
            "targetTypeCounts": dict(self.target_type_counts),
            "actorCounts": dict(self.actor_counts),
            "recentActivity": [e.to_dict() for e in self.recent_activity],
        }


class AuditLogService:
    """
    Name: AuditLogService

    Responsibilities:
      - logAction / getAuditLog / getAuditLogPaginated / getStatistics /
        exportToCSV / clearOldEntries over an AuditLogRepository

    Collaborators:
      - AuditLogRepository, actor provider (ContextVar by default)
    """

    RECENT_ACTIVITY_SIZE = 10

    def __init__(
        self,
        repository: AuditLogRepository,
        *,
        max_entries: int = 1000,
        default_page_size: int = 20,
        default_origin: str = "",
        actor_provider: Callable[[], Optional[Actor]] = get_actor,
    ) -> None:
        self._repository = repository
        self._max_entries = max_entries
        self._default_page_size = default_page_size
        self._default_origin = default_origin
        self._actor_provider = actor_provider

    @property
    def max_entries(self) -> int:
        return self._max_entries

    # =========================================================
    # Escritura
    # =========================================================
    def log_action(
        self,
        action: str,
        target_type: str,
        target_id: Any,
        details: Any = None,
    ) -> Optional[AuditLogEntry]:
        actor = self._actor_provider()
        if actor is None:
            logger.warning(
                "Acción sin actor autenticado, no se audita",
                extra={"action": action, "target_type": target_type},
            )
            return None

        entry = AuditLogEntry(
            id=new_audit_id(),
            actor_id=actor.id,
            actor_name=actor.name,
            actor_email=actor.email,
            action=action,
            target_type=target_type,
            target_id="" if target_id is None else str(target_id),
            details=_sanitize(details if details is not None else {}),
            timestamp=now_iso(),
            origin=actor.origin or self._default_origin,
        )

        try:
            self._repository.prepend(entry, max_entries=self._max_entries)
        except Exception as exc:
            # Best-effort: logueamos y seguimos.
            logger.warning(
                "Falló la escritura de la entrada de auditoría",
                extra={"action": action, "target_type": target_type, "error": str(exc)},
            )
            return None

        return entry

    # =========================================================
    # Consultas
    # =========================================================
    @staticmethod
    def _matches_search(entry: AuditLogEntry, needle: str) -> bool:
        haystack = (
            entry.actor_name,
            entry.action,
            entry.target_type,
            entry.target_id,
            json.dumps(entry.details, ensure_ascii=False, default=str),
        )
        return any(needle in (part or "").lower() for part in haystack)

    def get_audit_log(
        self,
        *,
        action: str | None = None,
        target_type: str | None = None,
        actor_id: str | None = None,
        start_date: Any = None,
        end_date: Any = None,
        search: str | None = None,
    ) -> List[AuditLogEntry]:
        """Entries newest first; every given filter must match."""
        entries = self._repository.list_entries()

        start_at = parse_timestamp(start_date)
        end_at = parse_timestamp(end_date)
        needle = (search or "").lower()

        def predicate(entry: AuditLogEntry) -> bool:
            if action and entry.action != action:
                return False
            if target_type and entry.target_type != target_type:
                return False
            if actor_id and entry.actor_id != str(actor_id):
                return False
            if start_at is not None or end_at is not None:
                moment = entry.moment
                if moment is None:
                    return False
                if start_at is not None and moment < start_at:
                    return False
                if end_at is not None and moment > end_at:
                    return False
            if needle and not self._matches_search(entry, needle):
                return False
            return True

        return [e for e in entries if predicate(e)]

    def get_audit_log_paginated(
        self, page: int = 1, page_size: int | None = None, **filters: Any
    ) -> Page[AuditLogEntry]:
        entries = self.get_audit_log(**filters)
        return paginate(
            entries,
            page,
            page_size if page_size is not None else self._default_page_size,
        )

    def get_statistics(self) -> AuditStatistics:
        entries = self._repository.list_entries()

        by_action: Counter[str] = Counter()
        by_target: Counter[str] = Counter()
        by_actor: Counter[str] = Counter()
        for entry in entries:
            by_action[entry.action] += 1
            by_target[entry.target_type] += 1
            by_actor[entry.actor_name] += 1

        return AuditStatistics(
            total_entries=len(entries),
            action_counts=dict(by_action),
            target_type_counts=dict(by_target),
            actor_counts=dict(by_actor),
            recent_activity=entries[: self.RECENT_ACTIVITY_SIZE],
        )

    # =========================================================
    # Export / poda
    # =========================================================
    def export_to_csv(self, **filters: Any) -> str:
        rows = (
            [
                e.timestamp,
                e.actor_name,
                e.actor_email,
                e.action,
                e.target_type,
                e.target_id,
                json.dumps(e.details, ensure_ascii=False, default=str),
                e.origin,
            ]
            for e in self.get_audit_log(**filters)
        )
        return csv_with_header(AUDIT_CSV_HEADER, rows)

    def write_csv_file(self, directory: str | Path, **filters: Any) -> Path:
        target = Path(directory) / f"audit_log_{today_stamp()}.csv"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.export_to_csv(**filters), encoding="utf-8")
        logger.info("Audit log exportado", extra={"path": str(target)})
        return target

    def clear_old_entries(self, days_to_keep: int = 90) -> int:
        """Remove entries older than now - days_to_keep; return the removed count."""
        cutoff = utc_now() - timedelta(days=days_to_keep)

        def keep(entry: AuditLogEntry) -> bool:
            moment = entry.moment
            return moment is not None and moment >= cutoff

        removed = self._repository.retain(keep)
        if removed:
            logger.info(
                "Entradas de auditoría antiguas eliminadas",
                extra={"removed": removed, "days_to_keep": days_to_keep},
            )
        return removed
