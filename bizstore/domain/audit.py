"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de Auditoría (Dominio)

Responsabilidades:
    - Definir las estructuras de auditoría (Actor, AuditLogEntry).
    - Mapear entradas a/desde su forma persistida (camelCase, JSON).

Colaboradores:
    - domain.repositories.AuditLogRepository: persiste la lista de entradas.
    - application.audit_log.AuditLogService: crea y consulta entradas.
    - context.py: provee el Actor actual.

Notas:
    - Las entradas son inmutables una vez escritas (frozen).
    - details es flexible (dict / valores JSON).
===============================================================================
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .clock import parse_timestamp

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True, slots=True)
class Actor:
    """Principal autenticado al que se atribuyen las acciones."""

    id: str
    name: str = ""
    email: str = ""
    origin: str = ""


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """Entrada del audit log."""

    id: str
    actor_id: str
    actor_name: str
    actor_email: str
    action: str
    target_type: str
    target_id: str
    timestamp: str
    details: Any = field(default_factory=dict)
    origin: str = ""

    @property
    def moment(self) -> datetime | None:
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actorId": self.actor_id,
            "actorName": self.actor_name,
            "actorEmail": self.actor_email,
            "action": self.action,
            "targetType": self.target_type,
            "targetId": self.target_id,
            "details": self.details,
            "timestamp": self.timestamp,
            "origin": self.origin,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AuditLogEntry":
        return cls(
            id=str(raw.get("id", "")),
            actor_id=str(raw.get("actorId", "")),
            actor_name=str(raw.get("actorName", "")),
            actor_email=str(raw.get("actorEmail", "")),
            action=str(raw.get("action", "")),
            target_type=str(raw.get("targetType", "")),
            target_id="" if raw.get("targetId") is None else str(raw["targetId"]),
            details=raw.get("details", {}),
            timestamp=str(raw.get("timestamp", "")),
            origin=str(raw.get("origin", "")),
        )


def new_audit_id() -> str:
    """audit_<epoch ms>_<9 random chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"audit_{int(time.time() * 1000)}_{suffix}"
