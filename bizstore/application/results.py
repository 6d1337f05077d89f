"""
===============================================================================
OPERATION RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Operation Results

Business Goal:
    Proveer modelos compartidos de resultados y errores para las operaciones
    de backup / restore / bulk / import, con un contrato estable para:
      - validaciones (payload malformado, snapshot sin `data`)
      - recursos no encontrados (auto-backup ausente)
      - cuota excedida del substrate
      - fallas del substrate

Why (Context / Intención):
    - Estas operaciones nunca lanzan excepciones "hacia afuera": devuelven
      un resultado que el panel / CLI decide cómo presentar.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    results (module)

Responsibilities:
    - ErrorCode: set acotado de códigos estables.
    - OperationError: code + message.
    - ImportResult / RestoreResult / BulkResult: resultados por comando,
      con to_dict() en la forma {success, ...} que consumen los paneles.
    - error_from_exception: mapeo de excepciones internas -> OperationError.

Collaborators:
    - crosscutting.exceptions.BizStoreError
    - infrastructure.storage.errors
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

from ..crosscutting.exceptions import (
    BizStoreError,
    RecordValidationError,
    UnknownCollectionError,
)
from ..infrastructure.storage.errors import StorageQuotaExceededError


class ErrorCode(str, Enum):
    """
    Códigos de error de las operaciones del core.

    Códigos:
      - VALIDATION_ERROR: payload / snapshot inválido o incompleto.
      - NOT_FOUND: recurso inexistente (ej. no hay auto-backup).
      - QUOTA_EXCEEDED: el substrate rechazó la escritura por tamaño.
      - STORAGE_ERROR: cualquier otra falla del substrate.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    STORAGE_ERROR = "STORAGE_ERROR"


@dataclass(frozen=True)
class OperationError:
    code: ErrorCode
    message: str


def error_from_exception(exc: BizStoreError) -> OperationError:
    """R: Mapeo estable excepción interna -> código de resultado."""
    if isinstance(exc, StorageQuotaExceededError):
        return OperationError(ErrorCode.QUOTA_EXCEEDED, exc.message)
    if isinstance(exc, (RecordValidationError, UnknownCollectionError)):
        return OperationError(ErrorCode.VALIDATION_ERROR, exc.message)
    return OperationError(ErrorCode.STORAGE_ERROR, exc.message)


def _failure_dict(error: OperationError | None) -> dict[str, Any]:
    return {
        "success": False,
        "error": error.message if error else "Unknown error",
        "code": error.code.value if error else ErrorCode.STORAGE_ERROR.value,
    }


@dataclass
class ImportResult:
    """
    Resultado de import (JSON / CSV).

    Contrato:
      - success=True  => count = registros importados
      - success=False => error presente, nada importado
    """

    success: bool
    count: int = 0
    error: OperationError | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return _failure_dict(self.error)
        return {"success": True, "count": self.count}


@dataclass
class RestoreResult:
    """
    Resultado de restore.

    Campos:
      - timestamp: timestamp del snapshot restaurado
      - restored: colecciones efectivamente escritas
      - skipped: colecciones del snapshot que no están registradas
    """

    success: bool
    timestamp: str | None = None
    restored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    error: OperationError | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return _failure_dict(self.error)
        return {"success": True, "timestamp": self.timestamp}


@dataclass
class BulkResult:
    """Resultado de bulk delete / update status / merge."""

    success: bool
    requested: int = 0
    affected: int = 0
    error: OperationError | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return _failure_dict(self.error)
        return {"success": True, "count": self.affected}
