"""
===============================================================================
MÓDULO: Excepciones tipadas del core (errores internos)
===============================================================================

Objetivo
--------
Tener excepciones internas coherentes, con:
- error_code estable
- error_id para correlación con logs
- message “humana”

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  BizStoreError + subclases

Responsabilidades:
  - Estandarizar errores internos que luego se convierten en resultados
  - Generar error_id para rastreo

Colaboradores:
  - infrastructure/storage/errors.py (familia de errores del substrate)
  - application/results.py (mapeo a OperationError)
  - cli.py (mapea a exit codes)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    """Estructura mínima para reportar errores de forma consistente."""

    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class BizStoreError(Exception):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      BizStoreError

    Responsabilidades:
      - Base para errores internos del sistema
      - Proveer error_code + error_id + message

    Colaboradores:
      - application/results.py
      - cli.py
    ----------------------------------------------------------------------------
    """

    error_code: str = "BIZSTORE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


class RecordValidationError(BizStoreError):
    """Registro inválido para su colección (campos requeridos, tipos)."""

    error_code: str = "VALIDATION_ERROR"

    def __init__(self, collection: str, errors: list[str]):
        super().__init__(f"Invalid {collection} record: " + "; ".join(errors))
        self.collection = collection
        self.errors = list(errors)


class UnknownCollectionError(BizStoreError):
    """Colección no registrada."""

    error_code: str = "UNKNOWN_COLLECTION"

    def __init__(self, name: str):
        super().__init__(f"Unknown collection: {name}")
        self.name = name
