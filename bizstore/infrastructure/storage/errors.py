"""
===============================================================================
CRC CARD — infrastructure/storage/errors.py
===============================================================================

Componente:
  Errores tipados del substrate key-value

Responsabilidades:
  - Definir un lenguaje común de fallas del almacenamiento.
  - Evitar que excepciones de redis-py / OSError / json se filtren a capas superiores.
  - Permitir manejo consistente (resultados QUOTA_EXCEEDED, logs, exit codes).

Colaboradores:
  - infrastructure/storage/base.py (quota / serialización)
  - infrastructure/storage/redis_store.py (mapeo RedisError -> StorageUnavailableError)
  - infrastructure/storage/json_file.py (mapeo OSError -> StorageUnavailableError)
===============================================================================
"""

from ...crosscutting.exceptions import BizStoreError


class StorageError(BizStoreError):
    """Base de errores del substrate."""

    error_code: str = "STORAGE_ERROR"


class StorageQuotaExceededError(StorageError):
    """La escritura excede la cuota configurada del substrate."""

    error_code: str = "QUOTA_EXCEEDED"

    def __init__(self, key: str, required_bytes: int, quota_bytes: int):
        super().__init__(
            f"Storage quota exceeded writing key={key} "
            f"(required={required_bytes}B quota={quota_bytes}B)"
        )
        self.key = key
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes


class StorageSerializationError(StorageError):
    """El valor no se puede serializar a JSON."""

    error_code: str = "SERIALIZATION_ERROR"

    def __init__(self, key: str, original_error: Exception | None = None):
        super().__init__(
            f"Value for key={key} is not JSON serializable",
            original_error=original_error,
        )
        self.key = key


class StorageUnavailableError(StorageError):
    """Backend caído o temporalmente no disponible (I/O, Redis down)."""

    error_code: str = "STORAGE_UNAVAILABLE"

    def __init__(
        self,
        message: str = "Storage no disponible.",
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error=original_error)
