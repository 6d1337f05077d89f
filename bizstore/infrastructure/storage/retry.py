"""bizstore.infrastructure.storage.retry

Name: Retry Helper with Exponential Backoff + Jitter (substrate)

Qué es
------
Resiliencia para los backends remotos del substrate (Redis):
  - Clasificación de errores: **transient** (reintentar) vs **permanent** (fail-fast)
  - Decorator de `tenacity` con **exponential backoff + jitter**
  - Logging estructurado de cada reintento

CRC (Component Card)
--------------------
Component: storage retry helper
Responsibilities:
  - Decidir qué errores del cliente son reintentables
  - Proveer un decorator estándar (tenacity) configurado desde Settings
Collaborators:
  - tenacity (motor de retry)
  - redis-py (tipos de error)
  - crosscutting.config.get_settings / crosscutting.logger
Constraints:
  - Reintentar SOLO caídas de conexión y timeouts
  - Errores de comando (ResponseError, DataError, ...) no se reintentan
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

import redis
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger

T = TypeVar("T")


def is_transient_error(exception: BaseException) -> bool:
    """R: Conexión caída o timeout => reintentar; cualquier otra cosa => fail-fast."""
    if isinstance(exception, (redis.ConnectionError, redis.TimeoutError)):
        return True
    return isinstance(exception, (TimeoutError, ConnectionError))


def _log_retry(retry_state: RetryCallState) -> None:
    fn = getattr(retry_state, "fn", None)
    wait_time = (
        retry_state.next_action.sleep
        if getattr(retry_state, "next_action", None) is not None
        else 0
    )

    exc: Optional[BaseException] = None
    if getattr(retry_state, "outcome", None) is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Reintentando operación del substrate",
        extra={
            "function": getattr(fn, "__name__", "unknown"),
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 2),
            "error": str(exc) if exc else None,
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """R: Decorator `tenacity` con backoff exponencial + jitter.

    Los overrides explícitos tienen prioridad sobre Settings.
    reraise=True: tras el último intento se propaga la excepción original.
    """
    settings = get_settings()

    _max_attempts = (
        settings.storage_retry_max_attempts if max_attempts is None else max_attempts
    )
    _base_delay = (
        settings.storage_retry_base_delay_seconds
        if base_delay is None
        else float(base_delay)
    )
    _max_delay = (
        settings.storage_retry_max_delay_seconds
        if max_delay is None
        else float(max_delay)
    )

    if _max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if _base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if _max_delay <= 0:
        raise ValueError("max_delay must be > 0")

    return retry(
        stop=stop_after_attempt(_max_attempts),
        wait=wait_exponential_jitter(
            initial=_base_delay, max=_max_delay, jitter=_base_delay
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
