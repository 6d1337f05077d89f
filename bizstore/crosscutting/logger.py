"""
===============================================================================
TARJETA CRC — crosscutting/logger.py
===============================================================================

Componentes:
  - JSONFormatter: LogRecord -> una línea JSON
  - setup_logger(): logger "bizstore" configurado desde Settings

Responsabilidades:
  - Adjuntar el actor que opera (actor_id / origin) a cada línea.
  - Ocultar credenciales del store y el email de las personas.
  - Acotar snapshots y payloads de import que lleguen como extra.

Colaboradores:
  - bizstore/context.py (get_context_dict)
  - crosscutting/config.py (log_level / log_json)

Notas:
  - El logger propaga al root: caplog de pytest ve los registros.
===============================================================================
"""

from __future__ import annotations

import json
import logging
import re
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

from ..context import get_context_dict
from .config import get_settings

# R: atributos estándar del LogRecord; todo lo demás vino por `extra=`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

# Claves que nunca se escriben en claro.
REDACTED_KEYS = frozenset({"redis_url", "password", "email", "actor_email"})
REDACTED = "***REDACTADO***"

MAX_STRING_CHARS = 2_000
MAX_LIST_ITEMS = 20
MAX_DEPTH = 3

_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.I)


def _scrub(value: Any, *, key: str = "", depth: int = 0) -> Any:
    """Redacta por clave, recorta strings / listas largas y limita anidamiento."""
    if key.lower() in REDACTED_KEYS:
        return REDACTED

    if isinstance(value, str):
        value = _URL_CREDENTIALS.sub(r"\g<scheme>***@", value)
        if len(value) > MAX_STRING_CHARS:
            return value[:MAX_STRING_CHARS] + "…(truncado)"
        return value

    if isinstance(value, (dict, list, tuple)) and depth >= MAX_DEPTH:
        return f"<{type(value).__name__} anidado>"

    if isinstance(value, dict):
        return {str(k): _scrub(v, key=str(k), depth=depth + 1) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        head = [_scrub(v, depth=depth + 1) for v in value[:MAX_LIST_ITEMS]]
        hidden = len(value) - MAX_LIST_ITEMS
        if hidden > 0:
            head.append(f"…(+{hidden} items)")
        return head

    return value


class JSONFormatter(logging.Formatter):
    """Una línea JSON por registro, con el actor actual y los extras saneados."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(get_context_dict())

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                payload[key] = _scrub(value, key=key)

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(name: str = "bizstore") -> logging.Logger:
    settings = get_settings()
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # R: reimportar el módulo no duplica handlers
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            JSONFormatter()
            if settings.log_json
            else logging.Formatter("%(levelname)s %(name)s %(message)s")
        )
        log.addHandler(handler)

    return log


logger = setup_logger()
