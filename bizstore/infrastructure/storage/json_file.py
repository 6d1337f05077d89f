"""
TARJETA CRC — infrastructure/storage/json_file.py

Class: JsonFileKeyValueStore

Responsibilities:
  - Substrate persistente en un único documento JSON {key: text}.
  - Escritura atómica: archivo temporal en el mismo directorio + os.replace.
  - Cargar el documento una vez y servir lecturas desde memoria.

Collaborators:
  - KeyValueBackend (codec + cuota)
  - errors.StorageUnavailableError (fallas de I/O)

Notes:
  - Un documento ilegible al arrancar se trata como vacío (warning) y se
    conserva como <path>.corrupt para inspección manual.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from ...crosscutting.logger import logger
from .base import KeyValueBackend, _byte_len
from .errors import StorageUnavailableError


class JsonFileKeyValueStore(KeyValueBackend):
    backend_name = "file"

    def __init__(self, path: str | os.PathLike, *, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes=quota_bytes)
        self._path = Path(path)
        self._data_lock = Lock()
        self._data: Dict[str, str] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StorageUnavailableError(
                f"No se pudo leer {self._path}", original_error=exc
            ) from exc
        except ValueError:
            backup = self._path.with_suffix(self._path.suffix + ".corrupt")
            logger.warning(
                "Documento de storage corrupto, se inicia vacío",
                extra={"path": str(self._path), "moved_to": str(backup)},
            )
            os.replace(self._path, backup)
            return {}

        if not isinstance(raw, dict):
            logger.warning(
                "Documento de storage con formato inesperado, se inicia vacío",
                extra={"path": str(self._path)},
            )
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self, data: Dict[str, str]) -> None:
        """R: Escritura atómica del documento completo."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageUnavailableError(
                f"No se pudo escribir {self._path}", original_error=exc
            ) from exc

    def _read_raw(self, key: str) -> Optional[str]:
        with self._data_lock:
            return self._data.get(key)

    def _write_raw(self, key: str, text: str) -> None:
        with self._data_lock:
            updated = dict(self._data)
            updated[key] = text
            self._flush(updated)
            self._data = updated

    def _delete_raw(self, key: str) -> None:
        with self._data_lock:
            if key not in self._data:
                return
            updated = dict(self._data)
            del updated[key]
            self._flush(updated)
            self._data = updated

    def _raw_keys(self) -> List[str]:
        with self._data_lock:
            return list(self._data)

    def _raw_size(self) -> int:
        with self._data_lock:
            return sum(_byte_len(k) + _byte_len(v) for k, v in self._data.items())
