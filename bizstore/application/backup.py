"""
===============================================================================
TARJETA CRC — application/backup.py (Backup & Restore)
===============================================================================

Responsabilidades:
  - create_backup: snapshot {timestamp, data} de TODAS las colecciones
    registradas para backup (vacías incluidas), leídas vía repositorio.
  - restore_backup: validar el snapshot completo y recién entonces
    reemplazar cada colección en el substrate (whole-value replace).
    Si una escritura falla, se reponen los valores previos (best effort).
  - Auto-backup: snapshot en una clave dedicada + hora del último backup.
  - AutoBackupScheduler: timer periódico en un thread daemon (fire-and-forget).

Colaboradores:
  - infrastructure.repositories.KeyValueRecordRepository (lecturas + locks)
  - domain.repositories.KeyValueStore (escritura directa del restore)
  - application.results.RestoreResult / ErrorCode

Restricciones:
  - restore es destructivo: registros ausentes del snapshot se descartan.
    Los llamadores deben pedir confirmación explícita antes de invocarlo.
  - restore nunca lanza: devuelve RestoreResult.
===============================================================================
"""

from __future__ import annotations

import json
import threading
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

from ..crosscutting.exceptions import BizStoreError
from ..crosscutting.logger import logger
from ..domain.clock import now_iso, today_stamp
from ..domain.collections import CollectionSpec
from ..domain.repositories import KeyValueStore
from ..infrastructure.repositories import KeyValueRecordRepository
from .results import ErrorCode, OperationError, RestoreResult, error_from_exception

# R: cantidad máxima de errores de validación reportados en el mensaje.
_MAX_REPORTED_ERRORS = 5


@dataclass
class BackupSnapshot:
    """Point-in-time copy of every registered collection."""

    timestamp: str
    data: Dict[str, List[dict]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "data": self.data}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _is_int_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_snapshot_records(spec: CollectionSpec, records: Any) -> List[str]:
    """
    Same checks `add` applies, plus structural ones:
      - list of objects
      - integer ids, unique within the collection
      - required fields / collection validator
    """
    if not isinstance(records, list):
        return [f"{spec.name}: expected a list of records"]

    errors: List[str] = []
    seen: set[int] = set()
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            errors.append(f"{spec.name}[{position}]: record must be an object")
            continue
        record_id = record.get("id")
        if not _is_int_id(record_id):
            errors.append(f"{spec.name}[{position}]: id must be an integer")
        elif record_id in seen:
            errors.append(f"{spec.name}[{position}]: duplicate id {record_id}")
        else:
            seen.add(record_id)
        errors.extend(f"{spec.name}[{position}]: {e}" for e in spec.validate(record))
    return errors


class BackupService:
    def __init__(
        self,
        store: KeyValueStore,
        repositories: Mapping[str, KeyValueRecordRepository],
        *,
        namespace: str = "db_admin_",
    ) -> None:
        self._store = store
        self._repositories = dict(repositories)
        self._auto_key = f"{namespace}auto_backup"
        self._auto_time_key = f"{namespace}auto_backup_time"

    # =========================================================
    # Backup
    # =========================================================
    def _backup_repositories(self) -> List[KeyValueRecordRepository]:
        return [repo for repo in self._repositories.values() if repo.spec.in_backup]

    def create_backup(self) -> BackupSnapshot:
        snapshot = BackupSnapshot(
            timestamp=now_iso(),
            data={repo.name: repo.list() for repo in self._backup_repositories()},
        )
        logger.info(
            "Backup creado",
            extra={
                "collections": len(snapshot.data),
                "records": sum(len(v) for v in snapshot.data.values()),
            },
        )
        return snapshot

    def write_backup_file(self, directory: str | Path) -> Path:
        target = Path(directory) / f"admin_backup_{today_stamp()}.json"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.create_backup().to_json(), encoding="utf-8")
        logger.info("Backup escrito", extra={"path": str(target)})
        return target

    # =========================================================
    # Restore
    # =========================================================
    @staticmethod
    def _invalid(message: str) -> RestoreResult:
        return RestoreResult(
            success=False, error=OperationError(ErrorCode.VALIDATION_ERROR, message)
        )

    def restore_backup(self, payload: Any) -> RestoreResult:
        # ----- 1) Parse -----
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError:
                return self._invalid("Invalid backup JSON")

        if not isinstance(payload, Mapping) or not isinstance(payload.get("data"), Mapping):
            return self._invalid("Invalid backup format")

        timestamp = payload.get("timestamp")
        data: Mapping[str, Any] = payload["data"]

        # ----- 2) Validar todo antes de escribir -----
        targets: List[tuple[KeyValueRecordRepository, list]] = []
        skipped: List[str] = []
        errors: List[str] = []
        for name, records in data.items():
            repo = self._repositories.get(name)
            if repo is None:
                skipped.append(name)
                continue
            errors.extend(validate_snapshot_records(repo.spec, records))
            targets.append((repo, records))

        if skipped:
            logger.warning(
                "Colecciones desconocidas en el backup, se ignoran",
                extra={"skipped": skipped},
            )
        if errors:
            logger.warning(
                "Backup rechazado por validación", extra={"errors": len(errors)}
            )
            return self._invalid("; ".join(errors[:_MAX_REPORTED_ERRORS]))

        if not targets:
            return RestoreResult(success=True, timestamp=timestamp, skipped=skipped)

        # ----- 3) Escribir con rollback best-effort -----
        with ExitStack() as stack:
            for repo, _ in targets:
                stack.enter_context(repo.lock)

            previous: Dict[str, Any] = {}
            written: List[str] = []
            try:
                for repo, _ in targets:
                    previous[repo.storage_key] = self._store.get(repo.storage_key)
                for repo, records in targets:
                    self._store.set(repo.storage_key, records)
                    written.append(repo.storage_key)
            except BizStoreError as exc:
                self._rollback(written, previous)
                logger.error(
                    "Restore falló, se repusieron los valores previos",
                    extra={"error": exc.message, "error_id": exc.error_id},
                )
                return RestoreResult(success=False, error=error_from_exception(exc))

        restored = [repo.name for repo, _ in targets]
        logger.info(
            "Backup restaurado",
            extra={"timestamp": timestamp, "collections": restored},
        )
        return RestoreResult(
            success=True, timestamp=timestamp, restored=restored, skipped=skipped
        )

    def _rollback(self, written: List[str], previous: Mapping[str, Any]) -> None:
        for key in reversed(written):
            try:
                if previous.get(key) is None:
                    self._store.remove(key)
                else:
                    self._store.set(key, previous[key])
            except BizStoreError as exc:
                logger.error(
                    "No se pudo reponer la clave durante el rollback",
                    extra={"key": key, "error": exc.message},
                )

    # =========================================================
    # Auto-backup
    # =========================================================
    def perform_auto_backup(self) -> bool:
        """Store a snapshot under the auto-backup key. Never raises."""
        try:
            snapshot = self.create_backup()
            self._store.set(self._auto_key, snapshot.to_dict())
            self._store.set(self._auto_time_key, snapshot.timestamp)
        except Exception:
            logger.exception("Auto-backup falló")
            return False
        return True

    def last_auto_backup_time(self) -> str | None:
        value = self._store.get(self._auto_time_key)
        return value if isinstance(value, str) else None

    def restore_auto_backup(self) -> RestoreResult:
        try:
            raw = self._store.get(self._auto_key)
        except BizStoreError as exc:
            logger.error(
                "No se pudo leer el auto-backup",
                extra={"error": exc.message, "error_id": exc.error_id},
            )
            return RestoreResult(success=False, error=error_from_exception(exc))
        if raw is None:
            return RestoreResult(
                success=False,
                error=OperationError(ErrorCode.NOT_FOUND, "No auto backup found"),
            )
        return self.restore_backup(raw)


class AutoBackupScheduler:
    """
    Name: AutoBackupScheduler

    Responsibilities:
      - Call BackupService.perform_auto_backup every `interval_seconds`
        from a daemon thread until stopped

    Notes:
      - Fire-and-forget: failures are logged by perform_auto_backup
    """

    def __init__(self, backup: BackupService, *, interval_seconds: float) -> None:
        self._backup = backup
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="auto-backup", daemon=True
        )
        self._thread.start()
        logger.info("Auto-backup activo", extra={"interval_seconds": self._interval})

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self._backup.perform_auto_backup()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
