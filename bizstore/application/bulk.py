"""
===============================================================================
TARJETA CRC — application/bulk.py (Bulk / Import / Export)
===============================================================================

Responsabilidades:
  - bulk_delete / bulk_update_status sobre una colección, en una sola
    escritura, con UNA entrada de auditoría resumen (no una por id).
  - import_from_json / import_from_csv: ids nuevos basados en tiempo
    (independientes del esquema secuencial), importedAt, defaults y
    validación de cada elemento. Nunca lanzan: devuelven ImportResult.
  - export_to_csv / export_to_json / bulk_export / write_export_file.
  - merge_duplicates: conserva un registro y elimina los duplicados.

Colaboradores:
  - infrastructure.repositories.KeyValueRecordRepository
  - domain.repositories.AuditSink
  - application.serialization
  - application.results (ImportResult / BulkResult)

Decisiones:
  - Re-ejecutar un bulk con los mismos ids es idempotente: los ids ya
    eliminados no cuentan y, sin registros afectados, no se audita.
  - El id de import es epoch_ms * 1000 + aleatorio; si choca con un id
    vivo (o con otro del mismo lote) se incrementa hasta quedar libre.
===============================================================================
"""

from __future__ import annotations

import csv
import json
import secrets
import time
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from ..crosscutting.exceptions import BizStoreError, UnknownCollectionError
from ..crosscutting.logger import logger
from ..domain.clock import now_iso, today_stamp
from ..domain.repositories import AuditSink
from ..infrastructure.repositories import KeyValueRecordRepository
from .results import (
    BulkResult,
    ErrorCode,
    ImportResult,
    OperationError,
    error_from_exception,
)
from .serialization import csv_to_records, records_to_csv, records_to_json

EXPORT_FORMATS = ("json", "csv")


def export_to_csv(items: List[dict[str, Any]]) -> str | None:
    return records_to_csv(items)


def export_to_json(items: List[dict[str, Any]]) -> str | None:
    return records_to_json(items)


def _render(items: List[dict[str, Any]], fmt: str) -> str | None:
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"format must be one of {EXPORT_FORMATS}")
    return export_to_csv(items) if fmt == "csv" else export_to_json(items)


class BulkOperationsService:
    def __init__(
        self,
        repositories: Mapping[str, KeyValueRecordRepository],
        *,
        audit: AuditSink | None = None,
    ) -> None:
        self._repositories = dict(repositories)
        self._audit = audit

    # =========================================================
    # Helpers internos
    # =========================================================
    def _repository(self, collection: str) -> KeyValueRecordRepository:
        try:
            return self._repositories[collection]
        except KeyError:
            raise UnknownCollectionError(collection) from None

    def _log(self, action: str, repo: KeyValueRecordRepository, details: dict) -> None:
        if self._audit is not None and repo.spec.audited:
            self._audit.log_action(action, repo.spec.target_type, None, details)

    @staticmethod
    def _validation(message: str) -> OperationError:
        return OperationError(ErrorCode.VALIDATION_ERROR, message)

    @staticmethod
    def _new_import_id(taken: set[str]) -> int:
        candidate = int(time.time() * 1000) * 1000 + secrets.randbelow(1000)
        while str(candidate) in taken:
            candidate += 1
        taken.add(str(candidate))
        return candidate

    # =========================================================
    # Bulk
    # =========================================================
    def bulk_delete(self, collection: str, ids: Iterable[Any]) -> BulkResult:
        requested = list(ids)
        try:
            repo = self._repository(collection)
            affected = repo.delete_many(requested)
        except BizStoreError as exc:
            logger.warning(
                "Bulk delete falló",
                extra={"collection": collection, "error": exc.message},
            )
            return BulkResult(
                success=False, requested=len(requested), error=error_from_exception(exc)
            )

        if affected:
            self._log(
                "bulk_delete",
                repo,
                {"count": affected, "requested": len(requested), "ids": requested},
            )
        logger.info(
            "Bulk delete", extra={"collection": collection, "affected": affected}
        )
        return BulkResult(success=True, requested=len(requested), affected=affected)

    def bulk_update_status(
        self, collection: str, ids: Iterable[Any], status: str
    ) -> BulkResult:
        requested = list(ids)
        if not isinstance(status, str) or not status.strip():
            return BulkResult(
                success=False,
                requested=len(requested),
                error=self._validation("Status is required"),
            )

        try:
            repo = self._repository(collection)
            affected = repo.update_many(
                requested, {"status": status, "updatedAt": now_iso()}
            )
        except BizStoreError as exc:
            logger.warning(
                "Bulk update status falló",
                extra={"collection": collection, "error": exc.message},
            )
            return BulkResult(
                success=False, requested=len(requested), error=error_from_exception(exc)
            )

        if affected:
            self._log(
                "bulk_update_status",
                repo,
                {"count": affected, "requested": len(requested), "status": status},
            )
        return BulkResult(success=True, requested=len(requested), affected=affected)

    def merge_duplicates(
        self, collection: str, keep_id: Any, remove_ids: Iterable[Any]
    ) -> BulkResult:
        to_remove = [i for i in remove_ids if str(i) != str(keep_id)]
        try:
            repo = self._repository(collection)
            if repo.get(keep_id) is None:
                return BulkResult(
                    success=False,
                    requested=len(to_remove),
                    error=OperationError(
                        ErrorCode.NOT_FOUND, f"Record {keep_id} not found"
                    ),
                )
            affected = repo.delete_many(to_remove)
        except BizStoreError as exc:
            return BulkResult(
                success=False, requested=len(to_remove), error=error_from_exception(exc)
            )

        if affected:
            self._log(
                "merge",
                repo,
                {"keepId": keep_id, "removedIds": to_remove, "count": affected},
            )
        return BulkResult(success=True, requested=len(to_remove), affected=affected)

    # =========================================================
    # Import
    # =========================================================
    def _import_rows(
        self, collection: str, rows: List[Any], source: str
    ) -> ImportResult:
        try:
            repo = self._repository(collection)
        except UnknownCollectionError as exc:
            return ImportResult(success=False, error=error_from_exception(exc))

        prepared: List[dict[str, Any]] = []
        errors: List[str] = []
        for position, row in enumerate(rows):
            if not isinstance(row, dict):
                errors.append(f"[{position}]: element must be an object")
                continue
            values = repo.spec.apply_defaults({k: v for k, v in row.items() if k != "id"})
            errors.extend(f"[{position}]: {e}" for e in repo.spec.validate(values))
            prepared.append(values)

        if errors:
            return ImportResult(
                success=False, error=self._validation("; ".join(errors[:5]))
            )
        if not prepared:
            return ImportResult(success=True, count=0)

        imported_at = now_iso()
        try:
            taken = repo.existing_ids()
            records = [
                {"id": self._new_import_id(taken), **values, "importedAt": imported_at}
                for values in prepared
            ]
            count = repo.append_many(records)
        except BizStoreError as exc:
            logger.warning(
                "Import falló",
                extra={"collection": collection, "error": exc.message},
            )
            return ImportResult(success=False, error=error_from_exception(exc))

        self._log("import", repo, {"count": count, "format": source})
        logger.info(
            "Import completado",
            extra={"collection": collection, "count": count, "format": source},
        )
        return ImportResult(success=True, count=count)

    def import_from_json(self, collection: str, payload: Any) -> ImportResult:
        """
        Import a JSON array (text or already decoded list).

        Returns {success, count} or {success: false, error}; never raises.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                return ImportResult(
                    success=False, error=self._validation(f"Invalid JSON: {exc}")
                )

        if not isinstance(payload, list):
            return ImportResult(
                success=False, error=self._validation("Data must be an array")
            )

        return self._import_rows(collection, payload, "json")

    def import_from_csv(self, collection: str, text: str) -> ImportResult:
        if not isinstance(text, str):
            return ImportResult(
                success=False, error=self._validation("CSV payload must be text")
            )
        try:
            rows = csv_to_records(text)
        except csv.Error as exc:
            return ImportResult(
                success=False, error=self._validation(f"Invalid CSV: {exc}")
            )
        return self._import_rows(collection, rows, "csv")

    # =========================================================
    # Export
    # =========================================================
    def bulk_export(
        self, collection: str, ids: Iterable[Any], fmt: str = "json"
    ) -> str | None:
        targets = {str(i) for i in ids}
        items = [
            r for r in self._repository(collection).list() if str(r.get("id")) in targets
        ]
        return _render(items, fmt)

    def export_all(self, collection: str, fmt: str = "json") -> str | None:
        return _render(self._repository(collection).list(), fmt)

    def write_export_file(
        self,
        collection: str,
        directory: str | Path,
        fmt: str = "json",
        ids: Iterable[Any] | None = None,
    ) -> Path | None:
        """Write <collection>_export_<date>.<fmt>; None when there is nothing to export."""
        content = (
            self.bulk_export(collection, ids, fmt)
            if ids is not None
            else self.export_all(collection, fmt)
        )
        if content is None:
            return None
        target = Path(directory) / f"{collection}_export_{today_stamp()}.{fmt}"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.info("Export escrito", extra={"path": str(target)})
        return target
