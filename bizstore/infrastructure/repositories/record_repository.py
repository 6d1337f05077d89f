"""
============================================================
TARJETA CRC — infrastructure/repositories/record_repository.py
============================================================
Class: KeyValueRecordRepository

Responsibilities:
  - CRUD genérico sobre una colección persistida bajo una clave del substrate.
  - Asignar ids enteros crecientes sin reutilizar ids borrados
    (max(ids) combinado con un high-water mark persistido en <key>:seq).
  - Aplicar defaults, validación y hooks declarados en el CollectionSpec.
  - Emitir una entrada de auditoría por mutación exitosa (create/update/delete).
  - Operaciones batch sin auditoría por registro (bulk / import / merge).

Collaborators:
  - domain.collections.CollectionSpec (defaults / validación / hooks)
  - domain.repositories.KeyValueStore (substrate)
  - domain.repositories.AuditSink (audit log)
  - domain.record_query (filtros / orden / duplicados)
  - crosscutting.pagination

Constraints / Notes:
  - Thread-safe: cada read-modify-write de la colección corre bajo un RLock
    propio de la colección (el timer de auto-backup corre en otro thread).
  - Copias defensivas: nunca se devuelven los dicts internos.
  - NotFound es un retorno (None / False), no una excepción.
============================================================
"""

from __future__ import annotations

import copy
from threading import RLock
from typing import Any, Iterable, List, Mapping, Optional

from ...crosscutting.exceptions import RecordValidationError
from ...crosscutting.logger import logger
from ...crosscutting.pagination import Page, paginate
from ...domain.collections import CollectionSpec, Record
from ...domain.record_query import (
    filter_by_date_range,
    filter_records,
    find_duplicates,
    sort_records,
)
from ...domain.repositories import AuditSink, KeyValueStore


def _is_int_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def same_id(a: Any, b: Any) -> bool:
    """R: ids que llegan como texto (CLI / CSV) matchean ids enteros."""
    if a is None or b is None:
        return False
    if isinstance(a, bool) or isinstance(b, bool):
        return False
    return a == b or str(a) == str(b)


class KeyValueRecordRepository:
    """
    Repositorio de una colección sobre el substrate key-value.

    Modelo mental:
    - La colección completa es una lista JSON bajo `storage_key`.
    - Cada operación lee la lista, la modifica y la vuelve a escribir entera.
    """

    def __init__(
        self,
        store: KeyValueStore,
        spec: CollectionSpec,
        *,
        namespace: str = "db_admin_",
        audit: AuditSink | None = None,
    ) -> None:
        self._store = store
        self._spec = spec
        self._key = f"{namespace}{spec.name}"
        self._seq_key = f"{self._key}:seq"
        self._audit = audit
        self._lock = RLock()

    # =========================================================
    # Propiedades
    # =========================================================
    @property
    def name(self) -> str:
        return self._spec.name

    @property
    def spec(self) -> CollectionSpec:
        return self._spec

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def lock(self) -> RLock:
        """R: Lock de la colección (lo toma el restore para escribir en bloque)."""
        return self._lock

    # =========================================================
    # Helpers internos
    # =========================================================
    def _load(self) -> List[Record]:
        raw = self._store.get(self._key, [])
        if not isinstance(raw, list):
            logger.warning(
                "Colección con formato inválido, se trata como vacía",
                extra={"collection": self.name, "key": self._key},
            )
            return []
        return [item for item in raw if isinstance(item, dict)]

    def _save(self, items: List[Record]) -> None:
        self._store.set(self._key, items)

    def _next_id(self, items: List[Record]) -> int:
        """R: max(ids enteros, high-water persistido) + 1."""
        highest = max((r["id"] for r in items if _is_int_id(r.get("id"))), default=0)
        persisted = self._store.get(self._seq_key, 0)
        if not _is_int_id(persisted):
            persisted = 0
        return max(highest, persisted) + 1

    @staticmethod
    def _index_of(items: List[Record], record_id: Any) -> Optional[int]:
        for idx, item in enumerate(items):
            if same_id(item.get("id"), record_id):
                return idx
        return None

    def _emit(self, action: str, target_id: Any, details: Any) -> None:
        if self._spec.audited and self._audit is not None:
            self._audit.log_action(action, self._spec.target_type, target_id, details)

    # =========================================================
    # Lecturas
    # =========================================================
    def list(self) -> List[Record]:
        with self._lock:
            return copy.deepcopy(self._load())

    def get(self, record_id: Any) -> Optional[Record]:
        with self._lock:
            items = self._load()
        idx = self._index_of(items, record_id)
        return copy.deepcopy(items[idx]) if idx is not None else None

    def find_duplicates(self, key_field: str) -> List[dict]:
        return find_duplicates(self.list(), key_field)

    def search(
        self,
        criteria: Mapping[str, Any] | None = None,
        *,
        sort_by: str | None = None,
        order: str = "asc",
        start: Any = None,
        end: Any = None,
        date_field: str = "createdAt",
        page: int = 1,
        per_page: int = 20,
    ) -> Page[Record]:
        """filter -> date range -> sort -> paginate."""
        items = filter_records(self.list(), criteria or {})
        items = filter_by_date_range(items, start, end, date_field)
        if sort_by:
            items = sort_records(items, sort_by, order)
        return paginate(items, page, per_page)

    # =========================================================
    # Mutaciones (auditadas)
    # =========================================================
    def add(self, partial: Mapping[str, Any]) -> Record:
        values = {k: v for k, v in copy.deepcopy(dict(partial)).items() if k != "id"}
        values = self._spec.apply_defaults(values)

        errors = self._spec.validate(values)
        if errors:
            raise RecordValidationError(self.name, errors)

        with self._lock:
            items = self._load()
            new_id = self._next_id(items)
            record: Record = {"id": new_id, **values}

            if self._spec.prepend:
                items.insert(0, record)
                if self._spec.max_items is not None:
                    del items[self._spec.max_items :]
            else:
                items.append(record)

            # R: el high-water mark va primero; si falla el guardado solo se pierde un id
            self._store.set(self._seq_key, new_id)
            self._save(items)

        created = copy.deepcopy(record)
        self._emit("create", new_id, created)
        return created

    def update(self, record_id: Any, partial: Mapping[str, Any]) -> Optional[Record]:
        changes = {k: v for k, v in copy.deepcopy(dict(partial)).items() if k != "id"}

        with self._lock:
            items = self._load()
            idx = self._index_of(items, record_id)
            if idx is None:
                return None

            record = {**items[idx], **changes}
            if changes:
                errors = self._spec.validate(record)
                if errors:
                    raise RecordValidationError(self.name, errors)
                if self._spec.on_update is not None:
                    self._spec.on_update(record, changes)
            items[idx] = record
            self._save(items)

        self._emit("update", record["id"], changes)
        return copy.deepcopy(record)

    def delete(self, record_id: Any) -> bool:
        with self._lock:
            items = self._load()
            idx = self._index_of(items, record_id)
            if idx is None:
                return False
            removed = items.pop(idx)
            self._save(items)

        self._emit("delete", removed.get("id"), removed)
        return True

    # =========================================================
    # Batch (sin auditoría por registro)
    # =========================================================
    def delete_many(self, ids: Iterable[Any]) -> int:
        targets = {str(i) for i in ids if i is not None}
        if not targets:
            return 0
        with self._lock:
            items = self._load()
            kept = [r for r in items if str(r.get("id")) not in targets]
            removed = len(items) - len(kept)
            if removed:
                self._save(kept)
        return removed

    def update_many(self, ids: Iterable[Any], changes: Mapping[str, Any]) -> int:
        targets = {str(i) for i in ids if i is not None}
        patch = {k: v for k, v in dict(changes).items() if k != "id"}
        if not targets:
            return 0
        affected = 0
        with self._lock:
            items = self._load()
            for idx, item in enumerate(items):
                if str(item.get("id")) not in targets:
                    continue
                record = {**item, **copy.deepcopy(patch)}
                if patch and self._spec.on_update is not None:
                    self._spec.on_update(record, patch)
                items[idx] = record
                affected += 1
            if affected:
                self._save(items)
        return affected

    def append_many(self, records: Iterable[Mapping[str, Any]]) -> int:
        incoming = [copy.deepcopy(dict(r)) for r in records]
        if not incoming:
            return 0
        with self._lock:
            items = self._load()
            items.extend(incoming)
            self._save(items)
        return len(incoming)

    def existing_ids(self) -> set[str]:
        with self._lock:
            return {str(r.get("id")) for r in self._load()}

    def seed_defaults(self) -> bool:
        """R: Escribe los registros semilla solo si la clave no existe."""
        if not self._spec.seed:
            return False
        with self._lock:
            if self._store.get(self._key) is not None:
                return False
            self._save(copy.deepcopy(list(self._spec.seed)))
        logger.info("Colección inicializada con datos semilla", extra={"collection": self.name})
        return True
