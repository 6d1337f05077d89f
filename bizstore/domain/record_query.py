"""
===============================================================================
TARJETA CRC — domain/record_query.py
===============================================================================

Módulo:
    Consultas puras sobre listas de registros (filtro / orden / duplicados)

Responsabilidades:
    - filter_records: criterios AND (igualdad o substring case-insensitive).
    - filter_by_date_range: rango inclusivo sobre un campo fecha.
    - sort_records: orden numérico o por string en minúsculas, estable.
    - find_duplicates: agrupa por clave en minúsculas (primer visto = original).

Colaboradores:
    - infrastructure.repositories.record_repository (search / find_duplicates)

Notas:
    - Funciones puras: no mutan el input, devuelven listas nuevas.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from functools import cmp_to_key
from typing import Any, Iterable, Mapping

from .clock import parse_timestamp

Record = dict[str, Any]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches(item: Record, key: str, criterion: Any) -> bool:
    # R: criterio vacío/ausente matchea todo.
    if criterion is None or criterion == "":
        return True

    value = item.get(key)
    if isinstance(criterion, str):
        if value is None:
            return False
        return criterion.lower() in str(value).lower()

    return value == criterion


def filter_records(items: Iterable[Record], criteria: Mapping[str, Any]) -> list[Record]:
    """Records matching every criterion (AND)."""
    active = dict(criteria or {})
    return [
        item
        for item in items
        if all(_matches(item, key, crit) for key, crit in active.items())
    ]


def filter_by_date_range(
    items: Iterable[Record],
    start: Any = None,
    end: Any = None,
    date_field: str = "createdAt",
) -> list[Record]:
    """
    Records whose `date_field` falls within [start, end].

    Records without a parseable date are excluded as soon as one bound is set.
    """
    start_at: datetime | None = parse_timestamp(start)
    end_at: datetime | None = parse_timestamp(end)

    if start_at is None and end_at is None:
        return list(items)

    out: list[Record] = []
    for item in items:
        moment = parse_timestamp(item.get(date_field))
        if moment is None:
            continue
        if start_at is not None and moment < start_at:
            continue
        if end_at is not None and moment > end_at:
            continue
        out.append(item)
    return out


def _compare(a: Any, b: Any) -> int:
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)
    left = "" if a is None else str(a).lower()
    right = "" if b is None else str(b).lower()
    return (left > right) - (left < right)


def sort_records(items: Iterable[Record], field: str, order: str = "asc") -> list[Record]:
    """
    Sort by `field`.

    - both values numeric => numeric comparison
    - otherwise => comparison of str(value).lower() (missing = "")
    - ties keep collection order (stable)
    """
    direction = -1 if (order or "asc").lower() == "desc" else 1
    return sorted(
        items,
        key=cmp_to_key(lambda a, b: direction * _compare(a.get(field), b.get(field))),
    )


def find_duplicates(items: Iterable[Record], key_field: str) -> list[dict[str, Record]]:
    """
    Pair every repeated record with the first record seen for the same key.

    The key is str(value).lower(); records without a value are ignored.
    """
    seen: dict[str, Record] = {}
    pairs: list[dict[str, Record]] = []

    for item in items:
        value = item.get(key_field)
        if value is None or value == "":
            continue
        key = str(value).lower()
        if key in seen:
            pairs.append({"original": seen[key], "duplicate": item})
        else:
            seen[key] = item

    return pairs
