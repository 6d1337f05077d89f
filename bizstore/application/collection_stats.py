"""
Name: Collection statistics

Responsibilities:
  - collection_statistics: total, counts by status, 5 first and 5 last records
  - collection_trends: share of records created within the last N days
  - archive_candidates: records whose date is older than N days

Collaborators:
  - RecordStore.list() (callers pass the records in)
  - domain.clock.parse_timestamp

Notes:
  - Pure functions over a list of records
"""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import Any, List, Sequence

from ..domain.clock import parse_timestamp, utc_now

SAMPLE_SIZE = 5


def collection_statistics(records: Sequence[dict[str, Any]]) -> dict[str, Any]:
    by_status = Counter(r.get("status") or "Unknown" for r in records)
    return {
        "total": len(records),
        "byStatus": dict(by_status),
        "recent": list(records[:SAMPLE_SIZE]),
        "oldest": list(records[-SAMPLE_SIZE:]) if records else [],
    }


def collection_trends(
    records: Sequence[dict[str, Any]], days: int = 30, date_field: str = "createdAt"
) -> dict[str, Any]:
    """growth = percentage of records dated within the window (2 decimals)."""
    cutoff = utc_now() - timedelta(days=days)
    recent = 0
    for record in records:
        moment = parse_timestamp(record.get(date_field))
        if moment is not None and moment >= cutoff:
            recent += 1

    total = len(records)
    growth = round(recent / total * 100, 2) if total else 0.0
    return {"total": total, "recent": recent, "growth": growth}


def archive_candidates(
    records: Sequence[dict[str, Any]], days_old: int = 365
) -> List[dict[str, Any]]:
    """Records whose `date` (or `startDate`) is older than `days_old` days."""
    cutoff = utc_now() - timedelta(days=days_old)
    out: List[dict[str, Any]] = []
    for record in records:
        moment = parse_timestamp(record.get("date") or record.get("startDate"))
        if moment is not None and moment < cutoff:
            out.append(record)
    return out
