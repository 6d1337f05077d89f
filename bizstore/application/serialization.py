"""
Name: CSV / JSON serialization contract

Responsibilities:
  - records_to_csv: header = keys of the first record (unquoted, comma-joined),
    one line per record, every value double-quoted with embedded quotes doubled
  - csv_with_header: same quoting for a fixed header (audit export)
  - records_to_json: indent=2 document
  - csv_to_records: parse an exported CSV back into dicts (imports)

Notes:
  - Lines are joined with "\\n" and there is no trailing newline
  - Empty input yields None (no file)
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable, List, Sequence


def stringify(value: Any) -> str:
    """Cell text for a JSON value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _quoted_rows(rows: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([stringify(cell) for cell in row])
    text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def csv_with_header(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    body = _quoted_rows(rows)
    head = ",".join(header)
    return f"{head}\n{body}" if body else head


def records_to_csv(items: Sequence[dict[str, Any]]) -> str | None:
    if not items:
        return None
    header = list(items[0].keys())
    return csv_with_header(header, ([item.get(key) for key in header] for item in items))


def records_to_json(items: Sequence[dict[str, Any]]) -> str | None:
    if not items:
        return None
    return json.dumps(list(items), indent=2, ensure_ascii=False)


def csv_to_records(text: str) -> List[dict[str, str]]:
    """Parse CSV text with a header row. Blank lines are skipped."""
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return []
    return [
        {key: value for key, value in row.items() if key is not None}
        for row in reader
        if any((value or "").strip() for value in row.values() if isinstance(value, str))
    ]
