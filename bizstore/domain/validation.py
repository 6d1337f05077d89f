"""
Name: Record validators (projects / clients)

Responsibilities:
  - Field-level checks for the collections that carry business rules
  - Return a list of human readable errors (empty list = valid)

Notes:
  - Validators run on the record AFTER defaults are applied, so placeholder
    defaults ("N/A") are accepted as "not provided"
  - Pure functions, no I/O
"""

from __future__ import annotations

import re
from typing import Any

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s\-+()]+$")
_LEADING_NUMBER_RE = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)")

PLACEHOLDER = "N/A"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_leading_number(value: Any) -> float | None:
    """'1,500 ETB' is not numeric, '1500 ETB' is 1500.0, 42 is 42.0."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value)
        if match:
            return float(match.group(0))
    return None


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and bool(_EMAIL_RE.match(email))


def validate_project(record: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    if _blank(record.get("client")):
        errors.append("Client name is required")
    if _blank(record.get("status")):
        errors.append("Status is required")

    budget = record.get("budget")
    if not _blank(budget) and parse_leading_number(budget) is None:
        errors.append("Budget must be a valid number")

    progress = record.get("progress")
    if progress not in (None, ""):
        value = parse_leading_number(progress)
        if value is None or value < 0 or value > 100:
            errors.append("Progress must be between 0 and 100")

    return errors


def validate_client(record: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    email = record.get("email")
    if not _blank(email) and email != PLACEHOLDER and not is_valid_email(email):
        errors.append("Valid email is required")

    phone = record.get("phone")
    if not _blank(phone) and phone != PLACEHOLDER and not _PHONE_RE.match(str(phone)):
        errors.append("Phone number is invalid")

    return errors
