"""
===============================================================================
TARJETA CRC — domain/collections.py
===============================================================================

Módulo:
    Declaración de colecciones (CollectionSpec + CollectionRegistry)

Responsabilidades:
    - Declarar por colección: defaults, campos requeridos, validador,
      orden de inserción (append / prepend), tope de items, auditoría.
    - Mantener la lista explícita de colecciones registradas (la que
      recorre el backup).
    - Proveer el registro por defecto del back office (projects, clients, ...).

Colaboradores:
    - infrastructure.repositories.record_repository: aplica defaults y hooks.
    - application.backup: recorre registry.backup_names().
    - domain.validation: validadores de projects / clients.

Notas:
    - Defaults pueden ser valores o callables sin argumentos (fechas "now").
    - Los valores mutables (listas / dicts) se copian al aplicarse.
===============================================================================
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from ..crosscutting.exceptions import UnknownCollectionError
from .clock import now_iso, today_stamp
from .validation import validate_client, validate_project

Record = dict[str, Any]
UpdateHook = Callable[[Record, Record], None]
Validator = Callable[[Record], list[str]]


@dataclass(frozen=True)
class CollectionSpec:
    """Static declaration of one collection."""

    name: str
    target_type: str
    defaults: Mapping[str, Any] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    validator: Validator | None = None
    on_update: UpdateHook | None = None
    prepend: bool = False
    max_items: int | None = None
    audited: bool = True
    in_backup: bool = True
    seed: tuple[Record, ...] = ()

    def apply_defaults(self, record: Record) -> Record:
        """Return a copy of `record` with every omitted default filled in."""
        out = dict(record)
        for key, default in self.defaults.items():
            if key in out:
                continue
            out[key] = default() if callable(default) else copy.deepcopy(default)
        return out

    def validate(self, record: Record) -> list[str]:
        errors: list[str] = []
        for name in self.required:
            value = record.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"{name} is required")
        if self.validator is not None:
            errors.extend(self.validator(record))
        return errors


class CollectionRegistry:
    """Ordered, explicit set of registered collections."""

    def __init__(self, specs: Iterable[CollectionSpec] = ()) -> None:
        self._specs: dict[str, CollectionSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: CollectionSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"collection already registered: {spec.name}")
        self._specs[spec.name] = spec

    def get(self, name: str) -> CollectionSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownCollectionError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def names(self) -> list[str]:
        return list(self._specs)

    def backup_names(self) -> list[str]:
        return [name for name, spec in self._specs.items() if spec.in_backup]

    def specs(self) -> list[CollectionSpec]:
        return list(self._specs.values())


# =============================================================================
# Hooks de actualización
# =============================================================================


def _stamp_task_completion(record: Record, changes: Record) -> None:
    """R: una tarea que pasa a Completed registra completedDate."""
    if changes.get("status") == "Completed":
        record["completedDate"] = now_iso()


def _stamp_note_modified(record: Record, changes: Record) -> None:
    record["lastModified"] = now_iso()


# =============================================================================
# Registro por defecto del back office
# =============================================================================


def default_registry(*, notifications_max_items: int = 50) -> CollectionRegistry:
    """Build the registry used by the admin panels."""
    return CollectionRegistry(
        [
            CollectionSpec(
                name="projects",
                target_type="project",
                required=("name",),
                validator=validate_project,
                defaults={
                    "client": "N/A",
                    "type": "General",
                    "location": "N/A",
                    "budget": "0 ETB",
                    "status": "Planning",
                    "progress": 0,
                    "startDate": today_stamp,
                    "description": "",
                    "category": [],
                },
            ),
            CollectionSpec(
                name="clients",
                target_type="client",
                required=("name",),
                validator=validate_client,
                defaults={
                    "email": "N/A",
                    "phone": "N/A",
                    "type": "Individual",
                    "projects": 0,
                    "value": "0 ETB",
                    "status": "Active",
                },
            ),
            CollectionSpec(
                name="team",
                target_type="team_member",
                required=("name",),
                defaults={"role": "", "email": "", "phone": "", "status": "Active"},
            ),
            CollectionSpec(
                name="inquiries",
                target_type="inquiry",
                defaults={"status": "New", "date": today_stamp},
            ),
            CollectionSpec(
                name="quotes",
                target_type="quote",
                defaults={
                    "email": "",
                    "phone": "",
                    "projectType": "General",
                    "budget": "N/A",
                    "description": "",
                    "date": today_stamp,
                    "status": "Pending",
                },
            ),
            CollectionSpec(
                name="blog",
                target_type="blog_post",
                defaults={"status": "Draft", "date": today_stamp},
            ),
            CollectionSpec(
                name="invoices",
                target_type="invoice",
                defaults={"status": "Unpaid", "date": today_stamp},
            ),
            CollectionSpec(
                name="schedule",
                target_type="schedule_event",
                defaults={"status": "Scheduled"},
            ),
            CollectionSpec(
                name="testimonials",
                target_type="testimonial",
                defaults={"status": "Pending"},
            ),
            CollectionSpec(
                name="services",
                target_type="service",
                required=("name",),
                defaults={"description": "", "status": "Active"},
            ),
            CollectionSpec(
                name="documents",
                target_type="document",
                required=("name",),
                defaults={
                    "type": "Document",
                    "size": "0 KB",
                    "uploadDate": today_stamp,
                    "category": "General",
                    "tags": [],
                    "uploadedBy": "Admin",
                },
                seed=(
                    {
                        "id": 1,
                        "name": "Project Contract - Tower.pdf",
                        "type": "Contract",
                        "size": "2.5 MB",
                        "uploadDate": "2025-12-01",
                        "category": "Legal",
                        "tags": ["contract", "tower"],
                    },
                    {
                        "id": 2,
                        "name": "Blueprint - Hospital.dwg",
                        "type": "Blueprint",
                        "size": "15.8 MB",
                        "uploadDate": "2025-11-28",
                        "category": "Design",
                        "tags": ["blueprint", "hospital"],
                    },
                ),
            ),
            CollectionSpec(
                name="tasks",
                target_type="task",
                required=("title",),
                on_update=_stamp_task_completion,
                defaults={
                    "description": "",
                    "priority": "Medium",
                    "status": "Pending",
                    "assignedTo": "Unassigned",
                    "dueDate": "",
                    "project": "",
                    "createdDate": now_iso,
                    "completedDate": None,
                },
            ),
            CollectionSpec(
                name="notes",
                target_type="note",
                required=("title",),
                on_update=_stamp_note_modified,
                defaults={
                    "content": "",
                    "category": "General",
                    "tags": [],
                    "date": now_iso,
                    "project": "",
                    "author": "Admin",
                    "lastModified": now_iso,
                },
            ),
            CollectionSpec(
                name="categories",
                target_type="category",
                required=("name",),
                defaults={
                    "description": "",
                    "color": "#6c757d",
                    "icon": "folder",
                    "count": 0,
                },
                seed=(
                    {
                        "id": 1,
                        "name": "Residential",
                        "description": "Residential construction projects",
                        "color": "#28a745",
                        "icon": "home",
                        "count": 0,
                    },
                    {
                        "id": 2,
                        "name": "Commercial",
                        "description": "Commercial buildings",
                        "color": "#007bff",
                        "icon": "building",
                        "count": 0,
                    },
                    {
                        "id": 3,
                        "name": "Industrial",
                        "description": "Industrial facilities",
                        "color": "#ffc107",
                        "icon": "industry",
                        "count": 0,
                    },
                ),
            ),
            CollectionSpec(
                name="tags",
                target_type="tag",
                required=("name",),
                defaults={"color": "#6c757d", "count": 0},
            ),
            CollectionSpec(
                name="newsletter_subscribers",
                target_type="subscriber",
                required=("email",),
                defaults={"status": "active", "subscribedAt": now_iso},
            ),
            CollectionSpec(
                name="newsletter_campaigns",
                target_type="campaign",
                required=("subject",),
                defaults={"status": "draft", "createdAt": now_iso, "recipients": 0},
            ),
            CollectionSpec(
                name="notifications",
                target_type="notification",
                required=("message",),
                prepend=True,
                max_items=notifications_max_items,
                audited=False,
                in_backup=False,
                defaults={
                    "title": "",
                    "type": "info",
                    "read": False,
                    "date": now_iso,
                    "link": "#",
                },
            ),
        ]
    )
