"""
===============================================================================
MÓDULO: Utilidades de paginación (page / per_page)
===============================================================================

Objetivo
--------
Paginación simple y consistente para listados de registros y audit log:
- offset derivado de (page, per_page), páginas 1-based
- response genérico Page[T]

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  paginate + Page[T]

Responsabilidades:
  - Cortar la página pedida (lista vacía si está fuera de rango, no error)
  - Armar metadata total / total_pages / has_next / has_prev
===============================================================================
"""

from __future__ import annotations

import math
from typing import Any, Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(description="Items de la página actual")
    page: int = Field(description="Página pedida (1-based)")
    per_page: int = Field(description="Tamaño de página")
    total: int = Field(description="Total de items antes de paginar")
    total_pages: int = Field(description="ceil(total / per_page)")
    has_next: bool = Field(description="Hay más items después de esta página")
    has_prev: bool = Field(description="Hay items antes de esta página")

    def to_dict(self) -> dict[str, Any]:
        """Forma camelCase usada por los paneles y los exports."""
        return {
            "items": list(self.items),
            "total": self.total,
            "page": self.page,
            "perPage": self.per_page,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next,
            "hasPreviousPage": self.has_prev,
        }


def paginate(items: List[T], page: int = 1, per_page: int = 20) -> Page[T]:
    """
    Devuelve la página `page` de `items`.

    - per_page < 1 => ValueError
    - page < 1 o page > total_pages => items vacío (no es error)
    """
    per_page = int(per_page)
    if per_page < 1:
        raise ValueError("per_page must be >= 1")
    page = int(page)

    total = len(items)
    total_pages = math.ceil(total / per_page)
    start = (page - 1) * per_page
    # R: un start negativo cortaría desde el final
    selected = list(items[start : start + per_page]) if page >= 1 else []

    return Page[Any](
        items=selected,
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
