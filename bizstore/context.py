"""
===============================================================================
TARJETA CRC — bizstore/context.py (Contexto del actor autenticado)
===============================================================================

Responsabilidades:
  - Mantener el actor "actual" (quién opera el panel) usando ContextVars.
  - Permitir que el audit log atribuya acciones sin pasar el actor por todo el stack.
  - Proveer helpers mínimos: set_actor(), get_actor(), get_context_dict(), clear_context().

Colaboradores:
  - bizstore.application.audit_log: lee el actor al registrar acciones.
  - bizstore.crosscutting.logger: enriquece logs leyendo get_context_dict().
  - bizstore.cli: setea el actor a partir de argumentos / entorno.

Patrones aplicados:
  - Ambient Context (controlado y explícito).

Restricciones:
  - Solo tipos primitivos (str) para serialización segura.
  - Defaults vacíos ("") para evitar None y simplificar JSON.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

from .domain.audit import Actor

# =============================================================================
# ContextVars: cada variable representa un dato del actor autenticado
# =============================================================================

actor_id_var: ContextVar[str] = ContextVar("actor_id", default="")
actor_name_var: ContextVar[str] = ContextVar("actor_name", default="")
actor_email_var: ContextVar[str] = ContextVar("actor_email", default="")

# Origen de la acción (IP / host / "cli").
origin_var: ContextVar[str] = ContextVar("origin", default="")

_CTX_ACTOR_ID: Final[str] = "actor_id"
_CTX_ORIGIN: Final[str] = "origin"


def set_actor(actor: Actor) -> None:
    """
    Setea el actor autenticado.

    Regla:
      - Strings vacíos significan “no disponible”.
    """
    actor_id_var.set(str(actor.id or ""))
    actor_name_var.set(actor.name or "")
    actor_email_var.set(actor.email or "")
    origin_var.set(actor.origin or "")


def get_actor() -> Actor | None:
    """Devuelve el actor actual o None si no hay sesión."""
    actor_id = actor_id_var.get()
    if not actor_id:
        return None
    return Actor(
        id=actor_id,
        name=actor_name_var.get(),
        email=actor_email_var.get(),
        origin=origin_var.get(),
    )


def get_context_dict() -> dict[str, str]:
    """
    Devuelve el contexto actual como dict, omitiendo claves vacías.

    Uso típico:
      - Enriquecimiento de logs estructurados.
    """
    ctx: dict[str, str] = {}

    if val := actor_id_var.get():
        ctx[_CTX_ACTOR_ID] = val
    if val := origin_var.get():
        ctx[_CTX_ORIGIN] = val

    return ctx


def clear_context() -> None:
    """
    Limpia el actor (logout / fin de comando).
    """
    actor_id_var.set("")
    actor_name_var.set("")
    actor_email_var.set("")
    origin_var.set("")
