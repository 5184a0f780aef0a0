"""
Generacion de slugs para items de Webflow.

Es la unica implementacion de la normalizacion: todo slug que se calcule o
compare en el sync debe pasar por `slugify`.
"""
from __future__ import annotations

import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9\-_]")


def slugify(name: Optional[str]) -> str:
    """
    Deriva el slug a partir del nombre visible.

    Reglas: minusculas, cada secuencia de espacios (tambien al inicio o al
    final) se reemplaza por un solo guion y se eliminan los caracteres fuera
    de [a-z0-9-_]. Nunca falla: None, "" o solo espacios retornan "".

    Ejemplo:
        slugify("Warsaw Loft")  -> "warsaw-loft"
    """
    if not name or not str(name).strip():
        return ""
    text = str(name).lower()
    text = _WHITESPACE_RE.sub("-", text)
    return _DISALLOWED_RE.sub("", text)


def disambiguate_slug(slug: str, record_id: str) -> str:
    """Agrega el id del registro origen al slug para evitar colisiones."""
    return f"{slug}-{slugify(record_id)}"
