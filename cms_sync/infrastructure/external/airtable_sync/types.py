"""
Tipos puros del cliente Airtable.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class AirtableCredentials:
    token: str
    base_id: str


@dataclass(frozen=True)
class AirtableRecord:
    """Registro Airtable tal como lo devuelve la API."""

    record_id: str
    fields: dict[str, Any]
