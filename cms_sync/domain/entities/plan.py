"""
Plan de mutaciones calculado por el reconciliador.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cms_sync.domain.entities.records import MappedFields, MirrorRecord, SourceRecord


class MutationKind(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Mutation:
    """
    Una entrada del plan.

    - CREATE: source + fields (con slug)
    - UPDATE: source + mirror + target_fields (sin slug) + changed_fields
    - DELETE: mirror
    """

    kind: MutationKind
    source: Optional[SourceRecord] = None
    mirror: Optional[MirrorRecord] = None
    fields: Optional[MappedFields] = None
    target_fields: Dict[str, Any] = field(default_factory=dict)
    changed_fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def source_id(self) -> Optional[str]:
        return self.source.record_id if self.source else None

    @property
    def mirror_id(self) -> Optional[str]:
        return self.mirror.item_id if self.mirror else None

    @property
    def slug(self) -> Optional[str]:
        return self.fields.slug if self.fields else None

    def describe(self) -> str:
        """Etiqueta corta para logs."""
        if self.kind is MutationKind.DELETE:
            return f"delete {self.mirror_id} ({self.mirror.slug if self.mirror else '?'})"
        if self.kind is MutationKind.CREATE:
            return f"create {self.source_id} -> '{self.slug}'"
        return f"update {self.source_id} -> {self.mirror_id} {sorted(self.changed_fields)}"


@dataclass(frozen=True)
class MirrorLink:
    """Referencia a escribir en Airtable para un registro emparejado por slug."""

    record_id: str
    item_id: str


@dataclass(frozen=True)
class SkippedRecord:
    """Registro origen omitido por MappingError."""

    record_id: str
    cause: str


@dataclass
class MutationPlan:
    """
    Plan ordenado: creates y updates primero, deletes al final.
    """

    creates: List[Mutation] = field(default_factory=list)
    updates: List[Mutation] = field(default_factory=list)
    deletes: List[Mutation] = field(default_factory=list)
    links: List[MirrorLink] = field(default_factory=list)
    pending_publish: List[str] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)
    unchanged: int = 0

    @property
    def mutations(self) -> List[Mutation]:
        return [*self.creates, *self.updates, *self.deletes]

    @property
    def is_empty(self) -> bool:
        return not (self.creates or self.updates or self.deletes)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "creates": len(self.creates),
            "updates": len(self.updates),
            "deletes": len(self.deletes),
            "links": len(self.links),
            "pending_publish": len(self.pending_publish),
            "skipped": len(self.skipped),
            "unchanged": self.unchanged,
        }
