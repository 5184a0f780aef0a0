"""
Registros normalizados de ambos lados del sync.

- SourceRecord: fila de la tabla Airtable (autoritativa).
- MirrorRecord: item de la coleccion Webflow.
- MappedFields: proyeccion de un SourceRecord al vocabulario de Webflow.
- FieldMapping: una entrada de la tabla estatica de mapeo.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

SLUG_FIELD = "slug"
NAME_FIELD = "name"

Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """
    Define el mapeo de un campo Airtable a un campo de Webflow.

    - source_field: nombre del field en Airtable
    - mirror_field: slug del campo en la coleccion Webflow
    - transform: funcion opcional aplicada antes de escribir el valor
    - required: si True, el valor debe existir (si falta se levanta MappingError)
    - derived: el valor no se copia, se calcula (solo aplica al slug)
    """

    source_field: str
    mirror_field: str
    transform: Optional[Transform] = None
    required: bool = False
    derived: bool = False


@dataclass(frozen=True)
class SourceRecord:
    """Registro Airtable normalizado."""

    record_id: str
    fields: Dict[str, Any]
    mirror_ref: Optional[str] = None

    def get(self, source_field: str) -> Any:
        return self.fields.get(source_field)


@dataclass(frozen=True)
class MirrorRecord:
    """
    Item de Webflow normalizado.

    `published` es siempre True cuando se lee la vista live.
    """

    item_id: str
    slug: str
    fields: Dict[str, Any]
    archived: bool = False
    draft: bool = False
    published: bool = True


@dataclass(frozen=True)
class MappedFields:
    """
    Campos de Webflow proyectados desde un registro origen.

    Inmutable: se construye una vez por registro y ciclo.
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def slug(self) -> Optional[str]:
        return self.values.get(SLUG_FIELD)

    @property
    def name(self) -> Optional[str]:
        return self.values.get(NAME_FIELD)

    def with_slug(self, slug: str) -> "MappedFields":
        data = dict(self.values)
        data[SLUG_FIELD] = slug
        return MappedFields(data)

    def without_slug(self) -> Dict[str, Any]:
        """Payload de update: nunca incluye el slug."""
        return {k: v for k, v in self.values.items() if k != SLUG_FIELD}

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.values)

    def diff(self, mirror_fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Campos (sin slug) cuyo valor difiere del item en Webflow.

        Solo se comparan las claves presentes en esta proyeccion: un campo
        vacio en origen se omite y no se compara.
        """
        return {
            k: v
            for k, v in self.without_slug().items()
            if mirror_fields.get(k) != v
        }
