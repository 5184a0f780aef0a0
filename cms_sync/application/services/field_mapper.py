"""
Proyeccion de registros Airtable al vocabulario de campos de Webflow.

Sin I/O: funciones puras sobre SourceRecord + tabla de mapeo.
"""
from __future__ import annotations

from typing import Any, Sequence

from cms_sync.domain.entities.records import (
    FieldMapping,
    MappedFields,
    NAME_FIELD,
    SLUG_FIELD,
    SourceRecord,
)
from cms_sync.shared.exceptions.sync import MappingError, SyncConfigError
from cms_sync.shared.utils.slug import slugify


def is_empty(value: Any) -> bool:
    """None, strings en blanco y colecciones vacias cuentan como vacios; 0 y False no."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def validate_field_mappings(mappings: Sequence[FieldMapping]) -> None:
    """
    Valida la tabla de mapeo al arranque (no por registro).

    Reglas:
    - mapeo de 'name' presente y requerido
    - exactamente un mapeo derivado y es el de 'slug'
    - sin fields origen ni campos destino duplicados
    """
    by_target = [m.mirror_field for m in mappings]
    by_source = [m.source_field for m in mappings]

    duplicated_targets = sorted({t for t in by_target if by_target.count(t) > 1})
    if duplicated_targets:
        raise SyncConfigError(f"Campos Webflow duplicados en el mapeo: {duplicated_targets}")
    duplicated_sources = sorted({s for s in by_source if by_source.count(s) > 1})
    if duplicated_sources:
        raise SyncConfigError(f"Fields Airtable duplicados en el mapeo: {duplicated_sources}")

    name_mapping = next((m for m in mappings if m.mirror_field == NAME_FIELD), None)
    if name_mapping is None or not name_mapping.required:
        raise SyncConfigError(f"El mapeo debe incluir '{NAME_FIELD}' como requerido")

    derived = [m for m in mappings if m.derived]
    if len(derived) != 1 or derived[0].mirror_field != SLUG_FIELD:
        raise SyncConfigError(f"El mapeo debe tener un unico campo derivado '{SLUG_FIELD}'")


def map_fields(record: SourceRecord, mappings: Sequence[FieldMapping]) -> MappedFields:
    """
    Mapea un SourceRecord a MappedFields.

    Reglas:
    - Fields presentes y no vacios se copian tal cual (aplicando transform) al campo Webflow
    - Fields vacios o ausentes se omiten, nunca se escriben como vacios
    - El slug siempre se recalcula desde el nombre
    - Falta de un field requerido -> MappingError
    """
    values: dict[str, Any] = {}

    for m in mappings:
        if m.derived:
            continue

        raw = record.get(m.source_field)
        if not is_empty(raw) and m.transform:
            try:
                raw = m.transform(raw)
            except (ValueError, TypeError) as e:
                raise MappingError(
                    record.record_id,
                    f"valor invalido en '{m.source_field}': {e}",
                    field=m.source_field,
                ) from e

        if is_empty(raw):
            if m.required:
                raise MappingError(
                    record.record_id,
                    f"falta field requerido '{m.source_field}'",
                    field=m.source_field,
                )
            continue

        values[m.mirror_field] = raw

    slug = slugify(values.get(NAME_FIELD))
    if not slug:
        raise MappingError(
            record.record_id,
            f"el nombre '{values.get(NAME_FIELD)}' no produce un slug valido",
            field=NAME_FIELD,
        )
    values[SLUG_FIELD] = slug
    return MappedFields(values)
