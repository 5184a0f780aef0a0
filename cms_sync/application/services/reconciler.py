"""
Reconciliador Airtable -> Webflow.

Calcula el plan de mutaciones a partir del estado completo de ambos lados.
Sin I/O: recibe listas ya materializadas y retorna un MutationPlan.

Emparejamiento, por prioridad:
1. Referencia guardada en Airtable (mirror_ref == item_id).
2. Slug: slug asignado del registro == slug del item (solo items no reclamados).
3. Registros sin pareja -> CREATE. Items sin pareja -> DELETE, calculados como
   diferencia de conjuntos al final, nunca sobre una coleccion que se va mutando.
"""
from __future__ import annotations

from itertools import groupby
from typing import Dict, List, Sequence, Set

from loguru import logger

from cms_sync.application.services.field_mapper import map_fields
from cms_sync.domain.entities.plan import (
    MirrorLink,
    Mutation,
    MutationKind,
    MutationPlan,
    SkippedRecord,
)
from cms_sync.domain.entities.records import (
    FieldMapping,
    MappedFields,
    MirrorRecord,
    SourceRecord,
)
from cms_sync.shared.exceptions.sync import MappingError
from cms_sync.shared.utils.slug import disambiguate_slug


def assign_slugs(
    records: Sequence[SourceRecord],
    mapped: Dict[str, MappedFields],
    ref_matches: Dict[str, MirrorRecord],
) -> Dict[str, str]:
    """
    Asigna un slug unico por registro dentro del ciclo.

    Los registros cuyos nombres normalizan al mismo slug se ordenan: primero
    el que ya esta enlazado a un item con ese slug, luego por record_id.
    El primero conserva el slug base; el resto recibe el record_id como sufijo.
    """

    def base_slug(record: SourceRecord) -> str:
        return mapped[record.record_id].slug or ""

    def owner_key(record: SourceRecord) -> tuple[int, str]:
        linked = ref_matches.get(record.record_id)
        owns = linked is not None and linked.slug == base_slug(record)
        return (0 if owns else 1, record.record_id)

    assigned: Dict[str, str] = {}
    for slug, group in groupby(sorted(records, key=base_slug), key=base_slug):
        members = sorted(group, key=owner_key)
        assigned[members[0].record_id] = slug
        if len(members) > 1:
            logger.warning(
                f"Colision de slug '{slug}' entre {[r.record_id for r in members]}; "
                f"se desambiguan {len(members) - 1} registro(s)"
            )
        for record in members[1:]:
            assigned[record.record_id] = disambiguate_slug(slug, record.record_id)
    return assigned


def build_plan(
    source_records: Sequence[SourceRecord],
    mirror_records: Sequence[MirrorRecord],
    mappings: Sequence[FieldMapping],
) -> MutationPlan:
    """
    Construye el plan de mutaciones en dos fases: primero todos los
    emparejamientos, despues creates/updates y por ultimo deletes.
    """
    plan = MutationPlan()
    mirror_by_id = {m.item_id: m for m in mirror_records}
    sources = sorted(source_records, key=lambda r: r.record_id)

    # Fase 0: proyeccion. Un registro mal formado se omite pero protege
    # de borrado al item que referencia.
    mapped: Dict[str, MappedFields] = {}
    protected: Set[str] = set()
    for record in sources:
        try:
            mapped[record.record_id] = map_fields(record, mappings)
        except MappingError as e:
            logger.warning(f"Registro omitido: {e.message}")
            plan.skipped.append(SkippedRecord(record_id=record.record_id, cause=e.message))
            if record.mirror_ref in mirror_by_id:
                protected.add(record.mirror_ref)

    mappable = [r for r in sources if r.record_id in mapped]

    # Fase 1: por referencia
    matches: Dict[str, MirrorRecord] = {}
    claimed: Set[str] = set()
    for record in mappable:
        ref = record.mirror_ref
        if not ref:
            continue
        if ref not in mirror_by_id:
            logger.info(f"Referencia obsoleta en {record.record_id}: item {ref} no existe en Webflow")
            continue
        if ref in claimed or ref in protected:
            logger.warning(f"Item {ref} ya reclamado; {record.record_id} se empareja por slug")
            continue
        matches[record.record_id] = mirror_by_id[ref]
        claimed.add(ref)

    slugs = assign_slugs(mappable, mapped, matches)

    # Fase 2: por slug, solo contra items no reclamados ni protegidos
    mirror_by_slug = {
        m.slug: m
        for m in mirror_records
        if m.slug and m.item_id not in claimed and m.item_id not in protected
    }
    for record in mappable:
        if record.record_id in matches:
            continue
        candidate = mirror_by_slug.get(slugs[record.record_id])
        if candidate is None or candidate.item_id in claimed:
            continue
        matches[record.record_id] = candidate
        claimed.add(candidate.item_id)
        plan.links.append(MirrorLink(record_id=record.record_id, item_id=candidate.item_id))

    kept_slugs = {
        mirror_by_id[item_id].slug for item_id in claimed | protected
    }

    # Creates / updates
    for record in mappable:
        fields = mapped[record.record_id]
        mirror = matches.get(record.record_id)

        if mirror is None:
            slug = slugs[record.record_id]
            if slug in kept_slugs:
                slug = disambiguate_slug(slug, record.record_id)
            plan.creates.append(
                Mutation(kind=MutationKind.CREATE, source=record, fields=fields.with_slug(slug))
            )
            continue

        changed = fields.diff(mirror.fields)
        if changed:
            plan.updates.append(
                Mutation(
                    kind=MutationKind.UPDATE,
                    source=record,
                    mirror=mirror,
                    fields=fields,
                    target_fields=fields.without_slug(),
                    changed_fields=changed,
                )
            )
        else:
            plan.unchanged += 1

        if not mirror.published and not mirror.draft and not mirror.archived:
            plan.pending_publish.append(mirror.item_id)

    # Deletes: diferencia de conjuntos sobre el resultado final
    unmatched: List[MirrorRecord] = sorted(
        (m for m in mirror_records if m.item_id not in claimed and m.item_id not in protected),
        key=lambda m: m.item_id,
    )
    plan.deletes.extend(Mutation(kind=MutationKind.DELETE, mirror=m) for m in unmatched)

    logger.info(f"Plan calculado: {plan.summary}")
    return plan
