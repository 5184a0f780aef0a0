"""
Lectura completa de la tabla Airtable y escritura de la referencia al item
de Webflow ("Webflow Item ID").
"""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from cms_sync.domain.entities.records import FieldMapping, SourceRecord
from cms_sync.shared.exceptions.sync import FetchError

from .airtable_client import AIRTABLE_UPDATE_BATCH_SIZE, AirtableApiError, AirtableClient
from .types import AirtableRecord


class AirtableSourceReader:
    """
    Lado origen del sync.

    `read_all()` materializa la tabla completa: el reconciliador necesita el
    estado total, una lectura parcial produciria deletes falsos.
    """

    def __init__(
        self,
        client: AirtableClient,
        *,
        table_name: str,
        mappings: Sequence[FieldMapping],
        mirror_ref_field: str = "Webflow Item ID",
    ) -> None:
        self._client = client
        self._table_name = table_name
        self._mappings = list(mappings)
        self._mirror_ref_field = mirror_ref_field

    def _requested_fields(self) -> list[str]:
        fields = [m.source_field for m in self._mappings if not m.derived]
        return fields + [self._mirror_ref_field]

    def _normalize(self, record: AirtableRecord) -> SourceRecord:
        raw_ref = record.fields.get(self._mirror_ref_field)
        mirror_ref: Optional[str] = str(raw_ref).strip() if raw_ref else None
        fields = {k: v for k, v in record.fields.items() if k != self._mirror_ref_field}
        return SourceRecord(record_id=record.record_id, fields=fields, mirror_ref=mirror_ref or None)

    def read_all(self) -> list[SourceRecord]:
        """
        Lee todos los registros de la tabla.

        Raises:
            FetchError: si Airtable no responde o responde con error.
        """
        try:
            records = [
                self._normalize(rec)
                for rec in self._client.iter_records(
                    table_name=self._table_name,
                    fields=self._requested_fields(),
                )
            ]
        except AirtableApiError as e:
            raise FetchError("airtable", str(e)) from e

        logger.info(f"Airtable '{self._table_name}': {len(records)} registros leidos")
        return records

    def write_mirror_refs(self, refs: Sequence[tuple[str, str]]) -> list[str]:
        """
        Escribe el id de Webflow en cada registro (record_id, item_id).

        Un lote fallido no detiene los siguientes.

        Returns:
            record_ids que no se pudieron actualizar.
        """
        failed: list[str] = []
        refs = list(refs)
        for start in range(0, len(refs), AIRTABLE_UPDATE_BATCH_SIZE):
            batch = refs[start:start + AIRTABLE_UPDATE_BATCH_SIZE]
            updates = [(record_id, {self._mirror_ref_field: item_id}) for record_id, item_id in batch]
            try:
                self._client.update_records(table_name=self._table_name, updates=updates)
            except AirtableApiError as e:
                ids = [record_id for record_id, _ in batch]
                logger.warning(f"No se pudo escribir '{self._mirror_ref_field}' en {ids}: {e}")
                failed.extend(ids)
        return failed
