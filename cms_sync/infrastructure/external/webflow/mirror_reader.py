"""
Lectura completa y normalizada de la coleccion de Webflow.

Las escrituras del sync tocan la copia staged de cada item y el sitio live
solo cambia al publicar. Por eso el lector siempre ve todos los items
existentes, publicados o no:

- vista live: los items publicados se comparan con su copia live; los que
  solo existen en staged (creados o con publish fallido) se agregan como
  no publicados para que su referencia siga emparejando.
- vista staged: todos los items con sus valores staged; `published` indica
  si la copia live esta al dia (lastPublished >= lastUpdated).
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from cms_sync.domain.entities.records import MirrorRecord, SLUG_FIELD
from cms_sync.shared.exceptions.sync import FetchError

from .webflow_client import WebflowApiError, WebflowClient


def normalize_field_value(value: Any) -> Any:
    """Campos imagen/archivo llegan como {"url": ..., "fileId": ...}: se comparan por URL."""
    if isinstance(value, dict) and "url" in value:
        return value.get("url")
    return value


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def is_live_up_to_date(item: Dict[str, Any]) -> bool:
    """Un item staged esta publicado si se publico despues de su ultimo cambio."""
    last_published = _parse_timestamp(item.get("lastPublished"))
    if last_published is None:
        return False
    last_updated = _parse_timestamp(item.get("lastUpdated"))
    return last_updated is None or last_published >= last_updated


def to_mirror_record(item: Dict[str, Any], *, live: bool) -> MirrorRecord:
    field_data = item.get("fieldData") or {}
    fields = {k: normalize_field_value(v) for k, v in field_data.items()}
    return MirrorRecord(
        item_id=str(item["id"]),
        slug=str(fields.get(SLUG_FIELD) or ""),
        fields=fields,
        archived=bool(item.get("isArchived", False)),
        draft=bool(item.get("isDraft", False)),
        published=True if live else is_live_up_to_date(item),
    )


class WebflowMirrorReader:
    """
    Lado espejo del sync.

    Materializa todos los items: una lectura parcial nunca llega al
    reconciliador (se convierte en FetchError).
    """

    def __init__(self, client: WebflowClient, *, view: str = "live") -> None:
        self._client = client
        self._live = view == "live"

    def _read_live(self) -> List[MirrorRecord]:
        records = [to_mirror_record(item, live=True) for item in self._client.list_items(live=True)]
        live_ids = {r.item_id for r in records}
        staged_only = [
            replace(to_mirror_record(item, live=False), published=False)
            for item in self._client.list_items(live=False)
            if str(item["id"]) not in live_ids
        ]
        if staged_only:
            logger.info(f"Webflow: {len(staged_only)} item(s) sin publicar en la vista live")
        return records + staged_only

    def read_all(self) -> List[MirrorRecord]:
        try:
            if self._live:
                records = self._read_live()
            else:
                records = [
                    to_mirror_record(item, live=False)
                    for item in self._client.list_items(live=False)
                ]
        except WebflowApiError as e:
            raise FetchError("webflow", str(e)) from e
        except KeyError as e:
            raise FetchError("webflow", f"item sin campo {e}") from e

        view = "live" if self._live else "staged"
        logger.info(f"Webflow '{self._client.collection_id}' ({view}): {len(records)} items leidos")
        return records
