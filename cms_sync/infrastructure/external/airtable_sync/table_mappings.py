"""
Mapeo estatico Airtable -> Webflow para la tabla de ofertas.

Este es el punto para controlar:
- que fields de Airtable se envian a Webflow
- con que slug de campo se escriben en la coleccion
- como se transforman los valores antes de compararlos/enviarlos

Los fields de Airtable que no aparecen aqui se descartan.
El slug no se copia nunca: se deriva de Name (ver `slugify`).
"""

from __future__ import annotations

from typing import Any, List, Optional

from cms_sync.domain.entities.records import FieldMapping, NAME_FIELD, SLUG_FIELD


def first_attachment_url(value: Any) -> Optional[str]:
    """
    Normaliza 'Photo URL': acepta un string URL o un campo attachment de
    Airtable (lista de dicts con 'url') y retorna la primera URL.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict) and item.get("url"):
                return str(item["url"])
            if isinstance(item, str) and item.strip():
                return item.strip()
        return None
    if isinstance(value, dict) and value.get("url"):
        return str(value["url"])
    raise ValueError(f"valor de imagen no soportado: {type(value).__name__}")


def to_number(value: Any) -> Any:
    """Convierte strings numericos ("1 200,50") a numero; deja numeros tal cual."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip().replace(" ", "").replace(",", ".")
    if not text:
        return None
    number = float(text)
    return int(number) if number.is_integer() else number


def get_listing_field_mappings() -> List[FieldMapping]:
    """
    Retorna la tabla de mapeo de la coleccion de ofertas.

    IMPORTANTE: los mirror_field son los slugs de campo de la coleccion
    Webflow, no sus nombres visibles.
    """
    return [
        FieldMapping(source_field="Name", mirror_field=NAME_FIELD, required=True),
        FieldMapping(source_field="City", mirror_field="city"),
        FieldMapping(source_field="Price", mirror_field="price", transform=to_number),
        FieldMapping(source_field="Description", mirror_field="description"),
        FieldMapping(source_field="Building area", mirror_field="building-area", transform=to_number),
        FieldMapping(source_field="Plot area", mirror_field="plot-area", transform=to_number),
        FieldMapping(source_field="Category", mirror_field="category"),
        FieldMapping(source_field="Photo URL", mirror_field="photo", transform=first_attachment_url),
        FieldMapping(source_field="Slug", mirror_field=SLUG_FIELD, derived=True),
    ]
