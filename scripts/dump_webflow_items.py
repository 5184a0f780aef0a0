"""
CLI: vuelca todos los items de la coleccion Webflow a un archivo JSON.

Util para inspeccionar los slugs de campo reales de la coleccion antes de
ajustar `table_mappings.py`.

Ejecución:
  python scripts/dump_webflow_items.py
  python scripts/dump_webflow_items.py --output webflow_data.json --staged
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from cms_sync.core.config import Settings
from cms_sync.infrastructure.external.webflow.webflow_client import WebflowApiError, WebflowClient

_REPO_ROOT = Path(__file__).resolve().parents[1]


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--output", default="webflow_data.json", help="Archivo JSON de salida.")
    parser.add_argument(
        "--staged",
        action="store_true",
        help="Lee la vista staged (incluye borradores) en lugar de la live.",
    )
    args = parser.parse_args()

    load_dotenv(_REPO_ROOT / ".env", override=False)
    config = Settings()
    if not config.WEBFLOW_API_TOKEN or not config.WEBFLOW_COLLECTION_ID:
        raise SystemExit("Faltan WEBFLOW_API_TOKEN y/o WEBFLOW_COLLECTION_ID")

    client = WebflowClient(
        api_token=config.WEBFLOW_API_TOKEN,
        collection_id=config.WEBFLOW_COLLECTION_ID,
        base_url=config.WEBFLOW_BASE_URL,
        api_version=config.WEBFLOW_API_VERSION,
        timeout_s=config.HTTP_TIMEOUT_S,
    )
    try:
        items = client.list_items(live=not args.staged)
    except WebflowApiError as e:
        logger.error(f"No se pudo leer la coleccion: {e}")
        return 1
    finally:
        client.close()

    output = Path(args.output)
    output.write_text(json.dumps({"items": items}, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"{len(items)} items guardados en {output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
