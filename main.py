"""
Punto de entrada: Airtable -> Webflow CMS (one-way sync).

Sin flags: el comportamiento se define por variables de entorno / .env.
  - SYNC_INTERVAL_S=0  -> un solo ciclo y termina
  - SYNC_INTERVAL_S>0  -> ciclos secuenciales cada N segundos

Variables de entorno requeridas:
  - AIRTABLE_TOKEN, AIRTABLE_BASE_ID, AIRTABLE_TABLE_NAME
  - WEBFLOW_API_TOKEN, WEBFLOW_COLLECTION_ID

Codigos de salida (one-shot):
  0 ciclo limpio, 1 ciclo abortado o configuracion invalida,
  2 ciclo completado con items fallidos
"""
from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from cms_sync.application.use_cases.sync_use_cases import build_from_settings, run_forever
from cms_sync.core.config import Settings
from cms_sync.core.events import on_startup
from cms_sync.domain.entities.results import CycleSummary
from cms_sync.shared.exceptions.sync import SyncConfigError

_ROOT = Path(__file__).resolve().parent


def exit_code_for(summary: CycleSummary) -> int:
    if summary.aborted:
        return 1
    if summary.has_failures:
        return 2
    return 0


def main() -> int:
    load_dotenv(_ROOT / ".env", override=False)
    config = Settings()

    try:
        on_startup(config)
        service, webflow = build_from_settings(config)
    except SyncConfigError:
        return 1

    try:
        if config.is_one_shot:
            return exit_code_for(service.run_once())
        run_forever(service, interval_s=config.SYNC_INTERVAL_S)
    except KeyboardInterrupt:
        logger.info("Sync detenido por el usuario")
    finally:
        webflow.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
