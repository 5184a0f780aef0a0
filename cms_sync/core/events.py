"""
Manejadores de inicio del proceso de sincronizacion.
"""
import sys

from loguru import logger

from cms_sync.core.config import Settings, validate_settings


def configure_logging(config: Settings) -> None:
    """
    Configura los sinks de loguru.

    Reemplaza el sink por defecto para respetar LOG_LEVEL y, si LOG_FILE
    esta definido, agrega un archivo con rotacion.
    """
    logger.remove()
    logger.add(sys.stderr, level=config.LOG_LEVEL)

    if config.LOG_FILE:
        logger.add(
            config.LOG_FILE,
            rotation="50 MB",
            retention="10 days",
            level=config.LOG_LEVEL,
        )


def on_startup(config: Settings) -> None:
    """
    Inicializa logging y valida la configuracion critica.

    Raises:
        SyncConfigError: si falta alguna variable obligatoria.
    """
    configure_logging(config)
    logger.info(f"Iniciando {config.APP_NAME} v{config.APP_VERSION}")

    try:
        validate_settings(config)
    except Exception as e:
        logger.error(f"Error de configuracion: {e}")
        raise

    mode = "one-shot" if config.is_one_shot else f"cada {config.SYNC_INTERVAL_S}s"
    logger.info(
        f"Airtable '{config.AIRTABLE_TABLE_NAME}' -> Webflow coleccion "
        f"'{config.WEBFLOW_COLLECTION_ID}' ({mode}, vista={config.WEBFLOW_ITEMS_VIEW})"
    )
    if config.SYNC_DRY_RUN:
        logger.warning("SYNC_DRY_RUN activo: no se aplicaran mutaciones")
