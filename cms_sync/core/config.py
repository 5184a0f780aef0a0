"""
Configuracion central del sync.
Gestiona variables de entorno (y .env) para Airtable, Webflow y el ciclo.
"""
from typing import List, Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings

from cms_sync.shared.exceptions.sync import SyncConfigError


class Settings(BaseSettings):
    """
    Clase de configuracion del sync.
    Lee variables de entorno y proporciona valores por defecto.

    Credenciales e identificadores de coleccion no tienen default util:
    se validan con `validate_settings()` antes del primer ciclo.
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Airtable -> Webflow CMS Sync")
    APP_VERSION: str = Field(default="1.0.0")

    # Airtable (origen)
    AIRTABLE_TOKEN: str = Field(default="")
    AIRTABLE_BASE_ID: str = Field(default="")
    AIRTABLE_TABLE_NAME: str = Field(default="")
    AIRTABLE_MIRROR_REF_FIELD: str = Field(default="Webflow Item ID")
    AIRTABLE_BASE_URL: str = Field(default="https://api.airtable.com/v0")

    # Webflow (espejo)
    WEBFLOW_API_TOKEN: str = Field(default="")
    WEBFLOW_COLLECTION_ID: str = Field(default="")
    WEBFLOW_BASE_URL: str = Field(default="https://api.webflow.com/v2")
    WEBFLOW_API_VERSION: str = Field(default="1.0.0")
    # 'live' lee solo items publicados; 'staged' incluye borradores y no publicados
    WEBFLOW_ITEMS_VIEW: Literal["live", "staged"] = Field(default="live")
    WEBFLOW_PUBLISH_NEW_ITEMS: bool = Field(default=True)

    # Ciclo de sincronizacion
    SYNC_INTERVAL_S: float = Field(default=0.0)
    SYNC_MAX_CONCURRENCY: int = Field(default=4, ge=1)
    SYNC_CYCLE_TIMEOUT_S: float = Field(default=600.0, gt=0)
    SYNC_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    SYNC_MIN_BACKOFF_S: float = Field(default=0.8, ge=0)
    SYNC_MAX_BACKOFF_S: float = Field(default=20.0, ge=0)
    SYNC_DRY_RUN: bool = Field(default=False)

    HTTP_TIMEOUT_S: float = Field(default=30.0, gt=0)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="")

    @computed_field
    @property
    def is_one_shot(self) -> bool:
        """Indica si se ejecuta un solo ciclo (sin intervalo)."""
        return self.SYNC_INTERVAL_S <= 0

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


REQUIRED_SETTINGS: List[str] = [
    "AIRTABLE_TOKEN",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_TABLE_NAME",
    "WEBFLOW_API_TOKEN",
    "WEBFLOW_COLLECTION_ID",
]


def validate_settings(config: Settings) -> None:
    """
    Valida que la configuracion critica este presente.

    Raises:
        SyncConfigError: con la lista completa de variables faltantes.
    """
    missing = [name for name in REQUIRED_SETTINGS if not getattr(config, name)]
    if missing:
        raise SyncConfigError(
            f"Faltan variables de entorno obligatorias: {', '.join(missing)}",
            details={"missing": missing},
        )
    if config.SYNC_MIN_BACKOFF_S > config.SYNC_MAX_BACKOFF_S:
        raise SyncConfigError(
            "SYNC_MIN_BACKOFF_S no puede ser mayor que SYNC_MAX_BACKOFF_S"
        )


def get_settings() -> Settings:
    """Construye la configuracion leyendo el entorno actual."""
    return Settings()
