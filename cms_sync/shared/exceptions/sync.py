"""
Excepciones del ciclo de sincronizacion Airtable -> Webflow.

Taxonomia:
- FetchError: uno de los dos lados no se pudo leer. Aborta el ciclo.
- MappingError: registro origen mal formado. Se omite ese registro.
- MutationError: fallo por item (rate limit, rechazo o transporte).
- PublishError: fallo al publicar. No revierte el create.
"""
from enum import Enum
from typing import Any, Dict, Optional

from cms_sync.shared.exceptions.base import AppException


class SyncConfigError(AppException):
    """Error de configuracion del pipeline."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="SYNC_CONFIG_ERROR", details=details)


class FetchError(AppException):
    """Excepcion cuando no se puede leer el estado completo de un lado."""

    def __init__(self, side: str, message: str):
        super().__init__(
            message=f"Lectura de {side} fallida: {message}",
            error_code="FETCH_ERROR",
            details={"side": side},
        )
        self.side = side


class MappingError(AppException):
    """Excepcion cuando un registro origen no se puede proyectar al espejo."""

    def __init__(self, record_id: str, message: str, field: Optional[str] = None):
        details = {"record_id": record_id}
        if field:
            details["field"] = field
        super().__init__(
            message=f"Registro {record_id}: {message}",
            error_code="MAPPING_ERROR",
            details=details,
        )
        self.record_id = record_id
        self.field = field


class MutationErrorKind(Enum):
    """Clase de fallo de una llamada de mutacion contra Webflow."""
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    TRANSPORT = "transport"


class MutationError(AppException):
    """
    Fallo de una llamada de mutacion.

    RATE_LIMITED y TRANSPORT son reintentables; REJECTED es permanente.
    """

    def __init__(
        self,
        kind: MutationErrorKind,
        message: str,
        status_code: Optional[int] = None,
        retry_after_s: Optional[float] = None,
    ):
        super().__init__(
            message=message,
            error_code=f"MUTATION_{kind.name}",
            details={"kind": kind.value, "status_code": status_code},
        )
        self.kind = kind
        self.status_code = status_code
        self.retry_after_s = retry_after_s

    @property
    def retryable(self) -> bool:
        return self.kind is not MutationErrorKind.REJECTED


class PublishError(AppException):
    """Excepcion cuando la publicacion de items nuevos falla."""

    def __init__(self, item_ids: list[str], cause: MutationError):
        super().__init__(
            message=f"Publicacion de {len(item_ids)} item(s) fallida: {cause.message}",
            error_code="PUBLISH_ERROR",
            details={"item_ids": list(item_ids), "kind": cause.kind.value},
        )
        self.item_ids = list(item_ids)
        self.cause = cause
