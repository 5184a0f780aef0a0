"""
Cliente mínimo de Airtable REST API (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginación por offset
- rate-limit/backoff (429, 5xx)
- actualización por lotes (máximo 10 records por request)
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Iterator, Optional
from urllib.parse import quote

import requests
from loguru import logger

from .types import AirtableCredentials, AirtableRecord

# Límite de la API para PATCH por lotes
AIRTABLE_UPDATE_BATCH_SIZE = 10


class AirtableApiError(RuntimeError):
    """Error de integración con Airtable."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AirtableClient:
    """
    Cliente HTTP de Airtable. Expone un generator que produce AirtableRecord.

    Importante:
    - No hace cast de tipos de campos: eso se decide en el mapeo.
    - Cada página se pide completa; el llamador decide si materializa.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.airtable.com/v0",
        timeout_s: float = 30,
        max_retries: int = 6,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._sleep = sleep
        self._session = session or requests.Session()

    def _table_url(self, table_name: str) -> str:
        return f"{self._base_url}/{self._creds.base_id}/{quote(table_name, safe='')}"

    def iter_records(
        self,
        *,
        table_name: str,
        fields: Optional[list[str]] = None,
        page_size: int = 100,
    ) -> Iterable[AirtableRecord]:
        """
        Itera todos los registros de la tabla, página por página ('offset').
        """
        url = self._table_url(table_name)
        offset: Optional[str] = None

        while True:
            query: list[tuple[str, Any]] = [("pageSize", page_size)]
            if offset:
                query.append(("offset", offset))
            # Airtable permite repetir "fields[]" en querystring.
            for f in fields or []:
                query.append(("fields[]", f))

            payload = self._request_json("GET", url, query=query)
            records = payload.get("records") or []

            for rec in records:
                rec_id = rec.get("id")
                if not rec_id:
                    # Caso raro; preferimos fallar temprano y visible.
                    raise AirtableApiError("Airtable devolvió un record sin 'id'")
                yield AirtableRecord(record_id=rec_id, fields=rec.get("fields") or {})

            offset = payload.get("offset")
            if not offset:
                break

    def update_records(
        self,
        *,
        table_name: str,
        updates: list[tuple[str, dict[str, Any]]],
    ) -> int:
        """
        Actualiza fields de varios records (PATCH parcial, lotes de 10).

        Returns:
            Cantidad de records actualizados.
        """
        url = self._table_url(table_name)
        updated = 0
        for batch in _chunks(updates, AIRTABLE_UPDATE_BATCH_SIZE):
            body = {"records": [{"id": rid, "fields": fields} for rid, fields in batch]}
            payload = self._request_json("PATCH", url, body=body)
            updated += len(payload.get("records") or [])
        return updated

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        query: Optional[list[tuple[str, Any]]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx y errores de conexión: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal).
        """
        headers = {
            "Authorization": f"Bearer {self._creds.token}",
            "Content-Type": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=query,
                    json=body,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                if attempt >= self._max_retries:
                    raise AirtableApiError(
                        f"Airtable sin respuesta tras {attempt} reintentos: {e}"
                    ) from e
                sleep_s = self._backoff(attempt)
                logger.debug(f"Airtable {method} error de red ({e}); reintento en {sleep_s:.2f}s")
                self._sleep(sleep_s)
                continue

            if 200 <= resp.status_code < 300:
                return resp.json()

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise AirtableApiError(
                        f"Airtable error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        status_code=resp.status_code,
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    sleep_s = self._backoff(attempt)

                logger.debug(f"Airtable {method} {resp.status_code}; reintento en {sleep_s:.2f}s")
                self._sleep(sleep_s)
                continue

            # Errores no recuperables
            raise AirtableApiError(
                f"Airtable request falló {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        raise AirtableApiError("Airtable request sin intentos disponibles")

    def _backoff(self, attempt: int) -> float:
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)


def _chunks(items: list[Any], size: int) -> Iterator[list[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]
