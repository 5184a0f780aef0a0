"""
Cliente para la API v2 de Webflow CMS (una coleccion).

- Lecturas paginadas (offset/limit) con backoff propio para 429/5xx.
- Mutaciones en un solo intento: los errores se clasifican como
  MutationError y el reintento lo decide el MutationExecutor.
- create/update/delete escriben la copia staged; el sitio live solo
  cambia con publish_items / unpublish_item.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from loguru import logger

from cms_sync.shared.exceptions.sync import MutationError, MutationErrorKind

WEBFLOW_PAGE_LIMIT = 100


class WebflowApiError(RuntimeError):
    """Error de lectura contra Webflow."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def classify_response(response: httpx.Response) -> MutationError:
    """
    Traduce una respuesta no exitosa a MutationError.

    - 429 -> RATE_LIMITED
    - 5xx -> TRANSPORT
    - resto de 4xx (validacion, conflicto de slug, not found) -> REJECTED
    """
    status = response.status_code
    message = f"Webflow {status}: {response.text[:500]}"
    if status == 429:
        return MutationError(
            MutationErrorKind.RATE_LIMITED,
            message,
            status_code=status,
            retry_after_s=_retry_after_seconds(response),
        )
    if status >= 500:
        return MutationError(MutationErrorKind.TRANSPORT, message, status_code=status)
    return MutationError(MutationErrorKind.REJECTED, message, status_code=status)


class WebflowClient:
    """
    Cliente HTTP de una coleccion de Webflow.

    Todas las llamadas llevan Authorization Bearer y accept-version.
    """

    def __init__(
        self,
        *,
        api_token: str,
        collection_id: str,
        base_url: str = "https://api.webflow.com/v2",
        api_version: str = "1.0.0",
        timeout_s: float = 30.0,
        max_retries: int = 4,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._collection_id = collection_id
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/collections/{collection_id}",
            headers={
                "Authorization": f"Bearer {api_token}",
                "accept-version": api_version,
                "Content-Type": "application/json",
            },
            timeout=timeout_s,
            transport=transport,
        )

    @property
    def collection_id(self) -> str:
        return self._collection_id

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Lecturas
    # ------------------------------------------------------------------

    def list_items(self, *, live: bool = True) -> List[Dict[str, Any]]:
        """
        Lista todos los items de la coleccion (vista live o staged).

        Raises:
            WebflowApiError: si una pagina falla tras los reintentos.
        """
        path = "/items/live" if live else "/items"
        items: List[Dict[str, Any]] = []
        offset = 0

        while True:
            payload = self._get_json(path, params={"offset": offset, "limit": WEBFLOW_PAGE_LIMIT})
            page = payload.get("items") or []
            items.extend(page)

            total = (payload.get("pagination") or {}).get("total")
            offset += len(page)
            if not page or (total is not None and offset >= total):
                break
            if total is None and len(page) < WEBFLOW_PAGE_LIMIT:
                break

        return items

    def _get_json(self, path: str, *, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET con backoff para 429/5xx y errores de red."""
        for attempt in range(self._max_retries + 1):
            try:
                resp = self._client.get(path, params=params)
            except httpx.TransportError as e:
                if attempt >= self._max_retries:
                    raise WebflowApiError(f"Webflow sin respuesta tras {attempt} reintentos: {e}") from e
                self._sleep(self._backoff(attempt))
                continue

            if resp.is_success:
                return resp.json()

            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt >= self._max_retries:
                    raise WebflowApiError(
                        f"Webflow error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        status_code=resp.status_code,
                    )
                sleep_s = _retry_after_seconds(resp) or self._backoff(attempt)
                logger.debug(f"Webflow GET {path} {resp.status_code}; reintento en {sleep_s:.2f}s")
                self._sleep(sleep_s)
                continue

            raise WebflowApiError(
                f"Webflow request falló {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        raise WebflowApiError("Webflow request sin intentos disponibles")

    def _backoff(self, attempt: int) -> float:
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)

    # ------------------------------------------------------------------
    # Mutaciones (un intento)
    # ------------------------------------------------------------------

    def _send(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            resp = self._client.request(method, path, json=body)
        except httpx.TransportError as e:
            raise MutationError(MutationErrorKind.TRANSPORT, f"Webflow {method} {path}: {e}") from e
        if not resp.is_success:
            raise classify_response(resp)
        return resp

    def create_item(
        self,
        field_data: Dict[str, Any],
        *,
        is_archived: bool = False,
        is_draft: bool = False,
    ) -> Dict[str, Any]:
        body = {"isArchived": is_archived, "isDraft": is_draft, "fieldData": field_data}
        return self._send("POST", "/items", body).json()

    def update_item(self, item_id: str, field_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("PATCH", f"/items/{item_id}", {"fieldData": field_data}).json()

    def delete_item(self, item_id: str) -> None:
        self._send("DELETE", f"/items/{item_id}")

    def unpublish_item(self, item_id: str) -> None:
        """Quita el item del sitio publicado (la copia staged no cambia)."""
        self._send("DELETE", f"/items/{item_id}/live")

    def publish_items(self, item_ids: List[str]) -> Dict[str, Any]:
        resp = self._send("POST", "/items/publish", {"itemIds": list(item_ids)})
        return resp.json() if resp.content else {}
