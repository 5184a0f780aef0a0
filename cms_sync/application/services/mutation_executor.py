"""
Ejecutor de mutaciones contra Webflow con reintentos.

- RATE_LIMITED y TRANSPORT: backoff exponencial (respeta Retry-After) hasta
  `max_attempts` intentos.
- REJECTED: fallo permanente del item, sin reintento.
- Cada mutacion es independiente: un fallo nunca detiene a las demas.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, TypeVar

from loguru import logger

from cms_sync.domain.entities.plan import Mutation, MutationKind
from cms_sync.domain.entities.results import MutationResult, PublishResult, RetryAttempt
from cms_sync.shared.exceptions.sync import MutationError, MutationErrorKind, PublishError

T = TypeVar("T")

PUBLISH_BATCH_SIZE = 100


class MirrorWriter(Protocol):
    """Operaciones de escritura que el ejecutor necesita del espejo."""

    def create_item(
        self, field_data: Dict[str, Any], *, is_archived: bool = False, is_draft: bool = False
    ) -> Dict[str, Any]: ...

    def update_item(self, item_id: str, field_data: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete_item(self, item_id: str) -> None: ...

    def unpublish_item(self, item_id: str) -> None: ...
    def publish_items(self, item_ids: List[str]) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    min_backoff_s: float = 0.8
    max_backoff_s: float = 20.0

    def backoff(self, attempt: int) -> float:
        """Espera antes del reintento `attempt` (0-based): exponencial + 15% de jitter."""
        base = min(self.max_backoff_s, self.min_backoff_s * (2**attempt))
        return base + (0.15 * base)


class MutationExecutor:
    """
    Aplica una mutacion del plan y reporta el resultado por item.
    """

    def __init__(
        self,
        writer: MirrorWriter,
        *,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._writer = writer
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    def _with_retry(
        self, label: str, call: Callable[[], T]
    ) -> Tuple[Optional[T], int, List[RetryAttempt], Optional[MutationError]]:
        """
        Ejecuta `call` reintentando errores reintentables.

        Returns:
            (valor, intentos, reintentos, error final o None)
        """
        retries: List[RetryAttempt] = []
        attempt = 0
        while True:
            attempt += 1
            try:
                return call(), attempt, retries, None
            except MutationError as e:
                if not e.retryable or attempt >= self._policy.max_attempts:
                    return None, attempt, retries, e

                sleep_s = e.retry_after_s if e.retry_after_s is not None else self._policy.backoff(attempt - 1)
                retries.append(
                    RetryAttempt(attempt=attempt, kind=e.kind.value, message=e.message, sleep_s=sleep_s)
                )
                logger.info(
                    f"{label}: {e.kind.value} en intento {attempt}/{self._policy.max_attempts}; "
                    f"reintento en {sleep_s:.2f}s"
                )
                self._sleep(sleep_s)

    def _apply(self, mutation: Mutation) -> Optional[str]:
        if mutation.kind is MutationKind.CREATE:
            created = self._writer.create_item(
                mutation.fields.as_dict(), is_archived=False, is_draft=False
            )
            item_id = (created or {}).get("id")
            if not item_id:
                raise MutationError(MutationErrorKind.REJECTED, "Webflow no devolvio id del item creado")
            return str(item_id)

        if mutation.kind is MutationKind.UPDATE:
            self._writer.update_item(mutation.mirror_id, dict(mutation.target_fields))
            return mutation.mirror_id

        # Borrar la copia staged no retira el item del sitio: primero se despublica
        if mutation.mirror.published:
            self._ignore_not_found(self._writer.unpublish_item, mutation.mirror_id)
        self._ignore_not_found(self._writer.delete_item, mutation.mirror_id)
        return mutation.mirror_id

    @staticmethod
    def _ignore_not_found(call: Callable[[str], None], item_id: str) -> None:
        """Borrado idempotente: si el item ya no existe, el objetivo se cumplio."""
        try:
            call(item_id)
        except MutationError as e:
            if e.kind is MutationErrorKind.REJECTED and e.status_code == 404:
                logger.info(f"Item {item_id} ya no existia en Webflow")
                return
            raise

    def execute(self, mutation: Mutation) -> MutationResult:
        """Aplica una mutacion con reintentos y retorna su resultado."""
        label = mutation.describe()
        mirror_id, attempts, retries, error = self._with_retry(label, lambda: self._apply(mutation))

        if error is not None:
            logger.warning(f"Fallo {label} tras {attempts} intento(s): {error.message}")
            return MutationResult(
                mutation=mutation, success=False, attempts=attempts, retries=retries, error=error
            )

        logger.debug(f"OK {label} (intentos={attempts})")
        return MutationResult(
            mutation=mutation, success=True, mirror_id=mirror_id, attempts=attempts, retries=retries
        )

    def publish(self, item_ids: List[str]) -> PublishResult:
        """
        Publica items en lotes. Un lote fallido se reporta como PublishError
        y no afecta a los items ya creados.
        """
        result = PublishResult()
        ids = list(dict.fromkeys(item_ids))
        for start in range(0, len(ids), PUBLISH_BATCH_SIZE):
            batch = ids[start:start + PUBLISH_BATCH_SIZE]
            _, _, retries, error = self._with_retry(
                f"publish {len(batch)} item(s)", lambda: self._writer.publish_items(batch)
            )
            result.retries.extend(retries)
            if error is not None:
                publish_error = PublishError(batch, error)
                logger.warning(publish_error.message)
                result.failed.extend(batch)
                result.errors.append(publish_error.message)
                continue
            result.published.extend(batch)
        return result
