"""
Caso de uso: ciclo completo de sincronizacion Airtable -> Webflow.

Secuencia de un ciclo:
1. Lee Airtable y Webflow en paralelo (ambas lecturas deben completar).
2. Calcula el plan (creates/updates/deletes).
3. Ejecuta creates y updates en paralelo acotado; despues los deletes.
4. Escribe en Airtable el id de Webflow de los items creados/enlazados.
5. Publica los items creados, los actualizados y los pendientes de publicar.
6. Retorna y loguea un CycleSummary.

Un fallo de lectura aborta el ciclo sin emitir ninguna mutacion.
"""
from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from cms_sync.application.services.field_mapper import validate_field_mappings
from cms_sync.application.services.mutation_executor import MutationExecutor, RetryPolicy
from cms_sync.application.services.reconciler import build_plan
from cms_sync.core.config import Settings
from cms_sync.domain.entities.plan import Mutation, MutationKind
from cms_sync.domain.entities.records import FieldMapping, MirrorRecord, SourceRecord
from cms_sync.domain.entities.results import CycleSummary, FailedItem, MutationResult
from cms_sync.infrastructure.blocking_executor import run_blocking
from cms_sync.infrastructure.external.airtable_sync.airtable_client import AirtableClient
from cms_sync.infrastructure.external.airtable_sync.source_reader import AirtableSourceReader
from cms_sync.infrastructure.external.airtable_sync.table_mappings import get_listing_field_mappings
from cms_sync.infrastructure.external.airtable_sync.types import AirtableCredentials
from cms_sync.infrastructure.external.webflow.mirror_reader import WebflowMirrorReader
from cms_sync.infrastructure.external.webflow.webflow_client import WebflowClient
from cms_sync.shared.exceptions.sync import FetchError, MutationError, MutationErrorKind


class SourceSide(Protocol):
    def read_all(self) -> List[SourceRecord]: ...

    def write_mirror_refs(self, refs: Sequence[Tuple[str, str]]) -> List[str]: ...


class MirrorSide(Protocol):
    def read_all(self) -> List[MirrorRecord]: ...


class AirtableToWebflowSync:
    """
    Orquestador del ciclo de sincronizacion.

    Un solo ciclo a la vez por instancia: si se invoca mientras otro corre,
    retorna un resumen abortado sin tocar nada.
    """

    def __init__(
        self,
        *,
        source: SourceSide,
        mirror: MirrorSide,
        executor: MutationExecutor,
        mappings: Sequence[FieldMapping],
        max_concurrency: int = 4,
        cycle_timeout_s: float = 600.0,
        publish_new_items: bool = True,
        dry_run: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        validate_field_mappings(mappings)
        self._source = source
        self._mirror = mirror
        self._executor = executor
        self._mappings = list(mappings)
        self._max_concurrency = max_concurrency
        self._cycle_timeout_s = cycle_timeout_s
        self._publish_new_items = publish_new_items
        self._dry_run = dry_run
        self._clock = clock
        self._cycle_lock = threading.Lock()

    async def run_cycle(self) -> CycleSummary:
        """Ejecuta un ciclo completo y retorna su resumen."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Ya hay un ciclo de sync en ejecucion. Se omite este.")
            return CycleSummary.aborted_with("ciclo ya en ejecucion")

        started = self._clock()
        try:
            summary = await self._run_cycle(deadline=started + self._cycle_timeout_s)
        finally:
            self._cycle_lock.release()

        summary.duration_s = round(self._clock() - started, 3)
        self._log_summary(summary)
        return summary

    def run_once(self) -> CycleSummary:
        """Version sincrona de `run_cycle` (crea su propio event loop)."""
        return asyncio.run(self.run_cycle())

    async def _read_both(self) -> Tuple[List[SourceRecord], List[MirrorRecord]]:
        results = await asyncio.gather(
            run_blocking(self._source.read_all),
            run_blocking(self._mirror.read_all),
            return_exceptions=True,
        )
        fetch_errors = []
        for result in results:
            if isinstance(result, FetchError):
                fetch_errors.append(result)
            elif isinstance(result, BaseException):
                raise result
        if fetch_errors:
            raise fetch_errors[0] if len(fetch_errors) == 1 else FetchError(
                "airtable+webflow", "; ".join(e.message for e in fetch_errors)
            )
        source_records, mirror_records = results
        return source_records, mirror_records

    async def _run_cycle(self, *, deadline: float) -> CycleSummary:
        logger.info("Iniciando ciclo de sync Airtable -> Webflow...")
        try:
            source_records, mirror_records = await self._read_both()
        except FetchError as e:
            logger.error(f"Ciclo abortado antes de mutar: {e.message}")
            return CycleSummary.aborted_with(e.message)

        plan = build_plan(source_records, mirror_records, self._mappings)
        summary = CycleSummary(unchanged=plan.unchanged, dry_run=self._dry_run)
        summary.failed.extend(
            FailedItem(stage="mapping", cause=s.cause, source_id=s.record_id) for s in plan.skipped
        )

        if self._dry_run:
            for mutation in plan.mutations:
                logger.info(f"[dry-run] {mutation.describe()}")
            return summary

        semaphore = asyncio.Semaphore(self._max_concurrency)
        # Deletes al final: solo se borra lo que quedo sin pareja en el plan
        upserts = await self._execute_all(plan.creates + plan.updates, semaphore, deadline)
        deletes = await self._execute_all(plan.deletes, semaphore, deadline)
        for result in upserts + deletes:
            summary.record(result)

        created = [
            (r.mutation.source_id, r.mirror_id)
            for r in upserts
            if r.success and r.mutation.kind is MutationKind.CREATE
        ]
        refs = created + [(link.record_id, link.item_id) for link in plan.links]
        if refs:
            summary.writeback_failed = await run_blocking(self._source.write_mirror_refs, refs)

        # Los updates solo cambian la copia staged: se publican junto a los creates
        updated = [
            r.mirror_id
            for r in upserts
            if r.success and r.mutation.kind is MutationKind.UPDATE
        ]
        to_publish = [item_id for _, item_id in created] + updated + plan.pending_publish
        if self._publish_new_items and to_publish:
            published = await run_blocking(self._executor.publish, to_publish)
            summary.publish_failed = published.failed
            summary.retries += len(published.retries)

        return summary

    async def _execute_all(
        self,
        mutations: Sequence[Mutation],
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> List[MutationResult]:
        return list(
            await asyncio.gather(*(self._execute_one(m, semaphore, deadline) for m in mutations))
        )

    async def _execute_one(
        self,
        mutation: Mutation,
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> MutationResult:
        async with semaphore:
            # Lo que no empezo antes del deadline se reporta como omitido
            if self._clock() >= deadline:
                return MutationResult(mutation=mutation, success=False, skipped=True)
            try:
                return await run_blocking(self._executor.execute, mutation)
            except Exception as e:
                logger.exception(f"Error inesperado en {mutation.describe()}")
                error = MutationError(MutationErrorKind.REJECTED, f"error inesperado: {e}")
                return MutationResult(mutation=mutation, success=False, attempts=1, error=error)

    def _log_summary(self, summary: CycleSummary) -> None:
        data = summary.as_dict()
        if summary.aborted:
            logger.error(f"Sync abortado: {data}")
        elif summary.has_failures or summary.skipped:
            logger.warning(f"Sync completado con fallos: {data}")
        else:
            logger.success(f"Sync completado: {data}")


def build_from_settings(
    config: Settings,
    *,
    mappings: Optional[Sequence[FieldMapping]] = None,
) -> Tuple[AirtableToWebflowSync, WebflowClient]:
    """
    Constructor "oficial" del pipeline a partir de Settings.

    Retorna tambien el WebflowClient para que el llamador lo cierre.
    """
    mappings = list(mappings or get_listing_field_mappings())

    airtable = AirtableClient(
        AirtableCredentials(token=config.AIRTABLE_TOKEN, base_id=config.AIRTABLE_BASE_ID),
        base_url=config.AIRTABLE_BASE_URL,
        timeout_s=config.HTTP_TIMEOUT_S,
        min_backoff_s=config.SYNC_MIN_BACKOFF_S,
        max_backoff_s=config.SYNC_MAX_BACKOFF_S,
    )
    webflow = WebflowClient(
        api_token=config.WEBFLOW_API_TOKEN,
        collection_id=config.WEBFLOW_COLLECTION_ID,
        base_url=config.WEBFLOW_BASE_URL,
        api_version=config.WEBFLOW_API_VERSION,
        timeout_s=config.HTTP_TIMEOUT_S,
        min_backoff_s=config.SYNC_MIN_BACKOFF_S,
        max_backoff_s=config.SYNC_MAX_BACKOFF_S,
    )

    service = AirtableToWebflowSync(
        source=AirtableSourceReader(
            airtable,
            table_name=config.AIRTABLE_TABLE_NAME,
            mappings=mappings,
            mirror_ref_field=config.AIRTABLE_MIRROR_REF_FIELD,
        ),
        mirror=WebflowMirrorReader(webflow, view=config.WEBFLOW_ITEMS_VIEW),
        executor=MutationExecutor(
            webflow,
            policy=RetryPolicy(
                max_attempts=config.SYNC_MAX_ATTEMPTS,
                min_backoff_s=config.SYNC_MIN_BACKOFF_S,
                max_backoff_s=config.SYNC_MAX_BACKOFF_S,
            ),
        ),
        mappings=mappings,
        max_concurrency=config.SYNC_MAX_CONCURRENCY,
        cycle_timeout_s=config.SYNC_CYCLE_TIMEOUT_S,
        publish_new_items=config.WEBFLOW_PUBLISH_NEW_ITEMS,
        dry_run=config.SYNC_DRY_RUN,
    )
    return service, webflow


def run_forever(
    service: AirtableToWebflowSync,
    *,
    interval_s: float,
    max_cycles: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CycleSummary:
    """
    Ejecuta ciclos secuenciales separados por `interval_s`.

    Un ciclo termina antes de que empiece el siguiente; nunca se solapan.
    Retorna el resumen del ultimo ciclo (util con `max_cycles`).
    """
    cycles = 0
    while True:
        summary = service.run_once()
        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            return summary
        logger.debug(f"Proximo ciclo en {interval_s}s")
        sleep(interval_s)
