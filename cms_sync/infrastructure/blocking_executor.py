"""
Ejecutor de llamadas HTTP bloqueantes en threads separados.

Los clientes de Airtable y Webflow son sincronos (requests / httpx.Client).
Este modulo los ejecuta en un ThreadPoolExecutor dedicado para que el
orquestador pueda lanzar lecturas y mutaciones en paralelo desde asyncio.

Uso:
    from cms_sync.infrastructure.blocking_executor import run_blocking

    records = await run_blocking(source_reader.read_all)
    result = await run_blocking(executor.execute, mutation)
"""
import asyncio
import atexit
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, TypeVar

from loguru import logger


T = TypeVar("T")

# Techo de threads; la concurrencia real de mutaciones la limita el
# semaforo del orquestador (SYNC_MAX_CONCURRENCY).
SYNC_MAX_WORKERS = 16

_sync_executor = ThreadPoolExecutor(
    max_workers=SYNC_MAX_WORKERS,
    thread_name_prefix="cms-sync-"
)


def _shutdown_executor() -> None:
    """Cierra el executor al terminar el proceso."""
    logger.debug("Cerrando ThreadPoolExecutor del sync...")
    _sync_executor.shutdown(wait=True)


atexit.register(_shutdown_executor)


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Ejecuta una funcion sincrona en el ThreadPoolExecutor dedicado.

    Raises:
        Cualquier excepcion que la funcion original lance
    """
    if kwargs:
        func = partial(func, **kwargs)

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_sync_executor, func, *args)
