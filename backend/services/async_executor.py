"""
Thread pool for the few blocking calls the API makes.

Proof uploads are written to local disk; the write runs here so a slow
filesystem never stalls the event loop that serves order and payment
requests. Pool size comes from BLOCKING_IO_WORKERS.
"""
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from config import settings

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None

T = TypeVar("T")


def get_executor() -> ThreadPoolExecutor:
    """Create the pool on first use."""
    global _executor
    if _executor is None:
        workers = max(1, settings.blocking_io_workers)
        _executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="proof_io_")
        logger.info(f"Blocking I/O pool started with {workers} worker(s)")
    return _executor


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), functools.partial(func, *args, **kwargs))


def shutdown_executor() -> None:
    """Wait for pending writes and release the pool. Called from the app lifespan."""
    global _executor
    if _executor is None:
        return
    _executor.shutdown(wait=True)
    _executor = None
    logger.info("Blocking I/O pool stopped")
