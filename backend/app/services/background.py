"""Fire-and-forget side effects (mail, reaction mirroring) decoupled from the request."""
from __future__ import annotations
import asyncio
import logging
from typing import Awaitable

logger = logging.getLogger(__name__)

_semaphore: asyncio.Semaphore | None = None
_tasks: set[asyncio.Task] = set()


def init_background(max_concurrent: int):
    global _semaphore
    _semaphore = asyncio.Semaphore(max_concurrent)


def _get_semaphore() -> asyncio.Semaphore:
    global _semaphore
    if _semaphore is None:
        _semaphore = asyncio.Semaphore(8)
    return _semaphore


async def _bounded(coro: Awaitable, label: str):
    async with _get_semaphore():
        logger.debug(f"[{label}] started")
        return await coro


def spawn(coro: Awaitable, label: str) -> asyncio.Task:
    """Run ``coro`` detached from the caller; failures only reach the log."""
    task = asyncio.create_task(_bounded(coro, label))
    _tasks.add(task)
    task.add_done_callback(lambda t, name=label: _log_task_result(t, name))
    return task


def _log_task_result(task: asyncio.Task, label: str):
    _tasks.discard(task)
    if task.cancelled():
        logger.warning(f"[{label}] Task was cancelled")
    elif task.exception() is not None:
        logger.error(f"[{label}] Task raised unhandled exception", exc_info=task.exception())


async def drain(timeout: float = 5):
    """Wait briefly for in-flight tasks; called on shutdown."""
    if not _tasks:
        return
    done, pending = await asyncio.wait(set(_tasks), timeout=timeout)
    for task in pending:
        task.cancel()
    logger.info(f"Background tasks drained: {len(done)} finished, {len(pending)} cancelled")
