"""Fire-and-forget side effects.

Persistence writes must never fail the request that triggered them. They run
as detached asyncio tasks; their exceptions are logged by a done callback and
never re-raised to the caller.
"""

import asyncio
import logging
from typing import Coroutine

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight
_pending: set[asyncio.Task] = set()


def spawn_background(coro: Coroutine, label: str) -> asyncio.Task:
    task = asyncio.create_task(coro, name=label)
    _pending.add(task)
    task.add_done_callback(_on_done)
    return task


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        logger.info("Background task %s cancelled", task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task %s failed: %s", task.get_name(), exc)


async def drain() -> None:
    """Wait for in-flight background tasks. Used on shutdown and in tests."""
    if _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
