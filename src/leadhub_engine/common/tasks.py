"""Fire-and-forget dispatch for best-effort side effects.

Activity logging and similar secondary writes run after the primary commit
and must never change the caller's response.
"""

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Schedules coroutines in the background and logs their failures."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, coro: Coroutine[Any, Any, Any], name: str = "") -> asyncio.Task:
        task = asyncio.create_task(coro, name=name or None)
        # The loop only keeps weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s", task.get_name(), exc,
                exc_info=exc,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled task to finish (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
