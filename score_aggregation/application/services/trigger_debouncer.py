"""Debouncer coalescing bursts of aggregation triggers."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

logger = logging.getLogger(__name__)

Factory = Callable[[], Awaitable[Any]]


class TriggerDebouncer:
    """Coalesces triggers for the same key arriving within a time window.

    The first trigger opens the window; every trigger inside it shares one
    future. When the window closes the most recently submitted factory runs
    once and all callers receive its result or its exception.
    """

    def __init__(self, window_seconds: float = 2.0):
        if window_seconds < 0:
            raise ValueError("Debounce window cannot be negative")
        self.window_seconds = window_seconds
        self._pending: Dict[str, Tuple[asyncio.Future, Factory]] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    async def submit(self, key: str, factory: Factory) -> Any:
        """Schedule a factory for a key, sharing the result with coalesced callers."""
        if key in self._pending:
            future, _ = self._pending[key]
            self._pending[key] = (future, factory)
            logger.debug(f"Coalesced trigger for {key}")
            return await asyncio.shield(future)

        future = asyncio.get_running_loop().create_future()
        self._pending[key] = (future, factory)
        self._tasks[key] = asyncio.create_task(self._fire(key))
        return await asyncio.shield(future)

    async def _fire(self, key: str) -> None:
        await asyncio.sleep(self.window_seconds)
        future, factory = self._pending.pop(key)

        try:
            result = await factory()
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        finally:
            self._tasks.pop(key, None)

    async def drain(self) -> None:
        """Wait for every pending window to fire."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
