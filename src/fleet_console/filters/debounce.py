"""Keyed debounce for filter inputs on the asyncio event loop."""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Set, Union

from ..config.logging_config import get_logger

logger = get_logger("debounce")

ApplyFn = Callable[[Any], Union[None, Awaitable[None]]]


class Debouncer:
    """
    Coalesces rapid calls per key into a single delayed call.

    Usage:
        debouncer = Debouncer()
        debouncer.schedule("company_id", text, 1000, view.apply_filters)

    For N calls under the same key within the delay, only the last value
    is applied. Keys are independent of each other.
    """

    def __init__(self):
        # Calls still waiting out their quiet period, one per key
        self._pending: Dict[Hashable, asyncio.Task] = {}
        # Every live call, including ones already applying
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, key: Hashable, value: Any, delay_ms: int, apply: ApplyFn) -> asyncio.Task:
        """
        Schedule apply(value) after delay_ms of inactivity on key.

        Args:
            key: Debounce channel; a new call cancels the pending one.
            value: Value passed to apply.
            delay_ms: Quiet period in milliseconds.
            apply: Callable or coroutine function receiving the value.

        Returns:
            The task that will run the call.
        """
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")

        self.cancel(key)
        task = asyncio.get_running_loop().create_task(
            self._run(key, value, delay_ms / 1000.0, apply)
        )
        self._pending[key] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda t: self._log_failure(key, t))
        return task

    async def _run(self, key: Hashable, value: Any, delay: float, apply: ApplyFn) -> None:
        await asyncio.sleep(delay)
        # Once applying, a newer schedule() on the key no longer cancels this call
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        result = apply(value)
        if inspect.isawaitable(result):
            await result

    def cancel(self, key: Hashable) -> bool:
        """Cancel the pending call for key. Returns True if one was pending."""
        task = self._pending.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        """Cancel every call still in its quiet period."""
        for key in list(self._pending):
            self.cancel(key)

    def is_pending(self, key: Hashable) -> bool:
        task = self._pending.get(key)
        return task is not None and not task.done()

    @property
    def pending_keys(self) -> List[Hashable]:
        return [key for key in self._pending if self.is_pending(key)]

    async def drain(self) -> None:
        """Wait until every scheduled call has fired or been cancelled."""
        while True:
            live = [task for task in self._tasks if not task.done()]
            if not live:
                return
            # Failures are reported by _log_failure
            await asyncio.gather(*live, return_exceptions=True)

    @staticmethod
    def _log_failure(key: Hashable, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Debounced call for {key!r} failed: {error}")
