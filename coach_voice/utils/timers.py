"""
Cancellable timers keyed by a generation counter.

Every ``schedule()`` or ``cancel()`` bumps the generation, so a callback that
was superseded can never fire, and coroutines started by a timer can check
``is_current()`` after each await to detect that state has moved on.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional, Set

from .logging_config import get_logger


class GenerationTimer:
    """Single-slot timer on the running event loop."""

    def __init__(self, name: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.name = name
        self._loop = loop
        self._generation = 0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._logger = get_logger("timers")

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        """True while a scheduled callback has not fired yet."""
        return self._handle is not None

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> int:
        """
        Schedule callback after delay seconds, replacing anything pending.

        Coroutine callbacks run as tasks on the loop.

        Returns:
            Generation the callback is bound to
        """
        self.cancel()
        generation = self._generation
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(max(0.0, delay), self._fire, generation, callback, args)
        return generation

    def cancel(self) -> bool:
        """Invalidate anything pending. Returns True if a callback was dropped."""
        self._generation += 1
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, generation: int, callback: Callable[..., Any], args: tuple) -> None:
        if not self.is_current(generation):
            return
        self._handle = None
        try:
            result = callback(*args)
        except Exception:
            self._logger.exception(f"Timer '{self.name}' callback failed")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(f"Timer '{self.name}' task failed: {exc}", exc_info=exc)

    def shutdown(self) -> None:
        """Cancel the pending callback and any tasks it started."""
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
