"""Deferred calls for automated turns."""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle to a deferred callback; cancel() before it fires to drop it."""

    def __init__(self, callback: Callable[[], None], due: float) -> None:
        self.callback = callback
        self.due = due
        self.cancelled = False
        self.done = False
        self._on_cancel: Callable[[], None] | None = None

    def cancel(self) -> None:
        """Cancel the task. Safe to call more than once or after it ran."""
        if self.cancelled or self.done:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)

    def run(self) -> None:
        if not self.pending:
            return
        self.done = True
        self.callback()


class Scheduler(ABC):
    """Abstract deferred-call service."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """
        Run a callback after a delay.

        Args:
            delay: Seconds to wait
            callback: Zero-argument function to call

        Returns:
            A cancellable task handle
        """
        ...


class ManualScheduler(Scheduler):
    """
    Scheduler driven by a virtual clock.

    Nothing runs until advance() or run_until_idle() is called, which makes
    automated turns deterministic in tests and scripted play.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Queue a callback at now + delay."""
        task = ScheduledTask(callback, self._now + max(0.0, delay))
        heapq.heappush(self._queue, (task.due, next(self._seq), task))
        return task

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, task in self._queue if task.pending)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward and run every task that came due.

        Tasks scheduled by running tasks also run if they fall due within
        the window.

        Returns:
            Number of tasks run
        """
        deadline = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _, task = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if task.pending:
                task.run()
                ran += 1
        self._now = deadline
        return ran

    def run_until_idle(self, max_tasks: int = 10_000) -> int:
        """Run queued tasks in due order until none are left."""
        ran = 0
        while self._queue:
            if ran >= max_tasks:
                raise RuntimeError(f"Scheduler still busy after {max_tasks} tasks")
            due, _, task = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if task.pending:
                task.run()
                ran += 1
        return ran


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Schedule the callback on the loop."""
        loop = self._get_loop()
        task = ScheduledTask(callback, loop.time() + delay)
        handle = loop.call_later(max(0.0, delay), self._run, task)
        task._on_cancel = handle.cancel
        return task

    @staticmethod
    def _run(task: ScheduledTask) -> None:
        try:
            task.run()
        except Exception:
            logger.exception("Scheduled task failed")
