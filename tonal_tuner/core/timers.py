"""Clocks and cancelable deferred tasks.

Deferred work is not run by a background timer thread. A TaskScheduler
holds tasks with deadlines on an injected clock, and the owner calls
``run_due()`` from its own loop, so every state transition happens on the
loop that owns the state. Tests drive time with ManualClock.
"""

from __future__ import annotations
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..logger import get_logger

logger = get_logger(__name__)


class Clock(ABC):
    """Source of monotonic time in seconds."""

    @abstractmethod
    def now(self) -> float:
        pass


class SystemClock(Clock):
    """Wall-clock time from time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move time forward and return the new time.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += seconds
        return self._now

    def set(self, now: float) -> None:
        if now < self._now:
            raise ValueError("Cannot move a clock backwards")
        self._now = float(now)


class ScheduledTask:
    """Handle for a callback due at a point in time."""

    def __init__(self, deadline: float, callback: Callable[[], None], name: str = "task") -> None:
        self.deadline = deadline
        self.name = name
        self._callback = callback
        self._cancelled = False
        self._done = False

    def cancel(self) -> bool:
        """Cancel the task. Returns False if it already ran."""
        if self._done:
            return False
        self._cancelled = True
        return True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._done

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._done)

    def _run(self) -> None:
        self._done = True
        self._callback()

    def __repr__(self):
        state = "cancelled" if self._cancelled else "done" if self._done else "pending"
        return f"ScheduledTask({self.name!r}, deadline={self.deadline:.3f}, {state})"


class TaskScheduler:
    """Deadline queue of ScheduledTasks on a clock."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = clock or SystemClock()
        self._tasks: List[ScheduledTask] = []
        self._lock = threading.Lock()

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "task") -> ScheduledTask:
        """Schedule callback to run once delay seconds from now.

        Raises:
            ValueError: If delay is negative
        """
        if delay < 0:
            raise ValueError("delay must not be negative")
        task = ScheduledTask(self.clock.now() + delay, callback, name)
        with self._lock:
            self._tasks.append(task)
        logger.debug(f"Scheduled {task!r}")
        return task

    def run_due(self) -> int:
        """Run every pending task whose deadline has passed, oldest deadline first.

        Returns:
            The number of tasks that ran
        """
        now = self.clock.now()
        with self._lock:
            self._tasks = [t for t in self._tasks if t.pending]
            due = sorted((t for t in self._tasks if t.deadline <= now), key=lambda t: t.deadline)
            self._tasks = [t for t in self._tasks if t not in due]

        ran = 0
        for task in due:
            # An earlier task in this batch may have cancelled it
            if task.pending:
                logger.debug(f"Running {task!r}")
                task._run()
                ran += 1
        return ran

    def cancel_all(self) -> None:
        with self._lock:
            for task in self._tasks:
                task.cancel()
            self._tasks = []

    @property
    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks if t.pending)
