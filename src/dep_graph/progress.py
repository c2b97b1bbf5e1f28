"""Progress reporting between readers, drivers and the embedding environment."""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)


class ProgressMonitor(Protocol):
    """Progress sink supplied by the embedding environment."""

    def set_task_name(self, name: str) -> None:
        ...

    def worked(self, amount: int) -> None:
        ...

    def is_cancelled(self) -> bool:
        ...


class ProgressListener(Protocol):
    """Reader-facing progress interface using cumulative counts."""

    def start_progress(self, task_name: str, total: int | None) -> None:
        ...

    def progress(self, current: str, done: int, failed: int) -> None:
        ...

    def end_progress(self, done: int, failed: int) -> None:
        ...

    def is_cancelled(self) -> bool:
        ...


class NullProgressMonitor:
    """Monitor that records nothing and can be cancelled programmatically."""

    def __init__(self) -> None:
        self.cancelled = False

    def set_task_name(self, name: str) -> None:
        LOGGER.debug("Task: %s", name)

    def worked(self, amount: int) -> None:
        pass

    def is_cancelled(self) -> bool:
        return self.cancelled


class MonitorProgressListener:
    """Adapt a :class:`ProgressListener` stream onto a :class:`ProgressMonitor`.

    Cumulative unit counts, loaded plus failed, are turned into ``worked``
    increments, so the increments reported to the monitor always sum to the
    number of units walked so far.
    """

    def __init__(self, monitor: ProgressMonitor) -> None:
        self.monitor = monitor
        self._reported = 0

    def start_progress(self, task_name: str, total: int | None) -> None:
        self.monitor.set_task_name(task_name)
        self._reported = 0

    def progress(self, current: str, done: int, failed: int) -> None:
        walked = done + failed
        delta = walked - self._reported
        if delta > 0:
            self.monitor.worked(delta)
            self._reported = walked

    def end_progress(self, done: int, failed: int) -> None:
        self.progress("", done, failed)

    def is_cancelled(self) -> bool:
        return self.monitor.is_cancelled()


class QuickProgressListener:
    """
    Rate-limit ``progress`` calls to a wrapped listener.

    A call is forwarded only when more than ``interval_ms`` milliseconds have
    passed since the previous forwarded call. ``end_progress`` always
    forwards the final counts. Cancellation queries are never limited.
    """

    def __init__(
        self,
        base: ProgressListener,
        interval_ms: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base = base
        self.interval = interval_ms / 1000.0
        self.clock = clock
        self._last_forward: float | None = None
        self._pending: tuple[str, int, int] | None = None

    def start_progress(self, task_name: str, total: int | None) -> None:
        self._last_forward = None
        self._pending = None
        self.base.start_progress(task_name, total)

    def progress(self, current: str, done: int, failed: int) -> None:
        now = self.clock()
        if self._last_forward is not None and now - self._last_forward <= self.interval:
            self._pending = (current, done, failed)
            return
        self._last_forward = now
        self._pending = None
        self.base.progress(current, done, failed)

    def end_progress(self, done: int, failed: int) -> None:
        current = self._pending[0] if self._pending else ""
        self._pending = None
        self.base.progress(current, done, failed)
        self.base.end_progress(done, failed)

    def is_cancelled(self) -> bool:
        return self.base.is_cancelled()


__all__ = [
    "MonitorProgressListener",
    "NullProgressMonitor",
    "ProgressListener",
    "ProgressMonitor",
    "QuickProgressListener",
]
