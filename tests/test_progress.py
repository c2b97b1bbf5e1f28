"""Tests for progress adapters and the rate limiter."""

from __future__ import annotations

from dep_graph.progress import MonitorProgressListener, NullProgressMonitor, QuickProgressListener


class RecordingProgress:
    def __init__(self) -> None:
        self.started: list[tuple[str, int | None]] = []
        self.updates: list[tuple[str, int, int]] = []
        self.ended: list[tuple[int, int]] = []
        self.cancelled = False

    def start_progress(self, task_name: str, total: int | None) -> None:
        self.started.append((task_name, total))

    def progress(self, current: str, done: int, failed: int) -> None:
        self.updates.append((current, done, failed))

    def end_progress(self, done: int, failed: int) -> None:
        self.ended.append((done, failed))

    def is_cancelled(self) -> bool:
        return self.cancelled


class CountingMonitor(NullProgressMonitor):
    def __init__(self) -> None:
        super().__init__()
        self.increments: list[int] = []
        self.tasks: list[str] = []

    def set_task_name(self, name: str) -> None:
        self.tasks.append(name)

    def worked(self, amount: int) -> None:
        self.increments.append(amount)


def _clock(*times: float):
    values = iter(times)
    return lambda: next(values)


def test_quick_listener_forwards_at_most_once_per_interval() -> None:
    base = RecordingProgress()
    quick = QuickProgressListener(base, 300, clock=_clock(0.0, 0.1, 0.2, 0.35, 0.5))

    quick.start_progress("Load", 5)
    for done in range(1, 6):
        quick.progress(f"unit-{done}", done, 0)

    assert base.started == [("Load", 5)]
    assert base.updates == [("unit-1", 1, 0), ("unit-4", 4, 0)]


def test_quick_listener_always_forwards_final_counts() -> None:
    base = RecordingProgress()
    quick = QuickProgressListener(base, 300, clock=_clock(0.0, 0.05, 0.1))

    quick.start_progress("Load", 3)
    quick.progress("a", 1, 0)
    quick.progress("b", 2, 0)
    quick.progress("c", 2, 1)
    quick.end_progress(2, 1)

    assert base.updates[-1] == ("c", 2, 1)
    assert base.ended == [(2, 1)]


def test_cancellation_is_not_rate_limited() -> None:
    base = RecordingProgress()
    quick = QuickProgressListener(base, 300, clock=_clock())

    assert not quick.is_cancelled()
    base.cancelled = True
    assert quick.is_cancelled()


def test_forwarded_work_sums_to_units_done() -> None:
    monitor = CountingMonitor()
    times = [index * 0.07 for index in range(20)]
    quick = QuickProgressListener(MonitorProgressListener(monitor), 300, clock=_clock(*times))

    quick.start_progress("Load Classes...", 20)
    for done in range(1, 21):
        quick.progress(f"unit-{done}", done, 0)
    quick.end_progress(20, 0)

    assert monitor.tasks == ["Load Classes..."]
    assert sum(monitor.increments) == 20
    assert len(monitor.increments) < 20


def test_monitor_listener_counts_loaded_and_failed_units() -> None:
    monitor = CountingMonitor()
    listener = MonitorProgressListener(monitor)

    listener.start_progress("Task", None)
    listener.progress("a", 2, 0)
    listener.progress("a", 2, 1)
    listener.progress("b", 5, 1)
    listener.end_progress(5, 1)

    assert monitor.increments == [2, 1, 3]
    assert sum(monitor.increments) == 6
