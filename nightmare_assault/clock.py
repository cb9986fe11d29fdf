from __future__ import annotations

import heapq
import itertools
import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source.

    The event loop schedules timers against this interface so tests can
    drive time by hand.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class TimerQueue:
    """One-shot timers ordered by due time, then by scheduling order."""

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, object]] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def schedule(self, due_at: float, message: object) -> None:
        heapq.heappush(self._heap, (float(due_at), next(self._seq), message))

    def pop_due(self, now: float) -> list[object]:
        due: list[object] = []
        while self._heap and self._heap[0][0] <= now:
            _, _, message = heapq.heappop(self._heap)
            due.append(message)
        return due

    def next_due(self) -> float | None:
        if not self._heap:
            return None
        return self._heap[0][0]

    def clear(self) -> None:
        self._heap.clear()
