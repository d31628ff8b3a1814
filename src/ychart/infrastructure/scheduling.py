"""Deferred execution — ``call_later(delay, callback) -> handle``.

The protocol matches :meth:`asyncio.AbstractEventLoop.call_later`, so a
running event loop can be passed wherever a :class:`Scheduler` is expected.
:class:`ManualScheduler` runs on a virtual clock that the host advances
explicitly; the CLI drains it after each operation.
"""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], object]) -> Handle: ...


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[[], object] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Single-threaded scheduler on a virtual clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], object]) -> _Timer:
        timer = _Timer(due=self.now + max(delay, 0.0), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that falls due.

        Callbacks scheduled while advancing run too if they fall inside the
        window. Returns the number of callbacks run.
        """
        deadline = self.now + seconds
        ran = 0
        while self._queue and self._queue[0].due <= deadline:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = max(self.now, timer.due)
            timer.callback()
            ran += 1
        self.now = deadline
        return ran

    def run_all(self, *, limit: int = 1000) -> int:
        """Run callbacks until the queue is empty (at most *limit*)."""
        ran = 0
        while ran < limit:
            live = [timer for timer in self._queue if not timer.cancelled]
            if not live:
                break
            ran += self.advance(max(min(t.due for t in live) - self.now, 0.0))
        return ran
