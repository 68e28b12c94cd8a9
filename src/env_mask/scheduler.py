"""Delayed callbacks for auto-hide timers.

Anything with ``schedule(delay_ms, callback) -> token`` and
``cancel(token)`` will do.  Callbacks always run on the caller's event
loop, never concurrently with other engine code.
"""

from __future__ import annotations
import asyncio
import heapq
import itertools
from typing import Any, Callable, Protocol


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> Any: ...

    def cancel(self, token: Any) -> None: ...


class AsyncioScheduler:
    """Timers on an asyncio event loop via ``loop.call_later``.

    With no loop given, the running loop is looked up at schedule time,
    so this must then be used from inside a coroutine or loop callback.
    """

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000, callback)

    def cancel(self, token: asyncio.TimerHandle) -> None:
        token.cancel()


class _ManualTimer:
    __slots__ = ("due", "seq", "callback", "cancelled")

    def __init__(self, due: int, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def __lt__(self, other: "_ManualTimer") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)


class ManualScheduler:
    """Simulated clock.  Time only moves when ``advance`` is called.

    Usage:
        scheduler = ManualScheduler()
        scheduler.schedule(50, fire)
        scheduler.advance(49)   # nothing
        scheduler.advance(1)    # fire() runs
    """

    __slots__ = ("_now", "_queue", "_seq")

    def __init__(self) -> None:
        self._now = 0
        self._queue: list[_ManualTimer] = []
        self._seq = itertools.count()

    @property
    def now(self) -> int:
        return self._now

    @property
    def pending(self) -> int:
        """Timers scheduled but neither fired nor cancelled."""
        return sum(1 for t in self._queue if not t.cancelled)

    @property
    def queued(self) -> int:
        """Timers still held in the queue."""
        return len(self._queue)

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self._now + max(delay_ms, 0), next(self._seq), callback)
        heapq.heappush(self._queue, timer)
        return timer

    def cancel(self, token: _ManualTimer) -> None:
        token.cancelled = True
        try:
            self._queue.remove(token)
        except ValueError:
            return  # already fired or cancelled
        heapq.heapify(self._queue)

    def advance(self, ms: int) -> int:
        """Move the clock forward, firing due timers in order.  Returns the count fired."""
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = timer.due
            fired += 1
            timer.callback()
        self._now = target
        return fired
