"""A pool of event-loop threads handed out round-robin."""

from __future__ import annotations

from typing import Callable, Optional

from .event_loop import EventLoop
from .event_loop_thread import EventLoopThread

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThreadPool:
    """Owns ``num_threads`` sub-loops; with none, all work goes to the base loop."""

    def __init__(self, base_loop: EventLoop, name: str) -> None:
        self._base_loop = base_loop
        self._name = name
        self._started = False
        self._num_threads = 0
        self._next = 0
        self._threads: list[EventLoopThread] = []
        self._loops: list[EventLoop] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def started(self) -> bool:
        return self._started

    def set_thread_num(self, num_threads: int) -> None:
        self._num_threads = num_threads

    def start(self, callback: Optional[ThreadInitCallback] = None) -> None:
        """Start the sub-loops; with no threads, run ``callback`` on the base loop."""
        self._started = True
        for i in range(self._num_threads):
            thread = EventLoopThread(callback, f"{self._name}{i}")
            self._threads.append(thread)
            self._loops.append(thread.start_loop())
        if self._num_threads == 0 and callback is not None:
            callback(self._base_loop)

    def get_next_loop(self) -> EventLoop:
        """Return the next sub-loop in turn, or the base loop if there are none."""
        if not self._loops:
            return self._base_loop
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def get_all_loops(self) -> list[EventLoop]:
        return list(self._loops) if self._loops else [self._base_loop]

    def close(self) -> None:
        """Stop every sub-loop thread."""
        for thread in self._threads:
            thread.close()

    def __enter__(self) -> "EventLoopThreadPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()