"""A thread that owns and runs its own event loop."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from .event_loop import EventLoop
from .threads import Thread

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThread:
    """Starts a thread, creates an :class:`EventLoop` on it and runs the loop.

    ``callback`` is called on the new thread with the loop before it starts
    looping.
    """

    def __init__(
        self, callback: Optional[ThreadInitCallback] = None, name: str = ""
    ) -> None:
        self._callback = callback
        self._loop: Optional[EventLoop] = None
        self._error: Optional[BaseException] = None
        self._exiting = False
        self._cond = threading.Condition()
        self._thread = Thread(self._thread_func, name)

    @property
    def name(self) -> str:
        return self._thread.name

    @property
    def loop(self) -> Optional[EventLoop]:
        """The running loop, or ``None`` before start and after it stops."""
        with self._cond:
            return self._loop

    def start_loop(self) -> EventLoop:
        """Start the thread and return its loop once the loop is ready."""
        self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._loop is not None or self._error is not None)
            if self._error is not None:
                raise RuntimeError(
                    f"event loop thread {self.name} failed to start"
                ) from self._error
            return self._loop

    def close(self) -> None:
        """Stop the loop and wait for the thread to finish."""
        self._exiting = True
        with self._cond:
            loop = self._loop
        if loop is not None:
            loop.quit()
        if self._thread.started:
            self._thread.join()

    def __enter__(self) -> "EventLoopThread":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _thread_func(self) -> None:
        loop: Optional[EventLoop] = None
        try:
            loop = EventLoop()
            if self._callback is not None:
                self._callback(loop)
        except BaseException as exc:
            if loop is not None:
                loop.close()
            with self._cond:
                self._error = exc
                self._cond.notify_all()
            return

        with self._cond:
            self._loop = loop
            self._cond.notify_all()

        try:
            loop.loop()
        finally:
            with self._cond:
                self._loop = None
            loop.close()