"""A named worker thread that records its operating-system id once started."""

from __future__ import annotations

import threading
from typing import Callable, ClassVar, Optional

from . import current_thread


class Thread:
    """Runs ``func`` on a new daemon thread; ``start`` returns once its id is known."""

    _num_created: ClassVar[int] = 0
    _count_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, func: Callable[[], None], name: str = "") -> None:
        self._func = func
        self._started = False
        self._joined = False
        self._tid = 0
        self._thread: Optional[threading.Thread] = None
        with Thread._count_lock:
            Thread._num_created += 1
            num = Thread._num_created
        self._name = name or f"Thread{num}"

    @property
    def started(self) -> bool:
        return self._started

    @property
    def tid(self) -> int:
        return self._tid

    @property
    def name(self) -> str:
        return self._name

    @classmethod
    def num_created(cls) -> int:
        return cls._num_created

    def start(self) -> None:
        self._started = True
        ready = threading.Event()

        def run() -> None:
            self._tid = current_thread.tid()
            ready.set()
            self._func()

        self._thread = threading.Thread(target=run, name=self._name, daemon=True)
        self._thread.start()
        ready.wait()

    def join(self) -> None:
        if self._thread is None:
            raise RuntimeError("thread not started")
        self._joined = True
        self._thread.join()