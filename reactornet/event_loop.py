"""One event loop per thread: polls channels and runs queued callbacks."""

from __future__ import annotations

import socket
import threading
from typing import Callable

from . import current_thread
from .channel import Channel
from .logger import log_debug, log_error, log_fatal, log_info
from .poller import new_default_poller
from .timestamp import Timestamp

K_POLL_TIME_MS = 10000

_WAKEUP_BYTES = (1).to_bytes(8, "little")

_local = threading.local()

Functor = Callable[[], None]


class EventLoop:
    """Reactor bound to the thread that created it.

    Only one loop may exist per thread. Other threads hand work to it with
    :meth:`queue_in_loop` or :meth:`run_in_loop`, which wake it when needed.
    """

    def __init__(self) -> None:
        self._thread_id = current_thread.tid()
        existing = getattr(_local, "loop", None)
        if existing is not None:
            log_fatal(
                "Another EventLoop %r exists in this thread %d", existing, self._thread_id
            )
        self._looping = False
        self._quit = False
        self._calling_pending_functors = False
        self._closed = False
        self._poll_return_time = Timestamp()
        self._pending_functors: list[Functor] = []
        self._lock = threading.Lock()
        self._poller = new_default_poller(self)
        self._wakeup_reader, self._wakeup_writer = socket.socketpair()
        self._wakeup_reader.setblocking(False)
        self._wakeup_writer.setblocking(False)
        self._wakeup_channel = Channel(self, self._wakeup_reader.fileno())
        log_debug("EventLoop create %r in thread %d", self, self._thread_id)
        _local.loop = self

        self._wakeup_channel.read_callback = lambda _when: self._handle_read()
        self._wakeup_channel.enable_reading()

    @property
    def poll_return_time(self) -> Timestamp:
        return self._poll_return_time

    def loop(self) -> None:
        """Poll and dispatch until :meth:`quit` is called."""
        self._looping = True
        self._quit = False
        log_info("EventLoop %r start looping", self)
        while not self._quit:
            self._poll_return_time, active = self._poller.poll(K_POLL_TIME_MS)
            for channel in active:
                channel.handle_event(self._poll_return_time)
            self._do_pending_functors()
        log_info("EventLoop %r stop looping.", self)
        self._looping = False

    def quit(self) -> None:
        self._quit = True
        if not self.is_in_loop_thread():
            self.wakeup()

    def run_in_loop(self, cb: Functor) -> None:
        """Run ``cb`` now if called on the loop's thread, otherwise queue it."""
        if self.is_in_loop_thread():
            cb()
        else:
            self.queue_in_loop(cb)

    def queue_in_loop(self, cb: Functor) -> None:
        """Queue ``cb`` to run after the current round of event handling."""
        with self._lock:
            self._pending_functors.append(cb)
        if not self.is_in_loop_thread() or self._calling_pending_functors:
            self.wakeup()

    def wakeup(self) -> None:
        """Make the loop's poll return at once."""
        try:
            n = self._wakeup_writer.send(_WAKEUP_BYTES)
        except BlockingIOError:
            n = 0
        if n != len(_WAKEUP_BYTES):
            log_error("EventLoop::wakeup() writes %d bytes instead of 8", n)

    def update_channel(self, channel: Channel) -> None:
        self._poller.update_channel(channel)

    def remove_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def has_channel(self, channel: Channel) -> bool:
        return self._poller.has_channel(channel)

    def is_in_loop_thread(self) -> bool:
        return self._thread_id == current_thread.tid()

    def close(self) -> None:
        """Release the loop's descriptors and free its thread for a new loop."""
        if self._closed:
            return
        self._closed = True
        self._wakeup_channel.disable_all()
        self._wakeup_channel.remove()
        self._wakeup_reader.close()
        self._wakeup_writer.close()
        self._poller.close()
        if getattr(_local, "loop", None) is self:
            _local.loop = None

    def __enter__(self) -> "EventLoop":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _handle_read(self) -> None:
        try:
            data = self._wakeup_reader.recv(len(_WAKEUP_BYTES))
        except BlockingIOError:
            data = b""
        if len(data) != len(_WAKEUP_BYTES):
            log_error("EventLoop::handleRead() reads %d bytes instead of 8", len(data))

    def _do_pending_functors(self) -> None:
        self._calling_pending_functors = True
        try:
            with self._lock:
                functors, self._pending_functors = self._pending_functors, []
            for functor in functors:
                functor()
        finally:
            self._calling_pending_functors = False