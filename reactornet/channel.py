"""A descriptor together with the events it watches and the callbacks that handle them."""

from __future__ import annotations

import weakref
from typing import Any, Callable, Optional

from .logger import log_info
from .timestamp import Timestamp

POLLIN = 0x001
POLLPRI = 0x002
POLLOUT = 0x004
POLLERR = 0x008
POLLHUP = 0x010

NONE_EVENT = 0
READ_EVENT = POLLIN | POLLERR
WRITE_EVENT = POLLOUT

ReadEventCallback = Callable[[Timestamp], None]
EventCallback = Callable[[], None]


class Channel:
    """Binds a file descriptor to its interest set and the callbacks run by its loop.

    ``revents`` is filled in by the poller with what actually happened and
    ``index`` records the channel's registration state inside the poller.
    """

    def __init__(self, loop: Any, fd: int) -> None:
        self.loop = loop
        self._fd = fd
        self._events = NONE_EVENT
        self.revents = 0
        self.index = -1  # not yet known to any poller
        self._tie: Optional[weakref.ref] = None
        self.read_callback: Optional[ReadEventCallback] = None
        self.write_callback: Optional[EventCallback] = None
        self.close_callback: Optional[EventCallback] = None
        self.error_callback: Optional[EventCallback] = None

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def events(self) -> int:
        return self._events

    def tie(self, obj: object) -> None:
        """Only dispatch events while ``obj`` is still alive."""
        self._tie = weakref.ref(obj)

    def handle_event(self, receive_time: Timestamp) -> None:
        """Run the callbacks matching ``revents``."""
        if self._tie is not None:
            guard = self._tie()
            if guard is None:
                return
            self._handle_event_with_guard(receive_time)
            del guard
        else:
            self._handle_event_with_guard(receive_time)

    def _handle_event_with_guard(self, receive_time: Timestamp) -> None:
        revents = self.revents
        log_info("channel handleEvent revents:%d", revents)

        if revents & POLLHUP and not revents & POLLIN:
            if self.close_callback:
                self.close_callback()
        if revents & POLLERR:
            if self.read_callback:
                self.read_callback(receive_time)
        if revents & (POLLIN | POLLPRI):
            if self.read_callback:
                self.read_callback(receive_time)
        if revents & POLLOUT:
            if self.write_callback:
                self.write_callback()

    def enable_reading(self) -> None:
        self._events |= READ_EVENT
        self._update()

    def disable_reading(self) -> None:
        self._events &= ~READ_EVENT
        self._update()

    def enable_writing(self) -> None:
        self._events |= WRITE_EVENT
        self._update()

    def disable_writing(self) -> None:
        self._events &= ~WRITE_EVENT
        self._update()

    def disable_all(self) -> None:
        self._events = NONE_EVENT
        self._update()

    def is_none_event(self) -> bool:
        return self._events == NONE_EVENT

    def is_writing(self) -> bool:
        return bool(self._events & WRITE_EVENT)

    def is_reading(self) -> bool:
        return bool(self._events & READ_EVENT)

    def remove(self) -> None:
        """Detach this channel from its loop's poller."""
        self.loop.remove_channel(self)

    def _update(self) -> None:
        self.loop.update_channel(self)

    def __repr__(self) -> str:
        return f"Channel(fd={self._fd}, events={self._events}, index={self.index})"