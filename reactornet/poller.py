"""I/O multiplexing: the poller interface and its selector-based implementation."""

from __future__ import annotations

import abc
import os
import selectors
from typing import Any

from .channel import POLLIN, POLLOUT, POLLPRI, Channel
from .logger import log_debug, log_error, log_fatal, log_info
from .timestamp import Timestamp

# Registration states kept in Channel.index.
K_NEW = -1
K_ADDED = 1
K_DELETED = 2

_USE_POLL_ENV = "MuDUO_USE_POLL"


class Poller(abc.ABC):
    """Watches channels' descriptors and reports which ones are ready."""

    def __init__(self, loop: Any) -> None:
        self.owner_loop = loop
        self.channels: dict[int, Channel] = {}

    @abc.abstractmethod
    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        """Wait up to ``timeout_ms`` and return the time and the active channels."""

    @abc.abstractmethod
    def update_channel(self, channel: Channel) -> None:
        """Register or change the events watched for ``channel``."""

    @abc.abstractmethod
    def remove_channel(self, channel: Channel) -> None:
        """Forget ``channel`` entirely."""

    def has_channel(self, channel: Channel) -> bool:
        return self.channels.get(channel.fd) is channel


def _selector_class() -> type:
    if os.environ.get(_USE_POLL_ENV) and hasattr(selectors, "PollSelector"):
        return selectors.PollSelector
    return selectors.DefaultSelector


def _to_selector_mask(events: int) -> int:
    mask = 0
    if events & (POLLIN | POLLPRI):
        mask |= selectors.EVENT_READ
    if events & POLLOUT:
        mask |= selectors.EVENT_WRITE
    return mask


class SelectorPoller(Poller):
    """A poller backed by the best selector the platform offers.

    Setting the ``MuDUO_USE_POLL`` environment variable selects ``poll(2)``.
    """

    def __init__(self, loop: Any) -> None:
        super().__init__(loop)
        self._selector = _selector_class()()

    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        log_info("func=poll => fd total count:%d", len(self.channels))
        timeout = timeout_ms / 1000 if timeout_ms >= 0 else None
        active: list[Channel] = []
        try:
            ready = self._selector.select(timeout) if self._selector.get_map() else []
        except OSError as exc:
            log_error("SelectorPoller:poll() err: %s", exc)
            return Timestamp.now(), active
        now = Timestamp.now()
        if ready:
            log_info("%d events happend", len(ready))
            for key, mask in ready:
                channel: Channel = key.data
                revents = 0
                if mask & selectors.EVENT_READ:
                    revents |= POLLIN
                if mask & selectors.EVENT_WRITE:
                    revents |= POLLOUT
                channel.revents = revents
                active.append(channel)
        else:
            log_debug("poll timeout!")
        return now, active

    def update_channel(self, channel: Channel) -> None:
        index = channel.index
        log_info(
            "func=update_channel => fd=%d events=%d index=%d",
            channel.fd, channel.events, index,
        )
        if index in (K_NEW, K_DELETED):
            if index == K_NEW:
                self.channels[channel.fd] = channel
            channel.index = K_ADDED
            self._sync(channel)
        elif channel.is_none_event():
            self._unregister(channel)
            channel.index = K_DELETED
        else:
            self._sync(channel)

    def remove_channel(self, channel: Channel) -> None:
        fd = channel.fd
        self.channels.pop(fd, None)
        log_info("func=remove_channel => fd=%d", fd)
        if channel.index == K_ADDED:
            self._unregister(channel)
        channel.index = K_NEW

    def close(self) -> None:
        self._selector.close()

    def _registered(self, fd: int) -> bool:
        return fd in self._selector.get_map()

    def _sync(self, channel: Channel) -> None:
        fd = channel.fd
        mask = _to_selector_mask(channel.events)
        try:
            if mask == 0:
                if self._registered(fd):
                    self._selector.unregister(fd)
            elif self._registered(fd):
                self._selector.modify(fd, mask, channel)
            else:
                self._selector.register(fd, mask, channel)
        except (KeyError, ValueError, OSError) as exc:
            log_fatal("selector add/mod error: %s", exc)

    def _unregister(self, channel: Channel) -> None:
        try:
            self._selector.unregister(channel.fd)
        except (KeyError, ValueError, OSError) as exc:
            log_error("selector del error: %s", exc)


def new_default_poller(loop: Any) -> Poller:
    """Return the poller an event loop uses by default."""
    return SelectorPoller(loop)