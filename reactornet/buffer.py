"""Growable byte buffer with a cheap prepend area, used for socket I/O."""

from __future__ import annotations

import os
import socket
from typing import Union

FdLike = Union[int, socket.socket]

_EXTRA_READ = 65536


def _fileno(sock: FdLike) -> int:
    return sock if isinstance(sock, int) else sock.fileno()


class Buffer:
    """A byte buffer laid out as ``prependable | readable | writable``."""

    K_CHEAP_PREPEND = 8
    K_INITIAL_SIZE = 1024

    def __init__(self, initial_size: int = K_INITIAL_SIZE) -> None:
        self._buffer = bytearray(self.K_CHEAP_PREPEND + initial_size)
        self._reader = self.K_CHEAP_PREPEND
        self._writer = self.K_CHEAP_PREPEND

    def readable_bytes(self) -> int:
        return self._writer - self._reader

    def writable_bytes(self) -> int:
        return len(self._buffer) - self._writer

    def prependable_bytes(self) -> int:
        return self._reader

    def __len__(self) -> int:
        return self.readable_bytes()

    def peek(self) -> bytes:
        """Return the readable bytes without consuming them."""
        return bytes(self._buffer[self._reader:self._writer])

    def retrieve(self, length: int) -> None:
        """Consume ``length`` readable bytes; consuming all or more resets the buffer."""
        if length < self.readable_bytes():
            self._reader += length
        else:
            self.retrieve_all()

    def retrieve_all(self) -> None:
        self._reader = self._writer = self.K_CHEAP_PREPEND

    def retrieve_all_as_bytes(self) -> bytes:
        return self.retrieve_as_bytes(self.readable_bytes())

    def retrieve_as_bytes(self, length: int) -> bytes:
        if length > self.readable_bytes():
            raise ValueError(
                f"cannot retrieve {length} bytes, only {self.readable_bytes()} readable"
            )
        result = bytes(self._buffer[self._reader:self._reader + length])
        self.retrieve(length)
        return result

    def ensure_writable_bytes(self, length: int) -> None:
        if self.writable_bytes() < length:
            self._make_space(length)

    def append(self, data: bytes) -> None:
        length = len(data)
        self.ensure_writable_bytes(length)
        self._buffer[self._writer:self._writer + length] = data
        self._writer += length

    def read_fd(self, sock: FdLike) -> int:
        """Read from a socket or descriptor into the buffer; return the byte count.

        Reads up to the free space plus 64 KiB of overflow. Returns 0 at end of
        stream and raises ``OSError`` on failure.
        """
        writable = self.writable_bytes()
        limit = writable + _EXTRA_READ if writable < _EXTRA_READ else writable
        data = os.read(_fileno(sock), limit)
        self.append(data)
        return len(data)

    def write_fd(self, sock: FdLike) -> int:
        """Write readable bytes to a socket or descriptor; return how many were written.

        The written bytes stay in the buffer; call :meth:`retrieve` to consume them.
        """
        return os.write(_fileno(sock), self.peek())

    def _make_space(self, length: int) -> None:
        if self.writable_bytes() + self.prependable_bytes() < length + self.K_CHEAP_PREPEND:
            self._buffer.extend(bytes(self._writer + length - len(self._buffer)))
        else:
            readable = self.readable_bytes()
            start = self.K_CHEAP_PREPEND
            self._buffer[start:start + readable] = self._buffer[self._reader:self._writer]
            self._reader = start
            self._writer = start + readable