"""One established TCP connection, driven by the sub-loop that owns it."""

from __future__ import annotations

import errno
import functools
import socket
from enum import IntEnum
from typing import Any, Callable, Optional, Union

from .buffer import Buffer
from .channel import Channel
from .inet_address import InetAddress
from .logger import log_error, log_info
from .tcp_socket import TcpSocket
from .timestamp import Timestamp

ConnectionCallback = Callable[["TcpConnection"], None]
CloseCallback = Callable[["TcpConnection"], None]
WriteCompleteCallback = Callable[["TcpConnection"], None]
MessageCallback = Callable[["TcpConnection", Buffer, Timestamp], None]
HighWaterMarkCallback = Callable[["TcpConnection", int], None]

DEFAULT_HIGH_WATER_MARK = 64 * 1024 * 1024


class ConnectionState(IntEnum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    DISCONNECTING = 3


class TcpConnection:
    """Buffers input and output for a socket and reports events through callbacks.

    All methods other than :meth:`send` and :meth:`shutdown` must be called on
    the thread of the owning loop.
    """

    def __init__(
        self,
        loop: Any,
        name: str,
        sock: socket.socket,
        local_addr: InetAddress,
        peer_addr: InetAddress,
    ) -> None:
        if loop is None:
            raise ValueError("TcpConnection loop is None")
        self._loop = loop
        self._name = name
        self._state = ConnectionState.CONNECTING
        self._reading = True
        self._socket = TcpSocket(sock)
        self._channel = Channel(loop, self._socket.fd())
        self._local_addr = local_addr
        self._peer_addr = peer_addr
        self._high_water_mark = DEFAULT_HIGH_WATER_MARK
        self._high_water_mark_callback: Optional[HighWaterMarkCallback] = None

        self.connection_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.close_callback: Optional[CloseCallback] = None

        self.input_buffer = Buffer()
        self.output_buffer = Buffer()

        self._channel.read_callback = self._handle_read
        self._channel.write_callback = self._handle_write
        self._channel.close_callback = self._handle_close
        self._channel.error_callback = self._handle_error

        log_info("TcpConnection::ctor[%s] at fd=%d", name, self._socket.fd())
        self._socket.set_keep_alive(True)

    @property
    def loop(self) -> Any:
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def local_address(self) -> InetAddress:
        return self._local_addr

    @property
    def peer_address(self) -> InetAddress:
        return self._peer_addr

    @property
    def high_water_mark(self) -> int:
        return self._high_water_mark

    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def set_high_water_mark_callback(
        self, cb: Optional[HighWaterMarkCallback], high_water_mark: int
    ) -> None:
        self._high_water_mark_callback = cb
        self._high_water_mark = high_water_mark

    def send(self, data: Union[bytes, bytearray, memoryview, str]) -> None:
        """Send ``data`` if connected; strings are encoded as UTF-8."""
        if self._state != ConnectionState.CONNECTED:
            return
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if self._loop.is_in_loop_thread():
            self._send_in_loop(payload)
        else:
            self._loop.run_in_loop(functools.partial(self._send_in_loop, payload))

    def shutdown(self) -> None:
        """Close the write side once all pending output has been sent."""
        if self._state == ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTING
            self._loop.run_in_loop(self._shutdown_in_loop)

    def connect_established(self) -> None:
        self._state = ConnectionState.CONNECTED
        self._channel.tie(self)
        self._channel.enable_reading()
        if self.connection_callback is not None:
            self.connection_callback(self)

    def connect_destroyed(self) -> None:
        """Detach from the poller and close the socket."""
        if self._state == ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTED
            self._channel.disable_all()
            if self.connection_callback is not None:
                self.connection_callback(self)
        self._channel.remove()
        self._socket.close()

    def _send_in_loop(self, data: bytes) -> None:
        nwrote = 0
        remaining = len(data)
        fault_error = False

        if self._state == ConnectionState.DISCONNECTED:
            log_error("disconnected, give up writing!")
            return

        if not self._channel.is_writing() and self.output_buffer.readable_bytes() == 0:
            try:
                nwrote = self._socket.socket.send(data)
            except BlockingIOError:
                nwrote = 0
            except OSError as exc:
                nwrote = 0
                log_error("TcpConnection::sendInLoop")
                if exc.errno in (errno.EPIPE, errno.ECONNRESET):
                    fault_error = True
            else:
                remaining = len(data) - nwrote
                if remaining == 0 and self.write_complete_callback is not None:
                    self._loop.queue_in_loop(
                        functools.partial(self.write_complete_callback, self)
                    )

        if not fault_error and remaining > 0:
            old_len = self.output_buffer.readable_bytes()
            if (
                old_len + remaining >= self._high_water_mark
                and old_len < self._high_water_mark
                and self._high_water_mark_callback is not None
            ):
                self._loop.queue_in_loop(
                    functools.partial(
                        self._high_water_mark_callback, self, old_len + remaining
                    )
                )
            self.output_buffer.append(data[nwrote:])
            if not self._channel.is_writing():
                self._channel.enable_writing()

    def _shutdown_in_loop(self) -> None:
        if not self._channel.is_writing():
            self._socket.shutdown_write()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            n = self.input_buffer.read_fd(self._socket.socket)
        except OSError as exc:
            log_error("TcpConnection::handleRead err:%d", exc.errno or 0)
            self._handle_error()
            return
        if n > 0:
            if self.message_callback is not None:
                self.message_callback(self, self.input_buffer, receive_time)
            else:
                self.input_buffer.retrieve_all()
        else:
            self._handle_close()

    def _handle_write(self) -> None:
        if not self._channel.is_writing():
            log_error("TcpConnection fd=%d is down, no more writing", self._channel.fd)
            return
        try:
            n = self.output_buffer.write_fd(self._socket.socket)
        except OSError:
            n = -1
        if n <= 0:
            log_error("TcpConnection::handleWrite")
            return
        self.output_buffer.retrieve(n)
        if self.output_buffer.readable_bytes() == 0:
            self._channel.disable_writing()
            if self.write_complete_callback is not None:
                self._loop.queue_in_loop(
                    functools.partial(self.write_complete_callback, self)
                )
            if self._state == ConnectionState.DISCONNECTING:
                self._shutdown_in_loop()

    def _handle_close(self) -> None:
        log_info(
            "TcpConnection::handleClose fd=%d state=%d",
            self._channel.fd, int(self._state),
        )
        self._state = ConnectionState.DISCONNECTED
        self._channel.disable_all()
        if self.connection_callback is not None:
            self.connection_callback(self)
        if self.close_callback is not None:
            self.close_callback(self)

    def _handle_error(self) -> None:
        try:
            err = self._socket.socket.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            err = exc.errno or 0
        log_error("TcpConnection::handleError name:%s - SO_ERROR:%d", self._name, err)

    def __repr__(self) -> str:
        return f"TcpConnection(name={self._name!r}, state={self._state.name})"