"""Listens on a socket in the main loop and hands accepted connections on."""

from __future__ import annotations

import errno
import socket
from typing import Callable, Optional

from .channel import Channel
from .event_loop import EventLoop
from .inet_address import InetAddress
from .logger import log_error
from .tcp_socket import TcpSocket, create_nonblocking
from .timestamp import Timestamp

NewConnectionCallback = Callable[[socket.socket, InetAddress], None]


class Acceptor:
    """Owns the listening socket and its channel.

    Each accepted connection is passed to ``new_connection_callback`` as a
    non-blocking socket and the peer address; without a callback it is closed.
    """

    def __init__(
        self, loop: EventLoop, listen_addr: InetAddress, reuse_port: bool = False
    ) -> None:
        self._loop = loop
        self._accept_socket = TcpSocket(create_nonblocking())
        try:
            self._accept_socket.set_reuse_addr(True)
            self._accept_socket.set_reuse_port(reuse_port)
            self._accept_socket.bind_address(listen_addr)
        except OSError:
            self._accept_socket.close()
            raise
        self._accept_channel = Channel(loop, self._accept_socket.fd())
        self._accept_channel.read_callback = self._handle_read
        self._listening = False
        self._closed = False
        self.new_connection_callback: Optional[NewConnectionCallback] = None

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def listen_address(self) -> InetAddress:
        """The address the socket is actually bound to."""
        return InetAddress.from_sockaddr(self._accept_socket.socket.getsockname())

    def listen(self) -> None:
        self._listening = True
        self._accept_socket.listen()
        self._accept_channel.enable_reading()

    def close(self) -> None:
        """Stop watching the socket and close it."""
        if self._closed:
            return
        self._closed = True
        if self._listening:
            self._accept_channel.disable_all()
            self._accept_channel.remove()
        self._accept_socket.close()

    def __enter__(self) -> "Acceptor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            conn, peer_addr = self._accept_socket.accept()
        except OSError as exc:
            log_error("Acceptor::handleRead accept err:%d", exc.errno or 0)
            if exc.errno == errno.EMFILE:
                log_error("Acceptor::handleRead sockfd reached limit")
            return
        if self.new_connection_callback is not None:
            self.new_connection_callback(conn, peer_addr)
        else:
            conn.close()