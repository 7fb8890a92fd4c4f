"""Thin ownership wrapper around a listening or connected TCP socket."""

from __future__ import annotations

import socket
from typing import Optional

from .inet_address import InetAddress
from .logger import log_error

_LISTEN_BACKLOG = 1024


def create_nonblocking() -> socket.socket:
    """Create a non-blocking IPv4 TCP socket."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setblocking(False)
    return sock


class TcpSocket:
    """Owns a socket and closes it when closed or used as a context manager."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock

    @property
    def socket(self) -> socket.socket:
        return self._sock

    def fd(self) -> int:
        return self._sock.fileno()

    def bind_address(self, local_addr: InetAddress) -> None:
        try:
            self._sock.bind(local_addr.sockaddr())
        except OSError:
            log_error("bind sockfd:%d fail", self.fd())
            raise

    def listen(self) -> None:
        try:
            self._sock.listen(_LISTEN_BACKLOG)
        except OSError:
            log_error("listen sockfd:%d fail", self.fd())
            raise

    def accept(self) -> tuple[socket.socket, InetAddress]:
        """Accept a connection; return the non-blocking socket and peer address.

        Raises ``BlockingIOError`` when no connection is pending.
        """
        conn, addr = self._sock.accept()
        conn.setblocking(False)
        return conn, InetAddress.from_sockaddr(addr)

    def shutdown_write(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError:
            log_error("shutdownWrite error")

    def _set_flag(self, level: int, option: Optional[int], on: bool) -> None:
        if option is not None:
            self._sock.setsockopt(level, option, 1 if on else 0)

    def set_tcp_no_delay(self, on: bool) -> None:
        self._set_flag(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, getattr(socket, "SO_REUSEPORT", None), on)

    def set_keep_alive(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "TcpSocket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()