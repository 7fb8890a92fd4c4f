"""The TCP server: accepts connections and spreads them over event-loop threads."""

from __future__ import annotations

import functools
import socket
import threading
from enum import Enum
from typing import Optional

from .acceptor import Acceptor
from .event_loop import EventLoop
from .event_loop_thread_pool import EventLoopThreadPool, ThreadInitCallback
from .inet_address import InetAddress
from .logger import log_error, log_info
from .tcp_connection import (
    ConnectionCallback,
    MessageCallback,
    TcpConnection,
    WriteCompleteCallback,
)


class ServerOption(Enum):
    """Whether the listening socket sets ``SO_REUSEPORT``."""

    NO_REUSE_PORT = 0
    REUSE_PORT = 1


class TcpServer:
    """Listens on the base loop and hands each connection to a sub-loop in turn.

    The user callbacks are set as attributes before :meth:`start`. Once the
    server is started, :meth:`close` must be called on the base loop's thread.
    """

    def __init__(
        self,
        loop: EventLoop,
        listen_addr: InetAddress,
        name: str,
        option: ServerOption = ServerOption.NO_REUSE_PORT,
    ) -> None:
        if loop is None:
            raise ValueError("TcpServer main loop is None")
        self._loop = loop
        self._ip_port = listen_addr.to_ip_port()
        self._name = name
        self._acceptor = Acceptor(loop, listen_addr, option is ServerOption.REUSE_PORT)
        self._thread_pool = EventLoopThreadPool(loop, name)

        self.connection_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.thread_init_callback: Optional[ThreadInitCallback] = None

        self._started = 0
        self._start_lock = threading.Lock()
        self._closed = False
        self._next_conn_id = 1
        self._connections: dict[str, TcpConnection] = {}

        self._acceptor.new_connection_callback = self._new_connection

    @property
    def name(self) -> str:
        return self._name

    @property
    def ip_port(self) -> str:
        return self._ip_port

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def thread_pool(self) -> EventLoopThreadPool:
        return self._thread_pool

    @property
    def started(self) -> bool:
        return self._started > 0

    @property
    def listen_address(self) -> InetAddress:
        """The address the listening socket is actually bound to."""
        return self._acceptor.listen_address

    @property
    def connections(self) -> dict[str, TcpConnection]:
        """A snapshot of the live connections by name."""
        return dict(self._connections)

    def set_thread_num(self, num_threads: int) -> None:
        """Set how many sub-loop threads serve connections (0: the base loop only)."""
        self._thread_pool.set_thread_num(num_threads)

    def start(self) -> None:
        """Start the sub-loops and begin listening; later calls do nothing."""
        with self._start_lock:
            first = self._started == 0
            self._started += 1
        if first:
            self._thread_pool.start(self.thread_init_callback)
            self._loop.run_in_loop(self._acceptor.listen)

    def close(self) -> None:
        """Destroy every connection, stop listening and stop the sub-loops."""
        if self._closed:
            return
        self._closed = True
        connections = list(self._connections.values())
        self._connections.clear()
        for conn in connections:
            conn.loop.run_in_loop(conn.connect_destroyed)
        self._acceptor.close()
        self._thread_pool.close()

    def __enter__(self) -> "TcpServer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _new_connection(self, sock: socket.socket, peer_addr: InetAddress) -> None:
        io_loop = self._thread_pool.get_next_loop()
        conn_name = f"{self._name}-{self._ip_port}#{self._next_conn_id}"
        self._next_conn_id += 1

        log_info(
            "TcpServer::newConnection [%s] - new connection [%s] from %s",
            self._name, conn_name, peer_addr.to_ip_port(),
        )

        try:
            local_addr = InetAddress.from_sockaddr(sock.getsockname())
        except (OSError, ValueError):
            log_error("sockets::getLocalAddr")
            local_addr = InetAddress(0, "0.0.0.0")

        conn = TcpConnection(io_loop, conn_name, sock, local_addr, peer_addr)
        self._connections[conn_name] = conn
        conn.connection_callback = self.connection_callback
        conn.message_callback = self.message_callback
        conn.write_complete_callback = self.write_complete_callback
        conn.close_callback = self._remove_connection

        io_loop.run_in_loop(conn.connect_established)

    def _remove_connection(self, conn: TcpConnection) -> None:
        self._loop.run_in_loop(functools.partial(self._remove_connection_in_loop, conn))

    def _remove_connection_in_loop(self, conn: TcpConnection) -> None:
        log_info(
            "TcpServer::removeConnectionInLoop [%s] - connection %s",
            self._name, conn.name,
        )
        self._connections.pop(conn.name, None)
        conn.loop.queue_in_loop(conn.connect_destroyed)