"""An echo server: returns what each client sends, then closes its write side."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .buffer import Buffer
from .event_loop import EventLoop
from .inet_address import InetAddress
from .logger import log_info
from .tcp_connection import TcpConnection
from .tcp_server import TcpServer
from .timestamp import Timestamp

_NUM_THREADS = 3
_DEFAULT_PORT = 8000
_DEFAULT_NAME = "EchoServer-01"


class EchoServer:
    """Echoes each message back and then shuts the connection's write side."""

    def __init__(self, loop: EventLoop, addr: InetAddress, name: str) -> None:
        self._loop = loop
        self._server = TcpServer(loop, addr, name)
        self._server.connection_callback = self._on_connection
        self._server.message_callback = self._on_message
        self._server.set_thread_num(_NUM_THREADS)

    @property
    def server(self) -> TcpServer:
        return self._server

    def start(self) -> None:
        self._server.start()

    def close(self) -> None:
        """Stop the server; call on the loop's thread once started."""
        self._server.close()

    def _on_connection(self, conn: TcpConnection) -> None:
        state = "UP" if conn.connected() else "DOWN"
        log_info("Connection %s : %s", state, conn.peer_address.to_ip_port())

    def _on_message(self, conn: TcpConnection, buf: Buffer, when: Timestamp) -> None:
        conn.send(buf.retrieve_all_as_bytes())
        conn.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the echo server until interrupted."""
    parser = argparse.ArgumentParser(description="Run a TCP echo server.")
    parser.add_argument("--ip", default="127.0.0.1", help="address to listen on")
    parser.add_argument("--port", type=int, default=_DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--name", default=_DEFAULT_NAME, help="server name")
    args = parser.parse_args(argv)

    try:
        addr = InetAddress(args.port, args.ip)
    except ValueError as exc:
        parser.error(str(exc))

    with EventLoop() as loop:
        server = EchoServer(loop, addr, args.name)
        server.start()
        try:
            loop.loop()
        except KeyboardInterrupt:
            pass
        finally:
            server.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())