"""IPv4 socket addresses."""

from __future__ import annotations

import socket
from dataclasses import dataclass


@dataclass(frozen=True)
class InetAddress:
    """An IPv4 address and port."""

    port: int = 0
    ip: str = "127.0.0.1"

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")
        try:
            packed = socket.inet_aton(self.ip)
        except OSError as exc:
            raise ValueError(f"invalid IPv4 address: {self.ip!r}") from exc
        object.__setattr__(self, "ip", socket.inet_ntoa(packed))

    @classmethod
    def from_sockaddr(cls, addr: tuple) -> InetAddress:
        """Build from a ``(host, port)`` tuple as returned by the socket module."""
        host, port = addr[0], addr[1]
        return cls(port, host)

    def to_ip(self) -> str:
        return self.ip

    def to_ip_port(self) -> str:
        return f"{self.ip}:{self.port}"

    def to_port(self) -> int:
        return self.port

    def sockaddr(self) -> tuple:
        """Return the ``(host, port)`` tuple used by the socket module."""
        return (self.ip, self.port)

    def __str__(self) -> str:
        return self.to_ip_port()