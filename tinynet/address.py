"""Socket addresses and name resolution."""

from __future__ import annotations

import ipaddress
import socket
from typing import Any

from tinynet.errors import TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


class Address:
    """A socket address: an address family and the matching sockaddr value."""

    def __init__(self, ip: str, port: int = 0) -> None:
        """Build from a dotted-quad IPv4 string and a numeric port (no lookup)."""
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        family, sockaddr = _lookup(
            ip,
            str(port),
            socket.AF_INET,
            socket.AI_NUMERICHOST | socket.AI_NUMERICSERV,
        )
        self._family = family
        self._sockaddr = sockaddr

    @classmethod
    def _make(cls, family: int, sockaddr: Any) -> "Address":
        obj = cls.__new__(cls)
        obj._family = family
        obj._sockaddr = sockaddr
        return obj

    @classmethod
    def resolve(cls, hostname: str, service: str) -> "Address":
        """Resolve a hostname and a service name or number to an IPv4 address."""
        family, sockaddr = _lookup(
            hostname, service, socket.AF_INET, getattr(socket, "AI_ALL", 0)
        )
        return cls._make(family, sockaddr)

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> "Address":
        """Wrap a raw address as returned by the socket module."""
        return cls._make(family, sockaddr)

    @classmethod
    def from_ipv4_numeric(cls, value: int) -> "Address":
        """Build an IPv4 address (port 0) from a 32-bit number in host order."""
        return cls._make(socket.AF_INET, (str(ipaddress.IPv4Address(value & 0xFFFFFFFF)), 0))

    @property
    def family(self) -> int:
        return self._family

    def ip_port(self) -> tuple[str, int]:
        """Numeric host string and port number."""
        if self._family not in _INTERNET_FAMILIES:
            raise ValueError("ip_port() called on non-Internet address")
        try:
            host, port = socket.getnameinfo(
                self._sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
            )
        except socket.gaierror as exc:
            raise TaggedError("getnameinfo", exc.errno or 0, exc.strerror or str(exc)) from exc
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as a 32-bit number in host order."""
        if self._family != socket.AF_INET:
            raise ValueError("ipv4_numeric called on non-IPV4 address")
        return int(ipaddress.IPv4Address(self._sockaddr[0]))

    def sockaddr(self) -> Any:
        """The address in the form the socket module accepts."""
        return self._sockaddr

    def __str__(self) -> str:
        if self._family in _INTERNET_FAMILIES:
            host, port = self.ip_port()
            return f"{host}:{port}"
        return "(non-Internet address)"

    def __repr__(self) -> str:
        return f"Address(family={self._family!r}, sockaddr={self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))


def _lookup(node: str, service: str, family: int, flags: int) -> tuple[int, Any]:
    try:
        results = socket.getaddrinfo(node, service, family, 0, 0, flags)
    except socket.gaierror as exc:
        raise TaggedError(
            f"getaddrinfo({node}, {service})", exc.errno or 0, exc.strerror or str(exc)
        ) from exc
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    found_family, _type, _proto, _canon, sockaddr = results[0]
    return found_family, sockaddr