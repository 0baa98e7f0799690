"""Network sockets built on reference-counted file descriptors."""

from __future__ import annotations

import socket
import struct
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from tinynet.address import Address
from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor

BytesLike = Union[bytes, bytearray, memoryview]

# Linux packet-socket option values (<linux/if_packet.h>).
SOL_PACKET = 263
PACKET_ADD_MEMBERSHIP = 1
PACKET_MR_PROMISC = 1
_PACKET_MREQ = struct.Struct("iHH8s")

_AF_PACKET = getattr(socket, "AF_PACKET", 17)
_AF_UNIX = getattr(socket, "AF_UNIX", 1)


class Socket(FileDescriptor):
    """Base class for network sockets; used through its subclasses."""

    def __init__(
        self,
        family: int,
        sock_type: int,
        protocol: int = 0,
        fd: Optional[Union[FileDescriptor, int]] = None,
    ) -> None:
        """Create a new socket, or adopt ``fd`` after checking that it matches."""
        if fd is None:
            try:
                new_socket = socket.socket(family, sock_type, protocol)
            except OSError as exc:
                raise UnixError("socket", exc.errno or 0) from exc
            super().__init__(new_socket.detach())
            return

        if isinstance(fd, FileDescriptor):
            self._wrapper = fd._wrapper
        else:
            super().__init__(fd)

        with self._view("getsockopt") as sock:
            actual = (int(sock.family), int(sock.type), int(sock.proto))
        if actual[0] != family:
            raise RuntimeError("socket domain mismatch")
        if actual[1] != sock_type:
            raise RuntimeError("socket type mismatch")
        if actual[2] != protocol:
            raise RuntimeError("socket protocol mismatch")

    @contextmanager
    def _view(self, attempt: str) -> Iterator[socket.socket]:
        """A socket object on this descriptor that never closes it."""
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as exc:
            raise UnixError(attempt, exc.errno or 0) from exc
        try:
            yield sock
        finally:
            sock.detach()

    def _address(self, attempt: str, which: str) -> Address:
        with self._view(attempt) as sock:
            family = int(sock.family)
            getter = sock.getsockname if which == "local" else sock.getpeername
            sockaddr = self._call(attempt, getter)
        return Address.from_sockaddr(family, sockaddr)

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listen/accept."""
        with self._view("bind") as sock:
            self._call("bind", sock.bind, address.sockaddr())

    def bind_to_device(self, device_name: str) -> None:
        """Bind the socket to a named network device."""
        with self._view("setsockopt") as sock:
            self._call(
                "setsockopt",
                sock.setsockopt,
                socket.SOL_SOCKET,
                socket.SO_BINDTODEVICE,
                device_name.encode(),
            )

    def connect(self, address: Address) -> None:
        """Connect to a peer address."""
        with self._view("connect") as sock:
            self._call("connect", sock.connect, address.sockaddr())

    def shutdown(self, how: int) -> None:
        """Shut down reading, writing or both (SHUT_RD, SHUT_WR, SHUT_RDWR)."""
        with self._view("shutdown") as sock:
            self._call("shutdown", sock.shutdown, how)
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise RuntimeError("Socket::shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._address("getsockname", "local")

    def peer_address(self) -> Address:
        return self._address("getpeername", "peer")

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner."""
        with self._view("setsockopt") as sock:
            self._call("setsockopt", sock.setsockopt, socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise the socket's pending error, if it has one."""
        with self._view("getsockopt") as sock:
            socket_error = self._call(
                "getsockopt", sock.getsockopt, socket.SOL_SOCKET, socket.SO_ERROR
            )
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> tuple[Optional[Address], bytes]:
        """Receive one datagram; return its sender's address and its payload.

        On a non-blocking socket with nothing to read, returns ``(None, b"")``.
        """
        buf = bytearray(self.READ_BUFFER_SIZE)
        with self._view("recvfrom") as sock:
            family = int(sock.family)
            try:
                length, source = sock.recvfrom_into(buf, 0, socket.MSG_TRUNC)
            except BlockingIOError as exc:
                if not self._wrapper.non_blocking:
                    raise UnixError("recvfrom", exc.errno or 0) from exc
                self._register_read()
                return None, b""
            except OSError as exc:
                raise UnixError("recvfrom", exc.errno or 0) from exc

        if length > len(buf):
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return Address.from_sockaddr(family, source), bytes(buf[:length])

    def sendto(self, destination: Address, payload: BytesLike) -> None:
        """Send a datagram to the given address."""
        with self._view("sendto") as sock:
            self._call("sendto", sock.sendto, bytes(payload), destination.sockaddr())
        self._register_write()

    def send(self, payload: BytesLike) -> None:
        """Send a datagram to the connected peer."""
        with self._view("send") as sock:
            self._call("send", sock.send, bytes(payload))
        self._register_write()


class UDPSocket(DatagramSocket):
    """An IPv4 UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """An IPv4 TCP socket."""

    def __init__(self, fd: Optional[Union[FileDescriptor, int]] = None) -> None:
        """Create an unbound, unconnected socket, or adopt a connected ``fd``."""
        if fd is None:
            super().__init__(socket.AF_INET, socket.SOCK_STREAM)
        else:
            super().__init__(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, fd)

    def listen(self, backlog: int = 16) -> None:
        """Mark the socket as accepting incoming connections."""
        with self._view("listen") as sock:
            self._call("listen", sock.listen, backlog)

    def accept(self) -> "TCPSocket":
        """Wait for and return a new connection."""
        self._register_read()
        with self._view("accept") as sock:
            try:
                connection, _peer = sock.accept()
            except OSError as exc:
                raise UnixError("accept", exc.errno or 0) from exc
        return TCPSocket(FileDescriptor(connection.detach()))


class PacketSocket(DatagramSocket):
    """A link-layer packet socket."""

    def __init__(self, sock_type: int, protocol: int) -> None:
        super().__init__(_AF_PACKET, sock_type, protocol)

    def set_promiscuous(self) -> None:
        """Receive every frame on the bound interface."""
        address = self.local_address()
        if address.family != _AF_PACKET:
            raise RuntimeError("Address::as() conversion failure")
        ifindex = socket.if_nametoindex(address.sockaddr()[0])
        request = _PACKET_MREQ.pack(ifindex, PACKET_MR_PROMISC, 0, b"")
        with self._view("setsockopt") as sock:
            self._call("setsockopt", sock.setsockopt, SOL_PACKET, PACKET_ADD_MEMBERSHIP, request)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket."""

    def __init__(self, fd: Union[FileDescriptor, int]) -> None:
        super().__init__(_AF_UNIX, socket.SOCK_STREAM, 0, fd)


class LocalDatagramSocket(DatagramSocket):
    """A Unix-domain datagram socket."""

    def __init__(self, fd: Optional[Union[FileDescriptor, int]] = None) -> None:
        super().__init__(_AF_UNIX, socket.SOCK_DGRAM, 0, fd)