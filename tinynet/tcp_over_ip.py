"""Carrying TCP segments inside IPv4 datagrams, optionally over a TUN device."""

from __future__ import annotations

from typing import Optional

from tinynet.address import Address
from tinynet.fd_adapter import FdAdapterBase
from tinynet.file_descriptor import FileDescriptor
from tinynet.ipv4 import IPv4Datagram, IPv4Header, format_ipv4
from tinynet.parser import parse, serialize
from tinynet.tcp_segment import TCPMessage, TCPSegment

_TCP_HEADER_LENGTH = 20


class TCPOverIPv4Adapter(FdAdapterBase):
    """Converts between TCP messages and IPv4 datagrams for one connection."""

    def unwrap_tcp_in_ip(self, datagram: IPv4Datagram) -> Optional[TCPMessage]:
        """Extract the TCP message if the datagram belongs to this connection.

        While listening, a SYN (without RST) fixes the connection's addresses
        and ports and ends listening; anything else is ignored.
        """
        cfg = self.config()
        header = datagram.header

        # Binding to "0" is allowed; replies then come from the address contacted.
        if not self.listening() and header.dst != cfg.source.ipv4_numeric():
            return None
        if not self.listening() and header.src != cfg.destination.ipv4_numeric():
            return None
        if header.proto != IPv4Header.PROTO_TCP:
            return None

        segment = TCPSegment()
        if not parse(segment, datagram.payload, header.pseudo_checksum()):
            return None

        if segment.udinfo.dst_port != cfg.source.port():
            return None

        if self.listening():
            sender = segment.message.sender
            if not (sender.SYN and not sender.RST):
                return None
            cfg.source = Address(format_ipv4(header.dst), cfg.source.port())
            cfg.destination = Address(format_ipv4(header.src), segment.udinfo.src_port)
            self.set_listening(False)

        if segment.udinfo.src_port != cfg.destination.port():
            return None

        return segment.message

    def wrap_tcp_in_ip(self, message: TCPMessage) -> IPv4Datagram:
        """Wrap a TCP message in an IPv4 datagram with ports, lengths and checksums set."""
        cfg = self.config()
        segment = TCPSegment(message=message)
        segment.udinfo.src_port = cfg.source.port()
        segment.udinfo.dst_port = cfg.destination.port()

        datagram = IPv4Datagram()
        header = datagram.header
        header.src = cfg.source.ipv4_numeric()
        header.dst = cfg.destination.ipv4_numeric()
        header.len = header.hlen * 4 + _TCP_HEADER_LENGTH + len(message.sender.payload)

        segment.compute_checksum(header.pseudo_checksum())
        header.compute_checksum()
        datagram.payload = serialize(segment)
        return datagram


class TCPOverIPv4OverTunFdAdapter(TCPOverIPv4Adapter):
    """Reads and writes IPv4 datagrams carrying TCP on a TUN device."""

    def __init__(self, tun: FileDescriptor) -> None:
        super().__init__()
        self._tun = tun

    def read(self) -> Optional[TCPMessage]:
        """Read one datagram; return its TCP message if it is valid and ours."""
        buffers = self._tun.readv([IPv4Header.LENGTH, 0])
        if not buffers:
            return None
        datagram = IPv4Datagram()
        if parse(datagram, buffers):
            return self.unwrap_tcp_in_ip(datagram)
        return None

    def write(self, message: TCPMessage) -> None:
        """Wrap a TCP message in an IPv4 datagram and write it to the device."""
        self._tun.write(serialize(self.wrap_tcp_in_ip(message)))

    def fd(self) -> FileDescriptor:
        return self._tun