"""TCP messages and their wire form inside a segment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tinynet.checksum import InternetChecksum
from tinynet.parser import Parser, Serializer

TCP_HEADER_MIN_LEN = 5  # in 32-bit words

_FLAG_ACK = 0b0001_0000
_FLAG_RST = 0b0000_0100
_FLAG_SYN = 0b0000_0010
_FLAG_FIN = 0b0000_0001


@dataclass
class UserDatagramInfo:
    """The UDP-like part of a TCP header: ports and checksum."""

    src_port: int = 0
    dst_port: int = 0
    cksum: int = 0


@dataclass
class TCPSenderMessage:
    """What a TCP sender tells its receiver; ``seqno`` is a 32-bit wrapped number."""

    seqno: int = 0
    SYN: bool = False
    payload: bytes = b""
    FIN: bool = False
    RST: bool = False

    def sequence_length(self) -> int:
        """How many sequence numbers this message occupies."""
        return int(self.SYN) + len(self.payload) + int(self.FIN)


@dataclass
class TCPReceiverMessage:
    """What a TCP receiver tells its sender; ``ackno`` is absent before the ISN is known."""

    ackno: Optional[int] = None
    window_size: int = 0
    RST: bool = False


@dataclass
class TCPMessage:
    sender: TCPSenderMessage = field(default_factory=TCPSenderMessage)
    receiver: TCPReceiverMessage = field(default_factory=TCPReceiverMessage)


@dataclass
class TCPSegment:
    """A TCP message together with its ports and checksum."""

    message: TCPMessage = field(default_factory=TCPMessage)
    udinfo: UserDatagramInfo = field(default_factory=UserDatagramInfo)

    def parse(self, parser: Parser, pseudo_checksum: int) -> None:
        """Parse a segment, verifying its checksum against the pseudo-header sum."""
        check = InternetChecksum(pseudo_checksum)
        check.add(parser.buffer())
        if check.value():
            parser.set_error()
            return

        self.udinfo.src_port = parser.integer(2)
        self.udinfo.dst_port = parser.integer(2)

        sender = self.message.sender
        receiver = self.message.receiver
        sender.seqno = parser.integer(4)
        receiver.ackno = parser.integer(4)

        data_offset = parser.integer(1) >> 4
        flags = parser.integer(1)
        if not flags & _FLAG_ACK:
            receiver.ackno = None
        sender.RST = receiver.RST = bool(flags & _FLAG_RST)
        sender.SYN = bool(flags & _FLAG_SYN)
        sender.FIN = bool(flags & _FLAG_FIN)

        receiver.window_size = parser.integer(2)
        self.udinfo.cksum = parser.integer(2)
        parser.integer(2)  # urgent pointer

        if data_offset < TCP_HEADER_MIN_LEN:
            parser.set_error()
            parser.remove_prefix(parser.remaining)
        else:
            parser.remove_prefix((data_offset - TCP_HEADER_MIN_LEN) * 4)

        sender.payload = b"".join(parser.all_remaining())

    def serialize(self, serializer: Serializer) -> None:
        sender = self.message.sender
        receiver = self.message.receiver
        serializer.integer(self.udinfo.src_port, 2)
        serializer.integer(self.udinfo.dst_port, 2)
        serializer.integer(sender.seqno, 4)
        serializer.integer(receiver.ackno if receiver.ackno is not None else 0, 4)
        serializer.integer(TCP_HEADER_MIN_LEN << 4, 1)
        flags = (
            (_FLAG_ACK if receiver.ackno is not None else 0)
            | (_FLAG_RST if sender.RST or receiver.RST else 0)
            | (_FLAG_SYN if sender.SYN else 0)
            | (_FLAG_FIN if sender.FIN else 0)
        )
        serializer.integer(flags, 1)
        serializer.integer(receiver.window_size, 2)
        serializer.integer(self.udinfo.cksum, 2)
        serializer.integer(0, 2)  # urgent pointer
        serializer.buffer(sender.payload)

    def compute_checksum(self, pseudo_checksum: int) -> None:
        """Set the checksum, given the pseudo-header's contribution."""
        self.udinfo.cksum = 0
        serializer = Serializer()
        self.serialize(serializer)
        check = InternetChecksum(pseudo_checksum)
        check.add(serializer.output())
        self.udinfo.cksum = check.value()