"""Ethernet addresses, headers and frames."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Iterable

from tinynet.parser import Parser, Serializer

ETHERNET_ADDRESS_LENGTH = 6
ETHERNET_BROADCAST = b"\xff" * ETHERNET_ADDRESS_LENGTH


def format_ethernet_address(address: Iterable[int]) -> str:
    """Colon-separated lowercase hex, e.g. ``ff:ff:ff:ff:ff:ff``."""
    return ":".join(f"{b:02x}" for b in bytes(address))


@dataclass
class EthernetHeader:
    """Ethernet frame header: destination, source and EtherType."""

    LENGTH: ClassVar[int] = 14
    TYPE_IPV4: ClassVar[int] = 0x800
    TYPE_ARP: ClassVar[int] = 0x806

    dst: bytes = bytes(ETHERNET_ADDRESS_LENGTH)
    src: bytes = bytes(ETHERNET_ADDRESS_LENGTH)
    type: int = 0

    def __str__(self) -> str:
        if self.type == self.TYPE_IPV4:
            kind = "IPv4"
        elif self.type == self.TYPE_ARP:
            kind = "ARP"
        else:
            kind = f"[unknown type {self.type:x}!]"
        return (
            f"dst={format_ethernet_address(self.dst)} "
            f"src={format_ethernet_address(self.src)} type={kind}"
        )

    def parse(self, parser: Parser) -> None:
        self.dst = parser.string(ETHERNET_ADDRESS_LENGTH)
        self.src = parser.string(ETHERNET_ADDRESS_LENGTH)
        self.type = parser.integer(2)

    def serialize(self, serializer: Serializer) -> None:
        for b in bytes(self.dst):
            serializer.integer(b, 1)
        for b in bytes(self.src):
            serializer.integer(b, 1)
        serializer.integer(self.type, 2)


@dataclass
class EthernetFrame:
    """An Ethernet header followed by its payload buffers."""

    header: EthernetHeader = field(default_factory=EthernetHeader)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        serializer.buffer(self.payload)