"""Configuration for TCP peers and the adapters that carry their segments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from tinynet.address import Address


def _any_address() -> Address:
    return Address("0", 0)


@dataclass
class TCPConfig:
    """Settings for a TCP sender and receiver."""

    DEFAULT_CAPACITY: ClassVar[int] = 64000
    MAX_PAYLOAD_SIZE: ClassVar[int] = 1000  # conservative for the real Internet
    TIMEOUT_DFLT: ClassVar[int] = 1000  # default retransmission timeout, in ms
    MAX_RETX_ATTEMPTS: ClassVar[int] = 8

    rt_timeout: int = TIMEOUT_DFLT
    recv_capacity: int = DEFAULT_CAPACITY
    send_capacity: int = DEFAULT_CAPACITY
    isn: int = 137  # initial sequence number (32-bit wrapped)


@dataclass
class FdAdapterConfig:
    """Addresses and loss rates used by datagram adapters.

    Loss rates are out of 65536: a rate of ``n`` drops about ``n / 65536`` of
    the datagrams in that direction.
    """

    source: Address = field(default_factory=_any_address)
    destination: Address = field(default_factory=_any_address)
    loss_rate_dn: int = 0
    loss_rate_up: int = 0