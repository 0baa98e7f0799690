"""Base behaviour shared by datagram adapters, and a lossy wrapper around them."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from tinynet.file_descriptor import FileDescriptor
from tinynet.rng import get_random_engine
from tinynet.tcp_config import FdAdapterConfig
from tinynet.tcp_segment import TCPMessage


class _RandomBits(Protocol):
    def getrandbits(self, k: int) -> int: ...


class FdAdapterBase:
    """Holds an adapter's configuration and its listening flag."""

    def __init__(self) -> None:
        self._cfg = FdAdapterConfig()
        self._listen = False

    def set_listening(self, listening: bool) -> None:
        self._listen = listening

    def listening(self) -> bool:
        """Is the adapter waiting for a new connection?"""
        return self._listen

    def config(self) -> FdAdapterConfig:
        """The adapter's configuration (mutable in place)."""
        return self._cfg

    def tick(self, ms: int) -> None:
        """Called periodically as time passes; does nothing by default."""


class LossyFdAdapter:
    """Wraps an adapter and randomly drops reads and writes.

    The drop probabilities come from the wrapped adapter's configuration.
    """

    def __init__(self, adapter: Any, rng: Optional[_RandomBits] = None) -> None:
        self._adapter = adapter
        self._rng = rng if rng is not None else get_random_engine()

    def _should_drop(self, uplink: bool) -> bool:
        cfg = self._adapter.config()
        loss = cfg.loss_rate_up if uplink else cfg.loss_rate_dn
        return loss != 0 and self._rng.getrandbits(16) < loss

    def fd(self) -> FileDescriptor:
        return self._adapter.fd()

    def read(self) -> Optional[TCPMessage]:
        """Read from the wrapped adapter; None if nothing came or it was dropped."""
        message = self._adapter.read()
        if self._should_drop(False):
            return None
        return message

    def write(self, message: TCPMessage) -> None:
        """Write through the wrapped adapter, unless the message is dropped."""
        if self._should_drop(True):
            return
        self._adapter.write(message)

    def set_listening(self, listening: bool) -> None:
        self._adapter.set_listening(listening)

    def config(self) -> FdAdapterConfig:
        return self._adapter.config()

    def tick(self, ms: int) -> None:
        self._adapter.tick(ms)