"""The Internet checksum (ones' complement sum of 16-bit words)."""

from __future__ import annotations

from typing import Iterable, Union

_BytesLike = (bytes, bytearray, memoryview)


class InternetChecksum:
    """Incremental Internet checksum; byte parity carries across ``add`` calls."""

    def __init__(self, initial_sum: int = 0) -> None:
        self._sum = initial_sum & 0xFFFFFFFF
        self._odd = False

    def add(self, data: Union[bytes, bytearray, memoryview, Iterable[bytes]]) -> None:
        """Add a buffer, or each buffer of an iterable, to the sum."""
        if not isinstance(data, _BytesLike):
            for chunk in data:
                self.add(chunk)
            return
        total = self._sum
        odd = self._odd
        for byte in bytes(data):
            total += byte if odd else byte << 8
            odd = not odd
        self._sum = total & 0xFFFFFFFF
        self._odd = odd

    def value(self) -> int:
        ret = self._sum
        while ret > 0xFFFF:
            ret = (ret >> 16) + (ret & 0xFFFF)
        return ~ret & 0xFFFF