"""Big-endian field parsing and serialization over lists of byte buffers."""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Union

BytesLike = Union[bytes, bytearray, memoryview]


def _is_bytes_like(data: Any) -> bool:
    return isinstance(data, (bytes, bytearray, memoryview))


class Parser:
    """Reads integers and byte strings from a sequence of buffers.

    A read past the end of the input sets a sticky error flag. Once it is
    set, further reads return zero values and consume nothing.
    """

    def __init__(self, buffers: Union[BytesLike, Iterable[BytesLike]]) -> None:
        if _is_bytes_like(buffers):
            buffers = [buffers]
        self._chunks: deque[bytes] = deque(bytes(b) for b in buffers if len(b))
        self._skip = 0
        self._size = sum(len(c) for c in self._chunks)
        self._error = False

    @property
    def remaining(self) -> int:
        """Number of unread bytes."""
        return self._size

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def _take(self, n: int) -> bytes:
        parts = []
        while n and self._chunks:
            front = self._chunks[0]
            piece = front[self._skip : self._skip + n]
            parts.append(piece)
            self._skip += len(piece)
            self._size -= len(piece)
            n -= len(piece)
            if self._skip == len(front):
                self._chunks.popleft()
                self._skip = 0
        return b"".join(parts)

    def _check_size(self, n: int) -> None:
        if n > self._size:
            self._error = True

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes of input."""
        self._take(n)

    def integer(self, nbytes: int) -> int:
        """Read an unsigned big-endian integer of ``nbytes`` bytes."""
        self._check_size(nbytes)
        if self._error:
            return 0
        return int.from_bytes(self._take(nbytes), "big")

    def string(self, length: int) -> bytes:
        """Read exactly ``length`` bytes (zero bytes on error)."""
        self._check_size(length)
        if self._error:
            return bytes(length)
        return self._take(length)

    def all_remaining(self) -> list[bytes]:
        """Consume and return every remaining buffer."""
        if not self._chunks:
            return []
        out = [self._chunks[0][self._skip :], *list(self._chunks)[1:]]
        self._chunks.clear()
        self._skip = 0
        self._size = 0
        return out

    def buffer(self) -> list[bytes]:
        """Return the remaining buffers without consuming them."""
        if not self._chunks:
            return []
        return [self._chunks[0][self._skip :], *list(self._chunks)[1:]]


class Serializer:
    """Accumulates big-endian integers and whole buffers into a buffer list."""

    def __init__(self) -> None:
        self._output: list[bytes] = []
        self._pending = bytearray()

    def integer(self, value: int, nbytes: int) -> None:
        """Append ``value`` as an unsigned big-endian integer, truncated to ``nbytes``."""
        mask = (1 << (8 * nbytes)) - 1
        self._pending += (value & mask).to_bytes(nbytes, "big")

    def buffer(self, data: Union[BytesLike, Iterable[BytesLike]]) -> None:
        """Append one buffer, or each buffer of an iterable; empty ones are dropped."""
        if _is_bytes_like(data):
            self._flush()
            if len(data):
                self._output.append(bytes(data))
            return
        for chunk in data:
            self.buffer(chunk)

    def _flush(self) -> None:
        if self._pending:
            self._output.append(bytes(self._pending))
            self._pending = bytearray()

    def output(self) -> list[bytes]:
        self._flush()
        return list(self._output)


def serialize(obj: Any) -> list[bytes]:
    """Serialize any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.output()


def parse(obj: Any, buffers: Union[BytesLike, Iterable[BytesLike]], *args: Any) -> bool:
    """Parse ``buffers`` into ``obj``; return True if parsing succeeded."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()