"""Reference-counted handles on kernel file descriptors."""

from __future__ import annotations

import os
import sys
from typing import Any, Callable, Iterable, Union

from tinynet.errors import UnixError

BytesLike = Union[bytes, bytearray, memoryview]


class _FDWrapper:
    """The shared state behind every duplicate of a FileDescriptor."""

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.closed = False
        self.read_count = 0
        self.write_count = 0
        try:
            self.non_blocking = not os.get_blocking(fd)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc

    def close(self) -> None:
        try:
            os.close(self.fd)
        except OSError as exc:
            raise UnixError("close", exc.errno or 0) from exc
        self.eof = True
        self.closed = True

    def __del__(self) -> None:
        try:
            if not self.closed:
                self.close()
        except Exception as exc:  # never raise from a finalizer
            print(f"Exception destructing FDWrapper: {exc}", file=sys.stderr)


class FileDescriptor:
    """A handle on a file descriptor, closed when the last duplicate goes away."""

    READ_BUFFER_SIZE = 16384

    def __init__(self, fd: int) -> None:
        self._wrapper = _FDWrapper(fd)

    def duplicate(self) -> "FileDescriptor":
        """Another handle on the same descriptor, sharing its state."""
        other = object.__new__(type(self))
        other.__dict__.update(self.__dict__)
        return other

    def _register_read(self) -> None:
        self._wrapper.read_count += 1

    def _register_write(self) -> None:
        self._wrapper.write_count += 1

    def _set_eof(self) -> None:
        self._wrapper.eof = True

    def _call(self, attempt: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run a system call; on a non-blocking descriptor a would-block gives 0."""
        try:
            return func(*args)
        except BlockingIOError as exc:
            if self._wrapper.non_blocking:
                return 0
            raise UnixError(attempt, exc.errno or 0) from exc
        except OSError as exc:
            raise UnixError(attempt, exc.errno or 0) from exc

    def read(self, size: int | None = None) -> bytes:
        """Read up to ``size`` bytes (a default buffer size if not given).

        Returns b"" at end of file, and also when a non-blocking read would block.
        """
        size = size or self.READ_BUFFER_SIZE
        try:
            data = os.read(self.fd_num(), size)
        except BlockingIOError as exc:
            if self._wrapper.non_blocking:
                return b""
            raise UnixError("read", exc.errno or 0) from exc
        except OSError as exc:
            raise UnixError("read", exc.errno or 0) from exc

        self._register_read()
        if not data:
            self._wrapper.eof = True
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        return data

    def readv(self, sizes: Iterable[int]) -> list[bytes]:
        """Scatter-read into buffers of the given sizes.

        The last buffer is always READ_BUFFER_SIZE long, whatever its size says.
        Each returned buffer is cut to what was read into it. An empty list is
        returned when ``sizes`` is empty or a non-blocking read would block.
        """
        lengths = list(sizes)
        if not lengths:
            return []
        lengths[-1] = self.READ_BUFFER_SIZE
        buffers = [bytearray(n) for n in lengths]
        try:
            bytes_read = os.readv(self.fd_num(), buffers)
        except BlockingIOError as exc:
            if self._wrapper.non_blocking:
                return []
            raise UnixError("read", exc.errno or 0) from exc
        except OSError as exc:
            raise UnixError("read", exc.errno or 0) from exc

        self._register_read()
        if bytes_read > sum(lengths):
            raise RuntimeError("read() read more than requested")

        result = []
        remaining = bytes_read
        for buf in buffers:
            taken = min(remaining, len(buf))
            result.append(bytes(buf[:taken]))
            remaining -= taken
        return result

    def write(self, data: Union[BytesLike, Iterable[BytesLike]]) -> int:
        """Write one buffer or several (gathered); return the bytes written."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            buffers = [bytes(data)]
        else:
            buffers = [bytes(b) for b in data]
        total = sum(len(b) for b in buffers)

        written = self._call("writev", os.writev, self.fd_num(), buffers)
        self._register_write()

        if written == 0 and total != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        self._wrapper.close()

    def set_blocking(self, blocking: bool) -> None:
        try:
            os.set_blocking(self.fd_num(), blocking)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc
        self._wrapper.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._wrapper.fd

    def eof(self) -> bool:
        return self._wrapper.eof

    def closed(self) -> bool:
        return self._wrapper.closed

    def read_count(self) -> int:
        return self._wrapper.read_count

    def write_count(self) -> int:
        return self._wrapper.write_count

    def __enter__(self) -> "FileDescriptor":
        return self

    def __exit__(self, *args: Any) -> None:
        if not self.closed():
            self.close()