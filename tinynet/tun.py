"""File descriptors on Linux TUN and TAP devices."""

from __future__ import annotations

import fcntl
import os
import struct

from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor

CLONE_DEVICE = "/dev/net/tun"
IFNAMSIZ = 16
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
TUNSETIFF = 0x400454CA
_IFREQ_SIZE = 40


def _ifreq(devname: str, flags: int) -> bytes:
    """A ``struct ifreq`` holding a NUL-terminated name and the given flags."""
    name = devname.encode()[: IFNAMSIZ - 1].ljust(IFNAMSIZ, b"\0")
    return (name + struct.pack("h", flags)).ljust(_IFREQ_SIZE, b"\0")


class TunTapFD(FileDescriptor):
    """A handle on an existing persistent TUN or TAP device."""

    def __init__(self, devname: str, is_tun: bool) -> None:
        """Attach to ``devname``: a TUN device (IP datagrams) or a TAP device (Ethernet frames)."""
        try:
            fd = os.open(CLONE_DEVICE, os.O_RDWR | os.O_CLOEXEC)
        except OSError as exc:
            raise UnixError("open", exc.errno or 0) from exc
        super().__init__(fd)

        flags = (IFF_TUN if is_tun else IFF_TAP) | IFF_NO_PI
        try:
            fcntl.ioctl(fd, TUNSETIFF, _ifreq(devname, flags))
        except OSError as exc:
            self.close()
            raise UnixError("ioctl", exc.errno or 0) from exc


class TunFD(TunTapFD):
    """A handle on a TUN device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, True)


class TapFD(TunTapFD):
    """A handle on a TAP device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, False)