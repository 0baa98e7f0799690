"""Packet formats, checksums, sockets, a poll-based event loop and TCP-over-IPv4 adapters."""

__version__ = "0.1.0"