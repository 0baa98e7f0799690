# tinynet

Building blocks for a small user-space network stack: wire formats for
Ethernet, ARP, IPv4 and TCP, the Internet checksum, wrappers around file
descriptors and sockets, a poll-based event loop, and adapters that carry
TCP messages inside IPv4 datagrams, optionally over a Linux TUN device.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `tinynet.parser` | `Parser`, `Serializer`, `parse()`, `serialize()` for big-endian wire formats held as lists of `bytes` buffers |
| `tinynet.checksum` | `InternetChecksum`, the incremental ones' complement sum of 16-bit words |
| `tinynet.ethernet` | `EthernetHeader`, `EthernetFrame`, `format_ethernet_address()`, `ETHERNET_BROADCAST` |
| `tinynet.ipv4` | `IPv4Header`, `IPv4Datagram` (alias `InternetDatagram`), `format_ipv4()` |
| `tinynet.arp` | `ARPMessage` (Ethernet/IPv4 requests and replies) |
| `tinynet.errors` | `TaggedError`, `UnixError`, `check_system_call()`, `notnull()` |
| `tinynet.address` | `Address`, a socket address with numeric IPv4 construction and name resolution |
| `tinynet.file_descriptor` | `FileDescriptor`, a handle on an OS descriptor whose duplicates share state and read/write counts |
| `tinynet.sockets` | `Socket`, `DatagramSocket`, `UDPSocket`, `TCPSocket`, `PacketSocket`, `LocalStreamSocket`, `LocalDatagramSocket` |
| `tinynet.rng` | `get_random_engine()`, a `random.Random` seeded from `os.urandom` |
| `tinynet.tun` | `TunTapFD`, `TunFD`, `TapFD` for existing Linux TUN/TAP devices |
| `tinynet.eventloop` | `EventLoop`, `Direction`, `Result`, `RuleHandle` |
| `tinynet.tcp_segment` | `UserDatagramInfo`, `TCPSenderMessage`, `TCPReceiverMessage`, `TCPMessage`, `TCPSegment` |
| `tinynet.tcp_config` | `TCPConfig`, `FdAdapterConfig` |
| `tinynet.fd_adapter` | `FdAdapterBase`, `LossyFdAdapter` |
| `tinynet.tcp_over_ip` | `TCPOverIPv4Adapter`, `TCPOverIPv4OverTunFdAdapter` |

## Building and parsing an IPv4 datagram

```python
from tinynet.ipv4 import IPv4Datagram
from tinynet.parser import parse, serialize

dgram = IPv4Datagram()
dgram.header.src = 0x0A000002          # 10.0.0.2
dgram.header.dst = 0xC0A80002          # 192.168.0.2
dgram.payload = [b"hello"]
dgram.header.len = dgram.header.hlen * 4 + 5
dgram.header.compute_checksum()

wire = serialize(dgram)                # list of bytes buffers

copy = IPv4Datagram()
assert parse(copy, wire)               # False on a malformed datagram
print(copy.header)  # IPv4 len=25 protocol=6 ttl=128 src=10.0.0.2 dst=192.168.0.2
```

Parsing never raises on bad input. A `Parser` keeps a sticky error flag
(set by reading past the end, a wrong IPv4 version or header length, a bad
checksum, or an unsupported ARP message), and `parse()` returns whether the
object was read cleanly. Serializing an IPv4 header whose version is not 4,
or an ARP message that `supported()` rejects, raises `ValueError`.

## Wrapping TCP messages in IPv4

```python
from tinynet.address import Address
from tinynet.tcp_over_ip import TCPOverIPv4Adapter
from tinynet.tcp_segment import TCPMessage

client = TCPOverIPv4Adapter()
client.config().source = Address("10.0.0.1", 40000)
client.config().destination = Address("10.0.0.2", 80)

server = TCPOverIPv4Adapter()
server.config().source = Address("10.0.0.2", 80)
server.config().destination = Address("10.0.0.1", 40000)

message = TCPMessage()
message.sender.SYN = True
message.sender.seqno = 1000

dgram = client.wrap_tcp_in_ip(message)   # ports, lengths and both checksums set
received = server.unwrap_tcp_in_ip(dgram)
assert received.sender.SYN and received.sender.seqno == 1000
```

`unwrap_tcp_in_ip()` returns `None` for datagrams that are not TCP, fail
their checksum, or do not match the configured addresses and ports. An
adapter put into listening mode with `set_listening(True)` accepts the first
SYN (without RST) addressed to its source port, takes the connection's
addresses and ports from it, and stops listening.

`TCPOverIPv4OverTunFdAdapter` does the same over a TUN device opened with
`TunFD`. `LossyFdAdapter` wraps any such adapter and drops reads and writes
at random, at the rates `loss_rate_dn` and `loss_rate_up` of its
`FdAdapterConfig` (out of 65536).

## The event loop

```python
from tinynet.eventloop import Direction, EventLoop, Result

loop = EventLoop()
loop.add_fd_rule("read input", fd, Direction.IN, on_readable)
while loop.wait_next_event(50) is not Result.EXIT:
    pass
```

Each call to `wait_next_event()` serves at most one rule. Rules added with
`add_rule()` run without a descriptor for as long as their interest
function holds (more than 128 runs in one call raise `RuntimeError`).
Descriptor rules are dropped, with their `cancel` callback, at end of file,
on close or on hangup; on a poll error the `error` callback runs first. A
descriptor rule whose callback neither reads nor writes its descriptor and
stays interested raises `RuntimeError` as a busy wait. `RuleHandle.cancel()`
drops a rule without calling its `cancel` callback. At most 64 categories
can be registered.

## What this package does not do

It has the formats, plumbing and configuration around TCP, but no TCP state
machine: nothing here sends, acknowledges, retransmits or reassembles a byte
stream, and `TCPConfig` only holds settings for such a peer. There is no
command-line program and no socket-like TCP connection object. `TunTapFD`
attaches to a TUN or TAP device that already exists; it does not create or
configure one.

## Platform

The sockets, TUN/TAP devices and the event loop target Linux. The packet
formats, checksum and parser work anywhere Python does.