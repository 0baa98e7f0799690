from tinynet.ethernet import (
    ETHERNET_BROADCAST,
    EthernetFrame,
    EthernetHeader,
    format_ethernet_address,
)
from tinynet.parser import parse, serialize

HOST_A = bytes([0x02, 0, 0, 0, 0, 0x01])
HOST_B = bytes([0x02, 0, 0, 0, 0, 0x02])


def test_format_broadcast():
    assert format_ethernet_address(ETHERNET_BROADCAST) == "ff:ff:ff:ff:ff:ff"


def test_format_pads_with_zeros():
    assert format_ethernet_address(HOST_A) == "02:00:00:00:00:01"


def test_header_str_known_types():
    h = EthernetHeader(dst=HOST_B, src=HOST_A, type=EthernetHeader.TYPE_IPV4)
    assert str(h) == "dst=02:00:00:00:00:02 src=02:00:00:00:00:01 type=IPv4"
    h.type = EthernetHeader.TYPE_ARP
    assert str(h).endswith("type=ARP")


def test_header_str_unknown_type():
    h = EthernetHeader(dst=HOST_B, src=HOST_A, type=0x1234)
    assert str(h).endswith("type=[unknown type 1234!]")


def test_header_round_trip():
    h = EthernetHeader(dst=ETHERNET_BROADCAST, src=HOST_A, type=EthernetHeader.TYPE_ARP)
    wire = serialize(h)
    assert sum(len(c) for c in wire) == EthernetHeader.LENGTH
    out = EthernetHeader()
    assert parse(out, wire)
    assert out == h


def test_header_wire_layout():
    h = EthernetHeader(dst=HOST_B, src=HOST_A, type=EthernetHeader.TYPE_IPV4)
    wire = b"".join(serialize(h))
    assert wire[:6] == HOST_B
    assert wire[6:12] == HOST_A
    assert wire[12:] == b"\x08\x00"


def test_header_parse_truncated():
    out = EthernetHeader()
    assert not parse(out, [bytes(10)])


def test_frame_round_trip():
    frame = EthernetFrame(
        header=EthernetHeader(dst=HOST_B, src=HOST_A, type=EthernetHeader.TYPE_IPV4),
        payload=[b"hello", b"world"],
    )
    wire = serialize(frame)
    out = EthernetFrame()
    assert parse(out, wire)
    assert out.header == frame.header
    assert b"".join(out.payload) == b"helloworld"


def test_frame_without_payload():
    frame = EthernetFrame(header=EthernetHeader(dst=HOST_B, src=HOST_A, type=7))
    out = EthernetFrame()
    assert parse(out, serialize(frame))
    assert out.payload == []