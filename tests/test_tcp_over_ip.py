import os

import pytest

from tinynet.address import Address
from tinynet.file_descriptor import FileDescriptor
from tinynet.ipv4 import IPv4Datagram, IPv4Header
from tinynet.parser import parse, serialize
from tinynet.tcp_over_ip import TCPOverIPv4Adapter, TCPOverIPv4OverTunFdAdapter
from tinynet.tcp_segment import TCPMessage, TCPReceiverMessage, TCPSenderMessage

SERVER = ("10.0.0.1", 1000)
CLIENT = ("10.0.0.2", 2000)


def configure(adapter, source, destination):
    adapter.config().source = Address(*source)
    adapter.config().destination = Address(*destination)
    return adapter


def pair():
    client = configure(TCPOverIPv4Adapter(), CLIENT, SERVER)
    server = configure(TCPOverIPv4Adapter(), SERVER, CLIENT)
    return client, server


def message(payload=b"hello", syn=False, rst=False):
    return TCPMessage(
        sender=TCPSenderMessage(seqno=5, SYN=syn, payload=payload, RST=rst),
        receiver=TCPReceiverMessage(ackno=9, window_size=300),
    )


@pytest.fixture
def pipe():
    read_end, write_end = os.pipe()
    reader = FileDescriptor(read_end)
    writer = FileDescriptor(write_end)
    yield reader, writer
    for handle in (reader, writer):
        if not handle.closed():
            handle.close()


def test_wrap_then_unwrap_round_trip():
    client, server = pair()
    msg = message()
    assert server.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(msg)) == msg


def test_wrap_sets_addresses_and_lengths():
    client, _ = pair()
    dgram = client.wrap_tcp_in_ip(message(b"abcde"))
    assert dgram.header.src == Address(*CLIENT).ipv4_numeric()
    assert dgram.header.dst == Address(*SERVER).ipv4_numeric()
    assert dgram.header.proto == IPv4Header.PROTO_TCP
    assert dgram.header.payload_length() == len(b"".join(dgram.payload))


def test_wrapped_datagram_survives_serialization():
    client, server = pair()
    dgram = client.wrap_tcp_in_ip(message())
    parsed = IPv4Datagram()
    assert parse(parsed, serialize(dgram))
    assert parsed.header == dgram.header
    assert server.unwrap_tcp_in_ip(parsed) == message()


def test_wrong_destination_address_ignored():
    client, _ = pair()
    other = configure(TCPOverIPv4Adapter(), ("10.0.0.9", 1000), CLIENT)
    assert other.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(message())) is None


def test_wrong_source_address_ignored():
    client, _ = pair()
    other = configure(TCPOverIPv4Adapter(), SERVER, ("10.0.0.9", 2000))
    assert other.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(message())) is None


def test_wrong_protocol_ignored():
    client, server = pair()
    dgram = client.wrap_tcp_in_ip(message())
    dgram.header.proto = 17
    assert server.unwrap_tcp_in_ip(dgram) is None


def test_corrupted_segment_ignored():
    client, server = pair()
    dgram = client.wrap_tcp_in_ip(message())
    raw = bytearray(b"".join(dgram.payload))
    raw[-1] ^= 0xFF
    dgram.payload = [bytes(raw)]
    assert server.unwrap_tcp_in_ip(dgram) is None


def test_wrong_ports_ignored():
    client, _ = pair()
    dgram = client.wrap_tcp_in_ip(message())
    wrong_dst_port = configure(TCPOverIPv4Adapter(), ("10.0.0.1", 1001), CLIENT)
    wrong_src_port = configure(TCPOverIPv4Adapter(), SERVER, ("10.0.0.2", 2001))
    assert wrong_dst_port.unwrap_tcp_in_ip(dgram) is None
    assert wrong_src_port.unwrap_tcp_in_ip(dgram) is None


def listening_server():
    server = TCPOverIPv4Adapter()
    server.config().source = Address("0", SERVER[1])
    server.set_listening(True)
    return server


def test_listening_accepts_syn_and_learns_peer():
    client, _ = pair()
    server = listening_server()
    msg = message(b"", syn=True)
    assert server.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(msg)) == msg
    assert server.listening() is False
    assert server.config().source == Address(*SERVER)
    assert server.config().destination == Address(*CLIENT)
    assert server.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(message())) == message()


def test_listening_ignores_non_syn():
    client, _ = pair()
    server = listening_server()
    assert server.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(message())) is None
    assert server.listening() is True


def test_listening_ignores_syn_with_rst():
    client, _ = pair()
    server = listening_server()
    msg = message(b"", syn=True, rst=True)
    assert server.unwrap_tcp_in_ip(client.wrap_tcp_in_ip(msg)) is None
    assert server.listening() is True


def test_tun_adapter_write_produces_parsable_datagram(pipe):
    reader, writer = pipe
    client = configure(TCPOverIPv4OverTunFdAdapter(writer), CLIENT, SERVER)
    client.write(message(b"payload"))
    raw = reader.read()
    dgram = IPv4Datagram()
    assert parse(dgram, [raw])
    _, server = pair()
    assert server.unwrap_tcp_in_ip(dgram) == message(b"payload")


def test_tun_adapter_read_returns_message(pipe):
    reader, writer = pipe
    client, _ = pair()
    writer.write(serialize(client.wrap_tcp_in_ip(message(b"over the wire"))))
    server = configure(TCPOverIPv4OverTunFdAdapter(reader), SERVER, CLIENT)
    assert server.read() == message(b"over the wire")
    assert server.fd() is reader


def test_tun_adapter_read_of_garbage_is_none(pipe):
    reader, writer = pipe
    writer.write(b"\x00" * 30)
    server = configure(TCPOverIPv4OverTunFdAdapter(reader), SERVER, CLIENT)
    assert server.read() is None
    assert reader.read_count() == 1


def test_tun_adapters_talk_through_pipe(pipe):
    reader, writer = pipe
    client = configure(TCPOverIPv4OverTunFdAdapter(writer), CLIENT, SERVER)
    server = configure(TCPOverIPv4OverTunFdAdapter(reader), SERVER, CLIENT)
    msg = message(b"x" * 1000)
    client.write(msg)
    assert server.read() == msg