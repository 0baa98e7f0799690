from dataclasses import dataclass

import pytest

from tinynet.parser import Parser, Serializer, parse, serialize


@pytest.mark.parametrize(
    "value,nbytes",
    [(0, 1), (255, 1), (0x0800, 2), (0xDEADBEEF, 4), (2**64 - 1, 8)],
)
def test_integer_round_trip(value, nbytes):
    s = Serializer()
    s.integer(value, nbytes)
    p = Parser(s.output())
    assert p.integer(nbytes) == value
    assert not p.has_error()
    assert p.remaining == 0


def test_integer_spans_buffers():
    s = Serializer()
    s.integer(0x01020304, 4)
    data = b"".join(s.output())
    p = Parser([data[:1], data[1:3], data[3:]])
    assert p.integer(4) == 0x01020304


def test_serializer_is_big_endian():
    s = Serializer()
    s.integer(0x0800, 2)
    assert s.output() == [b"\x08\x00"]


def test_serializer_truncates():
    s = Serializer()
    s.integer(0x1FF, 1)
    assert s.output() == [b"\xff"]


def test_short_input_sets_error():
    p = Parser([b"\x01"])
    assert p.integer(2) == 0
    assert p.has_error()


def test_error_is_sticky():
    p = Parser([b"\x01"])
    p.integer(2)
    p.integer(1)
    assert p.has_error()
    assert p.remaining == 1


def test_set_error():
    p = Parser([b"abc"])
    p.set_error()
    assert p.has_error()
    assert p.string(2) == bytes(2)


def test_remove_prefix_across_buffers():
    p = Parser([b"abc", b"de"])
    p.remove_prefix(4)
    assert p.all_remaining() == [b"e"]


def test_all_remaining_after_integer():
    p = Parser([b"abc", b"de"])
    p.integer(1)
    assert p.all_remaining() == [b"bc", b"de"]
    assert p.all_remaining() == []
    assert p.remaining == 0


def test_string_across_buffers():
    p = Parser([b"ab", b"cde"])
    assert p.string(4) == b"abcd"
    assert p.buffer() == [b"e"]


def test_buffer_does_not_consume():
    p = Parser([b"xyz", b"w"])
    p.remove_prefix(1)
    assert p.buffer() == [b"yz", b"w"]
    assert p.remaining == 3


def test_serializer_buffer_flushes_and_skips_empty():
    s = Serializer()
    s.integer(1, 1)
    s.buffer(b"")
    s.buffer([b"xy", b""])
    s.integer(2, 1)
    assert s.output() == [b"\x01", b"xy", b"\x02"]


@dataclass
class _Pair:
    first: int = 0
    second: int = 0

    def parse(self, parser, width):
        self.first = parser.integer(width)
        self.second = parser.integer(width)

    def serialize(self, serializer):
        serializer.integer(self.first, 2)
        serializer.integer(self.second, 2)


def test_serialize_and_parse_helpers():
    original = _Pair(513, 40000)
    out = _Pair()
    assert parse(out, serialize(original), 2)
    assert out == original


def test_parse_helper_reports_failure():
    out = _Pair()
    assert not parse(out, [b"\x00\x01\x02"], 2)