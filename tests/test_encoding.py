from __future__ import annotations

import json

import pytest

from protocol.encoding import (
    be_to_u32,
    be_to_u64,
    parse_header,
    serialize_header,
    u32_to_be,
    u64_to_be,
)
from protocol.messages import BounceHeader


def test_u32_big_endian():
    assert u32_to_be(0x01020304) == b"\x01\x02\x03\x04"
    assert be_to_u32(b"\x01\x02\x03\x04") == 0x01020304
    assert u32_to_be(0) == b"\x00" * 4
    assert be_to_u32(b"\xff" * 4) == 0xFFFFFFFF


def test_u64_big_endian():
    assert u64_to_be(5) == b"\x00" * 7 + b"\x05"
    assert u64_to_be(0x0102030405060708) == bytes(range(1, 9))
    assert be_to_u64(bytes(range(1, 9))) == 0x0102030405060708


@pytest.mark.parametrize("encode,value", [
    (u32_to_be, -1),
    (u32_to_be, 1 << 32),
    (u64_to_be, 1 << 64),
])
def test_out_of_range_values_rejected(encode, value):
    with pytest.raises(ValueError):
        encode(value)


def test_wrong_width_rejected():
    with pytest.raises(ValueError):
        be_to_u32(b"\x00\x01")
    with pytest.raises(ValueError):
        be_to_u64(b"\x00" * 9)


def test_header_wire_form():
    raw = serialize_header(BounceHeader(from_addr="a@x.com", to_addr="b@y.com"))
    assert raw == b'{"from":"a@x.com","to":"b@y.com","kind":null,"source":null}'


def test_header_field_order_with_tags():
    raw = serialize_header(
        BounceHeader(from_addr="a", to_addr="b", kind="dsn", source="postfix")
    )
    assert raw == b'{"from":"a","to":"b","kind":"dsn","source":"postfix"}'


def test_header_special_characters_escaped():
    header = BounceHeader(from_addr='evil"},"to":"x', to_addr="line\nbreak\\")
    raw = serialize_header(header)
    data = json.loads(raw)
    assert data["from"] == 'evil"},"to":"x'
    assert data["to"] == "line\nbreak\\"
    assert b"\n" not in raw


def test_header_non_ascii_is_utf8():
    raw = serialize_header(BounceHeader(from_addr="jörg@example.de", to_addr="b"))
    assert "jörg".encode("utf-8") in raw


def test_header_undecodable_bytes_restored():
    raw = serialize_header(BounceHeader(from_addr="MAILER\udcff@x", to_addr="b"))
    assert b'"from":"MAILER\xff@x"' in raw


def test_header_other_lone_surrogate_rejected():
    with pytest.raises(UnicodeEncodeError):
        serialize_header(BounceHeader(from_addr="a\ud800", to_addr="b"))


def test_parse_header_roundtrip():
    header = BounceHeader(from_addr="a@x.com", to_addr="b@y.com", kind="hard")
    assert parse_header(serialize_header(header)) == header


def test_parse_header_best_effort():
    parsed = parse_header('{"to":"b","extra":1,"kind":42}')
    assert parsed.from_addr == ""
    assert parsed.to_addr == "b"
    assert parsed.kind == "42"
    assert parsed.source is None


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '"str"'])
def test_parse_header_rejects_non_objects(text):
    with pytest.raises(ValueError):
        parse_header(text)
