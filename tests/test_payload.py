import base64
import binascii
import struct
import zlib

import pytest

from tmxcon.errors import InvalidLength, MalformedInteger, UnknownCompression, UnknownEncoding
from tmxcon.models import Compression, Encoding
from tmxcon.payload import decode_csv, decode_payload

from helpers import encode_base64


def test_csv_payload():
    gids = decode_payload(b"1,2,3,4", Encoding.CSV, Compression.NONE, 2, 2)
    assert gids == [1, 2, 3, 4]


def test_csv_ignores_whitespace_and_line_breaks():
    data = b"\n  1,2,\n  3,4\n"
    assert decode_payload(data, Encoding.CSV, Compression.NONE, 2, 2) == [1, 2, 3, 4]


def test_csv_keeps_flip_bits():
    assert decode_csv(b"2147483649,0") == [0x80000001, 0]


def test_csv_empty_token_is_malformed():
    with pytest.raises(MalformedInteger):
        decode_payload(b"1,,3,4", Encoding.CSV, Compression.NONE, 2, 2)


def test_csv_value_above_32_bits_is_malformed():
    with pytest.raises(MalformedInteger):
        decode_csv(b"4294967296")


def test_csv_wrong_count():
    with pytest.raises(InvalidLength):
        decode_payload(b"1,2,3", Encoding.CSV, Compression.NONE, 2, 2)


def test_inline_payload():
    assert decode_payload([5, 0, 7, 1], Encoding.INLINE, Compression.NONE, 2, 2) == [5, 0, 7, 1]


def test_inline_wrong_count():
    with pytest.raises(InvalidLength):
        decode_payload([1, 2, 3, 4, 5], Encoding.INLINE, Compression.NONE, 2, 2)


@pytest.mark.parametrize("compression", [None, "gzip", "zlib"])
def test_base64_reproduces_gids(compression):
    gids = [0, 1, 0x80000002, 0x40000003, 0x20000004, 0xE0000005]
    text = encode_base64(gids, compression).encode('ascii')
    declared = Compression.from_name(compression)
    assert decode_payload(b"\n  " + text + b"\n", Encoding.BASE64, declared, 3, 2) == gids


def test_base64_wrapped_across_lines():
    text = base64.encodebytes(struct.pack('<4I', 1, 2, 3, 4))
    text = text[:8] + b'\r\n' + text[8:]
    assert decode_payload(text, Encoding.BASE64, Compression.NONE, 2, 2) == [1, 2, 3, 4]


def test_base64_foreign_character_is_rejected():
    text = base64.b64encode(struct.pack('<4I', 1, 2, 3, 4))
    with pytest.raises(binascii.Error):
        decode_payload(text[:8] + b'*' + text[8:], Encoding.BASE64, Compression.NONE, 2, 2)


def test_base64_zlib_one_byte_short():
    raw = bytes(2 * 2 * 4 - 1)
    text = base64.b64encode(zlib.compress(raw))
    with pytest.raises(InvalidLength):
        decode_payload(text, Encoding.BASE64, Compression.ZLIB, 2, 2)


def test_base64_too_long():
    text = encode_base64([1, 2, 3, 4, 5]).encode('ascii')
    with pytest.raises(InvalidLength):
        decode_payload(text, Encoding.BASE64, Compression.NONE, 2, 2)


def test_base64_corrupt_zlib_propagates():
    text = base64.b64encode(b"definitely not zlib")
    with pytest.raises(zlib.error):
        decode_payload(text, Encoding.BASE64, Compression.ZLIB, 2, 2)


def test_str_payload_accepted():
    assert decode_payload("1,2,3,4", Encoding.CSV, Compression.NONE, 2, 2) == [1, 2, 3, 4]


@pytest.mark.parametrize("name,expected", [
    (None, Encoding.INLINE),
    ("", Encoding.INLINE),
    ("csv", Encoding.CSV),
    ("base64", Encoding.BASE64),
])
def test_encoding_names(name, expected):
    assert Encoding.from_name(name) is expected


def test_unknown_encoding():
    with pytest.raises(UnknownEncoding):
        Encoding.from_name("base32")


def test_unknown_compression():
    with pytest.raises(UnknownCompression):
        Compression.from_name("zstd")
