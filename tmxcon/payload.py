"""
Layer payload decoder - turns a layer's <data> contents into raw tile ids.

Raw ids are unsigned 32-bit global ids with the flip flags still set in the
top 3 bits, in row-major order. Resolving them against the tilesets is the
resolver's job.
"""

import base64
import gzip
import re
import struct
import zlib
from typing import List, Sequence, Union
from .constants import GID_SIZE_BYTES, UINT32_MAX
from .errors import InvalidLength, MalformedInteger, UnknownCompression, UnknownEncoding
from .models import Compression, Encoding
from .logging_config import get_logger

logger = get_logger('payload')

_NOT_CSV = re.compile(rb'[^0-9,]')

# Decompressing filters keyed by declared compression
_DECOMPRESSORS = {
    Compression.NONE: bytes,
    Compression.GZIP: gzip.decompress,
    Compression.ZLIB: zlib.decompress,
}


def decode_payload(
    payload: Union[bytes, str, Sequence[int]],
    encoding: Encoding,
    compression: Compression,
    width: int,
    height: int
) -> List[int]:
    """
    Decode a layer payload into width*height raw tile ids.

    Args:
        payload: <data> text for csv/base64, or the ids of <tile> children for inline
        encoding: Declared encoding
        compression: Declared compression (only used with base64)
        width: Grid width in tiles
        height: Grid height in tiles

    Returns:
        List of raw 32-bit tile ids, row-major

    Raises:
        InvalidLength: If the payload does not hold exactly width*height ids
        MalformedInteger: If a CSV token is not an unsigned 32-bit integer
        UnknownEncoding: If encoding is not an Encoding
        UnknownCompression: If compression is not a Compression
    """
    count = width * height

    if encoding is Encoding.INLINE:
        gids = [int(gid) for gid in payload]
    elif encoding is Encoding.CSV:
        gids = decode_csv(_as_bytes(payload))
    elif encoding is Encoding.BASE64:
        gids = decode_base64(_as_bytes(payload), compression, count)
    else:
        raise UnknownEncoding(f"Invalid encoding scheme: {encoding!r}")

    if len(gids) != count:
        raise InvalidLength(f"Expected {count} tiles, got {len(gids)}")

    logger.debug(f"Decoded {count} tiles ({encoding.value}, compression {compression.value})")
    return gids


def decode_csv(data: bytes) -> List[int]:
    """
    Parse comma separated decimal ids.

    Every character that is neither a digit nor a comma is dropped first, so
    line breaks and indentation between rows are harmless.
    """
    cleaned = _NOT_CSV.sub(b'', data)
    if not cleaned:
        return []

    gids = []
    for token in cleaned.split(b','):
        if not token:
            raise MalformedInteger("Empty value in CSV tile data")
        gid = int(token)
        if gid > UINT32_MAX:
            raise MalformedInteger(f"Tile id {gid} does not fit in 32 bits")
        gids.append(gid)
    return gids


def decode_base64(data: bytes, compression: Compression, count: int) -> List[int]:
    """
    Decode base64 tile data, decompressing it if needed.

    Whitespace anywhere in the text (Tiled may wrap long lines) is ignored;
    any other character outside the base64 alphabet is an error. The decoded
    stream must be exactly count little-endian uint32 values.
    Errors from the base64 and zlib/gzip decoders propagate unchanged.
    """
    decompress = _DECOMPRESSORS.get(compression)
    if decompress is None:
        raise UnknownCompression(f"Invalid compression method: {compression!r}")

    raw = decompress(base64.b64decode(b''.join(data.split()), validate=True))

    expected = count * GID_SIZE_BYTES
    if len(raw) != expected:
        raise InvalidLength(f"Invalid decoded data length: expected {expected} bytes, got {len(raw)}")

    return list(struct.unpack(f'<{count}I', raw))


def _as_bytes(payload: Union[bytes, str, Sequence[int]]) -> bytes:
    if isinstance(payload, str):
        return payload.encode('ascii', errors='replace')
    return bytes(payload)
