"""
GBA BIOS compression formats used for exported layer data.

Every format starts with a 32-bit little-endian header: bits 4-7 hold the
type (1 = LZ77, 2 = Huffman, 3 = RLE), bits 0-3 the Huffman data size, and
bits 8-31 the decompressed size. Outputs are padded to a multiple of 4 bytes
so they can be copied with 32-bit DMA.

The layer exporter only sees the registry (COMPRESSION_METHODS) and the
Compressor stream filter.
"""

import heapq
import itertools
import struct
from collections import defaultdict
from enum import Enum
from typing import BinaryIO, Dict, List, Optional, Tuple, Union
from .errors import CompressionError, InvalidCompressionMethod
from .logging_config import get_logger

logger = get_logger('compression')

LZ77_TYPE = 0x10
HUFFMAN_TYPE = 0x20
RLE_TYPE = 0x30

MAX_DECOMPRESSED_SIZE = 0xFFFFFF

# LZ77: lengths 3-18, displacements up to 4096. A displacement of 1 breaks
# decompression to VRAM (16-bit writes), so the smallest one emitted is 2.
LZ77_MIN_MATCH = 3
LZ77_MAX_MATCH = 18
LZ77_MAX_DISP = 0x1000
LZ77_MIN_DISP = 2

# RLE: repeated runs of 3-130 bytes, literal runs of 1-128 bytes
RLE_MIN_RUN = 3
RLE_MAX_RUN = 130
RLE_MAX_LITERAL = 128

# Huffman tree nodes: bits 0-5 offset to the child pair, bit 7 node0 is a
# leaf, bit 6 node1 is a leaf.
HUFFMAN_MAX_OFFSET = 0x3F
HUFFMAN_NODE0_LEAF = 0x80
HUFFMAN_NODE1_LEAF = 0x40


class CompressionMethod(Enum):
    LZ77 = "LZ77"
    RLE = "RLE"
    HUFFMAN4 = "Huffman4"
    HUFFMAN8 = "Huffman8"


COMPRESSION_METHODS: Dict[str, CompressionMethod] = {
    method.value: method for method in CompressionMethod
}


def get_compression_method(name: str) -> CompressionMethod:
    """
    Look up a compression method by its property name.

    Raises:
        InvalidCompressionMethod: If name is not in COMPRESSION_METHODS
    """
    method = COMPRESSION_METHODS.get(name)
    if method is None:
        supported = ', '.join(COMPRESSION_METHODS)
        raise InvalidCompressionMethod(f"Invalid compression method '{name}' (supported: {supported})")
    return method


def compress(data: bytes, method: CompressionMethod) -> bytes:
    """Compress data with one of the BIOS formats."""
    if len(data) > MAX_DECOMPRESSED_SIZE:
        raise CompressionError(f"{len(data)} bytes exceed the 24-bit size field")

    if method is CompressionMethod.LZ77:
        out = _lz77_compress(data)
    elif method is CompressionMethod.RLE:
        out = _rle_compress(data)
    elif method is CompressionMethod.HUFFMAN4:
        out = _huffman_compress(data, 4)
    elif method is CompressionMethod.HUFFMAN8:
        out = _huffman_compress(data, 8)
    else:
        raise InvalidCompressionMethod(f"Invalid compression method {method!r}")

    _pad4(out)
    logger.debug(f"{method.value}: {len(data)} -> {len(out)} bytes")
    return bytes(out)


def decompress(data: bytes) -> bytes:
    """
    Decompress any of the BIOS formats, dispatching on the header type.

    Raises:
        CompressionError: If the header type is unknown or the data is truncated
    """
    if len(data) < 4:
        raise CompressionError("Missing compression header")

    header, = struct.unpack_from('<I', data)
    kind = header & 0xF0
    size = header >> 8

    try:
        if kind == LZ77_TYPE:
            return _lz77_decompress(data, size)
        if kind == RLE_TYPE:
            return _rle_decompress(data, size)
        if kind == HUFFMAN_TYPE:
            return _huffman_decompress(data, size, header & 0x0F)
    except (IndexError, struct.error):
        raise CompressionError("Compressed data is truncated") from None

    raise CompressionError(f"Unknown compression type {kind:#04x}")


class Compressor:
    """
    Write-only stream that compresses everything written to it.

    The BIOS formats need the full input size up front, so data is buffered
    and compressed on close(). close() must always be called (use it as a
    context manager); the wrapped sink is not closed.
    """

    def __init__(self, sink: BinaryIO, method: CompressionMethod):
        self.sink = sink
        self.method = method
        self._buffer = bytearray()
        self.closed = False

    def write(self, data: Union[bytes, bytearray]) -> int:
        if self.closed:
            raise ValueError("write to closed Compressor")
        self._buffer += data
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.sink.write(compress(bytes(self._buffer), self.method))

    def __enter__(self) -> 'Compressor':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _header(kind: int, size: int) -> bytearray:
    return bytearray(struct.pack('<I', kind | (size << 8)))


def _pad4(out: bytearray) -> None:
    out += bytes(-len(out) % 4)


# =============================================================================
# LZ77 (type 0x10)
# =============================================================================

def _lz77_compress(data: bytes) -> bytearray:
    out = _header(LZ77_TYPE, len(data))
    # 3-byte prefix -> positions where it starts, ascending
    positions: Dict[bytes, List[int]] = defaultdict(list)
    n = len(data)
    pos = 0

    def index_until(end: int, start: int) -> None:
        for i in range(start, min(end, n - LZ77_MIN_MATCH + 1)):
            positions[data[i:i + LZ77_MIN_MATCH]].append(i)

    indexed = 0
    while pos < n:
        flag_at = len(out)
        out.append(0)
        flags = 0
        for bit in range(8):
            if pos >= n:
                break
            index_until(pos, indexed)
            indexed = max(indexed, pos)
            length, disp = _lz77_longest_match(data, pos, positions)
            if length >= LZ77_MIN_MATCH:
                flags |= 0x80 >> bit
                out.append(((length - LZ77_MIN_MATCH) << 4) | ((disp - 1) >> 8))
                out.append((disp - 1) & 0xFF)
                pos += length
            else:
                out.append(data[pos])
                pos += 1
        out[flag_at] = flags

    return out


def _lz77_longest_match(data: bytes, pos: int, positions: Dict[bytes, List[int]]) -> Tuple[int, int]:
    candidates = positions.get(data[pos:pos + LZ77_MIN_MATCH])
    if not candidates:
        return 0, 0

    n = len(data)
    limit = min(LZ77_MAX_MATCH, n - pos)
    best_length, best_disp = 0, 0
    for start in reversed(candidates):
        disp = pos - start
        if disp > LZ77_MAX_DISP:
            break
        if disp < LZ77_MIN_DISP:
            continue
        length = LZ77_MIN_MATCH
        while length < limit and data[start + length] == data[pos + length]:
            length += 1
        if length > best_length:
            best_length, best_disp = length, disp
            if length == limit:
                break
    return best_length, best_disp


def _lz77_decompress(data: bytes, size: int) -> bytes:
    out = bytearray()
    src = 4
    while len(out) < size:
        flags = data[src]
        src += 1
        for bit in range(8):
            if len(out) >= size:
                break
            if flags & (0x80 >> bit):
                b0, b1 = data[src], data[src + 1]
                src += 2
                length = (b0 >> 4) + LZ77_MIN_MATCH
                disp = (((b0 & 0x0F) << 8) | b1) + 1
                for _ in range(length):
                    out.append(out[-disp])
            else:
                out.append(data[src])
                src += 1
    return bytes(out[:size])


# =============================================================================
# RLE (type 0x30)
# =============================================================================

def _rle_compress(data: bytes) -> bytearray:
    out = _header(RLE_TYPE, len(data))
    literals = bytearray()

    def flush_literals() -> None:
        if literals:
            out.append(len(literals) - 1)
            out.extend(literals)
            literals.clear()

    n = len(data)
    i = 0
    while i < n:
        run = 1
        while i + run < n and run < RLE_MAX_RUN and data[i + run] == data[i]:
            run += 1
        if run >= RLE_MIN_RUN:
            flush_literals()
            out.append(0x80 | (run - RLE_MIN_RUN))
            out.append(data[i])
            i += run
        else:
            literals.append(data[i])
            i += 1
            if len(literals) == RLE_MAX_LITERAL:
                flush_literals()
    flush_literals()
    return out


def _rle_decompress(data: bytes, size: int) -> bytes:
    out = bytearray()
    src = 4
    while len(out) < size:
        flag = data[src]
        src += 1
        if flag & 0x80:
            out.extend(data[src:src + 1] * ((flag & 0x7F) + RLE_MIN_RUN))
            if src >= len(data):
                raise IndexError(src)
            src += 1
        else:
            length = (flag & 0x7F) + 1
            chunk = data[src:src + length]
            if len(chunk) != length:
                raise IndexError(src)
            out.extend(chunk)
            src += length
    return bytes(out[:size])


# =============================================================================
# Huffman (type 0x24 / 0x28)
# =============================================================================

class _Node:
    __slots__ = ('symbol', 'left', 'right', 'slot')

    def __init__(self, symbol: Optional[int] = None, left: Optional['_Node'] = None,
                 right: Optional['_Node'] = None):
        self.symbol = symbol
        self.left = left
        self.right = right
        self.slot = -1  # index of this node's child pair in the tree table

    @property
    def leaf(self) -> bool:
        return self.symbol is not None


def _symbols(data: bytes, bits: int) -> List[int]:
    if bits == 8:
        return list(data)
    # 4-bit data: low nibble first
    result = []
    for byte in data:
        result.append(byte & 0x0F)
        result.append(byte >> 4)
    return result


def _build_tree(symbols: List[int], bits: int) -> _Node:
    counts: Dict[int, int] = defaultdict(int)
    for symbol in symbols:
        counts[symbol] += 1
    # The BIOS needs a root with two children, so pad to two symbols
    for filler in range(1 << bits):
        if len(counts) >= 2:
            break
        counts.setdefault(filler, 0)

    order = itertools.count()
    heap = [(count, next(order), _Node(symbol=symbol)) for symbol, count in sorted(counts.items())]
    heapq.heapify(heap)
    while len(heap) > 1:
        c0, _, n0 = heapq.heappop(heap)
        c1, _, n1 = heapq.heappop(heap)
        heapq.heappush(heap, (c0 + c1, next(order), _Node(left=n0, right=n1)))
    return heap[0][2]


def _layout_tree(root: _Node) -> List[_Node]:
    """
    Assign each internal node a child-pair slot in the tree table.

    A node sitting in pair j (the root counts as pair -1) can only reach child
    pairs j+1 .. j+64. Nodes whose children are leaves go first, then the
    most recently queued one (depth first), which keeps few nodes waiting.
    When a waiting node would otherwise run out of reach, the one with the
    earliest deadline goes instead.
    """
    parents: List[_Node] = []
    waiting: List[Tuple[_Node, int]] = [(root, -1)]
    slot = 0
    while waiting:
        pick = max(range(len(waiting)), key=lambda i: (_leaf_children(waiting[i][0]), i))
        if not _can_defer(waiting, pick, slot):
            pick = min(range(len(waiting)), key=lambda i: waiting[i][1])
        node, pair = waiting.pop(pick)
        if slot - pair - 1 > HUFFMAN_MAX_OFFSET:
            raise CompressionError("Huffman tree cannot be laid out within 6-bit offsets")
        node.slot = slot
        parents.append(node)
        for child in (node.left, node.right):
            if not child.leaf:
                waiting.append((child, slot))
        slot += 1
    return parents


def _leaf_children(node: _Node) -> int:
    return int(node.left.leaf) + int(node.right.leaf)


def _can_defer(waiting: List[Tuple[_Node, int]], pick: int, slot: int) -> bool:
    # After using this slot for waiting[pick], every other waiting node must
    # still fit before its deadline when placed earliest-deadline first.
    deadlines = sorted(pair + HUFFMAN_MAX_OFFSET + 1 for i, (_, pair) in enumerate(waiting) if i != pick)
    return all(deadline >= slot + 1 + i for i, deadline in enumerate(deadlines))


def _node_byte(node: _Node, pair: int) -> int:
    if node.leaf:
        return node.symbol
    value = node.slot - pair - 1
    if node.left.leaf:
        value |= HUFFMAN_NODE0_LEAF
    if node.right.leaf:
        value |= HUFFMAN_NODE1_LEAF
    return value


def _assign_codes(node: _Node, prefix: Tuple[int, ...], codes: Dict[int, Tuple[int, ...]]) -> None:
    if node.leaf:
        codes[node.symbol] = prefix
        return
    _assign_codes(node.left, prefix + (0,), codes)
    _assign_codes(node.right, prefix + (1,), codes)


def _huffman_compress(data: bytes, bits: int) -> bytearray:
    out = _header(HUFFMAN_TYPE | bits, len(data))
    symbols = _symbols(data, bits)
    root = _build_tree(symbols, bits)
    parents = _layout_tree(root)

    table = bytearray(2 + 2 * len(parents))
    table[1] = _node_byte(root, -1)
    for node in parents:
        table[2 + 2 * node.slot] = _node_byte(node.left, node.slot)
        table[3 + 2 * node.slot] = _node_byte(node.right, node.slot)
    # The bitstream must start word aligned
    _pad4(table)
    table[0] = len(table) // 2 - 1
    out += table

    codes: Dict[int, Tuple[int, ...]] = {}
    _assign_codes(root, (), codes)

    # 32-bit words, first bit in bit 31
    word, used = 0, 0
    for symbol in symbols:
        for bit in codes[symbol]:
            word = (word << 1) | bit
            used += 1
            if used == 32:
                out += struct.pack('<I', word)
                word, used = 0, 0
    if used:
        out += struct.pack('<I', word << (32 - used))
    return out


def _huffman_decompress(data: bytes, size: int, bits: int) -> bytes:
    if bits not in (4, 8):
        raise CompressionError(f"Unsupported Huffman data size {bits}")

    tree_size = data[4]
    root_at = 5
    src = 4 + (tree_size + 1) * 2

    out = bytearray()
    nibble: Optional[int] = None
    at = root_at
    while len(out) < size:
        word, = struct.unpack_from('<I', data, src)
        src += 4
        for shift in range(31, -1, -1):
            bit = (word >> shift) & 1
            node = data[at]
            child = (at & ~1) + (node & HUFFMAN_MAX_OFFSET) * 2 + 2 + bit
            is_leaf = node & (HUFFMAN_NODE1_LEAF if bit else HUFFMAN_NODE0_LEAF)
            if not is_leaf:
                at = child
                continue
            value = data[child]
            at = root_at
            if bits == 8:
                out.append(value)
            elif nibble is None:
                nibble = value
            else:
                out.append(nibble | (value << 4))
                nibble = None
            if len(out) >= size:
                break
    return bytes(out[:size])
