"""
Minimal TIFF tag-directory (IFD) codec for the TIFF structures in MPF segments.

Fields keep their raw bytes, so a tree parsed from a segment serializes back
to the same size: the layout depends only on field types and counts.
"""
from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .exceptions import TagDirectoryError

BIG_ENDIAN = ">"
LITTLE_ENDIAN = "<"

HEADER_SIZE = 8
TIFF_MAGIC = 42
ENTRY_SIZE = 12

BYTE = 1
ASCII = 2
SHORT = 3
LONG = 4
RATIONAL = 5
SBYTE = 6
UNDEFINED = 7
SSHORT = 8
SLONG = 9
SRATIONAL = 10
FLOAT = 11
DOUBLE = 12

# Size in bytes of a single value of each field type.
TYPE_SIZES = {
    BYTE: 1, ASCII: 1, SHORT: 2, LONG: 4, RATIONAL: 8, SBYTE: 1,
    UNDEFINED: 1, SSHORT: 2, SLONG: 4, SRATIONAL: 8, FLOAT: 4, DOUBLE: 8,
}


class TagSpace(enum.Enum):
    MPF_INDEX = "MPFIndex"
    MPF_ATTRIBUTE = "MPFAttribute"


def _word_align(size: int) -> int:
    return size + (size & 1)


@dataclass
class Field:
    tag: int
    type: int
    count: int
    data: bytearray

    @property
    def size(self) -> int:
        return TYPE_SIZES[self.type] * self.count

    def get_long(self, index: int, order: str) -> int:
        """Read the index'th 32-bit value in the field data, whatever its type."""
        return struct.unpack_from(order + "I", self.data, index * 4)[0]

    def put_long(self, value: int, index: int, order: str) -> None:
        struct.pack_into(order + "I", self.data, index * 4, value)


@dataclass
class IFDNode:
    order: str
    space: TagSpace
    fields: List[Field] = field(default_factory=list)
    next: Optional[IFDNode] = None

    def get_field(self, tag: int) -> Optional[Field]:
        for f in self.fields:
            if f.tag == tag:
                return f
        return None

    def ifd_size(self) -> int:
        size = 2 + ENTRY_SIZE * len(self.fields) + 4
        for f in self.fields:
            if f.size > 4:
                size += _word_align(f.size)
        return size

    def tree_size(self) -> int:
        """Bytes needed for this IFD and every IFD chained after it."""
        size = 0
        node = self
        while node is not None:
            size += node.ifd_size()
            node = node.next
        return size


def get_header(buf: bytes) -> Tuple[bool, str, int]:
    """Returns (valid, byte order, position of the first IFD)."""
    if len(buf) < HEADER_SIZE:
        return False, BIG_ENDIAN, 0
    if buf[0:2] == b"MM":
        order = BIG_ENDIAN
    elif buf[0:2] == b"II":
        order = LITTLE_ENDIAN
    else:
        return False, BIG_ENDIAN, 0
    magic, ifd_pos = struct.unpack_from(order + "HI", buf, 2)
    return magic == TIFF_MAGIC, order, ifd_pos


def put_header(buf: bytearray, order: str, ifd_pos: int) -> None:
    buf[0:2] = b"MM" if order == BIG_ENDIAN else b"II"
    struct.pack_into(order + "HI", buf, 2, TIFF_MAGIC, ifd_pos)


def _get_ifd(buf: bytes, order: str, pos: int, space: TagSpace) -> Tuple[IFDNode, int]:
    if pos + 2 > len(buf):
        raise TagDirectoryError(f"IFD position {pos} is past the end of the data")
    count = struct.unpack_from(order + "H", buf, pos)[0]
    end = pos + 2 + ENTRY_SIZE * count
    if end + 4 > len(buf):
        raise TagDirectoryError(f"IFD at {pos} with {count} entries overruns the data")
    node = IFDNode(order, space)
    for i in range(count):
        entry = pos + 2 + ENTRY_SIZE * i
        tag, type_, n = struct.unpack_from(order + "HHI", buf, entry)
        if type_ not in TYPE_SIZES:
            raise TagDirectoryError(f"Unknown type {type_} for tag 0x{tag:04X}")
        size = TYPE_SIZES[type_] * n
        if size <= 4:
            start = entry + 8
        else:
            start = struct.unpack_from(order + "I", buf, entry + 8)[0]
        if start + size > len(buf):
            raise TagDirectoryError(f"Data for tag 0x{tag:04X} overruns the data")
        node.fields.append(Field(tag, type_, n, bytearray(buf[start:start + size])))
    next_pos = struct.unpack_from(order + "I", buf, end)[0]
    return node, next_pos


def get_ifd_tree(buf: bytes, order: str, pos: int, space: TagSpace) -> IFDNode:
    """Unpack the IFD at pos and all IFDs chained after it."""
    if pos == 0:
        raise TagDirectoryError("No IFD in TIFF data")
    head = None
    prev = None
    visited = set()
    while pos != 0:
        if pos in visited:
            raise TagDirectoryError(f"IFD loop at position {pos}")
        visited.add(pos)
        node, pos = _get_ifd(buf, order, pos, space)
        if prev is None:
            head = node
        else:
            prev.next = node
        prev = node
        # In MPF, the index IFD of the first image is followed by its
        # attribute IFD.
        space = TagSpace.MPF_ATTRIBUTE
    return head


def put_ifd_tree(node: IFDNode, buf: bytearray, pos: int) -> int:
    """Pack node and its chain into buf at pos. Returns the position after the last byte."""
    while node is not None:
        order = node.order
        n = len(node.fields)
        struct.pack_into(order + "H", buf, pos, n)
        data_pos = pos + 2 + ENTRY_SIZE * n + 4
        for i, f in enumerate(node.fields):
            entry = pos + 2 + ENTRY_SIZE * i
            struct.pack_into(order + "HHI", buf, entry, f.tag, f.type, f.count)
            if f.size <= 4:
                buf[entry + 8:entry + 12] = bytes(f.data).ljust(4, b"\x00")
            else:
                struct.pack_into(order + "I", buf, entry + 8, data_pos)
                buf[data_pos:data_pos + f.size] = f.data
                data_pos += _word_align(f.size)
        next_pos = data_pos if node.next is not None else 0
        struct.pack_into(order + "I", buf, pos + 2 + ENTRY_SIZE * n, next_pos)
        pos = data_pos
        node = node.next
    return pos


def parse_directory(buf: bytes, space: TagSpace) -> IFDNode:
    """Unpack TIFF data starting with its header."""
    valid, order, ifd_pos = get_header(buf)
    if not valid:
        raise TagDirectoryError("Invalid TIFF header")
    return get_ifd_tree(buf, order, ifd_pos, space)


def serialize_directory(node: IFDNode) -> bytes:
    """Pack a tree into TIFF data starting with its header."""
    buf = bytearray(HEADER_SIZE + node.tree_size())
    put_header(buf, node.order, HEADER_SIZE)
    put_ifd_tree(node, buf, HEADER_SIZE)
    return bytes(buf)
