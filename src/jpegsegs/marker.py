# --------------------------------------------------------
# |segment name|marker value|has data|description        |
# --------------------------------------------------------
# |SOI         |0xFFD8      |No      | start of image    |
# |EOI         |0xFFD9      |No      | end of image      |
# |RST0-RST7   |0xFFD0-D7   |No      | restart           |
# |TEM         |0xFF01      |No      | temporary         |
# |SOS         |0xFFDA      |Yes     | start of scan     |
# |APP0-APP15  |0xFFE0-EF   |Yes     | application data  |
# |COM         |0xFFFE      |Yes     | comment           |
# --------------------------------------------------------
# Segments without data are only the 2 marker bytes.
# Segments with data have a 2 byte length after the marker; the length
# counts itself, so the payload is length - 2 bytes.
from __future__ import annotations

from typing import BinaryIO, Tuple

from .exceptions import (
    ExpectedMarkerPrefix,
    InvalidLength,
    InvalidMarkerZero,
    MissingStartMarker,
    SegmentTooLarge,
    Truncated,
)

MARKER_PREFIX = 0xFF

TEM = 0x01
SOF0 = 0xC0  # SOFn = SOF0+n, n = 0-15 excluding 4, 8 and 12
DHT = 0xC4
JPG = 0xC8
DAC = 0xCC
RST0 = 0xD0  # RSTn = RST0+n, n = 0-7
SOI = 0xD8
EOI = 0xD9
SOS = 0xDA
DQT = 0xDB
DNL = 0xDC
DRI = 0xDD
DHP = 0xDE
EXP = 0xDF
APP0 = 0xE0  # APPn = APP0+n, n = 0-15
APP2 = APP0 + 2
JPG0 = 0xF0  # JPGn = JPG0+n, n = 0-13
COM = 0xFE

HEADER_SIZE = 2
MAX_PAYLOAD = (1 << 16) - 3


def _build_marker_names() -> Tuple[str, ...]:
    names = [""] * 256
    for code in range(0x02, 0xC0):
        names[code] = f"RES{code:02X}"
    for n in range(16):
        if n not in (4, 8, 12):
            names[SOF0 + n] = f"SOF{n}"
    for n in range(8):
        names[RST0 + n] = f"RST{n}"
    for n in range(16):
        names[APP0 + n] = f"APP{n}"
    for n in range(14):
        names[JPG0 + n] = f"JPG{n}"
    names[0x00] = "NUL"
    names[TEM] = "TEM"
    names[DHT] = "DHT"
    names[JPG] = "JPG"
    names[DAC] = "DAC"
    names[SOI] = "SOI"
    names[EOI] = "EOI"
    names[SOS] = "SOS"
    names[DQT] = "DQT"
    names[DNL] = "DNL"
    names[DRI] = "DRI"
    names[DHP] = "DHP"
    names[EXP] = "EXP"
    names[COM] = "COM"
    names[0xFF] = "FILL"
    return tuple(names)


MARKER_NAMES = _build_marker_names()


def marker_name(marker: int) -> str:
    return MARKER_NAMES[marker]


def is_rst(marker: int) -> bool:
    return RST0 <= marker <= RST0 + 7


def is_app(marker: int) -> bool:
    return APP0 <= marker <= APP0 + 0xF


def is_jpg(marker: int) -> bool:
    return JPG0 <= marker <= JPG0 + 0xD


def has_data(marker: int) -> bool:
    """Whether a length-prefixed segment follows the marker."""
    return not (marker == EOI or marker == TEM or is_rst(marker))


def read_exact(f: BinaryIO, size: int) -> bytes:
    data = f.read(size)
    if len(data) != size:
        raise Truncated(f"Expected {size} bytes, got {len(data)}")
    return data


def read_u8(f: BinaryIO) -> int:
    return read_exact(f, 1)[0]


def read_u16(f: BinaryIO) -> int:
    bytes_read = read_exact(f, 2)
    return (bytes_read[0] << 8) | bytes_read[1]


def is_jpeg_header(buf: bytes) -> bool:
    return len(buf) >= HEADER_SIZE and buf[0] == MARKER_PREFIX and buf[1] == SOI


def read_header(f: BinaryIO) -> None:
    """Read the SOI marker at the start of an image. Fill bytes aren't allowed."""
    if not is_jpeg_header(read_exact(f, HEADER_SIZE)):
        raise MissingStartMarker("SOI marker not found")


def read_marker(f: BinaryIO) -> int:
    """Read a marker: 0xFF, any number of 0xFF fill bytes, then the code."""
    if read_u8(f) != MARKER_PREFIX:
        raise ExpectedMarkerPrefix("0xFF expected in marker")
    marker = read_u8(f)
    # Fill bytes carry no information and are dropped.
    while marker == MARKER_PREFIX:
        marker = read_u8(f)
    if marker == 0x00:
        raise InvalidMarkerZero("Invalid marker 0")
    return marker


def write_marker(f: BinaryIO, marker: int) -> None:
    f.write(bytes((MARKER_PREFIX, marker)))


def read_data(f: BinaryIO) -> bytes:
    """Read a length-prefixed segment payload following a marker."""
    length = read_u16(f)
    if length < 2:
        raise InvalidLength(f"Segment length {length} is smaller than its own length field")
    return read_exact(f, length - 2)


def write_data(f: BinaryIO, data: bytes) -> None:
    """Write a segment payload with its length prefix."""
    length = len(data) + 2
    if length >= 1 << 16:
        raise SegmentTooLarge(
            f"Segment data is too long ({len(data)}), max 2^16 - 3 ({MAX_PAYLOAD})"
        )
    f.write(bytes((length >> 8, length & 0xFF)))
    f.write(data)
