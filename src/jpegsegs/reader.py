from __future__ import annotations

import enum
import logging
from typing import BinaryIO, Iterator, List, Optional, Tuple

import numpy as np

from .exceptions import PastEndOfImage, Truncated
from .marker import EOI, MARKER_PREFIX, SOS, has_data, is_rst, read_data, read_header, read_marker
from .primitives import RAW_DATA, Segment

logger = logging.getLogger(__name__)

# Image data could be very large, reading one byte at a time would be slow.
BLOCK_SIZE = 10000


def unstuff(data: bytes) -> bytes:
    """Remove the 0x00 that follows every 0xFF in a complete block of scan data."""
    arr = np.frombuffer(data, dtype=np.uint8)
    escapes = np.flatnonzero(arr[:-1] == MARKER_PREFIX) + 1
    if escapes.size == 0:
        return bytes(data)
    return np.delete(arr, escapes[arr[escapes] == 0]).tobytes()


def read_image_data(f: BinaryIO, block_size: int = BLOCK_SIZE) -> bytes:
    """
    Read entropy-coded scan data up to the next marker.

    Escaped 0xFF 0x00 pairs are returned as 0xFF. When a 0xFF followed by a
    non-zero byte is found, the stream is left positioned on that 0xFF so
    the marker can be read next.
    """
    if block_size < 2:
        raise ValueError("block_size must be at least 2")
    out = bytearray()
    while True:
        block_start = f.tell()
        block = f.read(block_size)
        if not block:
            raise Truncated("End of stream in image data, no terminating marker")
        arr = np.frombuffer(block, dtype=np.uint8)
        last = len(block) - 1
        pos = 0
        for ff in np.flatnonzero(arr == MARKER_PREFIX).tolist():
            if ff == last:
                # 2nd byte is in the next block.
                if last == 0:
                    raise Truncated("End of stream after 0xFF in image data")
                out += block[pos:ff]
                f.seek(block_start + ff)
                break
            if block[ff + 1] == 0x00:
                # Escaped 0xFF in data stream, drop the 0.
                out += block[pos:ff + 1]
                pos = ff + 2
                continue
            # Found a marker.
            out += block[pos:ff]
            f.seek(block_start + ff)
            return bytes(out)
        else:
            out += block[pos:]


class ScanState(enum.Enum):
    AWAITING_MARKER = "awaiting marker"
    AWAITING_SCAN_DATA = "awaiting scan data"
    FINISHED = "finished"


class Scanner:
    """
    Pull-based reader for JPEG markers, segments and scan data.

    Each call to scan() returns a (marker, data) pair. data is a new bytes
    object owned by the caller, so it stays valid after later calls.
    """

    def __init__(self, f: BinaryIO, block_size: int = BLOCK_SIZE):
        self.f = f
        self.block_size = block_size
        read_header(f)
        self.state = ScanState.AWAITING_MARKER

    def scan(self) -> Tuple[int, Optional[bytes]]:
        """
        Read the next marker and its segment, or the next block of scan data.

        Returns (RAW_DATA, data) for image data, and (marker, None) for
        markers without a segment: RST0-7, EOI and TEM.
        """
        if self.state is ScanState.FINISHED:
            raise PastEndOfImage("Scan called after EOI")
        if self.state is ScanState.AWAITING_SCAN_DATA:
            data = read_image_data(self.f, self.block_size)
            self.state = ScanState.AWAITING_MARKER
            return RAW_DATA, data

        marker = read_marker(self.f)
        if marker == SOS or is_rst(marker):
            self.state = ScanState.AWAITING_SCAN_DATA
        elif marker == EOI:
            self.state = ScanState.FINISHED
        if not has_data(marker):
            return marker, None
        return marker, read_data(self.f)

    def __iter__(self) -> Iterator[Segment]:
        while self.state is not ScanState.FINISHED:
            marker, data = self.scan()
            yield Segment(marker, data)


def read_segments(f: BinaryIO) -> List[Segment]:
    """Read a JPEG stream up to and including the SOS marker."""
    segments = []
    scanner = Scanner(f)
    for segment in scanner:
        segments.append(segment)
        if segment.marker == SOS:
            break
    logger.debug("Read %d segments up to SOS", len(segments))
    return segments
