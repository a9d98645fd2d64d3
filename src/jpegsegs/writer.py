from __future__ import annotations

from typing import BinaryIO, Iterable, Optional

import numpy as np

from .marker import MARKER_PREFIX, SOI, write_data, write_marker
from .primitives import RAW_DATA, Segment


def stuff(data: bytes) -> bytes:
    """Escape every 0xFF in scan data as 0xFF 0x00."""
    arr = np.frombuffer(data, dtype=np.uint8)
    ff = np.flatnonzero(arr == MARKER_PREFIX)
    if ff.size == 0:
        return bytes(data)
    return np.insert(arr, ff + 1, 0).tobytes()


def write_image_data(f: BinaryIO, data: bytes) -> None:
    f.write(stuff(data))


class Dumper:
    """Writer for JPEG markers and segments, the mirror of Scanner."""

    def __init__(self, f: BinaryIO):
        self.f = f
        self.header_written = False
        self.write_header()

    def write_header(self) -> None:
        if not self.header_written:
            write_marker(self.f, SOI)
            self.header_written = True

    def dump(self, marker: int, data: Optional[bytes]) -> None:
        """
        Write a marker and its segment data.

        RAW_DATA writes data as byte-stuffed scan data with no marker, and a
        data of None writes the marker alone (RST0-7, EOI, TEM).
        """
        if marker == RAW_DATA:
            write_image_data(self.f, data)
            return
        write_marker(self.f, marker)
        if data is not None:
            write_data(self.f, data)


def write_segments(f: BinaryIO, segments: Iterable[Segment]) -> None:
    dumper = Dumper(f)
    for segment in segments:
        dumper.dump(segment.marker, segment.data)
