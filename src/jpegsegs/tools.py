"""Print, copy and strip JPEG files one segment at a time."""
from __future__ import annotations

import logging
from typing import BinaryIO, Optional, TextIO

from .marker import APP2, COM, is_app, is_jpg, is_rst, marker_name
from .mpf import MPFIndex
from .primitives import RAW_DATA
from .processors import (
    MPFAttributeRewriter,
    MPFCheck,
    MPFGetIndex,
    MPFIndexRewriter,
    MPFNoop,
    MPFProcessor,
)
from .reader import Scanner
from .writer import Dumper

logger = logging.getLogger(__name__)


def print_image(f: BinaryIO, processor: Optional[MPFProcessor] = None,
                out: Optional[TextIO] = None) -> None:
    """Print the markers and segment lengths of a single image."""
    processor = processor or MPFCheck()
    scanner = Scanner(f)
    print("SOI", file=out)
    data_count = 0
    reset_count = 0
    for segment in scanner:
        marker, data = segment.marker, segment.data
        if marker == RAW_DATA:
            data_count += len(data)
            continue
        if is_rst(marker):
            reset_count += 1
            continue
        if data_count > 0 or reset_count > 0:
            line = f"{data_count} bytes of image data"
            if reset_count > 0:
                line += f" and {reset_count} reset markers"
            print(line, file=out)
            data_count = 0
            reset_count = 0
        if data is None:
            print(marker_name(marker), file=out)
            continue
        if marker == APP2:
            is_mpf, data = processor.process_app2(None, f, data)
            if is_mpf:
                print(f"{marker_name(marker)}, {len(data)} bytes (MPF segment)", file=out)
                continue
        print(f"{marker_name(marker)}, {len(data)} bytes", file=out)


def print_file(f: BinaryIO, out: Optional[TextIO] = None) -> Optional[MPFIndex]:
    """Print every image in a file, following the MPF index if there is one."""
    getter = MPFGetIndex()
    print_image(f, getter, out)
    index = getter.index
    if index is None:
        return None

    def print_mpf_image(reader, i, length):
        if i == 0:
            return
        print(f"MPF image {i + 1} at offset {index.image_offsets[i]}, size {length}", file=out)
        print_image(reader, MPFCheck(), out)

    index.image_iterate(f, print_mpf_image)
    return index


def copy_image(writer: BinaryIO, reader: BinaryIO,
               processor: Optional[MPFProcessor] = None) -> None:
    """Copy a single image, passing APP2 segments through processor."""
    processor = processor or MPFNoop()
    scanner = Scanner(reader)
    dumper = Dumper(writer)
    for segment in scanner:
        data = segment.data
        if segment.marker == APP2:
            _, data = processor.process_app2(writer, reader, data)
        dumper.dump(segment.marker, data)


def copy_file(reader: BinaryIO, writer: BinaryIO) -> Optional[MPFIndex]:
    """
    Unpack a file one segment at a time and repackage it, including any
    additional images listed in its MPF index.

    Returns the rewritten MPF index, or None if the file has no MPF index.
    """
    rewriter = MPFIndexRewriter()
    copy_image(writer, reader, rewriter)
    if rewriter.index is None:
        return None
    offsets = [0]
    for offset in rewriter.index.image_offsets[1:]:
        reader.seek(offset)
        offsets.append(writer.tell())
        copy_image(writer, reader, MPFAttributeRewriter())
    return rewriter.rewrite(writer, offsets, writer.tell())


def strip_file(reader: BinaryIO, writer: BinaryIO) -> None:
    """
    Copy the first image in a file with all COM, APP and JPG segments
    removed. Anything after its EOI, such as additional MPF images, is
    dropped.
    """
    scanner = Scanner(reader)
    dumper = Dumper(writer)
    dropped = 0
    for segment in scanner:
        marker = segment.marker
        if marker == COM or is_app(marker) or is_jpg(marker):
            dropped += 1
            continue
        dumper.dump(marker, segment.data)
    logger.debug("Dropped %d segments", dropped)
