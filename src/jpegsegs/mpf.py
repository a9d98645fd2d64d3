"""
Support for Multi-Picture Format (MPF), which stores multiple images in a
single JPEG file.

The MPF data is a TIFF structure in an APP2 segment, following the 4 byte
"MPF\\0" header. Offsets in the MPF index are relative to the byte after
that header.

Writing a multi-image file needs the final position of every image in the
index of the first image. The index is first written with nominal values to
reserve its space, then rewritten in place once all images are written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Dict, List, Optional, Sequence, Tuple

from .exceptions import (
    BackpatchSizeMismatch,
    EntryTableTooShort,
    InvalidMPFOffsetPattern,
    OffsetOverflow,
    TagDirectoryError,
    TagSpaceMismatch,
    ZeroImageCount,
)
from .marker import APP2, write_data, write_marker
from .tiff import IFDNode, TagSpace, parse_directory, serialize_directory

logger = logging.getLogger(__name__)

MPF_HEADER = b"MPF\x00"
MPF_HEADER_SIZE = 4

# APP2 marker, segment length and MPF header precede the TIFF data.
MPF_SEGMENT_OVERHEAD = 2 + 2 + MPF_HEADER_SIZE

# Bytes per image in the MPF entry table.
MPF_ENTRY_SIZE = 16

# Tags in the MPF index IFD.
MPF_VERSION = 0xB000
MPF_NUMBER_OF_IMAGES = 0xB001
MPF_ENTRY = 0xB002
MPF_IMAGE_UID_LIST = 0xB003
MPF_TOTAL_FRAMES = 0xB004

MPF_INDEX_TAG_NAMES: Dict[int, str] = {
    MPF_VERSION: "MPFVersion",
    MPF_NUMBER_OF_IMAGES: "MPFNumberOfImages",
    MPF_ENTRY: "MPFEntry",
    MPF_IMAGE_UID_LIST: "MPFImageUIDList",
    MPF_TOTAL_FRAMES: "MPFTotalFrames",
}

# Tags in the MPF attribute IFD, which also uses MPF_VERSION.
MPF_INDIVIDUAL_IMAGE_NUMBER = 0xB101
MPF_PANORAMA_SCANNING_ORIENTATION = 0xB201
MPF_PANORAMA_HORIZONTAL_OVERLAP = 0xB202
MPF_PANORAMA_VERTICAL_OVERLAP = 0xB203
MPF_BASE_VIEWPOINT_NUMBER = 0xB204
MPF_CONVERGENCE_ANGLE = 0xB205
MPF_BASELINE_LENGTH = 0xB206
MPF_DIVERGENCE_ANGLE = 0xB207
MPF_HORIZONTAL_AXIS_DISTANCE = 0xB208
MPF_VERTICAL_AXIS_DISTANCE = 0xB209
MPF_COLLIMATION_AXIS_DISTANCE = 0xB20A
MPF_YAW_ANGLE = 0xB20B
MPF_PITCH_ANGLE = 0xB20C
MPF_ROLL_ANGLE = 0xB20D

MPF_ATTRIBUTE_TAG_NAMES: Dict[int, str] = {
    MPF_VERSION: "MPFVersion",
    MPF_INDIVIDUAL_IMAGE_NUMBER: "MPFIndividualImageNumber",
    MPF_PANORAMA_SCANNING_ORIENTATION: "MPFPanoramaScanningOrientation",
    MPF_PANORAMA_HORIZONTAL_OVERLAP: "MPFPanoramaHorizontalOverlap",
    MPF_PANORAMA_VERTICAL_OVERLAP: "MPFPanoramaVerticalOverlap",
    MPF_BASE_VIEWPOINT_NUMBER: "MPFBaseViewpointNumber",
    MPF_CONVERGENCE_ANGLE: "MPFConvergenceAngle",
    MPF_BASELINE_LENGTH: "MPFBaselineLength",
    MPF_DIVERGENCE_ANGLE: "MPFDivergenceAngle",
    MPF_HORIZONTAL_AXIS_DISTANCE: "MPFHorizontalAxisDistance",
    MPF_VERTICAL_AXIS_DISTANCE: "MPFVerticalAxisDistance",
    MPF_COLLIMATION_AXIS_DISTANCE: "MPFCollimationAxisDistance",
    MPF_YAW_ANGLE: "MPFYawAngle",
    MPF_PITCH_ANGLE: "MPFPitchAngle",
    MPF_ROLL_ANGLE: "MPFRollAngle",
}

U32_MASK = 0xFFFFFFFF


def tag_name(tag: int, space: TagSpace) -> str:
    names = MPF_INDEX_TAG_NAMES if space is TagSpace.MPF_INDEX else MPF_ATTRIBUTE_TAG_NAMES
    return names.get(tag, f"0x{tag:04X}")


def get_mpf_header(buf: bytes) -> Tuple[bool, int]:
    """
    Check if an APP2 segment starts with the MPF header.

    Returns a flag and the position of the byte following the header.
    """
    if len(buf) >= MPF_HEADER_SIZE and buf[:MPF_HEADER_SIZE] == MPF_HEADER:
        return True, MPF_HEADER_SIZE
    return False, 0


def get_mpf_tree(buf: bytes, space: Optional[TagSpace] = None) -> IFDNode:
    """
    Unpack the TIFF structure in an MPF segment.

    buf must start with the TIFF header. space should be MPF_INDEX for the
    first image in a file and MPF_ATTRIBUTE for the others; if omitted it is
    MPF_INDEX when the first IFD has an image count.
    """
    tree = parse_directory(buf, space or TagSpace.MPF_INDEX)
    if space is None and tree.get_field(MPF_NUMBER_OF_IMAGES) is None:
        tree.space = TagSpace.MPF_ATTRIBUTE
    return tree


def make_mpf_segment(tree: IFDNode) -> bytes:
    """Serialize an MPF tree into an APP2 segment payload."""
    return MPF_HEADER + serialize_directory(tree)


def mpf_base_from_reader(f: BinaryIO, seg: bytes) -> int:
    """
    File offset from which MPF offsets are measured, given a reader that
    has just read the APP2 segment seg.
    """
    return f.tell() - (len(seg) - MPF_HEADER_SIZE)


MPFApply = Callable[[BinaryIO, int, int], None]


@dataclass
class MPFIndex:
    """Image positions from an MPF index segment."""

    # Position after the MPF header in the file, from which MPF offsets
    # are measured.
    offset: int
    # Offsets and lengths of images in the file, relative to the start of
    # the file. The first image is always at offset 0.
    image_offsets: List[int] = field(default_factory=list)
    image_lengths: List[int] = field(default_factory=list)

    def image_iterate(self, f: BinaryIO, apply: MPFApply) -> None:
        """Position f at each image in turn and call apply(f, index, length)."""
        for i, (offset, length) in enumerate(zip(self.image_offsets, self.image_lengths)):
            f.seek(offset)
            apply(f, i, length)


def _entry_field(tree: IFDNode, count: int):
    entry = tree.get_field(MPF_ENTRY)
    size = len(entry.data) if entry is not None else 0
    if size < MPF_ENTRY_SIZE * count:
        raise EntryTableTooShort("MPF Entry doesn't have 16 bytes for each image")
    return entry


def decode_index(tree: IFDNode, base: int) -> MPFIndex:
    """Create an MPFIndex from an MPF index tree and the MPF file offset."""
    if tree.space is not TagSpace.MPF_INDEX:
        raise TagSpaceMismatch(f"Expected an MPF index IFD, got {tree.space.value}")
    order = tree.order
    count = 0
    count_field = tree.get_field(MPF_NUMBER_OF_IMAGES)
    if count_field is not None:
        if len(count_field.data) < 4:
            raise TagDirectoryError("MPF image count is not a 32 bit value")
        count = count_field.get_long(0, order)
    if count == 0:
        raise ZeroImageCount("MPF image count is 0")
    entry = _entry_field(tree, count)

    index = MPFIndex(base)
    for i in range(count):
        rel_offset = entry.get_long(i * 4 + 2, order)
        offset = 0
        if rel_offset != 0:
            offset = (rel_offset + base) & U32_MASK
            if offset < base:
                raise OffsetOverflow("MPF offset overflow")
        if i == 0 and offset != 0:
            raise InvalidMPFOffsetPattern("First image should have an MPF offset of zero")
        if i > 0 and offset == 0:
            raise InvalidMPFOffsetPattern("Only the first image should have an MPF offset of zero")
        index.image_offsets.append(offset)
        index.image_lengths.append(entry.get_long(i * 4 + 1, order))
    return index


def encode_index(index: MPFIndex, tree: IFDNode) -> None:
    """
    Update the offsets and lengths in an MPF index tree in place.

    The first image must be at offset 0 and every other image past
    index.offset. Relative offsets and lengths must fit in 32 bits. Nothing
    is written unless every entry is valid.
    """
    order = tree.order
    entry = _entry_field(tree, len(index.image_offsets))
    values = []
    for i, (offset, length) in enumerate(zip(index.image_offsets, index.image_lengths)):
        if i == 0 and offset != 0:
            raise InvalidMPFOffsetPattern("First image should have an MPF offset of zero")
        if i > 0 and offset <= index.offset:
            raise InvalidMPFOffsetPattern(
                f"Image {i} at offset {offset} is not after the MPF base {index.offset}"
            )
        rel_offset = offset - index.offset if i > 0 else 0
        if rel_offset > U32_MASK:
            raise OffsetOverflow(f"MPF offset of image {i} doesn't fit in 32 bits")
        if not 0 <= length <= U32_MASK:
            raise OffsetOverflow(f"Length {length} of image {i} doesn't fit in 32 bits")
        values.append((rel_offset, length))
    for i, (rel_offset, length) in enumerate(values):
        entry.put_long(rel_offset, i * 4 + 2, order)
        entry.put_long(length, i * 4 + 1, order)


def derive_lengths(offsets: Sequence[int], end: int) -> List[int]:
    """Image lengths for consecutive images, the last one running to end."""
    lengths = [offsets[i + 1] - offsets[i] for i in range(len(offsets) - 1)]
    lengths.append(end - offsets[-1])
    return lengths


def set_mpf_positions(tree: IFDNode, base: int, offsets: Sequence[int], end: int) -> MPFIndex:
    """
    Put new image offsets into an MPF index tree, with lengths computed on
    the assumption that the images are consecutive with no gaps.
    """
    index = MPFIndex(base, list(offsets), derive_lengths(offsets, end))
    encode_index(index, tree)
    return index


def rewrite_mpf(
    f: BinaryIO,
    tree: IFDNode,
    write_pos: int,
    offsets: Sequence[int],
    end: int,
    reserved_size: int,
) -> MPFIndex:
    """
    Overwrite the MPF APP2 segment written at write_pos with final image
    positions.

    reserved_size is the length of the segment payload written in the first
    pass; the new payload must have exactly that length. The stream is
    left at the position it had on entry.
    """
    index = set_mpf_positions(tree, write_pos + MPF_SEGMENT_OVERHEAD, offsets, end)
    seg = make_mpf_segment(tree)
    if len(seg) != reserved_size:
        raise BackpatchSizeMismatch(
            f"MPF segment is {len(seg)} bytes, {reserved_size} bytes were reserved"
        )
    resume = f.tell()
    f.seek(write_pos)
    write_marker(f, APP2)
    write_data(f, seg)
    f.seek(resume)
    logger.debug(
        "Rewrote MPF index at %d: offsets %s, lengths %s",
        write_pos, index.image_offsets, index.image_lengths,
    )
    return index
