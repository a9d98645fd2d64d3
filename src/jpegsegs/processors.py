"""
Processors for MPF APP2 segments.

A processor is given each APP2 segment as it is read. It returns whether
the segment held MPF data, and the segment to be written, possibly
re-encoded. The set of processors is closed:

- MPFNoop: ignores APP2 segments.
- MPFCheck: detects MPF data without decoding it.
- MPFGetIndex: reads image positions from the MPF index of a first image.
- MPFIndexRewriter: reserves space for the MPF index of a first image, to
  be rewritten once all images have been written.
- MPFAttributeRewriter: re-encodes the MPF attributes of a later image.
"""
from __future__ import annotations

import abc
import logging
from typing import BinaryIO, Optional, Sequence, Tuple

from .exceptions import MissingMPFIndex
from .mpf import (
    MPFIndex,
    decode_index,
    get_mpf_header,
    get_mpf_tree,
    make_mpf_segment,
    mpf_base_from_reader,
    rewrite_mpf,
)
from .tiff import IFDNode, TagSpace

logger = logging.getLogger(__name__)


class MPFProcessor(abc.ABC):
    @abc.abstractmethod
    def process_app2(
        self, writer: Optional[BinaryIO], reader: BinaryIO, seg: bytes
    ) -> Tuple[bool, bytes]:
        """
        Process one APP2 segment payload.

        reader must have just read seg and be positioned one byte past its
        end. writer is the output stream the segment will be written to
        next, or None if there isn't one.
        """


class MPFNoop(MPFProcessor):
    def process_app2(self, writer, reader, seg):
        return False, seg


class MPFCheck(MPFProcessor):
    def process_app2(self, writer, reader, seg):
        is_mpf, _ = get_mpf_header(seg)
        return is_mpf, seg


class MPFGetIndex(MPFProcessor):
    def __init__(self):
        self.index: Optional[MPFIndex] = None

    def process_app2(self, writer, reader, seg):
        is_mpf, next_pos = get_mpf_header(seg)
        if is_mpf:
            tree = get_mpf_tree(seg[next_pos:], TagSpace.MPF_INDEX)
            self.index = decode_index(tree, mpf_base_from_reader(reader, seg))
            logger.debug("MPF index: offsets %s, lengths %s",
                         self.index.image_offsets, self.index.image_lengths)
        return is_mpf, seg


class MPFIndexRewriter(MPFProcessor):
    """
    Decodes the MPF index and re-encodes it with its current values,
    recording where it will be written. Re-encoding again later with
    different image positions produces a segment of the same size, which
    rewrite() then writes over the first one.
    """

    def __init__(self):
        self.tree: Optional[IFDNode] = None
        self.index: Optional[MPFIndex] = None
        # Position of the APP2 marker in the output stream.
        self.app2_write_pos = 0
        self.reserved_size = 0

    def process_app2(self, writer, reader, seg):
        is_mpf, next_pos = get_mpf_header(seg)
        if is_mpf:
            self.tree = get_mpf_tree(seg[next_pos:], TagSpace.MPF_INDEX)
            self.index = decode_index(self.tree, mpf_base_from_reader(reader, seg))
            seg = make_mpf_segment(self.tree)
            self.app2_write_pos = writer.tell()
            self.reserved_size = len(seg)
            logger.debug("Reserved %d bytes for MPF index at %d",
                         self.reserved_size, self.app2_write_pos)
        return is_mpf, seg

    def rewrite(self, writer: BinaryIO, offsets: Sequence[int], end: int) -> MPFIndex:
        if self.tree is None:
            raise MissingMPFIndex("No MPF index segment has been processed")
        return rewrite_mpf(writer, self.tree, self.app2_write_pos, offsets, end, self.reserved_size)


class MPFAttributeRewriter(MPFProcessor):
    def __init__(self):
        self.tree: Optional[IFDNode] = None

    def process_app2(self, writer, reader, seg):
        is_mpf, next_pos = get_mpf_header(seg)
        if is_mpf:
            self.tree = get_mpf_tree(seg[next_pos:], TagSpace.MPF_ATTRIBUTE)
            seg = make_mpf_segment(self.tree)
        return is_mpf, seg
