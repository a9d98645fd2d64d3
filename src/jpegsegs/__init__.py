"""
Read and write JPEG markers and segment data, including files that use the
Multi-Picture Format (MPF) to hold several images.

Reading and writing is done with a Scanner and a Dumper, which wrap
seekable binary streams. See jpegsegs.tools for complete examples.
"""
from .exceptions import FormatError, JPEGSegsError, MPFError
from .marker import marker_name, read_data, read_header, read_marker, write_data, write_marker
from .mpf import MPFIndex, decode_index, encode_index, get_mpf_header, get_mpf_tree, make_mpf_segment
from .primitives import RAW_DATA, Segment
from .reader import Scanner, read_image_data, read_segments
from .writer import Dumper, write_image_data, write_segments

__all__ = [
    "FormatError",
    "JPEGSegsError",
    "MPFError",
    "marker_name",
    "read_data",
    "read_header",
    "read_marker",
    "write_data",
    "write_marker",
    "MPFIndex",
    "decode_index",
    "encode_index",
    "get_mpf_header",
    "get_mpf_tree",
    "make_mpf_segment",
    "RAW_DATA",
    "Segment",
    "Scanner",
    "read_image_data",
    "read_segments",
    "Dumper",
    "write_image_data",
    "write_segments",
]
