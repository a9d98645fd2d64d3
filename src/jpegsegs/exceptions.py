"""Errors raised while reading and writing JPEG segments and MPF data."""


class JPEGSegsError(Exception):
    """Base class for every error raised by jpegsegs."""


# --- format errors: fatal to the current stream traversal ---

class FormatError(JPEGSegsError, ValueError):
    """The byte stream is not a well formed JPEG marker/segment stream."""


class MissingStartMarker(FormatError):
    pass


class ExpectedMarkerPrefix(FormatError):
    pass


class InvalidMarkerZero(FormatError):
    pass


class Truncated(FormatError, EOFError):
    pass


class InvalidLength(FormatError):
    pass


class SegmentTooLarge(FormatError):
    pass


class PastEndOfImage(FormatError):
    pass


# --- MPF errors: fatal to MPF processing only ---

class MPFError(JPEGSegsError, ValueError):
    """The MPF data in an APP2 segment is inconsistent."""


class TagDirectoryError(MPFError):
    """Malformed TIFF header or IFD inside an MPF segment."""


class TagSpaceMismatch(MPFError):
    pass


class ZeroImageCount(MPFError):
    pass


class EntryTableTooShort(MPFError):
    pass


class InvalidMPFOffsetPattern(MPFError):
    pass


class OffsetOverflow(MPFError):
    pass


class BackpatchSizeMismatch(MPFError):
    pass


class MissingMPFIndex(MPFError):
    """An MPF index rewrite was requested before any index was read."""
