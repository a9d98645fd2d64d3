from dataclasses import dataclass
from typing import Optional

# Pseudo-marker returned by Scanner.scan for entropy-coded image data.
# 0 is never a valid marker code.
RAW_DATA = 0


@dataclass(frozen=True)
class Segment:
    # marker: JPEG marker code, or RAW_DATA for scan data
    # data: segment payload, scan data, or None for markers without a segment
    marker: int
    data: Optional[bytes] = None
