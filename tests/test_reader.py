"""Tests for scan data unstuffing and the Scanner."""
import io
import pytest

from jpegsegs.exceptions import PastEndOfImage, Truncated
from jpegsegs.marker import COM, DQT, EOI, RST0, SOS, TEM
from jpegsegs.primitives import RAW_DATA, Segment
from jpegsegs.reader import ScanState, Scanner, read_image_data, read_segments, unstuff

from jpeg_builders import SOS_PAYLOAD, segment, simple_image


class TestReadImageData:
    """Tests for reading and unstuffing scan data."""

    def test_stops_before_marker(self):
        """Test that the stream is left at the next marker."""
        f = io.BytesIO(b"\x01\x02\x03\xff\xd9")
        assert read_image_data(f) == b"\x01\x02\x03"
        assert f.tell() == 3
        assert f.read() == b"\xff\xd9"

    def test_escaped_ff(self):
        """Test that 0xFF 0x00 becomes 0xFF."""
        f = io.BytesIO(b"\x01\xff\x00\x02\xff\x00\xff\x00\xff\xd0")
        assert read_image_data(f) == b"\x01\xff\x02\xff\xff"
        assert f.read() == b"\xff\xd0"

    def test_empty_region(self):
        """Test scan data that ends immediately."""
        f = io.BytesIO(b"\xff\xd1\xff\xd2")
        assert read_image_data(f) == b""
        assert f.tell() == 0

    def test_fill_before_marker(self):
        """Test fill bytes before the terminating marker."""
        f = io.BytesIO(b"\x07\xff\xff\xd9")
        assert read_image_data(f) == b"\x07"
        assert f.tell() == 1

    @pytest.mark.parametrize("block_size", [2, 3, 4, 5, 7])
    def test_block_boundaries(self, block_size):
        """Test escapes that straddle block boundaries."""
        stuffed = b"\x10\xff\x00\x11\xff\x00\x12\x13\xff\x00\xff\x00\x14"
        f = io.BytesIO(stuffed + b"\xff\xd9")
        assert read_image_data(f, block_size) == b"\x10\xff\x11\xff\x12\x13\xff\xff\x14"
        assert f.tell() == len(stuffed)

    def test_ff_on_last_byte_of_block(self):
        """Test a 0xFF on the last byte of a block."""
        # The 0xFF lands at index 3 of the first 4 byte block.
        f = io.BytesIO(b"\x01\x02\x03\xff\x00\x04\xff\xda")
        assert read_image_data(f, 4) == b"\x01\x02\x03\xff\x04"
        assert f.tell() == 6

    def test_marker_split_across_blocks(self):
        """Test a marker split between two blocks."""
        f = io.BytesIO(b"\x01\x02\x03\xff\xd9")
        assert read_image_data(f, 4) == b"\x01\x02\x03"
        assert f.tell() == 3

    def test_no_terminating_marker(self):
        """Test scan data running to the end of the stream."""
        with pytest.raises(Truncated):
            read_image_data(io.BytesIO(b"\x01\x02\x03"))

    def test_stream_ends_on_ff(self):
        """Test a stream ending on a lone 0xFF."""
        with pytest.raises(Truncated):
            read_image_data(io.BytesIO(b"\x01\x02\xff"), 2)

    def test_starts_at_current_position(self):
        """Test reading from the middle of a stream."""
        f = io.BytesIO(b"junk\x05\x06\xff\xd9")
        f.seek(4)
        assert read_image_data(f) == b"\x05\x06"
        assert f.tell() == 6

    def test_unstuff(self):
        """Test unstuffing a whole buffer."""
        assert unstuff(b"\x01\xff\x00\x02") == b"\x01\xff\x02"
        assert unstuff(b"\x01\x02") == b"\x01\x02"
        assert unstuff(b"") == b""


class TestScanner:
    """Tests for the Scanner state machine."""

    def test_minimal_file(self):
        """Test a file with one segment and one scan."""
        data = b"\xff\xd8" + segment(COM) + segment(SOS) + b"\x01" + b"\xff\xd9"
        scanner = Scanner(io.BytesIO(data))
        assert scanner.scan() == (COM, b"")
        assert scanner.scan() == (SOS, b"")
        assert scanner.scan() == (RAW_DATA, b"\x01")
        assert scanner.scan() == (EOI, None)

    def test_scan_after_eoi(self):
        """Test scanning past EOI."""
        scanner = Scanner(io.BytesIO(b"\xff\xd8\xff\xd9"))
        assert scanner.scan() == (EOI, None)
        assert scanner.state is ScanState.FINISHED
        with pytest.raises(PastEndOfImage):
            scanner.scan()

    def test_states(self):
        """Test the scanner state after each call."""
        scanner = Scanner(io.BytesIO(simple_image()))
        assert scanner.state is ScanState.AWAITING_MARKER
        scanner.scan()
        scanner.scan()
        assert scanner.state is ScanState.AWAITING_MARKER
        assert scanner.scan()[0] == SOS
        assert scanner.state is ScanState.AWAITING_SCAN_DATA
        assert scanner.scan() == (RAW_DATA, b"\x12\xff\x34")
        assert scanner.state is ScanState.AWAITING_MARKER

    def test_restart_markers(self):
        """Test scan data split by restart markers."""
        data = (
            b"\xff\xd8" + segment(SOS, SOS_PAYLOAD)
            + b"\xaa" + b"\xff\xd0" + b"\xff\xd1" + b"\xbb\xff\x00" + b"\xff\xd9"
        )
        segments = list(Scanner(io.BytesIO(data)))
        assert segments == [
            Segment(SOS, SOS_PAYLOAD),
            Segment(RAW_DATA, b"\xaa"),
            Segment(RST0, None),
            Segment(RAW_DATA, b""),
            Segment(RST0 + 1, None),
            Segment(RAW_DATA, b"\xbb\xff"),
            Segment(EOI, None),
        ]

    def test_tem_has_no_data(self):
        """Test that TEM has no segment."""
        data = b"\xff\xd8\xff\x01" + segment(COM, b"x") + b"\xff\xd9"
        segments = list(Scanner(io.BytesIO(data)))
        assert segments == [Segment(TEM, None), Segment(COM, b"x"), Segment(EOI, None)]

    def test_returned_data_is_owned_by_caller(self):
        """Test that earlier results survive later calls."""
        data = b"\xff\xd8" + segment(COM, b"first") + segment(COM, b"second") + b"\xff\xd9"
        scanner = Scanner(io.BytesIO(data))
        _, first = scanner.scan()
        _, second = scanner.scan()
        assert first == b"first"
        assert second == b"second"

    def test_iteration_stops_at_eoi(self):
        """Test that iteration ends at EOI."""
        f = io.BytesIO(simple_image() + b"trailing")
        segments = list(Scanner(f))
        assert segments[-1] == Segment(EOI, None)
        assert f.read() == b"trailing"

    def test_small_block_size(self):
        """Test a very small block size."""
        segments = list(Scanner(io.BytesIO(simple_image(scan=b"\xff\x00" * 20)), block_size=3))
        assert Segment(RAW_DATA, b"\xff" * 20) in segments

    def test_missing_header(self):
        """Test an empty stream."""
        with pytest.raises(Truncated):
            Scanner(io.BytesIO(b""))


class TestReadSegments:
    """Tests for read_segments."""

    def test_reads_up_to_sos(self):
        """Test reading the segments before the scan data."""
        f = io.BytesIO(simple_image())
        segments = read_segments(f)
        assert [s.marker for s in segments] == [COM, DQT, SOS]
        assert segments[-1].data == SOS_PAYLOAD
        assert f.read(1) == b"\x12"
