import io

import pytest

from jpeg_builders import build_mpf_file, simple_image


@pytest.fixture
def simple_jpeg():
    return io.BytesIO(simple_image())


@pytest.fixture
def mpf_file():
    data, offsets = build_mpf_file(count=3)
    return data, offsets


@pytest.fixture
def mpf_file_with_fill():
    # Fill bytes are dropped on copy, so the rewritten images move.
    data, offsets = build_mpf_file(count=3, fill=b"\xff\xff\xff")
    return data, offsets
