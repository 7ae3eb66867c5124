"""
Tests for the 32-byte quantized raster header codec.
"""

import io
import struct

import numpy as np
import pytest

from baseline_eto import config
from baseline_eto.config import RasterGeometry
from baseline_eto.errors import FormatError, RasterIOError
from baseline_eto.header import (
    build_header,
    decode_header,
    encode_header,
    read_header,
    scaling_factor,
    write_header,
)
from baseline_eto.raster_types import FileMeta, RasterHeader


class TestScalingFactor:
    def test_full_byte_range_is_unit_scale(self):
        assert scaling_factor(FileMeta(min=0, max=255)) == 1.0

    def test_mod16_style_range(self):
        assert scaling_factor(FileMeta(min=0, max=65527)) == 65528 / 256.0

    def test_single_value_range(self):
        assert scaling_factor(FileMeta(min=700, max=700)) == 1 / 256.0


class TestEncodeHeader:
    """Byte layout of encoded headers."""

    def _header(self, **overrides):
        fields = dict(width=43200, height=16800, minimum_value=1.5,
                      scaling_factor=25.5)
        fields.update(overrides)
        return RasterHeader(**fields)

    def test_length_is_32(self):
        assert len(encode_header(self._header())) == config.HEADER_SIZE

    def test_field_offsets(self):
        data = encode_header(self._header())
        assert data[0] == 1
        assert struct.unpack_from(">I", data, 1)[0] == 43200
        assert struct.unpack_from(">I", data, 5)[0] == 16800
        assert data[9] == 8
        assert struct.unpack_from(">f", data, 10)[0] == 1.5
        assert struct.unpack_from(">f", data, 14)[0] == 25.5

    def test_reserved_bytes_zero(self):
        data = encode_header(self._header())
        assert data[18:] == bytes(14)

    def test_short_reserved_is_zero_padded(self):
        data = encode_header(self._header(reserved=b"\x01\x02"))
        assert data[18:20] == b"\x01\x02"
        assert data[20:] == bytes(12)

    def test_oversized_reserved_rejected(self):
        with pytest.raises(FormatError, match="Reserved field"):
            encode_header(self._header(reserved=bytes(15)))

    def test_negative_width_rejected(self):
        with pytest.raises(FormatError):
            encode_header(self._header(width=-1))

    def test_width_beyond_uint32_rejected(self):
        with pytest.raises(FormatError):
            encode_header(self._header(width=2 ** 32))


class TestDecodeHeader:
    def test_round_trip(self):
        header = RasterHeader(width=8, height=6, minimum_value=-3.25,
                              scaling_factor=0.5, reserved=b"abc" + bytes(11))
        assert decode_header(encode_header(header)) == header

    def test_short_input_rejected(self):
        with pytest.raises(FormatError, match="32 bytes"):
            decode_header(bytes(31))

    def test_extra_bytes_ignored(self):
        header = RasterHeader(width=4, height=1, minimum_value=0.0,
                              scaling_factor=0.1)
        data = encode_header(header) + b"\xff\xff"
        assert decode_header(data).width == 4

    def test_unsupported_version_rejected(self):
        data = bytearray(encode_header(RasterHeader(
            width=4, height=1, minimum_value=0.0, scaling_factor=0.1)))
        data[0] = 2
        with pytest.raises(FormatError, match="Unsupported data file version 2"):
            decode_header(bytes(data))

    def test_other_bit_depth_decodes(self):
        header = RasterHeader(width=4, height=1, minimum_value=0.0,
                              scaling_factor=0.1, bit_depth=16)
        assert decode_header(encode_header(header)).bit_depth == 16


class TestBuildHeader:
    def test_values_in_physical_units(self):
        geometry = RasterGeometry(width=8, height=6, mask_width=4,
                                  mask_height=18)
        header = build_header(FileMeta(min=100, max=355), geometry)
        unit = np.float32(0.1)
        assert header.width == 8
        assert header.height == 6
        assert header.bit_depth == 8
        assert header.version == 1
        assert header.minimum_value == float(np.float32(100) * unit)
        assert header.scaling_factor == float(np.float32(1.0) * unit)

    def test_survives_float32_encoding(self):
        geometry = RasterGeometry(width=8, height=6, mask_width=4,
                                  mask_height=18)
        header = build_header(FileMeta(min=37, max=65000), geometry)
        assert decode_header(encode_header(header)) == header


class _BrokenStream(io.RawIOBase):
    def write(self, data):
        raise OSError("disk full")

    def read(self, size=-1):
        raise OSError("device gone")


class TestStreams:
    def test_write_then_read(self):
        header = RasterHeader(width=3, height=2, minimum_value=0.0,
                              scaling_factor=0.25)
        stream = io.BytesIO()
        assert write_header(stream, header) == config.HEADER_SIZE
        stream.seek(0)
        assert read_header(stream) == header

    def test_read_leaves_stream_after_header(self):
        header = RasterHeader(width=3, height=2, minimum_value=0.0,
                              scaling_factor=0.1)
        stream = io.BytesIO(encode_header(header) + b"\x07")
        read_header(stream)
        assert stream.read() == b"\x07"

    def test_write_failure_wrapped(self):
        header = RasterHeader(width=3, height=2, minimum_value=0.0,
                              scaling_factor=0.1)
        with pytest.raises(RasterIOError, match="disk full"):
            write_header(_BrokenStream(), header)

    def test_read_failure_wrapped(self):
        with pytest.raises(RasterIOError, match="device gone"):
            read_header(_BrokenStream())

    def test_truncated_stream_is_format_error(self):
        with pytest.raises(FormatError):
            read_header(io.BytesIO(bytes(10)))
