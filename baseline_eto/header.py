"""
Codec for the fixed 32-byte header of quantized rasters.

Layout (big-endian, no padding):

    offset  size  field
    0       1     version (uint8)
    1       4     width (uint32)
    5       4     height (uint32)
    9       1     bit_depth (uint8)
    10      4     minimum_value (float32)
    14      4     scaling_factor (float32)
    18      14    reserved, zero-filled
"""

import struct

import numpy as np

from baseline_eto import config
from baseline_eto.errors import FormatError, RasterIOError
from baseline_eto.raster_types import RasterHeader

_HEADER_STRUCT = struct.Struct(f">BIIBff{config.HEADER_RESERVED_SIZE}s")

SUPPORTED_VERSIONS = (config.FORMAT_VERSION,)


def scaling_factor(bounds):
    """Raw sample units per quantized code step."""
    return (bounds.max - bounds.min + 1) / 256.0


def build_header(bounds, geometry):
    """Header for a quantized raster of ``geometry`` quantized with ``bounds``.

    Both stored values are computed in float32, matching the precision
    they are written with.
    """
    unit = np.float32(config.PHYSICAL_UNIT_SCALE)
    return RasterHeader(
        width=geometry.width,
        height=geometry.height,
        minimum_value=float(np.float32(bounds.min) * unit),
        scaling_factor=float(np.float32(scaling_factor(bounds)) * unit),
    )


def encode_header(header):
    reserved = bytes(header.reserved)
    if len(reserved) > config.HEADER_RESERVED_SIZE:
        raise FormatError(
            f"Reserved field is {len(reserved)} bytes; at most "
            f"{config.HEADER_RESERVED_SIZE} fit in the header"
        )
    try:
        return _HEADER_STRUCT.pack(
            header.version,
            header.width,
            header.height,
            header.bit_depth,
            header.minimum_value,
            header.scaling_factor,
            reserved,
        )
    except (struct.error, OverflowError) as exc:
        raise FormatError(f"Cannot encode header {header}: {exc}") from exc


def decode_header(data):
    if len(data) < config.HEADER_SIZE:
        raise FormatError(
            f"Header needs {config.HEADER_SIZE} bytes, got {len(data)}"
        )
    (version, width, height, bit_depth, minimum_value, scale,
     reserved) = _HEADER_STRUCT.unpack_from(data)
    if version not in SUPPORTED_VERSIONS:
        raise FormatError(
            f"Unsupported data file version {version}. The maximum supported "
            f"version is {max(SUPPORTED_VERSIONS)}."
        )
    return RasterHeader(
        version=version,
        width=width,
        height=height,
        bit_depth=bit_depth,
        minimum_value=minimum_value,
        scaling_factor=scale,
        reserved=reserved,
    )


def write_header(stream, header):
    """Encode ``header`` into ``stream``; returns the number of bytes written."""
    data = encode_header(header)
    try:
        written = stream.write(data)
    except OSError as exc:
        raise RasterIOError(f"Error writing header: {exc}") from exc
    return written


def read_header(stream):
    """Read and decode the header at the current position of ``stream``."""
    try:
        data = stream.read(config.HEADER_SIZE)
    except OSError as exc:
        raise RasterIOError(f"Error reading header: {exc}") from exc
    return decode_header(data)
