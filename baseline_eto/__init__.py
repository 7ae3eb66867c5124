"""
Baseline ETo data builder.

Quantizes the global MOD16A3 potential-evapotranspiration raster to 8 bits
and fills missing land pixels by repeated mask-constrained neighbour
interpolation, producing the data file read by the ETo lookup.
"""

from baseline_eto.config import DEFAULT_GEOMETRY, RasterGeometry
from baseline_eto.errors import (
    BaselineEToError,
    EToDataUnavailableError,
    EToError,
    EToOutOfBoundsError,
    FormatError,
    NoValidSamplesError,
    RasterIOError,
    SizeMismatchError,
)
from baseline_eto.header import (
    build_header,
    decode_header,
    encode_header,
    read_header,
    scaling_factor,
    write_header,
)
from baseline_eto.interpolation import fill_missing_pixels
from baseline_eto.lookup import BaselineETo
from baseline_eto.mask import MaskReader
from baseline_eto.passes import run_fill_passes
from baseline_eto.quantize import reduce_bit_depth
from baseline_eto.range_scan import find_pixel_range
from baseline_eto.raster_types import (
    FileMeta,
    PassDelta,
    PassStatistics,
    RasterHeader,
)

__all__ = [
    # geometry
    "DEFAULT_GEOMETRY",
    "RasterGeometry",
    # records
    "FileMeta",
    "PassDelta",
    "PassStatistics",
    "RasterHeader",
    # header codec
    "build_header",
    "decode_header",
    "encode_header",
    "read_header",
    "scaling_factor",
    "write_header",
    # stages
    "find_pixel_range",
    "reduce_bit_depth",
    "MaskReader",
    "fill_missing_pixels",
    "run_fill_passes",
    "BaselineETo",
    # errors
    "BaselineEToError",
    "FormatError",
    "SizeMismatchError",
    "NoValidSamplesError",
    "RasterIOError",
    "EToError",
    "EToOutOfBoundsError",
    "EToDataUnavailableError",
]
