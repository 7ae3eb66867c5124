"""
Shared fixtures for Baseline ETo builder tests.

Provides tiny raster geometries and helpers that write raw, quantized and
mask files with numpy, so each test module can run the streaming code on
rasters small enough to check by hand.
"""

import os
import tempfile

# Keep the rotating pipeline.log out of the working tree.
os.environ.setdefault(
    "BASELINE_ETO_LOG_DIR", tempfile.mkdtemp(prefix="baseline_eto_logs_")
)

import numpy as np
import pytest

from baseline_eto import config
from baseline_eto.config import RasterGeometry
from baseline_eto.header import build_header, decode_header, encode_header
from baseline_eto.raster_types import FileMeta


# ---------------------------------------------------------------------------
# Geometries
# ---------------------------------------------------------------------------
# 8x6 raster, 4x18 mask: two raster columns and two raster rows per mask
# cell; the cropped band is one mask row (4 * 18 * 10 / 180 = 4 bytes).
SMALL = RasterGeometry(width=8, height=6, mask_width=4, mask_height=18)

def unit_geometry(width, height):
    """Geometry with one mask cell per raster pixel.

    The mask height is a multiple of 18 so the cropped band is a whole
    number of mask rows.
    """
    return RasterGeometry(width=width, height=height, mask_width=width,
                          mask_height=18 * (height // 17 + 1))


LAND = 255
WATER = 0


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

def write_raw(path, samples):
    """Write a 2D array as headerless native-endian uint16."""
    np.asarray(samples, dtype="=u2").tofile(path)
    return path


def write_quantized(path, codes, bounds=FileMeta(min=0, max=255),
                    geometry=None):
    """Write header + uint8 codes. Geometry defaults to the array shape."""
    codes = np.asarray(codes, dtype=np.uint8)
    if geometry is None:
        geometry = RasterGeometry(width=codes.shape[1], height=codes.shape[0],
                                  mask_width=codes.shape[1], mask_height=18)
    with open(path, "wb") as f:
        f.write(encode_header(build_header(bounds, geometry)))
        f.write(codes.tobytes())
    return path


def read_quantized(path, geometry):
    """Return (header, codes) for a quantized raster file."""
    with open(path, "rb") as f:
        data = f.read()
    header = decode_header(data[:config.HEADER_SIZE])
    codes = np.frombuffer(data[config.HEADER_SIZE:], dtype=np.uint8)
    return header, codes.reshape(geometry.height, geometry.width)


def mask_grid(geometry, fill=LAND):
    """Full mask array (mask_height x mask_width) filled with ``fill``."""
    return np.full((geometry.mask_height, geometry.mask_width), fill,
                   dtype=np.uint8)


def raster_land_to_mask(geometry, land):
    """Mask array whose cells reproduce a per-raster-pixel land array.

    Only valid for factor-1 geometries, where each raster pixel has its
    own mask cell.
    """
    assert geometry.horizontal_factor == 1 and geometry.row_factor == 1
    grid = mask_grid(geometry, WATER)
    top = geometry.cropped_top_offset // geometry.mask_width
    grid[top:top + geometry.height] = np.where(land, LAND, WATER)
    return grid


def write_mask(path, grid):
    np.asarray(grid, dtype=np.uint8).tofile(path)
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory(prefix="baseline_eto_test_") as d:
        yield d


@pytest.fixture
def small_geometry():
    return SMALL


@pytest.fixture
def land_mask_path(tmp_dir):
    """All-land mask for the SMALL geometry."""
    return write_mask(os.path.join(tmp_dir, "mask.bin"), mask_grid(SMALL))


@pytest.fixture
def small_raw_path(tmp_dir):
    """SMALL raw raster: values 1000 + 10*y + x, with a block of fill values.

    Rows 2-3, columns 2-5 hold 0xFFFF (no data); everything else is valid.
    """
    ys, xs = np.mgrid[0:SMALL.height, 0:SMALL.width]
    samples = (1000 + 10 * ys + xs).astype(np.uint16)
    samples[2:4, 2:6] = 0xFFFF
    return write_raw(os.path.join(tmp_dir, "mod16.bin"), samples)
