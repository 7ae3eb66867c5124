"""
Mask-constrained neighbour interpolation over a quantized raster.

One pass streams the input raster top to bottom through a five-row
sliding window and writes a complete new raster. For every land pixel
holding the invalid code 0xFF, valid neighbours in the surrounding 5x5
block contribute ``5 - (|dx| + |dy|)`` times their value; the pixel is
filled with the truncated weighted mean when the accumulated weight
exceeds FILL_WEIGHT_THRESHOLD. Water pixels and valid land pixels are
copied through. Neighbours outside the raster or holding 0xFF are
skipped, never treated as zero.

Filled values are not visible to later pixels of the same pass; every
pixel is computed from the input window only, so all columns of a row are
computed together.
"""

import os

import numpy as np

from baseline_eto import config
from baseline_eto.header import build_header, read_header, write_header
from baseline_eto.errors import FormatError
from baseline_eto.logging_config import get_pipeline_logger
from baseline_eto.mask import MaskReader
from baseline_eto.raster_io import (
    check_file_size,
    open_raster,
    read_row_into,
    write_row,
)
from baseline_eto.raster_types import PassStatistics

log = get_pipeline_logger(__name__)

RADIUS = config.NEIGHBOR_RADIUS
CENTER = RADIUS


def neighbor_weight(dx, dy):
    """Weight of the neighbour at offset (dx, dy); 5 at the centre, 1 at the corners."""
    return 2 * RADIUS + 1 - (abs(dx) + abs(dy))


class SlidingWindow:
    """Ring buffer of ``WINDOW_ROWS`` raster rows.

    Logical slot ``k`` holds raster row ``y - 2 + k`` while row ``y`` is
    being written. Rotating advances the ring offset; no row data is
    copied and no buffer is reallocated.
    """

    def __init__(self, width, rows=config.WINDOW_ROWS):
        self.width = width
        self.rows = rows
        self._buffer = np.zeros((rows, width), dtype=np.uint8)
        self._head = 0

    def slot(self, k):
        return self._buffer[(self._head + k) % self.rows]

    @property
    def newest(self):
        return self.slot(self.rows - 1)

    def rotate(self):
        """Discard the oldest row; return the freed slot, now the newest."""
        self._head = (self._head + 1) % self.rows
        return self.newest


def accumulate_neighbors(window, y, height):
    """Total neighbour weight and weighted value for every column of row ``y``.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        int64 arrays of length ``window.width``.
    """
    width = window.width
    total_weight = np.zeros(width, dtype=np.int64)
    total_value = np.zeros(width, dtype=np.int64)

    # Columns beyond either edge are padded with the invalid code so they
    # drop out exactly like invalid neighbours.
    padded = np.full(width + 2 * RADIUS, config.QUANTIZED_INVALID,
                     dtype=np.uint8)

    for dy in range(-RADIUS, RADIUS + 1):
        if y + dy < 0 or y + dy >= height:
            continue

        padded[RADIUS:RADIUS + width] = window.slot(CENTER + dy)
        valid = padded != config.QUANTIZED_INVALID
        values = np.where(valid, padded, 0).astype(np.int64)

        for dx in range(-RADIUS, RADIUS + 1):
            weight = neighbor_weight(dx, dy)
            lo = RADIUS + dx
            total_weight += weight * valid[lo:lo + width]
            total_value += weight * values[lo:lo + width]

    return total_weight, total_value


def interpolate_row(window, y, height, land, out):
    """Write the interpolated row ``y`` into ``out``.

    Parameters
    ----------
    window : SlidingWindow
        Positioned so that slot 2 holds row ``y``.
    y, height : int
    land : np.ndarray
        Boolean per column, True where the mask marks land.
    out : np.ndarray
        uint8 destination row.

    Returns
    -------
    tuple[int, int, int, int]
        (filled, unfilled, water, valid) counts for the row.
    """
    center = window.slot(CENTER)
    out[:] = center

    water = int(np.count_nonzero(~land))
    candidates = land & (center == config.QUANTIZED_INVALID)
    n_candidates = int(np.count_nonzero(candidates))
    valid = land.size - water - n_candidates
    if n_candidates == 0:
        return 0, 0, water, valid

    total_weight, total_value = accumulate_neighbors(window, y, height)
    fill = candidates & (total_weight > config.FILL_WEIGHT_THRESHOLD)
    out[fill] = total_value[fill] // total_weight[fill]

    filled = int(np.count_nonzero(fill))
    return filled, n_candidates - filled, water, valid


def _check_input_header(stream, path, geometry):
    header = read_header(stream)
    if header.width != geometry.width or header.height != geometry.height:
        raise FormatError(
            f"{path} is {header.width}x{header.height}, expected "
            f"{geometry.width}x{geometry.height}"
        )
    if header.bit_depth != config.BIT_DEPTH:
        raise FormatError(
            f"{path} has bit depth {header.bit_depth}, expected {config.BIT_DEPTH}"
        )
    return header


def fill_missing_pixels(pass_index, bounds, input_path, output_path, mask_path,
                        geometry=config.DEFAULT_GEOMETRY):
    """Run one interpolation pass from ``input_path`` into ``output_path``.

    Parameters
    ----------
    pass_index : int
        Zero-based pass number (progress messages only).
    bounds : FileMeta
        Quantization bounds; written unchanged into the output header.
    input_path, output_path : str or PathLike
        Quantized rasters. Must be different files.
    mask_path : str or PathLike
        Land/water mask.
    geometry : RasterGeometry

    Returns
    -------
    PassStatistics

    Raises
    ------
    SizeMismatchError
        Input length is not ``32 + width * height``. Nothing is written.
    FormatError
        Input header is unreadable or describes another geometry.
    RasterIOError
        Any read, write or seek failure. The partial output is invalid.
    """
    if os.path.abspath(input_path) == os.path.abspath(output_path):
        raise ValueError(f"Input and output are the same file: {input_path}")

    check_file_size(input_path, geometry.quantized_size)

    filled = unfilled = water = valid = 0
    window = SlidingWindow(geometry.width)
    out_row = np.empty(geometry.width, dtype=np.uint8)
    primed = min(2, geometry.height)

    with open_raster(input_path) as reader, \
            MaskReader(mask_path, geometry) as mask:
        _check_input_header(reader, input_path, geometry)

        with open_raster(output_path, "wb") as writer:
            write_header(writer, build_header(bounds, geometry))

            # Rows 0 and 1 go into the last two slots; the first rotation
            # moves row 0 to the centre.
            for i in range(primed):
                read_row_into(reader, window.slot(CENTER + 1 + i), i, input_path)

            for y in range(geometry.height):
                if y % config.PROGRESS_EVERY_ROWS == 0:
                    log.info("Interpolating missing pixels; pass %d, row %d...",
                             pass_index + 1, y)

                land = mask.land_columns(y)

                newest = window.rotate()
                if y < geometry.height - 2:
                    read_row_into(reader, newest, y + 2, input_path)

                row_filled, row_unfilled, row_water, row_valid = interpolate_row(
                    window, y, geometry.height, land, out_row
                )
                filled += row_filled
                unfilled += row_unfilled
                water += row_water
                valid += row_valid

                write_row(writer, out_row, y, output_path)

    return PassStatistics(filled=filled, unfilled=unfilled, water=water,
                          valid=valid)
