"""
Bit depth reduction: raw uint16 PET samples to 8-bit quantized codes.

Each valid sample ``p`` becomes ``floor((p - min) / scale)`` computed in
float32, with ``scale = (max - min + 1) / 256``. Fill samples (above
0xFFF8) become the quantized sentinel 0xFF. Valid codes are clamped to
0..254 so that no valid sample can collide with the sentinel.
"""

import numpy as np

from baseline_eto import config
from baseline_eto.header import build_header, scaling_factor, write_header
from baseline_eto.logging_config import get_pipeline_logger
from baseline_eto.raster_io import (
    check_file_size,
    open_raster,
    raw_dtype,
    read_row_into,
    write_row,
)

log = get_pipeline_logger(__name__)


def quantize_row(samples, bounds, out=None):
    """Map one row of raw samples to quantized codes.

    Parameters
    ----------
    samples : np.ndarray
        uint16 samples (any byte order).
    bounds : FileMeta
    out : np.ndarray, optional
        uint8 destination of the same length.

    Returns
    -------
    np.ndarray
        uint8 codes.
    """
    if out is None:
        out = np.empty(samples.shape, dtype=np.uint8)

    scale = np.float32(scaling_factor(bounds))
    offsets = samples.astype(np.int64) - bounds.min
    np.clip(offsets, 0, None, out=offsets)
    codes = np.floor(offsets.astype(np.float32) / scale)
    np.clip(codes, 0, config.QUANTIZED_MAX_VALID, out=codes)

    out[:] = codes.astype(np.uint8)
    out[samples > config.MOD16A3_PET_MAX] = config.QUANTIZED_INVALID
    return out


def reduce_bit_depth(input_path, output_path, bounds,
                     geometry=config.DEFAULT_GEOMETRY,
                     byte_order=config.RAW_BYTE_ORDER):
    """Quantize the raw raster at ``input_path`` into ``output_path``.

    Writes the 32-byte header followed by ``height`` rows of ``width``
    codes, top to bottom. Returns the number of bytes written, which is
    always ``32 + width * height``.

    Raises
    ------
    SizeMismatchError
        Raw file length is not ``width * height * 2``.
    RasterIOError
        Any read or write failure. No retry is attempted.
    """
    check_file_size(input_path, geometry.raw_size)
    reader_buf = np.empty(geometry.width, dtype=raw_dtype(byte_order))
    writer_buf = np.empty(geometry.width, dtype=np.uint8)

    with open_raster(input_path) as reader, \
            open_raster(output_path, "wb") as writer:
        total_bytes = write_header(writer, build_header(bounds, geometry))

        for y in range(geometry.height):
            if y % config.PROGRESS_EVERY_ROWS == 0:
                log.info("Reducing bit depth on row %d...", y)

            read_row_into(reader, reader_buf, y, input_path)
            quantize_row(reader_buf, bounds, out=writer_buf)
            total_bytes += write_row(writer, writer_buf, y, output_path)

    log.debug("Wrote %d bytes", total_bytes)
    return total_bytes
