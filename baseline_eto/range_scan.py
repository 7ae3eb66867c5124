"""
Range scan over the raw MOD16A3 PET raster.

Streams the headerless uint16 raster once and returns the inclusive range
of valid samples (those at or below the fill sentinel). The range becomes
the quantization bounds.
"""

import numpy as np

from baseline_eto import config
from baseline_eto.errors import NoValidSamplesError
from baseline_eto.header import scaling_factor
from baseline_eto.logging_config import get_pipeline_logger
from baseline_eto.raster_io import (
    check_file_size,
    open_raster,
    raw_dtype,
    read_row_into,
)
from baseline_eto.raster_types import FileMeta

log = get_pipeline_logger(__name__)


def find_pixel_range(path, geometry=config.DEFAULT_GEOMETRY, half_row=False,
                     byte_order=config.RAW_BYTE_ORDER):
    """Return FileMeta(min, max) over every valid sample in ``path``.

    Parameters
    ----------
    path : str or PathLike
        Raw raster, ``geometry.height`` rows of ``geometry.width`` uint16.
    geometry : RasterGeometry
    half_row : bool
        Only scan the first ``width // 2`` samples of each row. This
        reproduces the bounds (and therefore the scaling factor) of
        previously published data files.
    byte_order : str
        numpy byte order character for the raw samples.

    Raises
    ------
    SizeMismatchError
        File length is not ``width * height * 2``.
    NoValidSamplesError
        Every scanned sample is above the fill sentinel.
    RasterIOError
        Any read failure.
    """
    check_file_size(path, geometry.raw_size)
    columns = geometry.width // 2 if half_row else geometry.width
    buf = np.empty(geometry.width, dtype=raw_dtype(byte_order))

    min_value = None
    max_value = None

    with open_raster(path) as reader:
        for y in range(geometry.height):
            if y % config.PROGRESS_EVERY_ROWS == 0:
                log.info("Finding pixel range on row %d...", y)

            read_row_into(reader, buf, y, path)
            scanned = buf[:columns]
            valid = scanned[scanned <= config.MOD16A3_PET_MAX]
            if valid.size == 0:
                continue

            row_min = int(valid.min())
            row_max = int(valid.max())
            min_value = row_min if min_value is None else min(min_value, row_min)
            max_value = row_max if max_value is None else max(max_value, row_max)

    if min_value is None:
        raise NoValidSamplesError(
            f"No sample in {path} is at or below {config.MOD16A3_PET_MAX:#06x}"
        )

    meta = FileMeta(min=min_value, max=max_value)
    log.info(
        "Found pixel range [%d, %d] with scaling factor %s",
        meta.min, meta.max, scaling_factor(meta),
        extra={"bounds": meta.to_dict()},
    )
    return meta
