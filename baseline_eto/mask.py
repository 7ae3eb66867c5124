"""
Random-access reader over the land/water ocean mask.

The mask is a headerless ``mask_width x mask_height`` byte grid covering
the full 180 degrees of latitude at a coarser resolution than the PET
raster. Raster row ``y`` maps to mask row ``y // row_factor`` shifted down
by the cropped northern band; raster column ``x`` maps to mask column
``x // horizontal_factor``.
"""

import numpy as np

from baseline_eto import config
from baseline_eto.errors import RasterIOError
from baseline_eto.raster_io import check_file_size, open_raster, read_row_into


class MaskReader:
    """Reads mask rows for full-resolution raster rows.

    Usage:
        with MaskReader(path, geometry) as mask:
            land = mask.land_columns(y)
    """

    def __init__(self, path, geometry=config.DEFAULT_GEOMETRY):
        self.path = path
        self.geometry = geometry
        check_file_size(path, geometry.mask_size)
        self._buf = np.empty(geometry.mask_width, dtype=np.uint8)
        self._columns = (np.arange(geometry.width) //
                         geometry.horizontal_factor)
        self._stream = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.close()

    def open(self):
        if self._stream is None:
            self._stream = open_raster(self.path)
        return self

    def close(self):
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def row_offset(self, y):
        """Byte offset in the mask file of the row covering raster row ``y``."""
        g = self.geometry
        return (y // g.row_factor) * g.mask_width + g.cropped_top_offset

    def read_row(self, y):
        """Return the ``mask_width`` mask cells for raster row ``y``.

        The returned array is reused by the next call.
        """
        if self._stream is None:
            self.open()
        offset = self.row_offset(y)
        if y < 0 or offset + self.geometry.mask_width > self.geometry.mask_size:
            raise RasterIOError(
                f"Mask offset {offset} for row {y} is outside {self.path} "
                f"({self.geometry.mask_size} bytes)"
            )
        try:
            self._stream.seek(offset)
        except OSError as exc:
            raise RasterIOError(f"Error seeking on mask file: {exc}") from exc
        return read_row_into(self._stream, self._buf, y, self.path)

    def land_columns(self, y):
        """Boolean array of ``width`` entries, True where raster row ``y`` is land."""
        row = self.read_row(y)
        return row[self._columns] > config.MASK_LAND_THRESHOLD
