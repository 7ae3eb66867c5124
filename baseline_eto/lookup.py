"""
Point lookup over a finished Baseline ETo data file.

Converts geographic coordinates to a pixel of the quantized raster and
the pixel code back to an average daily ETo value:

    eto_per_day = (code * scaling_factor + minimum_value) / 365

The raster spans longitudes -180..180 and latitudes 80N..60S (the
northernmost 10 and southernmost 30 degrees are cropped), so the pixel
holding (0, 0) sits at ``(width / 2, height / 140 * 80)``.
"""

import math

from baseline_eto import config
from baseline_eto.errors import (
    EToDataUnavailableError,
    EToError,
    EToOutOfBoundsError,
    FormatError,
)
from baseline_eto.header import read_header
from baseline_eto.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

_LATITUDE_SPAN = 180 - config.CROPPED_NORTH_DEGREES - config.CROPPED_SOUTH_DEGREES


class BaselineETo:
    """Reads average daily ETo values from a quantized data file.

    The header is read and validated on construction.

    Raises
    ------
    EToDataUnavailableError
        The data file cannot be opened.
    EToError
        The header is invalid or uses an unsupported bit depth.
    """

    def __init__(self, path):
        self.path = path
        try:
            with open(path, "rb") as f:
                self.header = read_header(f)
        except FormatError as exc:
            raise EToError(f"Invalid data file header in {path}: {exc}") from exc
        except OSError as exc:
            raise EToDataUnavailableError(
                f"Could not read data file {path}: {exc}"
            ) from exc

        if self.header.bit_depth != config.BIT_DEPTH:
            raise EToError("Bit depths other than 8 are not currently supported.")

        self.origin_x = self.header.width // 2
        self.origin_y = math.floor(
            self.header.height / _LATITUDE_SPAN
            * (90 - config.CROPPED_NORTH_DEGREES)
        )

    def pixel_for(self, latitude, longitude):
        """Return the (x, y) pixel covering the given coordinates."""
        width, height = self.header.width, self.header.height
        x = math.floor(self.origin_x + width * longitude / 360)
        y = math.floor(self.origin_y - height * latitude / _LATITUDE_SPAN)
        if not (0 <= x < width and 0 <= y < height):
            raise EToOutOfBoundsError(
                f"Location ({latitude}, {longitude}) is out of bounds."
            )
        return x, y

    def read_code(self, x, y):
        offset = config.HEADER_SIZE + y * self.header.width + x
        try:
            with open(self.path, "rb") as f:
                f.seek(offset)
                data = f.read(1)
        except OSError as exc:
            log.error("Error reading %s at offset %d: %s", self.path, offset, exc)
            raise EToError(
                "An unexpected error occurred while retrieving the baseline "
                "ETo for this location."
            ) from exc
        if len(data) != 1:
            raise EToError(f"{self.path} is truncated at offset {offset}")
        return data[0]

    def average_daily_eto(self, latitude, longitude, precision=None):
        """Average daily potential ETo at the given coordinates.

        Parameters
        ----------
        latitude, longitude : float
            Decimal degrees.
        precision : int, optional
            Number of significant digits to round to.

        Raises
        ------
        EToOutOfBoundsError
            Coordinates outside the covered area.
        EToDataUnavailableError
            The pixel holds the invalid code.
        EToError
            Unexpected read failure.
        """
        x, y = self.pixel_for(latitude, longitude)
        code = self.read_code(x, y)

        if code == (1 << self.header.bit_depth) - 1:
            raise EToDataUnavailableError(
                "ETo data is not available for this location."
            )

        eto = (code * self.header.scaling_factor + self.header.minimum_value) / 365
        if precision:
            return float(f"{eto:.{precision}g}")
        return eto
