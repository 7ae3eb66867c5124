"""
Exception types raised by the Baseline ETo builder and lookup reader.

Every error is fatal to the operation in progress (range scan,
quantization, or one interpolation pass). Nothing is recovered locally;
callers decide whether to stop the pipeline.
"""


class BaselineEToError(Exception):
    """Base class for all data-file build errors."""


class FormatError(BaselineEToError, ValueError):
    """Header malformed, wrong size, or unsupported version."""


class SizeMismatchError(FormatError):
    """Raster byte length does not match the configured geometry."""

    def __init__(self, path, actual, expected):
        self.path = str(path)
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Size of {self.path} ({actual}) does not match expected ({expected})"
        )


class NoValidSamplesError(BaselineEToError):
    """Range scan found no sample at or below the invalid sentinel."""


class RasterIOError(BaselineEToError, OSError):
    """Underlying read, write or seek failure (including short reads)."""


# ── Lookup errors ────────────────────────────────────────────────────────


class EToError(BaselineEToError):
    """Unexpected failure retrieving an ETo value from a data file."""


class EToOutOfBoundsError(EToError):
    """Coordinates fall outside the area covered by the data file."""


class EToDataUnavailableError(EToError):
    """The data file holds no value for the requested location."""
