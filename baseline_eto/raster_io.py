"""
Low-level helpers shared by the streaming raster readers and writers.
"""

import os

import numpy as np

from baseline_eto import config
from baseline_eto.errors import RasterIOError, SizeMismatchError


def raw_dtype(byte_order=config.RAW_BYTE_ORDER):
    return np.dtype(f"{byte_order}u2")


def file_size(path):
    try:
        return os.path.getsize(path)
    except OSError as exc:
        raise RasterIOError(f"Cannot stat {path}: {exc}") from exc


def check_file_size(path, expected):
    """Raise SizeMismatchError unless ``path`` is exactly ``expected`` bytes."""
    actual = file_size(path)
    if actual != expected:
        raise SizeMismatchError(path, actual, expected)
    return actual


def open_raster(path, mode="rb"):
    try:
        return open(path, mode)
    except OSError as exc:
        raise RasterIOError(f"Cannot open {path}: {exc}") from exc


def read_row_into(stream, buffer, row, path):
    """Fill ``buffer`` (a contiguous numpy array) with the next row of ``stream``."""
    view = buffer.view(np.uint8)
    try:
        n = stream.readinto(view)
    except OSError as exc:
        raise RasterIOError(f"Error reading row {row} of {path}: {exc}") from exc
    if n != view.nbytes:
        raise RasterIOError(
            f"Short read on row {row} of {path}: {n} of {view.nbytes} bytes"
        )
    return buffer


def write_row(stream, buffer, row, path):
    try:
        return stream.write(buffer.tobytes())
    except OSError as exc:
        raise RasterIOError(f"Error writing row {row} of {path}: {exc}") from exc
