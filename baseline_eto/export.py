"""
GeoTIFF export of quantized rasters for inspection in GIS tools.

The quantized codes are written unchanged as a single uint8 band with
nodata 255. The header's minimum and scaling factor are stored as dataset
tags so physical values can be recovered as ``code * scale + minimum``.
"""

import numpy as np
import rasterio
from rasterio.transform import from_origin
from rasterio.windows import Window

from baseline_eto import config
from baseline_eto.errors import FormatError
from baseline_eto.header import read_header
from baseline_eto.logging_config import get_pipeline_logger
from baseline_eto.raster_io import check_file_size, open_raster, read_row_into

log = get_pipeline_logger(__name__)


def export_profile(geometry):
    """Rasterio creation profile for a quantized raster of ``geometry``."""
    latitude_span = (180 - config.CROPPED_NORTH_DEGREES
                     - config.CROPPED_SOUTH_DEGREES)
    transform = from_origin(
        config.EXPORT_WEST,
        config.EXPORT_NORTH,
        360.0 / geometry.width,
        latitude_span / geometry.height,
    )
    return {
        "driver": "GTiff",
        "height": geometry.height,
        "width": geometry.width,
        "count": 1,
        "dtype": "uint8",
        "crs": config.EXPORT_CRS,
        "transform": transform,
        "nodata": config.QUANTIZED_INVALID,
        "compress": "lzw",
        "BIGTIFF": "IF_SAFER",
    }


def export_geotiff(quantized_path, tif_path, geometry=config.DEFAULT_GEOMETRY,
                   block_rows=config.EXPORT_BLOCK_ROWS):
    """Stream ``quantized_path`` into a georeferenced GeoTIFF at ``tif_path``.

    Reads ``block_rows`` rows at a time, so memory use is bounded by the
    block size rather than the raster size.
    """
    check_file_size(quantized_path, geometry.quantized_size)
    block = np.empty((block_rows, geometry.width), dtype=np.uint8)

    with open_raster(quantized_path) as reader:
        header = read_header(reader)
        if (header.width, header.height) != (geometry.width, geometry.height):
            raise FormatError(
                f"{quantized_path} is {header.width}x{header.height}, expected "
                f"{geometry.width}x{geometry.height}"
            )

        with rasterio.open(tif_path, "w", **export_profile(geometry)) as dst:
            dst.update_tags(
                version=header.version,
                minimum_value=header.minimum_value,
                scaling_factor=header.scaling_factor,
            )
            for row_off in range(0, geometry.height, block_rows):
                rows = min(block_rows, geometry.height - row_off)
                chunk = read_row_into(reader, block[:rows], row_off,
                                      quantized_path)
                dst.write(chunk, 1,
                          window=Window(0, row_off, geometry.width, rows))

    log.info("GeoTIFF saved: %s", tif_path)
    return tif_path
