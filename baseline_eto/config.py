"""
Centralized configuration for the Baseline ETo data builder.

Raster geometry, sentinel values, interpolation thresholds and default
paths are defined here. Components never read these constants directly for
geometry; they receive a ``RasterGeometry`` so tests can run the same code
on tiny rasters.
"""

from dataclasses import dataclass

# ─── DATA FILE FORMAT ────────────────────────────────────────────────────
# Every quantized raster starts with a fixed 32-byte big-endian header.
# Offsets are relied on by the lookup service (version@0, width@1,
# height@5, bit_depth@9, minimum@10, scaling_factor@14).
FORMAT_VERSION = 1
HEADER_SIZE = 32
BIT_DEPTH = 8
# Zero-filled tail after the 18 bytes of fixed fields.
HEADER_RESERVED_SIZE = HEADER_SIZE - 18

# Header values are stored in tenths of the raw product unit
# (MOD16A3 PET is scaled by 0.1 kg/m²/year).
PHYSICAL_UNIT_SCALE = 0.1

# ─── SENTINELS ───────────────────────────────────────────────────────────
# MOD16A3 fill values (water, barren, urban, missing) occupy 0xFFF9-0xFFFF.
MOD16A3_PET_MAX = 0xFFF8
QUANTIZED_INVALID = 0xFF
QUANTIZED_MAX_VALID = 0xFE

# Raw samples are native-endian uint16 as dumped by the HDF extraction.
RAW_BYTE_ORDER = "="

# ─── MASK ────────────────────────────────────────────────────────────────
# Mask cells above this value are land; everything else is water and is
# copied through untouched.
MASK_LAND_THRESHOLD = 128

# The PET raster omits the northernmost 10 degrees (and southernmost 30);
# the mask covers the full 180 degrees of latitude.
CROPPED_NORTH_DEGREES = 10
CROPPED_SOUTH_DEGREES = 30

# ─── INTERPOLATION ───────────────────────────────────────────────────────
WINDOW_ROWS = 5
NEIGHBOR_RADIUS = 2
# Minimum accumulated neighbour weight before an interpolated value is
# trusted; roughly three adjacent valid neighbours.
FILL_WEIGHT_THRESHOLD = 11

# ─── RASTER GEOMETRY ─────────────────────────────────────────────────────
# MOD16A3 global 500 m grid, 120 px/degree, latitude 80N to 60S.
IMAGE_WIDTH = 43200
IMAGE_HEIGHT = 16800
# Ocean mask, 30 px/degree, latitude 90N to 90S.
MASK_WIDTH = 10800
MASK_HEIGHT = 5400


@dataclass(frozen=True)
class RasterGeometry:
    """Dimensions of the PET raster and its land/water mask."""

    width: int = IMAGE_WIDTH
    height: int = IMAGE_HEIGHT
    mask_width: int = MASK_WIDTH
    mask_height: int = MASK_HEIGHT
    # Rows of the full raster per mask row. None means "same as the
    # horizontal factor", which holds when both grids share angular
    # resolution.
    vertical_factor: int | None = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid raster size {self.width}x{self.height}")
        if self.mask_width <= 0 or self.mask_height <= 0:
            raise ValueError(
                f"Invalid mask size {self.mask_width}x{self.mask_height}"
            )
        if self.width % self.mask_width:
            raise ValueError(
                f"Raster width {self.width} is not a multiple of mask width "
                f"{self.mask_width}"
            )
        if self.vertical_factor is not None and self.vertical_factor < 1:
            raise ValueError(
                f"Invalid vertical factor {self.vertical_factor}; must be >= 1"
            )

    @property
    def horizontal_factor(self):
        return self.width // self.mask_width

    @property
    def row_factor(self):
        if self.vertical_factor is None:
            return self.horizontal_factor
        return self.vertical_factor

    @property
    def cropped_top_offset(self):
        """Byte offset of the first mask row covering raster row 0."""
        return (self.mask_width * self.mask_height * CROPPED_NORTH_DEGREES
                // 180)

    @property
    def pixel_count(self):
        return self.width * self.height

    @property
    def quantized_size(self):
        return HEADER_SIZE + self.width * self.height

    @property
    def raw_size(self):
        return self.width * self.height * 2

    @property
    def mask_size(self):
        return self.mask_width * self.mask_height


DEFAULT_GEOMETRY = RasterGeometry()

# ─── PIPELINE DEFAULTS ───────────────────────────────────────────────────
DEFAULT_MOD16_PATH = "MOD16A3_PET_2000_to_2013_mean.bin"
DEFAULT_INPUT_PATH = "Baseline_ETo_Data_Reduced.bin"
DEFAULT_OUTPUT_PATH = "Baseline_ETo_Data.bin"
DEFAULT_MASK_PATH = "Ocean_Mask.bin"
DEFAULT_PASSES = 20
DEFAULT_RUN_DIR = "runs"

# Row interval for progress log messages.
PROGRESS_EVERY_ROWS = 1000

# ─── EXPORT ──────────────────────────────────────────────────────────────
EXPORT_CRS = "EPSG:4326"
EXPORT_WEST = -180.0
EXPORT_NORTH = 90.0 - CROPPED_NORTH_DEGREES
EXPORT_BLOCK_ROWS = 256
