"""
Multi-pass driver for the interpolation engine.

Each pass reads the input raster and writes a new output raster. Between
passes the output replaces the input (the input is removed and the output
renamed over it), so pass ``k + 1`` consumes exactly what pass ``k``
flushed. After the last pass the output path holds the final raster.
"""

import os
from dataclasses import dataclass, field

import pandas as pd

from baseline_eto import config
from baseline_eto.errors import RasterIOError
from baseline_eto.interpolation import fill_missing_pixels
from baseline_eto.logging_config import StepTimer, get_pipeline_logger
from baseline_eto.schemas import pass_history_schema, validate_schema

log = get_pipeline_logger(__name__)


@dataclass
class FillRunResult:
    """Statistics of every pass in execution order."""

    statistics: list = field(default_factory=list)
    timing_seconds: list = field(default_factory=list)

    @property
    def passes(self):
        return len(self.statistics)

    @property
    def first(self):
        return self.statistics[0] if self.statistics else None

    @property
    def last(self):
        return self.statistics[-1] if self.statistics else None

    @property
    def delta(self):
        """First-pass minus last-pass statistics (signed, never clamped)."""
        if not self.statistics:
            return None
        return self.first - self.last


def swap_pass_files(input_path, output_path):
    """Make the output of one pass the input of the next."""
    try:
        os.remove(input_path)
        os.replace(output_path, input_path)
    except OSError as exc:
        raise RasterIOError(
            f"Could not replace {input_path} with {output_path}: {exc}"
        ) from exc


def run_fill_passes(bounds, input_path, output_path, mask_path, passes,
                    geometry=config.DEFAULT_GEOMETRY):
    """Run ``passes`` interpolation passes.

    The input file is consumed: after more than one pass it holds the
    output of the second-to-last pass. Any error aborts the remaining
    passes and propagates.

    Returns
    -------
    FillRunResult
    """
    if passes < 0:
        raise ValueError(f"Number of passes must be >= 0, got {passes}")

    result = FillRunResult()

    for pass_index in range(passes):
        with StepTimer() as timer:
            statistics = fill_missing_pixels(
                pass_index, bounds, input_path, output_path, mask_path,
                geometry,
            )
        result.statistics.append(statistics)
        result.timing_seconds.append(timer.elapsed)

        log.info(
            "Finished pass %d in %d seconds. Filled: %d; Unfilled: %d; Water: %d; "
            "Valid: %d;",
            pass_index + 1, int(timer.elapsed),
            statistics.filled, statistics.unfilled, statistics.water,
            statistics.valid,
            extra={
                "pass_number": pass_index + 1,
                "statistics": statistics.to_dict(),
                "timing_seconds": timer.elapsed,
            },
        )

        if pass_index < passes - 1:
            swap_pass_files(input_path, output_path)

    if result.statistics:
        delta = result.delta
        log.info(
            "Δ filled: %d; Δ unfilled: %d, Δ water: %d",
            delta.filled, delta.unfilled, delta.water,
            extra={"statistics": delta.to_dict()},
        )

    return result


def pass_history_frame(result, geometry=config.DEFAULT_GEOMETRY):
    """Tabulate pass statistics and validate them.

    Returns
    -------
    pd.DataFrame
        Columns: pass, filled, unfilled, water, valid, timing_seconds.

    Raises
    ------
    ValueError
        If a pass does not account for every pixel exactly once, or the
        water count changes between passes.
    """
    df = pd.DataFrame(
        [
            {"pass": i + 1, **stats.to_dict(), "timing_seconds": seconds}
            for i, (stats, seconds) in enumerate(
                zip(result.statistics, result.timing_seconds)
            )
        ],
        columns=["pass", "filled", "unfilled", "water", "valid",
                 "timing_seconds"],
    )
    if not df.empty:
        validate_schema(df, pass_history_schema(geometry.pixel_count),
                        "pass_history", strict=True)
    return df


def write_pass_history(result, path, geometry=config.DEFAULT_GEOMETRY):
    df = pass_history_frame(result, geometry)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    df.to_csv(path, index=False)
    log.info("Pass history saved: %s (%d passes)", path, len(df))
    return path
