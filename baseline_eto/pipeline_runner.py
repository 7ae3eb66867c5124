#!/usr/bin/env python3
"""
Build the Baseline ETo data file from the MOD16A3 PET raster.

Stages, each run through run_step() and recorded in a PipelineRunResult:

1. range_scan        : find quantization bounds (skipped with --min/--max)
2. reduce_bit_depth  : quantize to 8 bits (skipped if the input exists)
3. fill_passes       : N interpolation passes (skipped with --passes 0)
4. pass_history      : per-pass statistics CSV (needs --run-dir)
5. export_geotiff    : optional GeoTIFF of the final raster

The first failing stage stops the pipeline; later stages depend on the
files earlier stages produce.

Usage:
    python3 -m baseline_eto.pipeline_runner [--min N --max N] [-e MOD16]
        [-i INPUT] [-o OUTPUT] [-m MASK] [-n PASSES] [--clean]
        [--legacy-range-scan] [--run-dir DIR] [--export-tif PATH]
"""

import argparse
import json
import os
import sys
import time

from baseline_eto import config
from baseline_eto.export import export_geotiff
from baseline_eto.logging_config import get_pipeline_logger, set_run_id, setup_logging
from baseline_eto.passes import run_fill_passes, write_pass_history
from baseline_eto.quantize import reduce_bit_depth
from baseline_eto.range_scan import find_pixel_range
from baseline_eto.raster_types import FileMeta, PipelineRunResult
from baseline_eto.step_runner import run_step, skipped_step

log = get_pipeline_logger(__name__)


def clean_files(input_path, output_path):
    """Remove the reduced input and the output left by a previous run."""
    log.info("Cleaning...")
    for label, path in (("input", input_path), ("output", output_path)):
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
        log.info("Removed %s file %s", label, path)


def save_pipeline_result(pipeline_result, run_dir):
    """Save PipelineRunResult as JSON for provenance."""
    os.makedirs(run_dir, exist_ok=True)
    result_path = os.path.join(run_dir, "pipeline_run.json")
    with open(result_path, "w") as f:
        json.dump(pipeline_result.to_dict(), f, indent=2, default=str)
    log.info("Pipeline result saved: %s", result_path)
    return result_path


def run_pipeline(args, geometry=config.DEFAULT_GEOMETRY):
    """Run every stage for parsed ``args``.

    Returns
    -------
    PipelineRunResult
    """
    pipeline_result = PipelineRunResult(
        run_dir=args.run_dir or "",
        passes_requested=args.passes,
    )
    start_time = time.time()
    steps = pipeline_result.step_results

    def finish():
        pipeline_result.total_time_seconds = time.time() - start_time
        return pipeline_result

    if args.clean:
        clean_files(args.input, args.output)

    # ── Bounds ──
    if args.min is not None:
        bounds = FileMeta(min=args.min, max=args.max)
        steps.append(skipped_step(
            "range_scan", f"Using supplied pixel range [{bounds.min}, {bounds.max}]"
        ))
    else:
        step, bounds = run_step(
            "range_scan", find_pixel_range, args.mod16, geometry,
            half_row=args.legacy_range_scan,
            input_summary={"path": str(args.mod16),
                           "half_row": args.legacy_range_scan},
            output_summary_fn=lambda meta: meta.to_dict(),
        )
        steps.append(step)
        if not step.ok:
            return finish()
    pipeline_result.bounds = bounds

    # ── Quantization ──
    if os.path.exists(args.input):
        steps.append(skipped_step(
            "reduce_bit_depth",
            f'Input file "{args.input}" exists, skipping bit depth reduction',
        ))
    else:
        step, _ = run_step(
            "reduce_bit_depth", reduce_bit_depth, args.mod16, args.input,
            bounds, geometry,
            input_summary={"path": str(args.mod16), **bounds.to_dict()},
            output_summary_fn=lambda n: {"bytes_written": n},
        )
        steps.append(step)
        if not step.ok:
            return finish()

    # ── Fill passes ──
    final_path = args.input
    if args.passes > 0:
        step, fill = run_step(
            "fill_passes", run_fill_passes, bounds, args.input, args.output,
            args.mask, args.passes, geometry,
            input_summary={"input": str(args.input), "mask": str(args.mask),
                           "passes": args.passes},
            output_summary_fn=lambda r: {"passes": r.passes,
                                         "delta": r.delta.to_dict()},
        )
        steps.append(step)
        if not step.ok:
            return finish()
        final_path = args.output
        pipeline_result.pass_statistics = list(fill.statistics)

        if args.run_dir:
            step, history_path = run_step(
                "pass_history", write_pass_history, fill,
                os.path.join(args.run_dir, "pass_history.csv"), geometry,
            )
            steps.append(step)
            if not step.ok:
                return finish()
            pipeline_result.output_files.append(history_path)
    else:
        steps.append(skipped_step("fill_passes", "Number of passes is 0"))
    pipeline_result.output_files.append(str(final_path))

    # ── Export ──
    if args.export_tif:
        step, tif_path = run_step(
            "export_geotiff", export_geotiff, final_path, args.export_tif,
            geometry,
        )
        steps.append(step)
        if step.ok:
            pipeline_result.output_files.append(str(tif_path))

    return finish()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Build the Baseline ETo data file from MOD16A3 PET"
    )
    parser.add_argument(
        "--min", type=int, default=None,
        help="Minimum pixel value (requires --max; skips the range scan)",
    )
    parser.add_argument(
        "--max", type=int, default=None,
        help="Maximum pixel value (requires --min)",
    )
    parser.add_argument(
        "-e", "--mod16", default=config.DEFAULT_MOD16_PATH,
        help="The path to the MOD16A3 file to read",
    )
    parser.add_argument(
        "-i", "--input", default=config.DEFAULT_INPUT_PATH,
        help="The path to the reduced (8-bit) raster; consumed by the passes",
    )
    parser.add_argument(
        "-o", "--output", default=config.DEFAULT_OUTPUT_PATH,
        help="The path to write the final data file to",
    )
    parser.add_argument(
        "-m", "--mask", default=config.DEFAULT_MASK_PATH,
        help="The path to the land/water mask",
    )
    parser.add_argument(
        "-n", "--passes", type=int, default=config.DEFAULT_PASSES,
        help="Number of interpolation passes (0 disables filling)",
    )
    parser.add_argument(
        "--clean", action="store_true", default=False,
        help="Remove the input and output files before starting",
    )
    parser.add_argument(
        "--legacy-range-scan", action="store_true", default=False,
        dest="legacy_range_scan",
        help="Scan only the first half of each row for the pixel range, "
             "reproducing the bounds of previously published data files",
    )
    parser.add_argument(
        "--run-dir", default=None, dest="run_dir",
        help="Directory for pipeline_run.json, pass_history.csv and the "
             "per-run log",
    )
    parser.add_argument(
        "--export-tif", default=None, dest="export_tif",
        help="Also write the final raster as a GeoTIFF at this path",
    )
    args = parser.parse_args(argv)

    if (args.min is None) != (args.max is None):
        parser.error("--min and --max must be given together")
    if args.min is not None and args.min < 0:
        parser.error("--min and --max must be >= 0")
    if args.min is not None and args.max < args.min:
        parser.error("--max must be >= --min")
    if args.passes < 0:
        parser.error("--passes must be >= 0")
    return args


def main(argv=None, geometry=config.DEFAULT_GEOMETRY):
    args = parse_args(argv)

    run_id = set_run_id()
    setup_logging(run_dir=args.run_dir)
    log.info("Baseline ETo build (run_id=%s)", run_id)

    result = run_pipeline(args, geometry)

    if args.run_dir:
        save_pipeline_result(result, args.run_dir)

    log.info("Build complete in %.1fs", result.total_time_seconds)
    if result.failed_steps:
        log.warning("Failed steps: %s",
                    [s.step_name for s in result.failed_steps])
        return 1
    log.info("All steps succeeded.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
