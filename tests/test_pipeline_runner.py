"""
End-to-end tests for the build CLI on a small geometry.
"""

import json
import os

import numpy as np
import pandas as pd
import pytest

from baseline_eto import config
from baseline_eto.logging_config import reset_logging
from baseline_eto.pipeline_runner import clean_files, main, parse_args
from baseline_eto.raster_types import PipelineRunResult
from tests.conftest import SMALL, mask_grid, read_quantized, write_mask


@pytest.fixture(autouse=True)
def fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def paths(tmp_dir, small_raw_path, land_mask_path):
    return {
        "mod16": small_raw_path,
        "mask": land_mask_path,
        "input": os.path.join(tmp_dir, "reduced.bin"),
        "output": os.path.join(tmp_dir, "final.bin"),
        "run_dir": os.path.join(tmp_dir, "run"),
    }


def _argv(paths, *extra):
    return [
        "-e", paths["mod16"], "-m", paths["mask"],
        "-i", paths["input"], "-o", paths["output"],
        *extra,
    ]


def _load_result(run_dir):
    with open(os.path.join(run_dir, "pipeline_run.json")) as f:
        return PipelineRunResult.from_dict(json.load(f))


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert args.mod16 == config.DEFAULT_MOD16_PATH
        assert args.input == config.DEFAULT_INPUT_PATH
        assert args.output == config.DEFAULT_OUTPUT_PATH
        assert args.mask == config.DEFAULT_MASK_PATH
        assert args.passes == config.DEFAULT_PASSES
        assert args.min is None and args.max is None
        assert not args.clean
        assert not args.legacy_range_scan

    def test_short_flags(self):
        args = parse_args(["-e", "a", "-i", "b", "-o", "c", "-m", "d",
                           "-n", "3"])
        assert (args.mod16, args.input, args.output, args.mask,
                args.passes) == ("a", "b", "c", "d", 3)

    @pytest.mark.parametrize("argv", [
        ["--min", "10"],
        ["--max", "10"],
        ["--min", "20", "--max", "10"],
        ["--min", "-5", "--max", "10"],
        ["--min", "0", "--max", "-1"],
        ["--passes", "-1"],
    ])
    def test_invalid_combinations(self, argv):
        with pytest.raises(SystemExit):
            parse_args(argv)


class TestMain:
    def test_full_build(self, paths):
        code = main(_argv(paths, "-n", "3", "--run-dir", paths["run_dir"]),
                    geometry=SMALL)
        assert code == 0

        _, codes = read_quantized(paths["output"], SMALL)
        assert (codes != 255).all()

        result = _load_result(paths["run_dir"])
        assert [s.step_name for s in result.step_results] == [
            "range_scan", "reduce_bit_depth", "fill_passes", "pass_history"]
        assert result.all_ok
        assert result.bounds.min == 1000 and result.bounds.max == 1057
        assert len(result.pass_statistics) == 3
        assert result.pass_statistics[-1].unfilled == 0

        history = pd.read_csv(os.path.join(paths["run_dir"],
                                           "pass_history.csv"))
        assert history["pass"].tolist() == [1, 2, 3]
        assert os.path.exists(os.path.join(paths["run_dir"], "pipeline.jsonl"))

    def test_supplied_range_skips_scan(self, paths):
        code = main(_argv(paths, "--min", "1000", "--max", "1255", "-n", "1",
                          "--run-dir", paths["run_dir"]), geometry=SMALL)
        assert code == 0
        result = _load_result(paths["run_dir"])
        assert result.step_results[0].status == "skipped"
        header, _ = read_quantized(paths["output"], SMALL)
        assert header.scaling_factor == pytest.approx(0.1)

    def test_existing_input_skips_reduction(self, paths):
        assert main(_argv(paths, "-n", "0"), geometry=SMALL) == 0
        reduced = os.path.getsize(paths["input"])

        code = main(_argv(paths, "-n", "1", "--run-dir", paths["run_dir"]),
                    geometry=SMALL)
        assert code == 0
        statuses = {s.step_name: s.status
                    for s in _load_result(paths["run_dir"]).step_results}
        assert statuses["reduce_bit_depth"] == "skipped"
        assert reduced == SMALL.quantized_size

    def test_zero_passes_leaves_reduced_raster(self, paths):
        assert main(_argv(paths, "-n", "0"), geometry=SMALL) == 0
        assert os.path.exists(paths["input"])
        assert not os.path.exists(paths["output"])
        _, codes = read_quantized(paths["input"], SMALL)
        assert (codes[2:4, 2:6] == 255).all()

    def test_clean_removes_previous_files(self, paths):
        with open(paths["input"], "wb") as f:
            f.write(b"stale")
        code = main(_argv(paths, "--clean", "-n", "1"), geometry=SMALL)
        assert code == 0
        assert os.path.getsize(paths["input"]) == SMALL.quantized_size

    def test_missing_source_fails(self, paths, tmp_dir):
        paths["mod16"] = os.path.join(tmp_dir, "absent.bin")
        code = main(_argv(paths, "--run-dir", paths["run_dir"]),
                    geometry=SMALL)
        assert code == 1
        result = _load_result(paths["run_dir"])
        assert [s.step_name for s in result.failed_steps] == ["range_scan"]
        assert len(result.step_results) == 1

    def test_bad_mask_stops_before_export(self, paths, tmp_dir):
        write_mask(paths["mask"], np.zeros(5, dtype=np.uint8))
        tif = os.path.join(tmp_dir, "final.tif")
        code = main(_argv(paths, "-n", "2", "--export-tif", tif,
                          "--run-dir", paths["run_dir"]), geometry=SMALL)
        assert code == 1
        result = _load_result(paths["run_dir"])
        assert result.step_results[-1].step_name == "fill_passes"
        assert "does not match expected" in result.step_results[-1].error
        assert not os.path.exists(tif)

    def test_export_geotiff(self, paths, tmp_dir):
        tif = os.path.join(tmp_dir, "final.tif")
        code = main(_argv(paths, "-n", "2", "--export-tif", tif),
                    geometry=SMALL)
        assert code == 0
        assert os.path.exists(tif)

    def test_water_stays_invalid(self, paths):
        grid = mask_grid(SMALL)
        grid[1 + 2 // 2, 2 // 2] = 0  # raster rows 2-3, columns 2-3
        write_mask(paths["mask"], grid)
        assert main(_argv(paths, "-n", "3"), geometry=SMALL) == 0
        _, codes = read_quantized(paths["output"], SMALL)
        assert (codes[2:4, 2:4] == 255).all()
        assert (codes[2:4, 4:6] != 255).all()


class TestCleanFiles:
    def test_missing_files_ignored(self, tmp_dir):
        clean_files(os.path.join(tmp_dir, "a"), os.path.join(tmp_dir, "b"))
