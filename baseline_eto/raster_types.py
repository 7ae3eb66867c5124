"""
Typed records shared by the build steps.

Raster-level values (bounds, header, pass statistics) plus the step and
run results used for structured logging and provenance tracking.
"""

import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from baseline_eto import config


class StepStatus(str, Enum):
    """Pipeline step outcome status."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _get_git_sha():
    """Return the short git SHA of the current HEAD, or None."""
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
    except (subprocess.SubprocessError, FileNotFoundError):
        return None


# ── Raster records ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class FileMeta:
    """Inclusive range of valid raw sample values used for quantization."""

    min: int
    max: int

    def __post_init__(self):
        if self.max < self.min:
            raise ValueError(
                f"Invalid pixel range [{self.min}, {self.max}]: max < min"
            )

    def to_dict(self):
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class RasterHeader:
    """Decoded form of the 32-byte quantized raster header."""

    width: int
    height: int
    minimum_value: float
    scaling_factor: float
    version: int = config.FORMAT_VERSION
    bit_depth: int = config.BIT_DEPTH
    reserved: bytes = bytes(config.HEADER_RESERVED_SIZE)


@dataclass(frozen=True)
class PassDelta:
    """Signed component-wise difference between two pass statistics."""

    filled: int
    unfilled: int
    water: int
    valid: int = 0

    def to_dict(self):
        return {"filled": self.filled, "unfilled": self.unfilled,
                "water": self.water, "valid": self.valid}


@dataclass(frozen=True)
class PassStatistics:
    """Pixel counts accumulated over one full interpolation pass.

    ``filled``, ``unfilled`` and ``water`` are the counters reported after
    each pass. ``valid`` counts land pixels that were already valid and
    copied through, so the four together account for every pixel.
    """

    filled: int = 0
    unfilled: int = 0
    water: int = 0
    valid: int = 0

    @property
    def total(self):
        return self.filled + self.unfilled + self.water + self.valid

    def __sub__(self, other):
        if not isinstance(other, PassStatistics):
            return NotImplemented
        return PassDelta(
            filled=self.filled - other.filled,
            unfilled=self.unfilled - other.unfilled,
            water=self.water - other.water,
            valid=self.valid - other.valid,
        )

    def to_dict(self):
        return {"filled": self.filled, "unfilled": self.unfilled,
                "water": self.water, "valid": self.valid}


# ── Step / run provenance ────────────────────────────────────────────────


@dataclass
class StepResult:
    """Result of a single pipeline step execution."""

    step_name: str
    status: str  # "success", "skipped", "error"
    input_summary: dict = field(default_factory=dict)
    output_summary: dict = field(default_factory=dict)
    timing_seconds: float = 0.0
    warnings: list = field(default_factory=list)
    error: Optional[str] = None
    started_at: str = field(default_factory=_now_iso)
    completed_at: Optional[str] = None

    @property
    def ok(self):
        return self.status != StepStatus.ERROR.value

    def to_dict(self):
        return {
            "step_name": self.step_name,
            "status": self.status,
            "input_summary": self.input_summary,
            "output_summary": self.output_summary,
            "timing_seconds": self.timing_seconds,
            "warnings": self.warnings,
            "error": self.error,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, d):
        """Reconstruct a StepResult from a serialized dict."""
        return cls(
            step_name=d["step_name"],
            status=d["status"],
            input_summary=d.get("input_summary", {}),
            output_summary=d.get("output_summary", {}),
            timing_seconds=d.get("timing_seconds", 0.0),
            warnings=d.get("warnings", []),
            error=d.get("error"),
            started_at=d.get("started_at", ""),
            completed_at=d.get("completed_at"),
        )


@dataclass
class PipelineRunResult:
    """Result of a complete build: range scan, quantization, fill passes."""

    run_dir: str = ""
    bounds: Optional[FileMeta] = None
    passes_requested: int = 0
    pass_statistics: list = field(default_factory=list)
    step_results: list = field(default_factory=list)
    total_time_seconds: float = 0.0
    output_files: list = field(default_factory=list)
    git_sha: Optional[str] = field(default_factory=_get_git_sha)
    started_at: str = field(default_factory=_now_iso)

    @property
    def all_ok(self):
        return all(s.ok for s in self.step_results)

    @property
    def failed_steps(self):
        return [s for s in self.step_results if not s.ok]

    def to_dict(self):
        return {
            "run_dir": self.run_dir,
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "passes_requested": self.passes_requested,
            "pass_statistics": [s.to_dict() for s in self.pass_statistics],
            "steps": [s.to_dict() for s in self.step_results],
            "total_time_seconds": self.total_time_seconds,
            "output_files": self.output_files,
            "all_ok": self.all_ok,
            "git_sha": self.git_sha,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, d):
        """Reconstruct a PipelineRunResult from a serialized dict."""
        bounds = d.get("bounds")
        result = cls(
            run_dir=d.get("run_dir", ""),
            bounds=FileMeta(**bounds) if bounds else None,
            passes_requested=d.get("passes_requested", 0),
            total_time_seconds=d.get("total_time_seconds", 0.0),
            output_files=d.get("output_files", []),
            git_sha=d.get("git_sha"),
            started_at=d.get("started_at", ""),
        )
        result.pass_statistics = [
            PassStatistics(**s) for s in d.get("pass_statistics", [])
        ]
        result.step_results = [
            StepResult.from_dict(s) for s in d.get("steps", [])
        ]
        return result
