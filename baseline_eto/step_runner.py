"""
Runs one build stage (range scan, reduction, fill passes, history, export)
and records how it went as a StepResult.

Stages raise freely. run_step() times the call, logs a one-line summary and
turns the first exception into an error StepResult, so main() can stop the
build and still write pipeline_run.json.
"""

import traceback
from typing import Callable, TypeVar

from baseline_eto.errors import BaselineEToError
from baseline_eto.logging_config import StepTimer, get_pipeline_logger, log_step_summary
from baseline_eto.raster_types import StepResult, StepStatus

T = TypeVar("T")

log = get_pipeline_logger(__name__)

# Format, size and I/O failures; anything else is logged as unexpected.
_DEFAULT_EXPECTED = (BaselineEToError, OSError, ValueError)


def skipped_step(step_name: str, reason: str) -> StepResult:
    """Record a stage the CLI arguments made unnecessary."""
    log_step_summary(log, step_name, StepStatus.SKIPPED.value,
                     warnings_list=[reason])
    return StepResult(
        step_name=step_name,
        status=StepStatus.SKIPPED.value,
        warnings=[reason],
    )


def run_step(
    step_name: str,
    fn: Callable[..., T],
    *args,
    input_summary: dict | None = None,
    output_summary_fn: Callable[[T], dict] | None = None,
    expected_exceptions: tuple[type[Exception], ...] = _DEFAULT_EXPECTED,
    **kwargs,
) -> tuple[StepResult, T | None]:
    """Call ``fn(*args, **kwargs)`` as the stage *step_name*.

    Returns ``(StepResult, data)``. On failure *data* is None and the
    StepResult carries the traceback. *output_summary_fn* turns a successful
    return value into the summary stored with the step, for instance pass
    counts or bytes written. Exceptions outside *expected_exceptions* are
    logged as unexpected but still end the step rather than the process.
    """
    inputs = input_summary or {}
    result_data = None
    error_tb = None

    with StepTimer() as timer:
        try:
            result_data = fn(*args, **kwargs)
        except expected_exceptions as exc:
            error_tb = traceback.format_exc()
            log.error("%s failed: %s", step_name, exc, exc_info=True)
        except Exception:
            error_tb = traceback.format_exc()
            log.error("%s failed unexpectedly", step_name, exc_info=True)

    if error_tb:
        log_step_summary(log, step_name, StepStatus.ERROR.value,
                         timing_seconds=timer.elapsed)
        return StepResult(
            step_name=step_name,
            status=StepStatus.ERROR.value,
            input_summary=inputs,
            error=error_tb,
            timing_seconds=timer.elapsed,
        ), None

    out_summary = {}
    if output_summary_fn is not None and result_data is not None:
        out_summary = output_summary_fn(result_data)

    log_step_summary(
        log, step_name, StepStatus.SUCCESS.value,
        input_summary=inputs,
        output_summary=out_summary,
        timing_seconds=timer.elapsed,
    )
    return StepResult(
        step_name=step_name,
        status=StepStatus.SUCCESS.value,
        input_summary=inputs,
        output_summary=out_summary,
        timing_seconds=timer.elapsed,
    ), result_data
