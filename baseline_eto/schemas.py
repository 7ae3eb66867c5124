"""
Pandera DataFrame schemas for validation gates on build outputs.

Usage:
    from baseline_eto.schemas import pass_history_schema
    pass_history_schema(width * height).validate(df)
"""

import pandera as pa
from pandera import Check, Column, DataFrameSchema


# ── Per-pass statistics ─────────────────────────────────────────────────

def pass_history_schema(pixel_count):
    """Schema for the pass history table of a raster with ``pixel_count`` pixels.

    Every pass classifies each pixel exactly once (filled, unfilled,
    water, or copied as already valid), so the four counters add up to
    the pixel count. Water is fixed by the mask and must not change
    between passes.
    """
    return DataFrameSchema(
        columns={
            "pass": Column(int, Check.greater_than_or_equal_to(1),
                           nullable=False, unique=True),
            "filled": Column(int, Check.in_range(0, pixel_count), nullable=False),
            "unfilled": Column(int, Check.in_range(0, pixel_count), nullable=False),
            "water": Column(int, Check.in_range(0, pixel_count), nullable=False),
            "valid": Column(int, Check.in_range(0, pixel_count), nullable=False),
            "timing_seconds": Column(float, Check.greater_than_or_equal_to(0.0),
                                     nullable=False, coerce=True),
        },
        checks=[
            Check(
                lambda df: (df["filled"] + df["unfilled"] + df["water"]
                            + df["valid"]) == pixel_count,
                error="pass does not account for every pixel",
            ),
            Check(
                lambda df: df["water"].nunique() <= 1,
                error="water count changed between passes",
            ),
        ],
        strict=False,
        coerce=False,
        name="PassHistorySchema",
    )


# ── Convenience validation function ─────────────────────────────────────

def validate_schema(df, schema, step_name, strict=False):
    """Validate a DataFrame against a Pandera schema.

    Parameters
    ----------
    df : pd.DataFrame
    schema : pa.DataFrameSchema
    step_name : str
        Used in messages.
    strict : bool
        If True, raise on failure. If False, return warnings list.

    Returns
    -------
    list[str]
        Validation warning messages (empty if all pass).

    Raises
    ------
    ValueError
        Only if strict=True and validation fails.
    """
    warnings_list = []

    if df is None:
        msg = f"[{step_name}] DataFrame is None"
        if strict:
            raise ValueError(msg)
        return [msg]

    if len(df) == 0:
        msg = f"[{step_name}] DataFrame is empty (0 rows)"
        if strict:
            raise ValueError(msg)
        return [msg]

    try:
        schema.validate(df, lazy=True)
    except pa.errors.SchemaErrors as exc:
        for failure in exc.failure_cases.itertuples():
            warnings_list.append(
                f"[{step_name}] Schema violation: "
                f"column='{failure.column}' check='{failure.check}' "
                f"failure_case={failure.failure_case}"
            )

        if strict:
            raise ValueError(
                f"[{step_name}] Schema validation failed with "
                f"{len(warnings_list)} errors"
            ) from exc

    return warnings_list
