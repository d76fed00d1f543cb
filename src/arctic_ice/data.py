# ---------------------------------------------------------------------------
# arctic_ice.data — Load raw sea-ice CSV and build the annual regional panel
# ---------------------------------------------------------------------------
"""Read monthly sea-ice records, keep the extent metric, collapse months to
annual regional means and log-transform for modelling."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import polars as pl

from .config import DATA_DIR, DATA_FILE, DATE_FORMAT, DROP_COLUMNS, METRIC, REQUIRED_COLUMNS

logger = logging.getLogger(__name__)


# Panel schema: one row per (Region, Year)
PANEL_SCHEMA: dict[str, pl.DataType] = {
    "Region": pl.Utf8,
    "Year": pl.Int32,
    "Value": pl.Float64,
    "LogValue": pl.Float64,
}


# =========================================================================
# Errors
# =========================================================================


class DataError(ValueError):
    """Base class for input problems that stop the analysis before fitting."""


class ParseError(DataError):
    """A Date value does not match ``DATE_FORMAT``."""


class MissingColumnsError(DataError):
    """The raw CSV lacks one or more required columns."""


class EmptyDatasetError(DataError):
    """No rows remain after filtering to the requested metric."""


# =========================================================================
# Loading steps
# =========================================================================


def read_raw(path: str | Path) -> pl.DataFrame:
    """Read the raw CSV; every required column must exist and every row needs a Region."""
    df = pl.read_csv(str(path), null_values=["", "NA"], infer_schema_length=10000)

    missing = set(REQUIRED_COLUMNS) - set(df.columns)
    if missing:
        raise MissingColumnsError(f"Missing required columns: {sorted(missing)}")

    df = df.with_columns(
        pl.col("Date").cast(pl.Utf8),
        pl.col("Metric").cast(pl.Utf8),
        pl.col("Region").cast(pl.Utf8),
        pl.col("Value").cast(pl.Float64, strict=False),
    )

    n_no_region = df["Region"].null_count()
    if n_no_region > 0:
        raise DataError(f"{n_no_region} rows have an empty Region in {path}")
    return df


def parse_dates(df: pl.DataFrame) -> pl.DataFrame:
    """Parse ``Date`` strictly as ``%Y-%m-%d`` and derive the calendar ``Year``.

    Raises
    ------
    ParseError
        If any Date is missing or malformed.
    """
    parsed = df.with_columns(
        pl.col("Date").str.strptime(pl.Date, DATE_FORMAT, strict=False).alias("_parsed")
    )
    bad = parsed.filter(pl.col("_parsed").is_null())
    if len(bad) > 0:
        sample = bad["Date"].head(3).to_list()
        raise ParseError(
            f"{len(bad)} Date values do not match {DATE_FORMAT!r}. Examples: {sample}"
        )

    return parsed.with_columns(
        pl.col("_parsed").alias("Date"),
        pl.col("_parsed").dt.year().cast(pl.Int32).alias("Year"),
    ).drop("_parsed")


def filter_metric(df: pl.DataFrame, metric: str = METRIC) -> pl.DataFrame:
    """Keep rows of one metric and drop the per-month columns.

    Raises
    ------
    EmptyDatasetError
        If no row has ``Metric == metric``.
    """
    out = df.filter(pl.col("Metric") == metric)
    if len(out) == 0:
        available = sorted(df["Metric"].drop_nulls().unique().to_list())
        raise EmptyDatasetError(
            f"No rows with Metric == {metric!r} (available metrics: {available})"
        )
    return out.drop([c for c in DROP_COLUMNS if c in out.columns])


def aggregate_annual(df: pl.DataFrame) -> pl.DataFrame:
    """Collapse to one row per (Region, Year) and append ``LogValue``.

    Value is the arithmetic mean of all readings in the year, ignoring
    missing (null or NaN) readings.  LogValue is the natural log of Value,
    null where Value is missing or not strictly positive.

    Applying this to a panel that is already unique on (Region, Year)
    returns the same panel.
    """
    return (
        df.with_columns(pl.col("Value").cast(pl.Float64).fill_nan(None))
        .group_by(["Region", "Year"])
        .agg(pl.col("Value").mean())
        .with_columns(
            pl.col("Year").cast(pl.Int32),
            pl.when(pl.col("Value") > 0)
            .then(pl.col("Value").log())
            .otherwise(None)
            .alias("LogValue"),
        )
        .select(list(PANEL_SCHEMA))
        .sort(["Region", "Year"])
    )


def drop_invalid(panel: pl.DataFrame) -> pl.DataFrame:
    """Drop rows without a usable LogValue, logging how many were removed."""
    out = panel.filter(pl.col("LogValue").is_not_null())
    n_dropped = len(panel) - len(out)
    if n_dropped > 0:
        dropped = panel.filter(pl.col("LogValue").is_null())
        logger.warning(
            f"Dropped {n_dropped} (Region, Year) rows with missing or non-positive Value "
            f"(e.g. {dropped.select(['Region', 'Year']).head(3).rows()})"
        )
    return out


def validate_panel(panel: pl.DataFrame) -> pl.DataFrame:
    """Validate that a DataFrame conforms to PANEL_SCHEMA.

    Returns
    -------
    pl.DataFrame
        The input DataFrame (unchanged) if valid.

    Raises
    ------
    DataError
        If any validation check fails.
    """
    missing = set(PANEL_SCHEMA) - set(panel.columns)
    if missing:
        raise MissingColumnsError(f"Missing required columns: {sorted(missing)}")

    for col, expected_dtype in PANEL_SCHEMA.items():
        actual_dtype = panel.schema[col]
        if actual_dtype != expected_dtype:
            raise DataError(
                f"Column {col!r} has dtype {actual_dtype}, expected {expected_dtype}"
            )

    if len(panel) == 0:
        raise EmptyDatasetError("Panel has no rows")

    n_null = panel["Region"].null_count()
    if n_null > 0:
        raise DataError(f"{n_null} rows have a null Region")

    dups = panel.group_by(["Region", "Year"]).len().filter(pl.col("len") > 1)
    if len(dups) > 0:
        raise DataError(
            f"{len(dups)} duplicate (Region, Year) combinations found. "
            f"Examples: {dups.head(3).to_dicts()}"
        )

    return panel


def load_panel(path: str | Path | None = None, metric: str = METRIC) -> pl.DataFrame:
    """Load the raw CSV and return the validated annual panel.

    Parameters
    ----------
    path : str or Path, optional
        CSV with columns Date, Metric, Region, Value (Month / MonthNum
        optional).  Defaults to ``DATA_DIR / DATA_FILE``.
    metric : str
        Metric to keep (default ``'extent'``).

    Returns
    -------
    pl.DataFrame
        Columns Region, Year, Value, LogValue; unique on (Region, Year),
        sorted by (Region, Year).
    """
    if path is None:
        path = DATA_DIR / DATA_FILE

    raw = read_raw(path)
    df = filter_metric(parse_dates(raw), metric)
    panel = validate_panel(drop_invalid(aggregate_annual(df)))

    logger.info(
        f"Loaded {path}: {len(raw)} raw rows, {len(df)} {metric!r} rows "
        f"-> {len(panel)} (Region, Year) observations, "
        f"{panel['Region'].n_unique()} regions, "
        f"years {panel['Year'].min()}-{panel['Year'].max()}"
    )
    return panel


# =========================================================================
# Model inputs
# =========================================================================


def build_model_data(panel: pl.DataFrame) -> dict:
    """Convert the panel to the arrays consumed by :func:`arctic_ice.model.build_model`.

    Rows are ordered by (Region, Year).  ``prev_idx[i]`` is the row of the
    preceding observed year in the same Region, or ``i`` itself for the
    first observation of a Region (``is_first[i]`` is then True).
    """
    panel = panel.sort(["Region", "Year"])

    regions = sorted(panel["Region"].unique().to_list())
    lookup = {r: i for i, r in enumerate(regions)}
    region_idx = np.array([lookup[r] for r in panel["Region"].to_list()], dtype=int)

    year = panel["Year"].to_numpy().astype(float)
    year_mean = float(year.mean())
    y = panel["LogValue"].to_numpy().astype(float)

    N = len(panel)
    prev_idx = np.arange(N)
    is_first = np.ones(N, dtype=bool)
    for i in range(1, N):
        if region_idx[i] == region_idx[i - 1]:
            prev_idx[i] = i - 1
            is_first[i] = False

    return dict(
        regions=regions,
        region_idx=region_idx,
        region_labels=panel["Region"].to_list(),
        year=year,
        year_mean=year_mean,
        year_c=year - year_mean,
        y=y,
        prev_idx=prev_idx,
        is_first=is_first,
        N=N,
        n_regions=len(regions),
    )
