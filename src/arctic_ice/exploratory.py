# ---------------------------------------------------------------------------
# arctic_ice.exploratory — Descriptive statistics, correlations, EDA plots
# ---------------------------------------------------------------------------
"""Read-only summaries of the annual panel: statistics by Region and Year,
the pairwise Region x Region correlation of extent, and distribution plots."""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import polars as pl

from .config import OUTPUT_DIR
from .plots import save_figure

logger = logging.getLogger(__name__)


# =========================================================================
# Summary statistics
# =========================================================================


def _summarise(panel: pl.DataFrame, by: str) -> pl.DataFrame:
    return (
        panel.group_by(by)
        .agg(
            pl.col("Value").mean().alias("mean"),
            pl.col("Value").std().alias("std"),
            pl.col("Value").min().alias("min"),
            pl.col("Value").max().alias("max"),
            pl.len().alias("count"),
        )
        .sort(by)
    )


def region_summary(panel: pl.DataFrame) -> pl.DataFrame:
    """Mean, std, min, max and count of Value per Region.

    Only regions present in *panel* get a row.
    """
    return _summarise(panel, "Region")


def year_summary(panel: pl.DataFrame) -> pl.DataFrame:
    """Mean, std, min, max and count of Value per Year."""
    return _summarise(panel, "Year")


# =========================================================================
# Correlation structure
# =========================================================================


def _pairwise_corr(a: np.ndarray, b: np.ndarray) -> float:
    mask = np.isfinite(a) & np.isfinite(b)
    if mask.sum() < 2:
        return np.nan
    a, b = a[mask], b[mask]
    if a.std() == 0 or b.std() == 0:
        return np.nan
    return float(np.corrcoef(a, b)[0, 1])


def correlation_matrix(panel: pl.DataFrame) -> pl.DataFrame:
    """Region x Region Pearson correlation of Value across Years.

    Each pair uses only the years observed for both regions (no
    imputation).  Pairs with fewer than two overlapping years, or with a
    constant series over the overlap, are NaN.  The diagonal is 1.0 for
    every region with at least two valid years, NaN otherwise.

    Returns
    -------
    pl.DataFrame
        A ``Region`` column followed by one Float64 column per region, in
        sorted region order.
    """
    regions = sorted(panel["Region"].unique().to_list())
    wide = (
        panel.pivot(on="Region", index="Year", values="Value")
        .sort("Year")
        .select(regions)
    )
    X = wide.to_numpy().astype(float)  # (n_years, n_regions), NaN where missing

    n = len(regions)
    corr = np.full((n, n), np.nan)
    for i in range(n):
        corr[i, i] = 1.0 if np.isfinite(X[:, i]).sum() >= 2 else np.nan
        for j in range(i + 1, n):
            corr[i, j] = corr[j, i] = _pairwise_corr(X[:, i], X[:, j])

    n_undefined = int(np.isnan(corr[np.triu_indices(n, k=1)]).sum())
    if n_undefined > 0:
        logger.warning(f"{n_undefined} region pairs have undefined correlation (< 2 shared years)")

    return pl.DataFrame(
        {"Region": regions, **{r: corr[:, k] for k, r in enumerate(regions)}}
    )


# =========================================================================
# Console report
# =========================================================================


def print_summaries(panel: pl.DataFrame) -> dict[str, pl.DataFrame]:
    """Print region / year statistics and the correlation matrix."""
    tables = {
        "region_summary": region_summary(panel),
        "year_summary": year_summary(panel),
        "correlation_matrix": correlation_matrix(panel),
    }
    titles = {
        "region_summary": "SEA-ICE EXTENT BY REGION",
        "year_summary": "SEA-ICE EXTENT BY YEAR",
        "correlation_matrix": "REGION x REGION CORRELATION (pairwise over shared years)",
    }
    with pl.Config(tbl_rows=-1, tbl_cols=-1, float_precision=3):
        for key, table in tables.items():
            print("\n" + "=" * 72)
            print(titles[key])
            print("=" * 72)
            print(table)
    return tables


# =========================================================================
# Plots
# =========================================================================


def plot_distributions(panel: pl.DataFrame, output_dir: Path = OUTPUT_DIR) -> Path:
    """Box-plot of annual extent by Region and histogram of log extent."""
    regions = sorted(panel["Region"].unique().to_list())
    values = [
        panel.filter(pl.col("Region") == r)["Value"].to_numpy() / 1e6 for r in regions
    ]

    fig, axes = plt.subplots(1, 2, figsize=(16, 6), gridspec_kw={"width_ratios": [2, 1]})

    ax = axes[0]
    ax.boxplot(values, vert=False)
    ax.set_yticks(np.arange(1, len(regions) + 1))
    ax.set_yticklabels(regions, fontsize=8)
    ax.set_xlabel("Annual mean extent (million km\u00b2)")
    ax.set_title("Sea-Ice Extent by Region")

    ax = axes[1]
    ax.hist(panel["LogValue"].to_numpy(), bins=40, color="steelblue", alpha=0.7)
    ax.set_xlabel("log(Sea Ice Extent)")
    ax.set_ylabel("Count")
    ax.set_title("Distribution of log Extent")

    plt.tight_layout()
    return save_figure(fig, output_dir, "eda_distributions.png")


def plot_region_trends(panel: pl.DataFrame, output_dir: Path = OUTPUT_DIR) -> Path:
    """Small multiples of log extent over Year, one panel per Region."""
    regions = sorted(panel["Region"].unique().to_list())
    n_cols = 4
    n_rows = (len(regions) + n_cols - 1) // n_cols
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(16, 3 * n_rows), squeeze=False)
    axes_flat = axes.flatten()

    for idx, region in enumerate(regions):
        ax = axes_flat[idx]
        sub = panel.filter(pl.col("Region") == region).sort("Year")
        ax.plot(sub["Year"].to_numpy(), sub["LogValue"].to_numpy(), "o-",
                color="steelblue", ms=3, lw=1)
        ax.set_title(region, fontsize=9)
        ax.tick_params(labelsize=7)

    for idx in range(len(regions), len(axes_flat)):
        axes_flat[idx].set_visible(False)

    fig.suptitle("log(Sea Ice Extent) by Region", fontsize=13, fontweight="bold")
    plt.tight_layout()
    return save_figure(fig, output_dir, "eda_region_trends.png")


def plot_correlation_heatmap(
    corr: pl.DataFrame, output_dir: Path = OUTPUT_DIR
) -> Path:
    """Heat-map of the Region x Region correlation matrix (NaN cells grey)."""
    regions = corr["Region"].to_list()
    mat = np.ma.masked_invalid(corr.drop("Region").to_numpy().astype(float))

    cmap = plt.get_cmap("RdBu_r").copy()
    cmap.set_bad("lightgray")

    fig, ax = plt.subplots(figsize=(10, 8))
    im = ax.imshow(mat, cmap=cmap, vmin=-1, vmax=1)
    ax.set_xticks(np.arange(len(regions)))
    ax.set_yticks(np.arange(len(regions)))
    ax.set_xticklabels(regions, rotation=90, fontsize=8)
    ax.set_yticklabels(regions, fontsize=8)
    fig.colorbar(im, ax=ax, label="Pearson r")
    ax.set_title("Correlation of Annual Extent Between Regions")

    plt.tight_layout()
    return save_figure(fig, output_dir, "eda_correlation.png")


def plot_exploratory(panel: pl.DataFrame, output_dir: Path = OUTPUT_DIR) -> list[Path]:
    """Write all exploratory plots; returns the written paths."""
    return [
        plot_distributions(panel, output_dir),
        plot_region_trends(panel, output_dir),
        plot_correlation_heatmap(correlation_matrix(panel), output_dir),
    ]
