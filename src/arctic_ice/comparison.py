# ---------------------------------------------------------------------------
# arctic_ice.comparison — PSIS-LOO per model and ELPD-based ranking
# ---------------------------------------------------------------------------
"""Leave-one-out cross-validation (Vehtari et al. 2017) for each fitted
variant, Pareto-k screening of individual observations, and the ELPD
comparison that answers whether modelling temporal correlation improves
out-of-sample prediction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import polars as pl

from .config import OUTPUT_DIR, PARETO_K_THRESHOLD, PARETO_K_WARN, VARIANT_COLORS
from .model import OBS_VAR
from .plots import save_figure

if TYPE_CHECKING:
    from .sampling import FitResult

logger = logging.getLogger(__name__)


@dataclass
class LooResult:
    """PSIS-LOO estimate for one fitted variant."""

    name: str
    label: str
    elpd: az.ELPDData
    elpd_loo: float
    se: float
    p_loo: float
    pareto_k: np.ndarray
    flagged: list[tuple[str, int, float]] = field(default_factory=list)

    @property
    def n_high_k(self) -> int:
        return int(np.sum(self.pareto_k > PARETO_K_THRESHOLD))

    @property
    def n_warn_k(self) -> int:
        return int(np.sum((self.pareto_k > PARETO_K_WARN) & (self.pareto_k <= PARETO_K_THRESHOLD)))


# =========================================================================
# LOO per model
# =========================================================================


def compute_loo(fit: FitResult, data: dict) -> LooResult:
    """PSIS-LOO with pointwise Pareto-k for one fit.

    Observations whose Pareto-k exceeds ``PARETO_K_THRESHOLD`` are
    flagged as (Region, Year, k) and logged; the estimate is still
    returned.
    """
    elpd = az.loo(fit.idata, var_name=OBS_VAR, pointwise=True)
    khat = np.asarray(elpd.pareto_k).ravel()

    flagged = [
        (data["region_labels"][i], int(data["year"][i]), float(khat[i]))
        for i in np.flatnonzero(khat > PARETO_K_THRESHOLD)
    ]
    if flagged:
        logger.warning(
            f"[{fit.variant.label}] {len(flagged)} observations with Pareto k > "
            f"{PARETO_K_THRESHOLD}; their LOO estimates are unreliable: {flagged[:5]}"
        )

    return LooResult(
        name=fit.variant.name,
        label=fit.variant.label,
        elpd=elpd,
        elpd_loo=float(elpd.elpd_loo),
        se=float(elpd.se),
        p_loo=float(elpd.p_loo),
        pareto_k=khat,
        flagged=flagged,
    )


# =========================================================================
# Model comparison
# =========================================================================


def compare_models(loo_results: dict[str, LooResult]) -> pl.DataFrame:
    """Rank models by expected log predictive density (higher is better).

    Returns
    -------
    pl.DataFrame
        One row per model ordered by rank: ``model``, ``rank``,
        ``elpd_loo``, ``se``, ``p_loo``, ``elpd_diff`` (best minus this
        model, 0 for the best), ``dse`` (standard error of that
        difference), ``warning``.
    """
    if len(loo_results) < 2:
        raise ValueError(f"Need at least two models to compare, got {len(loo_results)}")

    cmp = az.compare({name: r.elpd for name, r in loo_results.items()}, ic="loo")

    return pl.DataFrame(
        {
            "model": [str(m) for m in cmp.index],
            "rank": cmp["rank"].astype(int).to_list(),
            "elpd_loo": cmp["elpd_loo"].astype(float).to_list(),
            "se": cmp["se"].astype(float).to_list(),
            "p_loo": cmp["p_loo"].astype(float).to_list(),
            "elpd_diff": cmp["elpd_diff"].astype(float).to_list(),
            "dse": cmp["dse"].astype(float).to_list(),
            "warning": cmp["warning"].astype(bool).to_list(),
        }
    ).sort("rank")


def elpd_difference(a: LooResult, b: LooResult) -> tuple[float, float]:
    """Signed ELPD difference ``a − b`` and its standard error.

    Positive values favour *a*.  The standard error uses the pointwise
    differences, ``sqrt(n · var(elpd_a_i − elpd_b_i))`` with the
    population variance, the same convention as ``dse`` in
    :func:`compare_models`.
    """
    diff_i = np.asarray(a.elpd.loo_i).ravel() - np.asarray(b.elpd.loo_i).ravel()
    n = diff_i.size
    return float(diff_i.sum()), float(np.sqrt(n * np.var(diff_i)))


def print_loo(loo_results: dict[str, LooResult]) -> None:
    """Per-model ELPD and Pareto-k diagnostics."""
    print("\n" + "=" * 72)
    print("LEAVE-ONE-OUT CROSS-VALIDATION (PSIS-LOO)")
    print("=" * 72)
    for res in loo_results.values():
        print(f"\n{res.label} ({res.name}):")
        print(f"  ELPD LOO: {res.elpd_loo:.1f} +/- {res.se:.1f}")
        print(f"  p_loo:    {res.p_loo:.1f}")
        print(f"  k-hat > {PARETO_K_THRESHOLD} (bad):  {res.n_high_k}")
        print(f"  k-hat > {PARETO_K_WARN} (warn): {res.n_warn_k}")
        for region, year, k in res.flagged:
            print(f"    {region} {year}: k = {k:.2f}")


def print_comparison(table: pl.DataFrame, loo_results: dict[str, LooResult]) -> None:
    """LOO comparison table plus the signed difference of the top two models."""
    print("\n" + "=" * 72)
    print("APPROXIMATE LOO COMPARISON (higher ELPD is better)")
    print("=" * 72)
    with pl.Config(tbl_rows=-1, tbl_cols=-1, float_precision=2):
        print(table)

    best, runner_up = table["model"][0], table["model"][1]
    diff, se = elpd_difference(loo_results[best], loo_results[runner_up])
    z = diff / se if se > 0 else np.inf
    print(
        f"\n{loo_results[best].label} \u2212 {loo_results[runner_up].label}: "
        f"\u0394ELPD = {diff:+.1f} \u00b1 {se:.1f} (\u0394/SE = {z:.1f})"
    )
    if table["warning"].any():
        print("** WARNING: at least one LOO estimate has high Pareto k; interpret with care.")


# =========================================================================
# Plots
# =========================================================================


def plot_pareto_k(loo_results: dict[str, LooResult], output_dir: Path = OUTPUT_DIR) -> Path:
    """Pointwise Pareto-k for each model, with the warning thresholds."""
    n = len(loo_results)
    fig, axes = plt.subplots(1, n, figsize=(7 * n, 4.5), squeeze=False)

    for ax, res in zip(axes[0], loo_results.values()):
        khat = res.pareto_k
        colors = np.where(
            khat > PARETO_K_THRESHOLD, "red",
            np.where(khat > PARETO_K_WARN, "orange", "steelblue"),
        )
        ax.scatter(np.arange(len(khat)), khat, s=8, c=colors, alpha=0.6)
        ax.axhline(PARETO_K_THRESHOLD, color="red", ls="--", lw=1, alpha=0.7,
                   label=f"k-hat = {PARETO_K_THRESHOLD}")
        ax.axhline(PARETO_K_WARN, color="orange", ls="--", lw=1, alpha=0.7,
                   label=f"k-hat = {PARETO_K_WARN}")
        ax.set_xlabel("Observation index")
        ax.set_ylabel("k-hat")
        ax.set_title(f"{res.label}: PSIS-LOO k-hat")
        ax.legend(fontsize=7)

    fig.suptitle("LOO-CV k-hat Diagnostics (Pareto shape parameter)",
                 fontsize=13, fontweight="bold")
    plt.tight_layout()
    return save_figure(fig, output_dir, "loo_khat.png")


def plot_comparison(
    table: pl.DataFrame, loo_results: dict[str, LooResult], output_dir: Path = OUTPUT_DIR
) -> Path:
    """ELPD (± SE) per model and the difference to the best model (± dSE)."""
    models = table["model"].to_list()
    y_pos = np.arange(len(models))[::-1]
    elpd = table["elpd_loo"].to_numpy()
    best = elpd[0]

    fig, ax = plt.subplots(figsize=(8, 1.2 + 0.9 * len(models)))
    for yp, row in zip(y_pos, table.iter_rows(named=True)):
        color = VARIANT_COLORS.get(row["model"], "steelblue")
        ax.errorbar(row["elpd_loo"], yp, xerr=row["se"], fmt="o", color=color, capsize=4)
        if row["rank"] > 0:
            ax.errorbar(best - row["elpd_diff"], yp - 0.2, xerr=row["dse"], fmt="^",
                        color="gray", capsize=3, label="Difference to best (\u00b1 dSE)")
    ax.axvline(best, color="gray", ls="--", lw=0.8)
    ax.set_yticks(y_pos)
    ax.set_yticklabels([loo_results[m].label for m in models])
    ax.set_xlabel("ELPD (LOO)")
    ax.set_title("LOO-CV Model Comparison")
    handles, labels = ax.get_legend_handles_labels()
    if handles:
        ax.legend(handles[:1], labels[:1], fontsize=7)
    plt.tight_layout()
    return save_figure(fig, output_dir, "loo_comparison.png")
