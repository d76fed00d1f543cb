# ---------------------------------------------------------------------------
# arctic_ice.diagnostics — Convergence checks, trace plots,
#                           divergence visualisation
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import arviz as az
import numpy as np

from .config import ESS_THRESHOLD, OUTPUT_DIR, RHAT_THRESHOLD
from .model import TRACE_VARS
from .plots import save_figure

if TYPE_CHECKING:
    from .sampling import FitResult

logger = logging.getLogger(__name__)


@dataclass
class FitDiagnostics:
    """Convergence problems found in one fit.

    None of these abort the analysis; they are reported alongside the
    results as caveats.
    """

    n_divergences: int = 0
    max_tree_depth: int | None = None
    rhat_bad: dict[str, float] = field(default_factory=dict)
    ess_bad: dict[str, float] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.n_divergences == 0 and not self.rhat_bad and not self.ess_bad


# =========================================================================
# Parameter summary & convergence
# =========================================================================


def check_convergence(
    idata: az.InferenceData, var_names: list[str], label: str = ""
) -> FitDiagnostics:
    """Collect divergences, tree depth, R-hat and bulk-ESS problems."""
    diag = FitDiagnostics()
    prefix = f"[{label}] " if label else ""

    stats = idata.sample_stats
    diag.n_divergences = int(stats["diverging"].sum().values)
    if "tree_depth" in stats:
        diag.max_tree_depth = int(stats["tree_depth"].max().values)

    if diag.n_divergences > 0:
        n_draws = int(stats["diverging"].size)
        diag.warnings.append(
            f"{prefix}{diag.n_divergences} divergent transitions "
            f"({100 * diag.n_divergences / n_draws:.2f}% of draws)"
        )

    summary = az.summary(idata, var_names=var_names, kind="diagnostics")
    for pname, row in summary.iterrows():
        if not row["r_hat"] <= RHAT_THRESHOLD:
            diag.rhat_bad[str(pname)] = float(row["r_hat"])
        if not row["ess_bulk"] >= ESS_THRESHOLD:
            diag.ess_bad[str(pname)] = float(row["ess_bulk"])

    for pname, rhat in diag.rhat_bad.items():
        diag.warnings.append(f"{prefix}{pname}: R-hat = {rhat:.4f} > {RHAT_THRESHOLD}")
    for pname, ess in diag.ess_bad.items():
        diag.warnings.append(f"{prefix}{pname}: ESS_bulk = {ess:.0f} < {ESS_THRESHOLD}")

    for msg in diag.warnings:
        logger.warning(msg)

    return diag


def print_diagnostics(fit: FitResult) -> None:
    """Print sampling diagnostics and the parameter summary for one fit."""
    variant = fit.variant
    diag = fit.diagnostics

    print("=" * 72)
    print(f"SAMPLING DIAGNOSTICS \u2014 {variant.label}")
    print("=" * 72)
    print(f"Divergences: {diag.n_divergences}")
    if diag.max_tree_depth is not None:
        print(f"Max tree depth: {diag.max_tree_depth}")

    print("\nPriors:")
    for pclass, prior in variant.priors.items():
        print(f"  {pclass:10}: {prior}")

    print("\n" + "=" * 72)
    print(f"PARAMETER SUMMARY \u2014 {variant.label}")
    print("=" * 72)
    summary = az.summary(fit.idata, var_names=TRACE_VARS[variant.residuals], hdi_prob=0.80)
    print(summary.to_string())

    if diag.rhat_bad:
        print(f"\n** WARNING: Parameters with R-hat > {RHAT_THRESHOLD}:")
        for pname, rhat in diag.rhat_bad.items():
            print(f"    {pname}: R-hat = {rhat:.4f}")
    if diag.ess_bad:
        print(f"\n** WARNING: Parameters with ESS_bulk < {ESS_THRESHOLD}:")
        for pname, ess in diag.ess_bad.items():
            print(f"    {pname}: ESS = {ess:.0f}")
    if not diag.rhat_bad and not diag.ess_bad:
        print(
            f"\nAll parameters converged (R-hat <= {RHAT_THRESHOLD}, "
            f"ESS_bulk >= {ESS_THRESHOLD})"
        )

    region_summary = az.summary(fit.idata, var_names=["r_Region"], kind="stats", hdi_prob=0.80)
    print("\nRegion intercept offsets (r_Region):")
    print(region_summary.to_string())


# =========================================================================
# Trace plots
# =========================================================================


def plot_trace(fit: FitResult, output_dir: Path = OUTPUT_DIR) -> Path:
    """Per-chain trace and marginal density for each parameter of interest."""
    var_names = TRACE_VARS[fit.variant.residuals]
    axes = az.plot_trace(fit.idata, var_names=var_names, compact=False, figsize=(12, 2.2 * len(var_names)))
    fig = np.asarray(axes).ravel()[0].figure
    fig.suptitle(f"Trace Plots: {fit.variant.label} Model", fontsize=13, fontweight="bold")
    fig.tight_layout()
    return save_figure(fig, output_dir, f"{fit.variant.name}_trace_plots.png")


# =========================================================================
# Divergence scatter-plots
# =========================================================================


def plot_divergences(fit: FitResult, output_dir: Path = OUTPUT_DIR) -> Path | None:
    """Pairwise scatter of the parameters of interest, divergent draws marked.

    Returns None (and writes nothing) when the fit has no divergences.
    """
    n_divs = int(fit.idata.sample_stats["diverging"].sum().values)
    if n_divs == 0:
        print(f"\n{fit.variant.label}: no divergent transitions \u2014 skipping divergence plot.")
        return None

    print(f"\nPlotting {n_divs} divergent transitions\u2026")
    var_names = TRACE_VARS[fit.variant.residuals]
    axes = az.plot_pair(
        fit.idata,
        var_names=var_names,
        kind="scatter",
        divergences=True,
        scatter_kwargs={"alpha": 0.1, "rasterized": True},
        divergences_kwargs={"color": "limegreen", "markeredgecolor": "darkgreen"},
        figsize=(3 * len(var_names), 3 * len(var_names)),
    )
    fig = np.asarray(axes).ravel()[0].figure
    fig.suptitle(
        f"Divergence Diagnostics ({fit.variant.label}): {n_divs} divergent draws",
        fontsize=13,
        fontweight="bold",
    )
    return save_figure(fig, output_dir, f"{fit.variant.name}_divergences.png")
