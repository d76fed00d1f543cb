# ---------------------------------------------------------------------------
# arctic_ice.checks — Prior / posterior predictive checks, residual plots
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import pymc as pm
from scipy import stats as sp_stats

from .config import OUTPUT_DIR, VARIANT_COLORS, ModelVariant
from .model import OBS_VAR, residuals
from .plots import save_figure

if TYPE_CHECKING:
    from .sampling import FitResult

logger = logging.getLogger(__name__)


# =========================================================================
# Prior predictive
# =========================================================================


def run_prior_predictive_check(
    model: pm.Model,
    data: dict,
    variant: ModelVariant,
    output_dir: Path = OUTPUT_DIR,
    draws: int = 500,
) -> az.InferenceData:
    """Sample from the prior predictive and compare with the observed data.

    Validates that the explicit priors produce log extents in a plausible
    range before fitting (Gabry et al. 2019, Section 3).
    """
    print(f"Sampling prior predictive ({variant.label})\u2026")
    with model:
        prior_idata = pm.sample_prior_predictive(draws=draws, random_seed=42)

    y = data["y"]
    pp = prior_idata.prior_predictive[OBS_VAR].values.flatten()
    lo, hi = np.percentile(pp, [1, 99])
    pp_clip = pp[(pp >= lo) & (pp <= hi)]

    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.hist(pp_clip, bins=80, density=True, alpha=0.4, color="steelblue",
            label="Prior predictive")
    ax.hist(y, bins=40, density=True, alpha=0.6, color="darkorange", label="Observed")
    ax.set_xlabel("log(Sea Ice Extent)")
    ax.set_ylabel("Density")
    ax.set_title(f"Prior Predictive Check: {variant.label}")
    ax.legend(fontsize=8)
    plt.tight_layout()
    save_figure(fig, output_dir, f"{variant.name}_prior_predictive.png")

    lo5, hi95 = np.percentile(pp, [5, 95])
    print(
        f"  {variant.label}: prior 90% [{lo5:+.2f}, {hi95:+.2f}]  "
        f"| obs range [{y.min():.2f}, {y.max():.2f}]"
    )
    return prior_idata


# =========================================================================
# Posterior predictive
# =========================================================================


def lag1_acf_by_region(values: np.ndarray, data: dict) -> float:
    """Mean lag-1 autocorrelation of within-Region detrended series.

    Each Region's series (ordered by Year) has its own linear trend
    removed; regions with fewer than three observations are skipped.
    """
    acfs = []
    for r in range(data["n_regions"]):
        m = data["region_idx"] == r
        if m.sum() < 3:
            continue
        x = data["year"][m]
        v = values[m]
        resid = v - np.polyval(np.polyfit(x, v, 1), x)
        c0 = np.dot(resid, resid)
        if c0 > 0:
            acfs.append(np.dot(resid[:-1], resid[1:]) / c0)
    return float(np.mean(acfs)) if acfs else np.nan


def run_posterior_predictive_check(
    fit: FitResult,
    data: dict,
    output_dir: Path = OUTPUT_DIR,
    n_overlay: int = 100,
) -> dict:
    """Replicated-data density overlay and a lag-1 autocorrelation test statistic.

    Extends ``fit.idata`` with the ``posterior_predictive`` group.

    Returns
    -------
    dict
        ``{'acf_obs': float, 'acf_rep_mean': float, 'p_value': float}``.
    """
    variant = fit.variant
    print(f"Sampling posterior predictive ({variant.label})\u2026")
    with fit.model:
        pm.sample_posterior_predictive(fit.idata, extend_inferencedata=True, random_seed=42)

    rng = np.random.default_rng(42)
    obs = data["y"]
    pp = fit.idata.posterior_predictive[OBS_VAR].values
    pp_flat = pp.reshape(-1, pp.shape[-1])
    n_total = pp_flat.shape[0]
    sub_idx = rng.choice(n_total, size=min(n_overlay, n_total), replace=False)

    # ---- Density overlay ----
    pad = 0.25 * np.ptp(obs)
    grid = np.linspace(obs.min() - pad, obs.max() + pad, 400)
    color = VARIANT_COLORS.get(variant.name, "steelblue")

    fig, axes = plt.subplots(1, 2, figsize=(14, 4.5))
    ax = axes[0]
    for i in sub_idx:
        ax.plot(grid, sp_stats.gaussian_kde(pp_flat[i])(grid), color=color, alpha=0.08, lw=0.6)
    ax.plot(grid, sp_stats.gaussian_kde(obs)(grid), color="black", lw=2, label="Observed y")
    ax.plot([], [], color=color, lw=1, label="Replicated y_rep")
    ax.set_xlabel("log(Sea Ice Extent)")
    ax.set_ylabel("Density")
    ax.set_title(f"PP Check: {variant.label}")
    ax.legend(fontsize=8)

    # ---- Lag-1 ACF test statistic ----
    acf_obs = lag1_acf_by_region(obs, data)
    n_sub = min(500, n_total)
    stat_idx = rng.choice(n_total, size=n_sub, replace=False)
    acf_rep = np.array([lag1_acf_by_region(pp_flat[i], data) for i in stat_idx])
    p = float(np.mean(acf_rep >= acf_obs))

    ax = axes[1]
    ax.hist(acf_rep, bins=50, density=True, alpha=0.5, color=color)
    ax.axvline(acf_obs, color="black", lw=2, ls="--", label=f"Obs: {acf_obs:.3f}")
    ax.set_xlabel("Mean within-Region lag-1 ACF (detrended)")
    ax.set_title(f"{variant.label}: lag-1 ACF (p={min(p, 1 - p):.3f})")
    ax.legend(fontsize=8)

    plt.tight_layout()
    save_figure(fig, output_dir, f"ppc_{variant.name}_model.png")

    result = {"acf_obs": acf_obs, "acf_rep_mean": float(np.nanmean(acf_rep)), "p_value": p}
    print(
        f"  {variant.label}: lag-1 ACF observed {acf_obs:.3f}, "
        f"replicated mean {result['acf_rep_mean']:.3f}, P(T_rep >= T_obs) = {p:.3f}"
    )
    return result


# =========================================================================
# Residuals
# =========================================================================


def plot_residuals(fit: FitResult, data: dict, output_dir: Path = OUTPUT_DIR) -> Path:
    """Plot standardised residuals per Region over Year.

    Residuals should be approximately iid N(0,1) if the model is
    well-specified.  Runs of same-signed residuals indicate unmodelled
    temporal correlation.
    """
    resid = residuals(fit.idata, data, fit.variant)
    regions = data["regions"]
    color = VARIANT_COLORS.get(fit.variant.name, "steelblue")

    n_cols = 4
    n_rows = (len(regions) + n_cols - 1) // n_cols
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(16, 2.8 * n_rows), sharey=True,
                             squeeze=False)
    axes_flat = axes.flatten()

    for r, region in enumerate(regions):
        ax = axes_flat[r]
        m = data["region_idx"] == r
        year = data["year"][m]
        ax.axhspan(-2, 2, color="lightgray", alpha=0.4, lw=0)
        ax.axhline(0, color="black", lw=0.6)
        ax.plot(year, resid[m], "o-", color=color, ms=3, lw=0.6, alpha=0.8)
        outside = np.abs(resid[m]) > 2
        ax.scatter(year[outside], resid[m][outside], s=14, c="red", zorder=5)
        ax.set_title(region, fontsize=9)
        ax.tick_params(labelsize=7)

    for idx in range(len(regions), len(axes_flat)):
        axes_flat[idx].set_visible(False)

    suffix = " (AR(1)-filtered)" if fit.variant.residuals == "ar1" else ""
    fig.suptitle(
        f"Standardised Residuals by Region{suffix}: {fit.variant.label}",
        fontsize=13, fontweight="bold",
    )
    plt.tight_layout()
    return save_figure(fig, output_dir, f"{fit.variant.name}_residuals.png")

