# ---------------------------------------------------------------------------
# arctic_ice.plots — Fitted trends, region effects, and figure helpers
# ---------------------------------------------------------------------------
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import arviz as az
import matplotlib.pyplot as plt
import numpy as np

from .config import FIG_DPI, OUTPUT_DIR, VARIANT_COLORS

if TYPE_CHECKING:
    from .sampling import FitResult


# =========================================================================
# Fitted trends by Region
# =========================================================================


def plot_fitted_trends(fit: FitResult, data: dict, output_dir: Path = OUTPUT_DIR) -> Path:
    """Posterior mean regression line with 80% band vs observed log extent."""
    mu_post = fit.idata.posterior["mu"].values  # (chains, draws, N)
    mu_mean = mu_post.mean(axis=(0, 1))
    mu_lo = np.percentile(mu_post, 10, axis=(0, 1))
    mu_hi = np.percentile(mu_post, 90, axis=(0, 1))

    regions = data["regions"]
    color = VARIANT_COLORS.get(fit.variant.name, "steelblue")
    n_cols = 4
    n_rows = (len(regions) + n_cols - 1) // n_cols
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(16, 3 * n_rows), squeeze=False)
    axes_flat = axes.flatten()

    for r, region in enumerate(regions):
        ax = axes_flat[r]
        m = data["region_idx"] == r
        year = data["year"][m]
        ax.fill_between(year, mu_lo[m], mu_hi[m], alpha=0.25, color=color, label="80% CI")
        ax.plot(year, mu_mean[m], color=color, lw=1.5, label="Posterior mean")
        ax.scatter(year, data["y"][m], s=8, c="black", alpha=0.7, label="Observed", zorder=5)
        ax.set_title(region, fontsize=9)
        ax.tick_params(labelsize=7)

    axes_flat[0].legend(fontsize=7)
    for idx in range(len(regions), len(axes_flat)):
        axes_flat[idx].set_visible(False)

    fig.suptitle(
        f"Fitted log(Sea Ice Extent): {fit.variant.label} Model",
        fontsize=13,
        fontweight="bold",
    )
    plt.tight_layout()
    return save_figure(fig, output_dir, f"{fit.variant.name}_fitted_trends.png")


# =========================================================================
# Region effects across variants
# =========================================================================


def plot_region_effects(fits: dict[str, FitResult], output_dir: Path = OUTPUT_DIR) -> Path:
    """Forest plot of per-Region intercept offsets, one row set per variant."""
    names = list(fits)
    axes = az.plot_forest(
        [fits[n].idata for n in names],
        model_names=[fits[n].variant.label for n in names],
        var_names=["r_Region"],
        combined=True,
        hdi_prob=0.80,
        figsize=(9, 8),
    )
    fig = np.asarray(axes).ravel()[0].figure
    fig.suptitle("Region Intercept Offsets (80% HDI)", fontsize=13, fontweight="bold")
    return save_figure(fig, output_dir, "region_effects.png")


# =========================================================================
# Helpers
# =========================================================================


def save_figure(fig, output_dir: Path, filename: str) -> Path:
    """Save *fig* under *output_dir* (created if absent) and close it."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    fig.savefig(path, dpi=FIG_DPI, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {path}")
    return path
