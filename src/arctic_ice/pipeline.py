# ---------------------------------------------------------------------------
# arctic_ice.pipeline — End-to-end analysis run
# ---------------------------------------------------------------------------
"""Load → explore → fit both variants → diagnose → compare → report."""

from __future__ import annotations

import logging
from pathlib import Path

from .checks import plot_residuals, run_posterior_predictive_check, run_prior_predictive_check
from .comparison import (
    LooResult,
    compare_models,
    compute_loo,
    plot_comparison,
    plot_pareto_k,
    print_comparison,
    print_loo,
)
from .config import OUTPUT_DIR, VARIANTS, ModelVariant
from .data import build_model_data, load_panel
from .diagnostics import plot_divergences, plot_trace, print_diagnostics
from .exploratory import plot_exploratory, print_summaries
from .model import build_model
from .plots import plot_fitted_trends, plot_region_effects
from .report import print_caveats, save_idata, write_tables
from .sampling import FitResult, fit_variant

logger = logging.getLogger(__name__)


def analyse_variant(
    data: dict,
    variant: ModelVariant,
    output_dir: Path = OUTPUT_DIR,
    sampler_kwargs: dict | None = None,
    prior_checks: bool = True,
) -> tuple[FitResult, dict, LooResult]:
    """Every per-variant stage: prior check, fit, diagnostics, PPC, plots, LOO.

    Errors propagate; :func:`run_analysis` decides what a failure means
    for the rest of the run.
    """
    if prior_checks:
        run_prior_predictive_check(build_model(data, variant), data, variant, output_dir)

    fit = fit_variant(data, variant, sampler_kwargs)

    print_diagnostics(fit)
    plot_trace(fit, output_dir)
    plot_divergences(fit, output_dir)
    ppc = run_posterior_predictive_check(fit, data, output_dir)
    plot_residuals(fit, data, output_dir)
    plot_fitted_trends(fit, data, output_dir)

    return fit, ppc, compute_loo(fit, data)


def run_analysis(
    data_path: str | Path | None = None,
    output_dir: Path = OUTPUT_DIR,
    sampler_kwargs: dict | None = None,
    variants: list[ModelVariant] | None = None,
    prior_checks: bool = True,
    save_posteriors: bool = True,
) -> dict:
    """Run the full sea-ice analysis.

    Input errors (missing columns, malformed dates, no extent rows) raise
    before any artifact is written.  Any failure inside one variant's
    stages is logged, that variant maps to ``None`` in ``fits`` and is
    listed among the caveats; the other variants carry on.  The
    comparison needs at least two variants that made it through.

    Returns
    -------
    dict
        ``panel``, ``tables``, ``fits``, ``ppc``, ``loo``,
        ``comparison`` (None when fewer than two variants succeeded) and
        ``caveats``.
    """
    if variants is None:
        variants = VARIANTS
    output_dir = Path(output_dir)

    # 1. Data ------------------------------------------------------------------
    panel = load_panel(data_path)
    data = build_model_data(panel)
    output_dir.mkdir(parents=True, exist_ok=True)

    # 2. Exploratory analysis --------------------------------------------------
    tables = print_summaries(panel)
    write_tables(output_dir, panel=panel, **tables)
    plot_exploratory(panel, output_dir)

    # 3. Per-variant: prior check, fit, diagnostics, PPC, LOO ------------------
    fits: dict[str, FitResult | None] = {}
    ppc: dict[str, dict] = {}
    loo_results: dict[str, LooResult] = {}
    for variant in variants:
        try:
            fit, ppc_stats, loo = analyse_variant(
                data, variant, output_dir, sampler_kwargs, prior_checks
            )
        except Exception:
            logger.exception(f"{variant.label} model failed; continuing without it")
            fits[variant.name] = None
            continue
        fits[variant.name] = fit
        ppc[variant.name] = ppc_stats
        loo_results[variant.name] = loo

    ok = {name: fit for name, fit in fits.items() if fit is not None}
    if ok:
        plot_region_effects(ok, output_dir)

    # 4. LOO-CV comparison -----------------------------------------------------
    comparison = None
    if loo_results:
        print_loo(loo_results)
        plot_pareto_k(loo_results, output_dir)
    if len(loo_results) >= 2:
        comparison = compare_models(loo_results)
        print_comparison(comparison, loo_results)
        plot_comparison(comparison, loo_results, output_dir)
        write_tables(output_dir, loo_comparison=comparison)
    else:
        logger.warning(
            f"Only {len(loo_results)} variant(s) fitted successfully; skipping LOO comparison"
        )

    # 5. Archive & caveats -----------------------------------------------------
    if save_posteriors:
        for fit in ok.values():
            save_idata(fit, output_dir)
    caveats = print_caveats(fits, loo_results)

    print("\n" + "=" * 72)
    print("arctic_ice analysis complete.")
    print("=" * 72)

    return dict(
        panel=panel,
        tables=tables,
        fits=fits,
        ppc=ppc,
        loo=loo_results,
        comparison=comparison,
        caveats=caveats,
    )
