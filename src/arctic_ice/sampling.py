# ---------------------------------------------------------------------------
# arctic_ice.sampling — MCMC sampling and per-variant fitting
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging
from dataclasses import dataclass

import arviz as az
import pymc as pm

from .config import ModelVariant
from .diagnostics import FitDiagnostics, check_convergence
from .model import TRACE_VARS, build_model

logger = logging.getLogger(__name__)

# Default sampling configuration (full production run).
# 2000 warm-up iterations are discarded; 2000 draws per chain are kept.
DEFAULT_SAMPLER_KWARGS: dict = dict(
    draws=2000,
    tune=2000,
    chains=2,
    cores=2,
    random_seed=42,
    nuts=dict(target_accept=0.99, max_treedepth=15),
    idata_kwargs=dict(log_likelihood=True),
    return_inferencedata=True,
)

# Lighter configuration for quick exploratory runs and tests
LIGHT_SAMPLER_KWARGS: dict = dict(
    draws=500,
    tune=500,
    chains=2,
    cores=1,
    random_seed=42,
    nuts=dict(target_accept=0.95, max_treedepth=12),
    idata_kwargs=dict(log_likelihood=True),
    return_inferencedata=True,
    progressbar=False,
)


@dataclass
class FitResult:
    """A fitted variant: model, posterior draws and convergence caveats."""

    variant: ModelVariant
    model: pm.Model
    idata: az.InferenceData
    diagnostics: FitDiagnostics


def sample_model(
    model: pm.Model,
    sampler_kwargs: dict | None = None,
) -> az.InferenceData:
    """Sample the model with PyMC NUTS.

    Chains are independent and run in separate processes when
    ``cores > 1``; their draws are concatenated once all have finished.

    Parameters
    ----------
    model : pm.Model
        Compiled PyMC model.
    sampler_kwargs : dict, optional
        Override the default sampling configuration.  Use
        ``LIGHT_SAMPLER_KWARGS`` for quick runs.
    """
    if sampler_kwargs is None:
        sampler_kwargs = DEFAULT_SAMPLER_KWARGS

    # pm.sample mutates the nested step kwargs
    kwargs = {
        k: dict(v) if isinstance(v, dict) else v for k, v in sampler_kwargs.items()
    }
    with model:
        idata = pm.sample(**kwargs)

    logger.info(
        f"Sampling complete: {idata.posterior.sizes['chain']} chains x "
        f"{idata.posterior.sizes['draw']} draws"
    )
    return idata


def fit_variant(
    data: dict,
    variant: ModelVariant,
    sampler_kwargs: dict | None = None,
) -> FitResult:
    """Build and sample one variant, then check convergence.

    Convergence problems (divergences, high R-hat, low ESS) are recorded
    in :attr:`FitResult.diagnostics` and logged; they never raise.
    """
    logger.info(f"Fitting {variant.label} model ({variant.residuals} residuals)")
    model = build_model(data, variant)
    idata = sample_model(model, sampler_kwargs)
    diagnostics = check_convergence(
        idata, TRACE_VARS[variant.residuals], label=variant.label
    )
    return FitResult(variant=variant, model=model, idata=idata, diagnostics=diagnostics)


def fit_all(
    data: dict,
    variants: list[ModelVariant],
    sampler_kwargs: dict | None = None,
) -> dict[str, FitResult | None]:
    """Fit every variant independently.

    Any error while building or sampling one variant (for example a bad
    prior argument or a crashed chain process) is logged with its
    traceback and that variant maps to ``None``; the remaining
    variants are still fitted and reported.
    """
    fits: dict[str, FitResult | None] = {}
    for variant in variants:
        try:
            fits[variant.name] = fit_variant(data, variant, sampler_kwargs)
        except Exception:
            logger.exception(f"{variant.label} model failed; continuing without it")
            fits[variant.name] = None
    return fits
