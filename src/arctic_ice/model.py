# ---------------------------------------------------------------------------
# arctic_ice.model — PyMC model specification
# ---------------------------------------------------------------------------
"""Hierarchical regression of log sea-ice extent on Year with per-Region
intercepts, and an optional AR(1) residual process within each Region."""

from __future__ import annotations

import numpy as np
import pymc as pm
import pytensor.tensor as pt

from .config import ModelVariant

# Parameters of interest for summaries and trace plots, per residual structure
TRACE_VARS: dict[str, list[str]] = {
    "iid": ["Intercept", "b_Year", "sd_Region", "sigma"],
    "ar1": ["Intercept", "b_Year", "sd_Region", "sigma", "ar"],
}

OBS_VAR = "LogValue"


def build_model(data: dict, variant: ModelVariant) -> pm.Model:
    """Build the PyMC model for one variant.

    Parameters
    ----------
    data : dict
        Output of :func:`arctic_ice.data.build_model_data`.
    variant : ModelVariant
        Supplies the priors and the residual structure.

    Structure
    ---------
    ``LogValue_i = Intercept + b_Year·year_c_i + r_Region[region_i] + e_i``

    with ``r_Region = sd_Region · z_Region`` (non-centred) and Year centred
    on its sample mean, so ``Intercept`` is the population log extent at
    the mean year.

    * ``iid``:  ``e_i ~ N(0, sigma)``.
    * ``ar1``:  ``e_i = ar·e_{i-1} + ε_i`` within each Region ordered by
      Year; the first residual of each Region takes the stationary
      variance ``sigma² / (1 − ar²)``.
    """
    priors = variant.priors
    region_idx = data["region_idx"]
    y = data["y"]
    coords = {"Region": data["regions"], "obs_id": np.arange(data["N"])}

    with pm.Model(coords=coords) as model:

        # =============================================================
        # Population-level (fixed) effects
        # =============================================================

        intercept = priors["Intercept"].to_distribution("Intercept")
        b_year = priors["b"].to_distribution("b_Year")

        # =============================================================
        # Group-level (random) intercepts by Region
        # =============================================================

        sd_region = priors["sd"].to_distribution("sd_Region")
        z_region = pm.Normal("z_Region", 0.0, 1.0, dims="Region")
        r_region = pm.Deterministic("r_Region", sd_region * z_region, dims="Region")

        sigma = priors["sigma"].to_distribution("sigma")

        mu = intercept + b_year * data["year_c"] + r_region[region_idx]
        pm.Deterministic("mu", mu, dims="obs_id")

        # =============================================================
        # Likelihood
        # =============================================================

        if variant.residuals == "iid":
            pm.Normal(OBS_VAR, mu=mu, sigma=sigma, observed=y, dims="obs_id")

        elif variant.residuals == "ar1":
            ar = priors["ar"].to_distribution("ar")

            prev_idx = data["prev_idx"]
            first = data["is_first"].astype(float)
            y_prev = pt.as_tensor_variable(y[prev_idx])

            # Conditional on the previous year's residual in the same Region
            mu_cond = mu + ar * (1.0 - first) * (y_prev - mu[prev_idx])
            sigma_cond = sigma * (first / pt.sqrt(1.0 - ar**2) + (1.0 - first))
            pm.Normal(OBS_VAR, mu=mu_cond, sigma=sigma_cond, observed=y, dims="obs_id")

        else:
            raise ValueError(f"Unknown residual structure {variant.residuals!r}")

    return model


def residuals(idata, data: dict, variant: ModelVariant) -> np.ndarray:
    """Standardised residuals at posterior means.

    For ``ar1`` the residuals are AR-filtered (innovations), so both
    variants should look like iid N(0, 1) draws when well specified.
    """
    post = idata.posterior
    mu = post["mu"].values.mean(axis=(0, 1))
    sigma = float(post["sigma"].values.mean())
    u = data["y"] - mu

    if variant.residuals == "ar1":
        ar = float(post["ar"].values.mean())
        first = data["is_first"]
        resid = np.empty_like(u)
        resid[first] = u[first] * np.sqrt(1 - ar**2) / sigma
        rest = ~first
        resid[rest] = (u[rest] - ar * u[data["prev_idx"][rest]]) / sigma
        return resid

    return u / sigma
