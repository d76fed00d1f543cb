# ---------------------------------------------------------------------------
# arctic_ice.config — Paths, priors, model variants and diagnostic thresholds
# ---------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import pymc as pm

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
DATA_DIR = BASE_DIR / "data"
OUTPUT_DIR = BASE_DIR / "output"
DATA_FILE = "combined_sea_ice_area_extent.csv"

# ---------------------------------------------------------------------------
# Data constants
# ---------------------------------------------------------------------------

METRIC = "extent"
DATE_FORMAT = "%Y-%m-%d"
REQUIRED_COLUMNS = ("Date", "Metric", "Region", "Value")
DROP_COLUMNS = ("Month", "MonthNum")

# ---------------------------------------------------------------------------
# Diagnostic thresholds
# ---------------------------------------------------------------------------

PARETO_K_THRESHOLD = 0.7  # PSIS-LOO estimate unreliable above this
PARETO_K_WARN = 0.5
RHAT_THRESHOLD = 1.01
ESS_THRESHOLD = 400

# Plot colours, one per variant
VARIANT_COLORS = {
    "noar": "steelblue",
    "ar1": "darkorange",
}
FIG_DPI = 150

# ---------------------------------------------------------------------------
# Prior specification
# ---------------------------------------------------------------------------

# Distributions accepted as priors.  All are proper (integrate to one);
# Flat / HalfFlat are excluded.
PROPER_DISTRIBUTIONS = frozenset({
    "Normal",
    "HalfNormal",
    "StudentT",
    "HalfStudentT",
    "Cauchy",
    "HalfCauchy",
    "Exponential",
    "Gamma",
    "InverseGamma",
    "TruncatedNormal",
    "Beta",
    "Uniform",
})


@dataclass(frozen=True)
class PriorSpec:
    """A named, proper prior distribution for one parameter class.

    Parameters
    ----------
    distribution : str
        Name of a PyMC distribution class (e.g. ``'Normal'``).  Must be
        one of :data:`PROPER_DISTRIBUTIONS`.
    params : dict
        Keyword arguments for the distribution (e.g. ``{'mu': 0, 'sigma': 5}``).
    """

    distribution: str
    params: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.distribution not in PROPER_DISTRIBUTIONS:
            raise ValueError(
                f"Prior distribution {self.distribution!r} is not an accepted proper prior; "
                f"choose one of {sorted(PROPER_DISTRIBUTIONS)}"
            )

    def to_distribution(self, name: str, **kwargs):
        """Register this prior as a random variable inside the active model."""
        dist_cls = getattr(pm, self.distribution)
        return dist_cls(name, **self.params, **kwargs)

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.distribution}({args})"


# Explicit, proper priors for the shared hierarchical structure.
# Exponential(0.1) matches a rate of 0.1 (mean 10) on the scale parameters.
COMMON_PRIORS: dict[str, PriorSpec] = {
    "Intercept": PriorSpec("Normal", {"mu": 0.0, "sigma": 5.0}),
    "b": PriorSpec("Normal", {"mu": 0.0, "sigma": 2.0}),
    "sigma": PriorSpec("Exponential", {"lam": 0.1}),
    "sd": PriorSpec("Exponential", {"lam": 0.1}),
}

# AR(1) coefficient: centred on zero, truncated to the stationary region
AR_PRIOR = PriorSpec(
    "TruncatedNormal", {"mu": 0.0, "sigma": 0.5, "lower": -1.0, "upper": 1.0}
)

REQUIRED_PRIORS = {
    "iid": ("Intercept", "b", "sigma", "sd"),
    "ar1": ("Intercept", "b", "sigma", "sd", "ar"),
}


# ---------------------------------------------------------------------------
# Model variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelVariant:
    """Specification for one competing model structure.

    Both variants share the fixed effect of Year and the per-Region random
    intercept; they differ only in the residual structure.  Downstream
    fitting, diagnostics and comparison never branch on anything but
    ``residuals``.

    Parameters
    ----------
    name : str
        Short identifier used in file names and comparison tables.
    label : str
        Display name for plots and reports.
    residuals : ``'iid'`` | ``'ar1'``
        Residual structure: independent Gaussian, or AR(1) within Region
        ordered by Year.
    priors : dict[str, PriorSpec]
        One entry per parameter class in ``REQUIRED_PRIORS[residuals]``.
    """

    name: str
    label: str
    residuals: Literal["iid", "ar1"]
    priors: dict[str, PriorSpec]

    def __post_init__(self) -> None:
        if self.residuals not in REQUIRED_PRIORS:
            raise ValueError(f"Unknown residual structure {self.residuals!r}")
        missing = set(REQUIRED_PRIORS[self.residuals]) - set(self.priors)
        if missing:
            raise ValueError(
                f"Variant {self.name!r} is missing priors for: {sorted(missing)}"
            )


# ---------------------------------------------------------------------------
# Active variants: edit here to add/remove model structures
# ---------------------------------------------------------------------------

VARIANTS: list[ModelVariant] = [
    ModelVariant(
        name="noar",
        label="No AR",
        residuals="iid",
        priors=dict(COMMON_PRIORS),
    ),
    ModelVariant(
        name="ar1",
        label="AR(1)",
        residuals="ar1",
        priors={**COMMON_PRIORS, "ar": AR_PRIOR},
    ),
]


def get_variant(name: str) -> ModelVariant:
    """Look up an active variant by name."""
    for variant in VARIANTS:
        if variant.name == name:
            return variant
    raise KeyError(f"Unknown model variant {name!r}; available: {[v.name for v in VARIANTS]}")
