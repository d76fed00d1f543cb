# ---------------------------------------------------------------------------
# arctic_ice — Hierarchical Bayesian analysis of Arctic sea-ice extent
# ---------------------------------------------------------------------------
"""Annual regional sea-ice extent panel, exploratory summaries, and a LOO
comparison of hierarchical models with and without AR(1) residuals."""

from .comparison import LooResult, compare_models, compute_loo, elpd_difference
from .config import (
    BASE_DIR,
    DATA_DIR,
    OUTPUT_DIR,
    VARIANTS,
    ModelVariant,
    PriorSpec,
    get_variant,
)
from .data import (
    PANEL_SCHEMA,
    DataError,
    EmptyDatasetError,
    MissingColumnsError,
    ParseError,
    aggregate_annual,
    build_model_data,
    load_panel,
    validate_panel,
)
from .exploratory import correlation_matrix, region_summary, year_summary
from .model import build_model
from .pipeline import run_analysis
from .sampling import (
    DEFAULT_SAMPLER_KWARGS,
    LIGHT_SAMPLER_KWARGS,
    FitResult,
    fit_all,
    fit_variant,
    sample_model,
)

__all__ = [
    "BASE_DIR",
    "DATA_DIR",
    "OUTPUT_DIR",
    "VARIANTS",
    "ModelVariant",
    "PriorSpec",
    "get_variant",
    "PANEL_SCHEMA",
    "DataError",
    "EmptyDatasetError",
    "MissingColumnsError",
    "ParseError",
    "aggregate_annual",
    "build_model_data",
    "load_panel",
    "validate_panel",
    "correlation_matrix",
    "region_summary",
    "year_summary",
    "build_model",
    "DEFAULT_SAMPLER_KWARGS",
    "LIGHT_SAMPLER_KWARGS",
    "FitResult",
    "fit_all",
    "fit_variant",
    "sample_model",
    "LooResult",
    "compare_models",
    "compute_loo",
    "elpd_difference",
    "run_analysis",
]
