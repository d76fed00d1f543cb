# ---------------------------------------------------------------------------
# arctic_ice.report — Tabular artifacts, posterior archives, run caveats
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl

from .config import OUTPUT_DIR

if TYPE_CHECKING:
    from .comparison import LooResult
    from .sampling import FitResult

logger = logging.getLogger(__name__)


def write_tables(output_dir: Path = OUTPUT_DIR, **tables: pl.DataFrame) -> list[Path]:
    """Write each table to ``<output_dir>/<name>.csv``."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, table in tables.items():
        path = output_dir / f"{name}.csv"
        table.write_csv(path)
        paths.append(path)
        print(f"Saved: {path}")
    return paths


def save_idata(fit: FitResult, output_dir: Path = OUTPUT_DIR) -> Path:
    """Archive the posterior (and any predictive groups) as netCDF."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{fit.variant.name}_idata.nc"
    fit.idata.to_netcdf(str(path))
    print(f"InferenceData saved to {path}")
    return path


def print_caveats(
    fits: dict[str, FitResult | None],
    loo_results: dict[str, LooResult] | None = None,
) -> list[str]:
    """Summarise every non-fatal problem found during the run.

    Returns the caveat lines so callers can include them in other reports.
    """
    lines: list[str] = []
    for name, fit in fits.items():
        if fit is None:
            lines.append(f"{name}: model failed to fit; no results for this variant")
            continue
        lines.extend(fit.diagnostics.warnings)
    for res in (loo_results or {}).values():
        if res.n_high_k:
            lines.append(
                f"[{res.label}] {res.n_high_k} observations with unreliable LOO (high Pareto k)"
            )

    print("\n" + "=" * 72)
    print("CAVEATS")
    print("=" * 72)
    if lines:
        for line in lines:
            print(f"  - {line}")
    else:
        print("  None: all fits converged and all LOO estimates are reliable.")
    return lines
