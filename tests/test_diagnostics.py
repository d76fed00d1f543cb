"""Tests for arctic_ice.diagnostics and residual plots on synthetic draws."""

import logging

import arviz as az
import matplotlib

matplotlib.use('Agg')

import numpy as np
import polars as pl

from arctic_ice.checks import plot_residuals
from arctic_ice.config import get_variant
from arctic_ice.data import aggregate_annual, build_model_data
from arctic_ice.diagnostics import FitDiagnostics, check_convergence, plot_divergences
from arctic_ice.model import TRACE_VARS
from arctic_ice.sampling import FitResult

SHAPE = (2, 150)


def _idata(variant_name: str, n_divergent: int = 0, seed: int = 0) -> az.InferenceData:
    rng = np.random.default_rng(seed)
    variant = get_variant(variant_name)
    diverging = np.zeros(SHAPE, dtype=bool)
    diverging[0, :n_divergent] = True
    return az.from_dict(
        posterior={name: rng.normal(size=SHAPE) for name in TRACE_VARS[variant.residuals]},
        sample_stats={'diverging': diverging, 'tree_depth': np.full(SHAPE, 4)},
    )


def _fit(variant_name: str, idata: az.InferenceData) -> FitResult:
    return FitResult(variant=get_variant(variant_name), model=None, idata=idata,
                     diagnostics=FitDiagnostics())


class TestCheckConvergence:
    """Tests for check_convergence."""

    def test_divergences_recorded_not_raised(self, caplog):
        with caplog.at_level(logging.WARNING, logger='arctic_ice.diagnostics'):
            diag = check_convergence(_idata('noar', n_divergent=5), TRACE_VARS['iid'], label='No AR')
        assert diag.n_divergences == 5
        assert diag.max_tree_depth == 4
        assert not diag.converged
        assert any('5 divergent transitions' in w for w in diag.warnings)
        assert '[No AR]' in caplog.text

    def test_stuck_chain_flags_rhat(self):
        rng = np.random.default_rng(1)
        posterior = {name: rng.normal(size=SHAPE) for name in TRACE_VARS['iid']}
        posterior['sigma'][1] += 10.0
        idata = az.from_dict(
            posterior=posterior,
            sample_stats={'diverging': np.zeros(SHAPE, dtype=bool)},
        )
        diag = check_convergence(idata, TRACE_VARS['iid'])
        assert 'sigma' in diag.rhat_bad


class TestPlotDivergences:
    """Tests for plot_divergences."""

    def test_no_divergences_writes_nothing(self, tmp_path):
        assert plot_divergences(_fit('noar', _idata('noar')), tmp_path) is None
        assert list(tmp_path.iterdir()) == []

    def test_pair_plot_written(self, tmp_path):
        path = plot_divergences(_fit('ar1', _idata('ar1', n_divergent=7)), tmp_path)
        assert path.name == 'ar1_divergences.png'
        assert path.exists()


class TestPlotResiduals:
    def test_one_panel_per_region(self, tmp_path):
        df = pl.DataFrame(
            {
                'Region': ['A'] * 4 + ['B'] * 4,
                'Year': [2000, 2001, 2002, 2003] * 2,
                'Value': [1.0, 1.1, 0.9, 1.2, 2.0, 2.1, 2.3, 1.9],
            },
            schema={'Region': pl.Utf8, 'Year': pl.Int32, 'Value': pl.Float64},
        )
        data = build_model_data(aggregate_annual(df))
        idata = az.from_dict(posterior={
            'mu': np.broadcast_to(data['y'] - 0.02, (2, 10, data['N'])).copy(),
            'sigma': np.full((2, 10), 0.01),
            'ar': np.full((2, 10), 0.3),
        })
        path = plot_residuals(_fit('ar1', idata), data, tmp_path)
        assert path.name == 'ar1_residuals.png'
        assert path.exists()
