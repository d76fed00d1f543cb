"""Tests for arctic_ice.comparison — PSIS-LOO and ELPD ranking."""

import logging

import arviz as az
import matplotlib

matplotlib.use('Agg')

import numpy as np
import polars as pl
import pytest

from arctic_ice.comparison import (
    compare_models,
    compute_loo,
    elpd_difference,
    plot_comparison,
    plot_pareto_k,
    print_comparison,
)
from arctic_ice.config import get_variant
from arctic_ice.diagnostics import FitDiagnostics
from arctic_ice.sampling import FitResult

N_OBS = 40


def _data() -> dict:
    return {
        'region_labels': [f'R{i % 4}' for i in range(N_OBS)],
        'year': np.array([2000 + i // 4 for i in range(N_OBS)]),
    }


def _fit(name: str, ll: np.ndarray, seed: int = 0) -> FitResult:
    """A FitResult carrying only posterior and pointwise log-likelihood draws."""
    rng = np.random.default_rng(seed)
    idata = az.from_dict(
        posterior={'theta': rng.normal(size=ll.shape[:2])},
        log_likelihood={'LogValue': ll},
    )
    return FitResult(variant=get_variant(name), model=None, idata=idata,
                     diagnostics=FitDiagnostics())


def _loglik(center: float, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return center + 0.05 * rng.normal(size=(2, 200, N_OBS))


@pytest.fixture
def loo_results():
    """ar1 fits the data markedly better than noar."""
    return {
        'noar': compute_loo(_fit('noar', _loglik(-2.0, 1)), _data()),
        'ar1': compute_loo(_fit('ar1', _loglik(-1.0, 2)), _data()),
    }


class TestComputeLoo:
    """Tests for compute_loo."""

    def test_fields(self, loo_results):
        res = loo_results['ar1']
        assert res.name == 'ar1'
        assert res.label == 'AR(1)'
        assert res.pareto_k.shape == (N_OBS,)
        assert res.elpd_loo == pytest.approx(-1.0 * N_OBS, abs=1.0)
        assert res.se >= 0
        assert res.flagged == []

    def test_high_pareto_k_flagged(self, caplog):
        """An observation dominated by a few draws is flagged with its Region and Year."""
        rng = np.random.default_rng(3)
        ll = _loglik(-1.0, 4)
        ll[..., 0] = -20 * rng.exponential(size=(2, 200))

        with caplog.at_level(logging.WARNING, logger='arctic_ice.comparison'):
            res = compute_loo(_fit('noar', ll), _data())

        assert res.n_high_k >= 1
        assert ('R0', 2000) in [(r, y) for r, y, _ in res.flagged]
        assert 'Pareto k' in caplog.text


class TestCompareModels:
    """Tests for compare_models and elpd_difference."""

    def test_ranking(self, loo_results):
        table = compare_models(loo_results)
        assert table['model'].to_list() == ['ar1', 'noar']
        assert table['rank'].to_list() == [0, 1]
        assert table['elpd_diff'][0] == 0.0
        assert table['elpd_diff'][1] > 0
        assert set(table.columns) == {
            'model', 'rank', 'elpd_loo', 'se', 'p_loo', 'elpd_diff', 'dse', 'warning',
        }

    def test_elpd_difference_sign(self, loo_results):
        diff, se = elpd_difference(loo_results['ar1'], loo_results['noar'])
        assert diff > 0
        assert se >= 0
        rev, rev_se = elpd_difference(loo_results['noar'], loo_results['ar1'])
        assert rev == pytest.approx(-diff)
        assert rev_se == pytest.approx(se)

    def test_difference_matches_table(self, loo_results):
        table = compare_models(loo_results)
        diff, se = elpd_difference(loo_results['ar1'], loo_results['noar'])
        assert table['elpd_diff'][1] == pytest.approx(diff)
        assert table['dse'][1] == pytest.approx(se)

    def test_single_model_rejected(self, loo_results):
        with pytest.raises(ValueError, match='at least two'):
            compare_models({'ar1': loo_results['ar1']})


class TestReportAndPlots:
    """Console output and figures for the comparison."""

    def test_print_comparison(self, loo_results, capsys):
        print_comparison(compare_models(loo_results), loo_results)
        out = capsys.readouterr().out
        assert 'APPROXIMATE LOO COMPARISON' in out
        assert 'AR(1)' in out

    def test_plots_written(self, loo_results, tmp_path):
        table = compare_models(loo_results)
        assert isinstance(table, pl.DataFrame)
        khat = plot_pareto_k(loo_results, tmp_path)
        cmp = plot_comparison(table, loo_results, tmp_path)
        assert khat.name == 'loo_khat.png'
        assert cmp.name == 'loo_comparison.png'
        assert khat.exists() and cmp.exists()
