"""Tests for arctic_ice.model — model structure and likelihood."""

import arviz as az
import numpy as np
import polars as pl
import pytest
from scipy import stats as sp_stats

from arctic_ice.config import get_variant
from arctic_ice.data import aggregate_annual, build_model_data
from arctic_ice.model import OBS_VAR, TRACE_VARS, build_model, residuals


def _make_data(n_regions: int = 3, n_years: int = 6, seed: int = 0) -> dict:
    """Synthetic log-extent panel with a common trend and region offsets."""
    rng = np.random.default_rng(seed)
    rows = []
    for r in range(n_regions):
        offset = rng.normal(0, 1)
        for year in range(2000, 2000 + n_years):
            log_value = 13.0 + offset - 0.01 * (year - 2000) + rng.normal(0, 0.05)
            rows.append((f'R{r}', year, float(np.exp(log_value))))
    df = pl.DataFrame(
        {
            'Region': [r[0] for r in rows],
            'Year': [r[1] for r in rows],
            'Value': [r[2] for r in rows],
        },
        schema={'Region': pl.Utf8, 'Year': pl.Int32, 'Value': pl.Float64},
    )
    return build_model_data(aggregate_annual(df))


def _point(model, ar: float | None = None) -> dict:
    point = model.initial_point()
    point['Intercept'] = np.array(13.0)
    point['b_Year'] = np.array(-0.01)
    point['sd_Region_log__'] = np.array(0.0)
    point['z_Region'] = np.array([0.5, -0.5, 0.0])
    point['sigma_log__'] = np.array(np.log(0.1))
    if ar is not None:
        lower, upper = -1.0, 1.0
        point['ar_interval__'] = np.array(np.log((ar - lower) / (upper - ar)))
    return point


class TestBuildModel:
    """Tests for build_model."""

    def test_iid_free_variables(self):
        model = build_model(_make_data(), get_variant('noar'))
        names = {rv.name for rv in model.free_RVs}
        assert names == {'Intercept', 'b_Year', 'sd_Region', 'z_Region', 'sigma'}
        assert [rv.name for rv in model.observed_RVs] == [OBS_VAR]

    def test_ar1_adds_coefficient(self):
        model = build_model(_make_data(), get_variant('ar1'))
        names = {rv.name for rv in model.free_RVs}
        assert names == {'Intercept', 'b_Year', 'sd_Region', 'z_Region', 'sigma', 'ar'}

    def test_region_coords(self):
        data = _make_data()
        model = build_model(data, get_variant('noar'))
        assert list(model.coords['Region']) == ['R0', 'R1', 'R2']

    def test_trace_vars_exist(self):
        data = _make_data()
        for name in ('noar', 'ar1'):
            variant = get_variant(name)
            model = build_model(data, variant)
            for var in TRACE_VARS[variant.residuals]:
                assert var in model.named_vars

    def test_initial_logp_finite(self):
        data = _make_data()
        for name in ('noar', 'ar1'):
            model = build_model(data, get_variant(name))
            logps = model.point_logps()
            assert all(np.isfinite(v) for v in logps.values())


class TestLikelihood:
    """The AR(1) likelihood against hand-computed densities."""

    def _obs_logp(self, model, point) -> float:
        fn = model.compile_logp(vars=[model[OBS_VAR]])
        return float(fn(point))

    def _mu(self, data) -> np.ndarray:
        z = np.array([0.5, -0.5, 0.0])
        return 13.0 - 0.01 * data['year_c'] + z[data['region_idx']]

    def test_iid_matches_normal(self):
        data = _make_data()
        model = build_model(data, get_variant('noar'))
        expected = sp_stats.norm.logpdf(data['y'], self._mu(data), 0.1).sum()
        assert self._obs_logp(model, _point(model)) == pytest.approx(expected)

    def test_ar1_with_zero_coefficient_equals_iid(self):
        data = _make_data()
        iid = build_model(data, get_variant('noar'))
        ar1 = build_model(data, get_variant('ar1'))
        assert self._obs_logp(ar1, _point(ar1, ar=0.0)) == pytest.approx(
            self._obs_logp(iid, _point(iid))
        )

    def test_ar1_conditional_density(self):
        """First year per Region uses the stationary sd; later years condition on the previous residual."""
        data = _make_data()
        model = build_model(data, get_variant('ar1'))
        rho, sigma = 0.5, 0.1

        y = data['y']
        mu = self._mu(data)
        prev = data['prev_idx']
        first = data['is_first']
        expected = (
            sp_stats.norm.logpdf(y[first], mu[first], sigma / np.sqrt(1 - rho**2)).sum()
            + sp_stats.norm.logpdf(
                y[~first], mu[~first] + rho * (y[prev][~first] - mu[prev][~first]), sigma
            ).sum()
        )
        assert self._obs_logp(model, _point(model, ar=rho)) == pytest.approx(expected)


class TestResiduals:
    """Tests for standardised residuals."""

    def _idata(self, data, mu, sigma, ar=None):
        n = data['N']
        posterior = {
            'mu': np.broadcast_to(mu, (2, 10, n)).copy(),
            'sigma': np.full((2, 10), sigma),
        }
        if ar is not None:
            posterior['ar'] = np.full((2, 10), ar)
        return az.from_dict(posterior=posterior)

    def test_iid_residuals(self):
        data = _make_data()
        mu = data['y'] - 0.05
        resid = residuals(self._idata(data, mu, 0.1), data, get_variant('noar'))
        np.testing.assert_allclose(resid, 0.5)

    def test_ar1_residuals_are_filtered(self):
        data = _make_data()
        mu = data['y'] - 0.05  # constant raw residual of 0.05
        resid = residuals(self._idata(data, mu, 0.1, ar=0.6), data, get_variant('ar1'))

        first = data['is_first']
        np.testing.assert_allclose(resid[first], 0.05 * np.sqrt(1 - 0.36) / 0.1)
        np.testing.assert_allclose(resid[~first], (0.05 - 0.6 * 0.05) / 0.1)
