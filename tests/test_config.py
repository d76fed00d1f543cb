"""Tests for arctic_ice.config — prior and variant specifications."""

import pymc as pm
import pytest

from arctic_ice.config import (
    AR_PRIOR,
    COMMON_PRIORS,
    VARIANTS,
    ModelVariant,
    PriorSpec,
    get_variant,
)


class TestPriorSpec:
    """Tests for PriorSpec."""

    def test_improper_prior_rejected(self):
        """Flat priors are not accepted."""
        with pytest.raises(ValueError, match='proper'):
            PriorSpec('Flat')
        with pytest.raises(ValueError, match='proper'):
            PriorSpec('HalfFlat')

    def test_to_distribution_registers_rv(self):
        with pm.Model() as model:
            COMMON_PRIORS['Intercept'].to_distribution('Intercept')
        assert [rv.name for rv in model.free_RVs] == ['Intercept']

    def test_str(self):
        assert str(PriorSpec('Normal', {'mu': 0, 'sigma': 5})) == 'Normal(mu=0, sigma=5)'

    def test_ar_prior_bounded_to_stationary_region(self):
        assert AR_PRIOR.distribution == 'TruncatedNormal'
        assert AR_PRIOR.params['lower'] == -1.0
        assert AR_PRIOR.params['upper'] == 1.0
        assert AR_PRIOR.params['mu'] == 0.0


class TestModelVariant:
    """Tests for ModelVariant and the active variant list."""

    def test_two_variants_registered(self):
        assert [v.name for v in VARIANTS] == ['noar', 'ar1']
        assert [v.residuals for v in VARIANTS] == ['iid', 'ar1']

    def test_shared_priors(self):
        noar, ar1 = get_variant('noar'), get_variant('ar1')
        for pclass in ('Intercept', 'b', 'sigma', 'sd'):
            assert noar.priors[pclass] == ar1.priors[pclass]
        assert 'ar' in ar1.priors
        assert 'ar' not in noar.priors

    def test_ar1_without_ar_prior_rejected(self):
        with pytest.raises(ValueError, match='ar'):
            ModelVariant('bad', 'Bad', 'ar1', dict(COMMON_PRIORS))

    def test_missing_common_prior_rejected(self):
        priors = {k: v for k, v in COMMON_PRIORS.items() if k != 'sd'}
        with pytest.raises(ValueError, match='sd'):
            ModelVariant('bad', 'Bad', 'iid', priors)

    def test_unknown_residuals_rejected(self):
        with pytest.raises(ValueError, match='residual'):
            ModelVariant('bad', 'Bad', 'ma2', dict(COMMON_PRIORS))

    def test_get_variant_unknown(self):
        with pytest.raises(KeyError):
            get_variant('ar2')
