"""Tests for translating business inputs into K, thresholds and priors."""

import pytest
from scipy import stats
from experiment_value.core.distributions import NormalPrior, StudentTPrior, UniformPrior
from experiment_value.design import business_inputs
from experiment_value.design.business_inputs import DEFAULT_PRIOR


class TestDeriveK:
    """Tests for the dollar scale K."""

    def test_product(self):
        """Test K = N * CR0 * V."""
        assert business_inputs.derive_k(1_000_000, 0.05, 100) == pytest.approx(5_000_000)

    def test_zero_value(self):
        """Test a zero value per conversion gives K = 0."""
        assert business_inputs.derive_k(1_000_000, 0.05, 0) == 0.0

    def test_invalid_rate(self):
        """Test a conversion rate above 1 is rejected."""
        with pytest.raises(ValueError, match="baseline_conversion_rate"):
            business_inputs.derive_k(1000, 1.2, 10)


class TestNormalizeThreshold:
    """Tests for threshold normalisation to lift units."""

    def test_any_positive(self):
        """Test any-positive always maps to 0, ignoring value and unit."""
        assert business_inputs.normalize_threshold_to_lift('any-positive', 7, 'lift', 1e6) == 0.0

    def test_lift_percent(self):
        """Test 5 percent becomes 0.05."""
        assert business_inputs.normalize_threshold_to_lift('minimum-lift', 5, 'lift') == pytest.approx(0.05)

    def test_accept_loss(self):
        """Test negative lift thresholds pass through."""
        assert business_inputs.normalize_threshold_to_lift('accept-loss', -2, 'lift') == pytest.approx(-0.02)

    def test_dollars(self):
        """Test dollars are divided by K."""
        assert business_inputs.normalize_threshold_to_lift(
            'minimum-lift', 100_000, 'dollars', K=5_000_000
        ) == pytest.approx(0.02)

    def test_dollars_with_zero_k(self):
        """Test a dollar threshold with K = 0 maps to 0 instead of dividing by zero."""
        assert business_inputs.normalize_threshold_to_lift('minimum-lift', 100_000, 'dollars', K=0) == 0.0

    def test_missing_value(self):
        """Test minimum-lift without a value is rejected."""
        with pytest.raises(ValueError, match="requires a threshold value"):
            business_inputs.normalize_threshold_to_lift('minimum-lift')

    def test_unknown_scenario_and_unit(self):
        """Test unknown scenario and unit names are rejected."""
        with pytest.raises(ValueError, match="Unknown threshold scenario"):
            business_inputs.normalize_threshold_to_lift('maybe', 1, 'lift')
        with pytest.raises(ValueError, match="Unknown threshold unit"):
            business_inputs.normalize_threshold_to_lift('minimum-lift', 1, 'euros')


class TestPriorFromInterval:
    """Tests for eliciting a Normal prior from a 90% interval."""

    def test_asymmetric_interval(self):
        """Test -5% to 15% gives mu 0.05 and sigma about 0.0608."""
        prior = business_inputs.prior_from_interval(-5, 15)
        assert prior.mu_L == pytest.approx(0.05)
        assert prior.sigma_L == pytest.approx(0.0608, abs=1e-4)

    def test_default_interval_snaps_to_default_prior(self):
        """Test an interval within 0.01 points of +/-8.22% returns N(0, 0.05) exactly."""
        prior = business_inputs.prior_from_interval(-8.225, 8.215)
        assert prior is DEFAULT_PRIOR
        assert prior == NormalPrior(0.0, 0.05)

    def test_interval_covers_ninety_percent(self):
        """Test the elicited prior puts 5% of mass below the lower bound."""
        prior = business_inputs.prior_from_interval(-2, 10)
        assert stats.norm.cdf(-0.02, prior.mu_L, prior.sigma_L) == pytest.approx(0.05)

    def test_inverted_interval(self):
        """Test low >= high is rejected."""
        with pytest.raises(ValueError, match="below the upper bound"):
            business_inputs.prior_from_interval(5, 5)


class TestBuildPrior:
    """Tests for building priors by shape name."""

    def test_shapes(self):
        """Test each shape returns the matching dataclass."""
        assert business_inputs.build_prior('normal', mu_L=0.0, sigma_L=0.05) == NormalPrior(0.0, 0.05)
        assert business_inputs.build_prior('student-t', mu_L=0.0, sigma_L=0.05, df=3) == StudentTPrior(0.0, 0.05, 3)
        assert business_inputs.build_prior('uniform', low_L=-0.1, high_L=0.1) == UniformPrior(-0.1, 0.1)

    def test_missing_parameters(self):
        """Test incomplete parameters are rejected."""
        with pytest.raises(ValueError, match="requires mu_L, sigma_L and df"):
            business_inputs.build_prior('student-t', mu_L=0.0, sigma_L=0.05)

    def test_unknown_shape(self):
        """Test unknown shapes are rejected."""
        with pytest.raises(ValueError, match="Unknown prior shape"):
            business_inputs.build_prior('beta')
