"""Tests for the Cost of Delay calculator."""

import pytest
from experiment_value.decision.cost_of_delay import calculate_cost_of_delay
from experiment_value.types import CoDInputs


def cod_for(mu, threshold=0.0, K=5_000_000, days=14, fraction=0.5, latency=7):
    return calculate_cost_of_delay(CoDInputs(
        K=K,
        mu_L=mu,
        threshold_L=threshold,
        test_duration_days=days,
        variant_fraction=fraction,
        decision_latency_days=latency,
    ))


class TestCostOfDelay:
    """Tests for the delay cost of a ship default."""

    def test_known_value(self):
        """Test K=$5M, mu=2%, half traffic, 14 + 7 days gives about $2,877."""
        result = cod_for(0.02)
        assert result.cod_applies
        assert result.daily_opportunity_cost == pytest.approx(5_000_000 * 0.02 * 0.5 / 365)
        assert result.cod_dollars == pytest.approx(2876.71, abs=0.01)

    def test_dont_ship_default_has_no_cost(self):
        """Test a don't-ship default costs nothing to delay."""
        result = cod_for(0.0, threshold=0.05)
        assert result.cod_dollars == 0.0
        assert result.daily_opportunity_cost == 0.0
        assert not result.cod_applies

    def test_zero_k(self):
        """Test K = 0 costs nothing."""
        result = cod_for(0.02, K=0.0)
        assert result.cod_dollars == 0.0
        assert not result.cod_applies

    def test_scales_with_delay(self):
        """Test cost is linear in test plus latency days."""
        assert cod_for(0.02, days=28, latency=14).cod_dollars == pytest.approx(2 * cod_for(0.02).cod_dollars)

    def test_no_latency(self):
        """Test latency defaults to zero."""
        result = calculate_cost_of_delay(CoDInputs(
            K=5_000_000, mu_L=0.02, threshold_L=0.0, test_duration_days=14, variant_fraction=0.5,
        ))
        assert result.cod_dollars == pytest.approx(5_000_000 * 0.02 * 0.5 * 14 / 365)

    def test_accept_loss_threshold_has_positive_cost(self):
        """Test a ship default with T < mu_L < 0 costs the gain over the threshold."""
        result = cod_for(-0.01, threshold=-0.02)
        assert result.cod_applies
        assert result.cod_dollars > 0
        assert result.daily_opportunity_cost == pytest.approx(5_000_000 * 0.01 * 0.5 / 365)

    def test_mean_at_threshold_has_no_cost(self):
        """Test mu_L == T ships but has no expected gain to forgo."""
        result = cod_for(0.03, threshold=0.03)
        assert result.cod_dollars == 0.0
        assert not result.cod_applies

    def test_positive_whenever_ship_and_nonzero_mean(self):
        """Test cost is positive for every ship default with mu_L != 0 and mu_L > T."""
        for mu, threshold in [(0.02, 0.0), (0.05, 0.01), (-0.01, -0.05), (-0.3, -0.5)]:
            assert cod_for(mu, threshold=threshold).cod_dollars > 0

    def test_invalid_inputs(self):
        """Test negative durations and fractions outside [0, 1] are rejected."""
        with pytest.raises(ValueError, match="Durations"):
            cod_for(0.02, days=-1)
        with pytest.raises(ValueError, match="variant_fraction"):
            cod_for(0.02, fraction=1.5)
