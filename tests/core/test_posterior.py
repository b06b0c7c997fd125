"""Unit tests for the posterior mean of the lift."""

import pytest
import numpy as np
from scipy import integrate, stats
from experiment_value.core.distributions import NormalPrior, StudentTPrior, UniformPrior
from experiment_value.core.posterior import (
    grid_posterior_mean,
    normal_posterior,
    posterior_mean,
    shrinkage_weight,
)
from experiment_value.core.truncation import effective_prior


class TestNormalPosterior:
    """Tests for the conjugate Normal update."""

    def test_shrinkage(self):
        """Test equal prior and sampling variance halve the observation."""
        assert shrinkage_weight(0.05, 0.05) == pytest.approx(0.5)
        assert posterior_mean(0.02, 0.05, NormalPrior(0.0, 0.05)) == pytest.approx(0.01)

    def test_posterior_std(self):
        """Test the posterior sd is sigma * SE / sqrt(sigma^2 + SE^2)."""
        _, post_std = normal_posterior(0.0, 0.03, 0.0, 0.04)
        assert post_std == pytest.approx(0.024)

    def test_vectorised(self):
        """Test array input keeps its shape."""
        result = posterior_mean(np.array([0.02, -0.01]), 0.05, NormalPrior(0.0, 0.05))
        assert result.shape == (2,)
        assert np.allclose(result, [0.01, -0.005])

    def test_perfect_information(self):
        """Test SE = 0 returns the observation."""
        assert posterior_mean(0.037, 0.0, NormalPrior(0.0, 0.05)) == 0.037

    def test_point_mass_ignores_data(self):
        """Test a point-mass prior returns its location."""
        assert posterior_mean(0.5, 0.01, NormalPrior(0.02, 0.0)) == 0.02

    def test_truncated_normal_posterior(self):
        """Test a truncated prior gives a posterior mean at or above -1."""
        prior = NormalPrior(-0.9, 0.2)
        result = posterior_mean(np.array([-1.5, -1.0, -0.8]), 0.1, prior)
        assert np.all(result >= -1.0)
        post_mean, post_std = normal_posterior(-1.5, 0.1, -0.9, 0.2)
        reference = stats.truncnorm.mean((-1 - post_mean) / post_std, np.inf, loc=post_mean, scale=post_std)
        assert result[0] == pytest.approx(reference, rel=1e-8)

    def test_unknown_prior(self):
        """Test TypeError for a non-prior."""
        with pytest.raises(TypeError):
            posterior_mean(0.0, 0.05, "normal")


class TestUniformPosterior:
    """Tests for the Uniform prior posterior."""

    def test_inside_support(self):
        """Test observations deep inside the support are barely moved."""
        result = posterior_mean(0.0, 0.001, UniformPrior(-0.1, 0.1))
        assert result == pytest.approx(0.0, abs=1e-12)

    def test_observation_outside_support(self):
        """Test posterior mean stays inside the support."""
        result = posterior_mean(np.array([-0.5, 0.5]), 0.02, UniformPrior(-0.1, 0.1))
        assert -0.1 <= result[0] < -0.08
        assert 0.08 < result[1] <= 0.1

    def test_matches_truncnorm(self):
        """Test against N(L_hat, SE) truncated to the support."""
        result = posterior_mean(0.07, 0.05, UniformPrior(-0.1, 0.1))
        reference = stats.truncnorm.mean((-0.1 - 0.07) / 0.05, (0.1 - 0.07) / 0.05, loc=0.07, scale=0.05)
        assert result == pytest.approx(reference, rel=1e-9)


class TestStudentTPosterior:
    """Tests for the grid posterior."""

    def test_large_df_approaches_normal(self):
        """Test a t prior with many degrees of freedom behaves like a Normal prior."""
        l_hat = np.array([-0.05, 0.0, 0.03, 0.08])
        t_result = posterior_mean(l_hat, 0.03, StudentTPrior(0.01, 0.05, 1e6))
        normal_result = posterior_mean(l_hat, 0.03, NormalPrior(0.01, 0.05))
        assert np.allclose(t_result, normal_result, atol=1e-4)

    def test_heavy_tails_shrink_outliers_less(self):
        """Test a far observation is shrunk less under a heavy-tailed prior."""
        l_hat = 0.3
        t_mean = posterior_mean(l_hat, 0.03, StudentTPrior(0.0, 0.05, 3))
        normal_mean = posterior_mean(l_hat, 0.03, NormalPrior(0.0, 0.05))
        assert t_mean > normal_mean

    def test_matches_quadrature(self):
        """Test the grid posterior against adaptive quadrature."""
        prior = StudentTPrior(0.0, 0.05, 4)
        l_hat, se = 0.04, 0.03

        def weight(x):
            return stats.t.pdf(x, prior.df, loc=prior.mu_L, scale=prior.sigma_L) * stats.norm.pdf(l_hat, x, se)

        numerator, _ = integrate.quad(lambda x: x * weight(x), -1, 1, points=[l_hat])
        denominator, _ = integrate.quad(weight, -1, 1, points=[l_hat])
        grid = posterior_mean(l_hat, se, prior, grid_size=2000)
        assert grid == pytest.approx(numerator / denominator, abs=1e-5)

    def test_extreme_observation_follows_data(self):
        """Test observations far beyond the prior window pull a heavy-tailed posterior with them."""
        prior = StudentTPrior(0.0, 0.05, 3)
        result = posterior_mean(np.array([-50.0, 50.0]), 0.001, prior)
        assert np.all(np.isfinite(result))
        eff = effective_prior(prior)
        assert result[1] > float(eff.quantile(1 - 1e-6))
        assert result == pytest.approx([-50.0, 50.0], abs=1e-4)

    def test_extreme_observation_below_bound(self):
        """Test a truncated t prior maps observations far below -100% to the bound."""
        result = posterior_mean(np.array([-50.0]), 0.01, StudentTPrior(-0.7, 0.3, 4))
        assert result[0] == -1.0

    def test_chunked_rows(self):
        """Test more rows than one chunk are all filled."""
        l_hat = np.linspace(-0.1, 0.1, 5000)
        result = grid_posterior_mean(l_hat, 0.02, effective_prior(StudentTPrior(0.0, 0.05, 5)), 100)
        assert result.shape == (5000,)
        assert np.all(np.isfinite(result))
        assert np.all(np.diff(result) >= -1e-9)

    def test_truncated_student_t(self):
        """Test posterior means for a truncated t prior respect the -1 bound."""
        prior = StudentTPrior(-0.7, 0.3, 4)
        result = posterior_mean(np.array([-1.4, -1.0, -0.6]), 0.1, prior)
        assert np.all(result >= -1.0)
