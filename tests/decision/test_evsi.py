"""Tests for the expected value of sample information."""

import pytest
import numpy as np
from experiment_value.config import SimulationConfig
from experiment_value.core.distributions import NormalPrior, StudentTPrior, UniformPrior
from experiment_value.decision.evpi import calculate_evpi
from experiment_value.decision.evsi import (
    calculate_evsi,
    calculate_evsi_monte_carlo,
    calculate_evsi_normal_fast_path,
    degenerate_reason,
    high_rejection_warning,
    preposterior_sigma,
    simulate_decisions,
    uses_fast_path,
)
from experiment_value.types import EVPIInputs, EVSIInputs


K = 5_000_000


def make_inputs(prior, threshold=0.0, n=35_000, cr0=0.05, k=K, n_variant=None):
    return EVSIInputs(
        K=k,
        baseline_conversion_rate=cr0,
        threshold_L=threshold,
        prior=prior,
        n_control=n,
        n_variant=n if n_variant is None else n_variant,
    )


def evpi_of(inputs):
    return calculate_evpi(EVPIInputs(K=inputs.K, prior=inputs.prior, threshold_L=inputs.threshold_L))


class TestNormalFastPath:
    """Tests for the closed-form Normal EVSI."""

    def test_known_value(self):
        """Test 500,000 per arm on N(0, 0.05) gives about $98,250."""
        result = calculate_evsi_normal_fast_path(make_inputs(NormalPrior(0.0, 0.05), n=500_000))
        assert result.method == 'closed-form'
        assert result.evsi_dollars == pytest.approx(98_253, rel=1e-3)
        assert result.num_samples == 0
        assert result.probability_test_changes_decision == pytest.approx(0.5)

    def test_preposterior_sigma(self):
        """Test sigma_pre = sigma^2 / sqrt(sigma^2 + SE^2)."""
        assert preposterior_sigma(0.03, 0.04) == pytest.approx(0.018)

    def test_bounded_by_evpi(self):
        """Test 0 <= EVSI <= EVPI and EVSI approaches EVPI with huge samples."""
        small = make_inputs(NormalPrior(0.01, 0.05), threshold=0.02, n=2_000)
        huge = make_inputs(NormalPrior(0.01, 0.05), threshold=0.02, n=10**10)
        evpi = evpi_of(small).evpi_dollars
        evsi_small = calculate_evsi(small).evsi_dollars
        evsi_huge = calculate_evsi(huge).evsi_dollars
        assert 0 <= evsi_small < evsi_huge <= evpi
        assert evsi_huge == pytest.approx(evpi, rel=1e-3)

    def test_rejects_non_normal(self):
        """Test the closed form refuses other priors."""
        with pytest.raises(ValueError, match="requires a NormalPrior"):
            calculate_evsi_normal_fast_path(make_inputs(UniformPrior(-0.1, 0.1)))

    def test_rejects_truncated(self):
        """Test the closed form refuses a prior needing truncation."""
        with pytest.raises(ValueError, match="untruncated"):
            calculate_evsi_normal_fast_path(make_inputs(NormalPrior(-0.9, 0.2), threshold=-0.95))

    def test_dispatch(self):
        """Test calculate_evsi picks the closed form only for untruncated Normal priors."""
        assert uses_fast_path(make_inputs(NormalPrior(0.0, 0.05)))
        assert not uses_fast_path(make_inputs(NormalPrior(-0.9, 0.2)))
        assert not uses_fast_path(make_inputs(StudentTPrior(0.0, 0.05, 5)))
        config = SimulationConfig(num_samples=500, random_state=0)
        assert calculate_evsi(make_inputs(UniformPrior(-0.1, 0.1)), config).method == 'monte-carlo'


class TestMonteCarloEVSI:
    """Tests for the pre-posterior simulation."""

    @pytest.mark.parametrize("mu,threshold,n_per_arm,default", [
        (0.0, 0.0, 500_000, 'ship'),
        (0.0, 0.0, 5_000, 'ship'),
        (0.01, 0.0, 5_000, 'ship'),
        (0.0, 0.02, 5_000, 'dont-ship'),
    ])
    def test_agrees_with_closed_form(self, mu, threshold, n_per_arm, default):
        """Test Monte Carlo EVSI matches the closed form for precise and noisy designs."""
        inputs = make_inputs(NormalPrior(mu, 0.05), threshold=threshold, n=n_per_arm)
        closed = calculate_evsi_normal_fast_path(inputs)
        n = 20_000
        config = SimulationConfig(num_samples=n, random_state=7)
        simulated = calculate_evsi_monte_carlo(inputs, config)
        assert closed.default_decision == simulated.default_decision == default
        assert simulated.method == 'monte-carlo'
        assert simulated.num_samples == n
        assert simulated.num_rejected == 0

        # per-draw improvements from the same seed give the simulation's standard error
        draws = simulate_decisions(inputs, config)
        gain = np.where(draws.ship_with_test, K * (draws.l_true - threshold), K * (threshold - draws.l_true))
        improvement = np.where(draws.changes_decision, gain, 0.0)
        assert simulated.evsi_dollars == pytest.approx(max(improvement.mean(), 0.0))
        tolerance = max(3 * closed.evsi_dollars, 4 * improvement.std()) / np.sqrt(n)
        assert abs(simulated.evsi_dollars - closed.evsi_dollars) < tolerance

    def test_noisy_design_is_worth_less(self):
        """Test shrinkage toward the prior makes a small test worth less than a large one."""
        prior = NormalPrior(0.0, 0.05)
        config = SimulationConfig(num_samples=20_000, random_state=9)
        small = calculate_evsi_monte_carlo(make_inputs(prior, n=5_000), config).evsi_dollars
        large = calculate_evsi_monte_carlo(make_inputs(prior, n=500_000), config).evsi_dollars
        assert 0 < small < large

    def test_uniform_between_zero_and_evpi(self):
        """Test a 35,000 per arm test on Uniform(-0.1, 0.1) has 0 < EVSI < EVPI."""
        inputs = make_inputs(UniformPrior(-0.1, 0.1))
        result = calculate_evsi(inputs, SimulationConfig(num_samples=20_000, random_state=1))
        assert 0 < result.evsi_dollars < evpi_of(inputs).evpi_dollars
        assert 0 < result.probability_test_changes_decision < 1
        assert result.probability_clears_threshold == pytest.approx(0.5)

    def test_student_t_between_zero_and_evpi(self):
        """Test a heavy-tailed prior gives a bounded positive EVSI."""
        inputs = make_inputs(StudentTPrior(0.01, 0.03, 3), threshold=0.02)
        result = calculate_evsi(inputs, SimulationConfig(num_samples=5_000, random_state=3))
        assert result.default_decision == 'dont-ship'
        assert 0 < result.evsi_dollars < evpi_of(inputs).evpi_dollars

    def test_truncated_prior(self):
        """Test a prior with mass below -100% is simulated on the truncated prior."""
        inputs = make_inputs(NormalPrior(-0.9, 0.2), threshold=-0.95, n=2_000)
        result = calculate_evsi(inputs, SimulationConfig(num_samples=5_000, random_state=4))
        assert result.truncation_applied
        assert result.method == 'monte-carlo'
        assert 0 <= result.evsi_dollars <= evpi_of(inputs).evpi_dollars

    def test_reproducible_with_seed(self):
        """Test the same seed gives the same estimate."""
        inputs = make_inputs(UniformPrior(-0.05, 0.1), threshold=0.01)
        config = SimulationConfig(num_samples=2_000, random_state=11)
        assert calculate_evsi(inputs, config).evsi_dollars == calculate_evsi(inputs, config).evsi_dollars

    def test_unstratified(self):
        """Test plain Monte Carlo still agrees with the closed form loosely."""
        inputs = make_inputs(NormalPrior(0.0, 0.05), n=100_000)
        closed = calculate_evsi_normal_fast_path(inputs).evsi_dollars
        simulated = calculate_evsi_monte_carlo(
            inputs, SimulationConfig(num_samples=100_000, stratified=False, random_state=2),
        )
        assert simulated.evsi_dollars == pytest.approx(closed, rel=0.04)

    def test_rare_events_warning(self):
        """Test few expected conversions per arm is flagged."""
        inputs = make_inputs(UniformPrior(-0.1, 0.1), n=1_000, cr0=0.005)
        result = calculate_evsi(inputs, SimulationConfig(num_samples=500, random_state=0))
        assert 'rare_events' in [w.code for w in result.warnings]


class TestDegenerateEVSI:
    """Tests for designs and priors that cannot carry value."""

    @pytest.mark.parametrize("kwargs,reason", [
        ({'n_variant': 0}, 'empty arm'),
        ({'cr0': 0.0}, 'baseline rate at 0 or 1'),
        ({'cr0': 1.0}, 'baseline rate at 0 or 1'),
        ({'k': 0.0}, 'K is zero'),
    ])
    def test_degenerate_designs(self, kwargs, reason):
        """Test each degenerate design returns EVSI 0 without sampling."""
        inputs = make_inputs(UniformPrior(-0.1, 0.1), **kwargs)
        assert degenerate_reason(inputs) == reason
        result = calculate_evsi(inputs, SimulationConfig(num_samples=500, random_state=0))
        assert result.evsi_dollars == 0.0
        assert result.method == 'degenerate'
        assert result.num_samples == 0

    def test_point_mass_prior(self):
        """Test a point-mass prior has nothing to learn."""
        inputs = make_inputs(StudentTPrior(0.02, 0.0, 3))
        assert degenerate_reason(inputs) == 'point-mass prior'
        assert calculate_evsi(inputs).evsi_dollars == 0.0
        assert calculate_evsi(make_inputs(NormalPrior(0.02, 0.0))).method == 'degenerate'

    def test_undefined_mean_prior(self):
        """Test df <= 1 gives NaN EVSI with an undefined_mean warning, like EVPI."""
        inputs = make_inputs(StudentTPrior(0.0, 0.03, 1))
        result = calculate_evsi(inputs, SimulationConfig(num_samples=2_000, random_state=0))
        assert np.isnan(result.evsi_dollars)
        assert np.isnan(evpi_of(inputs).evpi_dollars)
        assert result.method == 'undefined'
        assert result.num_samples == 0
        assert 'undefined_mean' in [w.code for w in result.warnings]
        assert result.probability_clears_threshold == pytest.approx(0.5)

    def test_undefined_mean_point_mass_is_still_degenerate(self):
        """Test a df <= 1 prior with zero scale is a point mass, not undefined."""
        result = calculate_evsi(make_inputs(StudentTPrior(0.02, 0.0, 1)))
        assert result.method == 'degenerate'
        assert result.evsi_dollars == 0.0

    def test_non_informative_draws_keep_default(self):
        """Test the simulated decision equals the default when the test is empty."""
        inputs = make_inputs(UniformPrior(-0.05, 0.1), n_variant=0)
        draws = simulate_decisions(inputs, SimulationConfig(num_samples=200, random_state=0))
        assert draws.default_decision == 'ship'
        assert draws.ship_with_test.all()
        assert not draws.changes_decision.any()


class TestRejectionWarning:
    """Tests for the high rejection-rate warning."""

    def test_above_ten_percent(self):
        """Test more than 10% fallbacks is flagged."""
        warning = high_rejection_warning(11, 100)
        assert warning is not None
        assert warning.code == 'high_rejection'

    def test_at_or_below_ten_percent(self):
        """Test 10% or fewer fallbacks is not flagged."""
        assert high_rejection_warning(10, 100) is None
        assert high_rejection_warning(0, 0) is None


def test_large_experiment_decisions_track_true_lift():
    """Test a very large experiment ships almost exactly when the true lift clears the threshold."""
    config = SimulationConfig(num_samples=5_000, random_state=5)
    draws = simulate_decisions(make_inputs(UniformPrior(-0.1, 0.1), n=1_000_000), config)
    agreement = np.mean(draws.ship_with_test == (draws.l_true >= 0.0))
    assert agreement > 0.95
