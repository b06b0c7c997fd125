"""
Expected Value of Sample Information
====================================

EVSI is the expected improvement in the ship / don't-ship decision from
running one concrete experiment, before its result is known (pre-posterior
analysis):

1. Draw a true lift L from the (effective) prior
2. Simulate the measured lift L_hat ~ Normal(L, SE)
3. Update the prior to a posterior mean given L_hat
4. Ship iff the posterior mean clears the threshold
5. Score K (L - T) when the test switches the decision to ship, K (T - L)
   when it switches to don't ship, 0 when it agrees with the default

EVSI is the average score. For an untruncated Normal prior the posterior
mean is itself Normal across experiments (the pre-posterior distribution),
which gives a closed form that the simulation must agree with.

Example Usage:
--------------
>>> from experiment_value.config import SimulationConfig
>>> from experiment_value.core.distributions import UniformPrior
>>> from experiment_value.decision.evsi import calculate_evsi
>>> from experiment_value.types import EVSIInputs
>>>
>>> inputs = EVSIInputs(
...     K=5_000_000,
...     baseline_conversion_rate=0.05,
...     threshold_L=0.0,
...     prior=UniformPrior(low_L=-0.1, high_L=0.1),
...     n_control=35_000,
...     n_variant=35_000,
... )
>>> result = calculate_evsi(inputs, SimulationConfig(random_state=42))
>>> print(f"EVSI: ${result.evsi_dollars:,.0f} via {result.method}")
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from experiment_value.config import (
    HIGH_REJECTION_RATE,
    TRUNCATION_TOLERANCE,
    SimulationConfig,
)
from experiment_value.core import distributions, statistics
from experiment_value.core.distributions import CalculationWarning, NormalPrior
from experiment_value.core.posterior import posterior_mean
from experiment_value.core.truncation import EffectivePrior, effective_prior
from experiment_value.design.sample_size import (
    rare_events_warning,
    standard_error_of_lift,
)
from experiment_value.logging_utils import get_logger
from experiment_value.types import (
    SHIP,
    Decision,
    EVSIInputs,
    EVSIResult,
    determine_default_decision,
)


logger = get_logger(__name__)


def degenerate_reason(inputs: EVSIInputs) -> Optional[str]:
    """
    Why the experiment cannot carry value, or None.

    An empty arm, a baseline rate of 0 or 1 (no measurable lift), K == 0 or
    a point-mass prior all give EVSI 0 without simulation.
    """
    if inputs.n_control == 0 or inputs.n_variant == 0:
        return 'empty arm'
    if inputs.baseline_conversion_rate in (0, 1):
        return 'baseline rate at 0 or 1'
    if inputs.K == 0:
        return 'K is zero'
    if distributions.is_degenerate(inputs.prior):
        return 'point-mass prior'
    return None


def collect_warnings(inputs: EVSIInputs) -> List[CalculationWarning]:
    warnings = list(distributions.validate_prior(inputs.prior))
    if inputs.baseline_conversion_rate > 0:
        rare = rare_events_warning(
            inputs.baseline_conversion_rate, inputs.n_control, inputs.n_variant,
        )
        if rare is not None:
            warnings.append(rare)
    return warnings


def high_rejection_warning(num_rejected: int, num_samples: int) -> Optional[CalculationWarning]:
    if num_samples == 0:
        return None
    rate = num_rejected / num_samples
    if rate > HIGH_REJECTION_RATE:
        return CalculationWarning(
            code='high_rejection',
            message=(
                f"High rejection rate ({rate:.0%}) from non-finite prior draws. "
                "Consider narrowing the prior or using more degrees of freedom."
            ),
        )
    return None


def _degenerate_result(
    inputs: EVSIInputs,
    eff: EffectivePrior,
    warnings: List[CalculationWarning],
) -> EVSIResult:
    T = inputs.threshold_L
    return EVSIResult(
        evsi_dollars=0.0,
        default_decision=determine_default_decision(eff.mean(), T),
        probability_clears_threshold=eff.probability_clears(T),
        probability_test_changes_decision=0.0,
        num_samples=0,
        num_rejected=0,
        method='degenerate',
        truncation_applied=eff.truncated,
        warnings=tuple(warnings),
    )


def _undefined_result(
    inputs: EVSIInputs,
    eff: EffectivePrior,
    warnings: List[CalculationWarning],
) -> EVSIResult:
    # df <= 1: no finite mean
    T = inputs.threshold_L
    return EVSIResult(
        evsi_dollars=float('nan'),
        default_decision=determine_default_decision(eff.mean(), T),
        probability_clears_threshold=eff.probability_clears(T),
        probability_test_changes_decision=float('nan'),
        num_samples=0,
        num_rejected=0,
        method='undefined',
        truncation_applied=eff.truncated,
        warnings=tuple(warnings),
    )


@dataclass(frozen=True)
class DecisionDraws:
    """Per-iteration draws shared by the EVSI and net-value simulations."""
    l_true: np.ndarray
    ship_with_test: np.ndarray
    default_decision: Decision
    num_rejected: int
    effective: EffectivePrior

    @property
    def changes_decision(self) -> np.ndarray:
        return self.ship_with_test != (self.default_decision == SHIP)

    @property
    def num_samples(self) -> int:
        return int(self.l_true.size)


def simulate_decisions(
    inputs: EVSIInputs,
    config: SimulationConfig,
    eff: Optional[EffectivePrior] = None,
) -> DecisionDraws:
    """
    Draw true lifts and the decision the experiment would lead to.

    Parameters
    ----------
    inputs : EVSIInputs
        Decision and experiment design
    config : SimulationConfig
        Sample count, grid size, re-draw cap, stratification and seed
    eff : EffectivePrior, optional
        Effective prior (computed with ``config.truncation_tolerance`` when omitted)

    Returns
    -------
    DecisionDraws
        True lifts, ship-after-test flags, default decision and the number of
        draws that fell back to the prior mean

    Notes
    -----
    When the experiment carries no information (an empty arm or a baseline
    rate of 0 or 1) the decision after the test is the default decision.
    """
    if eff is None:
        eff = effective_prior(inputs.prior, config.truncation_tolerance)
    T = inputs.threshold_L
    n = config.num_samples
    rng = np.random.default_rng(config.random_state)

    mean_eff = eff.mean()
    default = determine_default_decision(mean_eff, T)

    l_true, num_rejected = eff.sample(
        rng, n, max_redraws=config.max_redraws, stratified=config.stratified,
    )

    informative = (
        inputs.n_control > 0
        and inputs.n_variant > 0
        and 0 < inputs.baseline_conversion_rate < 1
    )
    if not informative:
        ship_with_test = np.full(n, default == SHIP)
        return DecisionDraws(l_true, ship_with_test, default, num_rejected, eff)

    se = standard_error_of_lift(
        inputs.baseline_conversion_rate, inputs.n_control, inputs.n_variant,
    )
    if config.stratified:
        noise = statistics.standard_normal_ppf(statistics.stratified_uniforms(rng, n))
    else:
        noise = statistics.sample_standard_normal(rng, n)
    l_hat = l_true + se * noise

    post = posterior_mean(l_hat, se, inputs.prior, effective=eff, grid_size=config.grid_size)
    bad = ~np.isfinite(post)
    if bad.any():
        logger.warning("%d non-finite posterior means replaced by the prior mean", bad.sum())
        post = np.where(bad, mean_eff, post)
        num_rejected += int(bad.sum())

    ship_with_test = post >= T
    return DecisionDraws(l_true, ship_with_test, default, num_rejected, eff)


def calculate_evsi_monte_carlo(
    inputs: EVSIInputs,
    config: Optional[SimulationConfig] = None,
) -> EVSIResult:
    """
    EVSI by pre-posterior Monte Carlo simulation (any prior).

    Parameters
    ----------
    inputs : EVSIInputs
        K, baseline rate, threshold, prior and arm sizes
    config : SimulationConfig, optional
        Simulation settings (defaults: 5,000 stratified samples)

    Returns
    -------
    EVSIResult
        EVSI (clamped at 0), default decision, P(L >= T), the fraction of
        simulated experiments that change the decision, sample count and
        fallback count, with ``rare_events`` / ``high_rejection`` warnings

    Notes
    -----
    - The decision statistic is the posterior mean, never the raw L_hat
    - Monte Carlo standard error is roughly EVSI / sqrt(num_samples)
    - Non-finite draws are re-drawn, then replaced by the prior mean and
      counted in ``num_rejected``; no NaN reaches the average
    - A Student-t prior with df <= 1 has no mean: ``evsi_dollars`` is NaN,
      ``method='undefined'`` and the ``undefined_mean`` warning is attached,
      matching the NaN EVPI for the same prior
    """
    config = config or SimulationConfig()
    eff = effective_prior(inputs.prior, config.truncation_tolerance)
    warnings = collect_warnings(inputs)

    if degenerate_reason(inputs) is not None:
        logger.debug("EVSI degenerate: %s", degenerate_reason(inputs))
        return _degenerate_result(inputs, eff, warnings)
    if not eff.mean_defined:
        logger.warning("EVSI undefined: prior %r has no finite mean", inputs.prior)
        return _undefined_result(inputs, eff, warnings)

    draws = simulate_decisions(inputs, config, eff)
    K = inputs.K
    T = inputs.threshold_L

    switched_gain = np.where(
        draws.ship_with_test,
        K * (draws.l_true - T),
        K * (T - draws.l_true),
    )
    improvement = np.where(draws.changes_decision, switched_gain, 0.0)
    evsi = max(float(improvement.mean()), 0.0)

    rejection = high_rejection_warning(draws.num_rejected, draws.num_samples)
    if rejection is not None:
        warnings.append(rejection)

    return EVSIResult(
        evsi_dollars=evsi,
        default_decision=draws.default_decision,
        probability_clears_threshold=eff.probability_clears(T),
        probability_test_changes_decision=float(draws.changes_decision.mean()),
        num_samples=draws.num_samples,
        num_rejected=draws.num_rejected,
        method='monte-carlo',
        truncation_applied=eff.truncated,
        warnings=tuple(warnings),
    )


def preposterior_sigma(sigma: float, se: float) -> float:
    """Standard deviation of the posterior mean across experiments: sigma^2 / sqrt(sigma^2 + SE^2)."""
    return sigma ** 2 / np.sqrt(sigma ** 2 + se ** 2)


def calculate_evsi_normal_fast_path(
    inputs: EVSIInputs,
    tolerance: float = TRUNCATION_TOLERANCE,
) -> EVSIResult:
    """
    Closed-form EVSI for an untruncated Normal prior.

    Across experiments the posterior mean m is Normal(mu, sigma_pre) with
    sigma_pre = sigma^2 / sqrt(sigma^2 + SE^2). The value of acting on m
    instead of mu is the unit normal loss

        EVSI = K * sigma_pre * [phi(z) - |z| * (1 - Phi(|z|))],
        z = (T - mu) / sigma_pre

    Parameters
    ----------
    inputs : EVSIInputs
        Inputs with a NormalPrior that needs no truncation

    Returns
    -------
    EVSIResult
        ``method='closed-form'``; ``num_samples`` and ``num_rejected`` are 0
    """
    prior = inputs.prior
    if not isinstance(prior, NormalPrior):
        raise ValueError("The closed-form EVSI requires a NormalPrior")

    eff = effective_prior(prior, tolerance)
    warnings = collect_warnings(inputs)
    if degenerate_reason(inputs) is not None:
        return _degenerate_result(inputs, eff, warnings)
    if eff.truncated:
        raise ValueError(
            "The closed-form EVSI requires an untruncated prior; "
            "use calculate_evsi_monte_carlo"
        )

    K = inputs.K
    T = inputs.threshold_L
    mu = prior.mu_L
    se = standard_error_of_lift(
        inputs.baseline_conversion_rate, inputs.n_control, inputs.n_variant,
    )

    sigma_pre = preposterior_sigma(prior.sigma_L, se)
    z = (T - mu) / sigma_pre
    unit_loss = (
        statistics.standard_normal_pdf(z)
        - abs(z) * statistics.standard_normal_cdf(-abs(z))
    )
    evsi = max(K * sigma_pre * unit_loss, 0.0)

    default = determine_default_decision(mu, T)
    Phi_pre = statistics.standard_normal_cdf(z)
    prob_changes = Phi_pre if default == SHIP else 1.0 - Phi_pre

    return EVSIResult(
        evsi_dollars=float(evsi),
        default_decision=default,
        probability_clears_threshold=statistics.standard_normal_cdf((mu - T) / prior.sigma_L),
        probability_test_changes_decision=float(prob_changes),
        num_samples=0,
        num_rejected=0,
        method='closed-form',
        truncation_applied=False,
        warnings=tuple(warnings),
    )


def uses_fast_path(inputs: EVSIInputs, config: Optional[SimulationConfig] = None) -> bool:
    """True when EVSI has a closed form (untruncated Normal prior)."""
    config = config or SimulationConfig()
    if not isinstance(inputs.prior, NormalPrior):
        return False
    return not effective_prior(inputs.prior, config.truncation_tolerance).truncated


def calculate_evsi(
    inputs: EVSIInputs,
    config: Optional[SimulationConfig] = None,
) -> EVSIResult:
    """
    EVSI by the fastest exact route.

    Untruncated Normal priors use the closed form; truncated Normal,
    Student-t and Uniform priors use the Monte Carlo engine.
    """
    if uses_fast_path(inputs, config):
        return calculate_evsi_normal_fast_path(
            inputs, (config or SimulationConfig()).truncation_tolerance,
        )
    return calculate_evsi_monte_carlo(inputs, config)
