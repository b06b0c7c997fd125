"""
Net Value of Testing
====================

One integrated simulation that answers "is this experiment worth running?"
instead of subtracting Cost of Delay from EVSI after the fact. It reuses the
EVSI draws (true lift, noisy result, posterior-mean decision) and, per
iteration, values one year of the decision under two plans:

- Without test: the default decision applies to all traffic all year
- With test:
    * test window: only the variant fraction receives the lift
    * latency window: the default decision still applies to all traffic
    * rest of the year: the posterior-mean decision applies

Values are measured against the threshold, K (L - T) per year of shipping,
so that EVSI is recovered exactly when both windows are zero.

Example Usage:
--------------
>>> from experiment_value.config import SimulationConfig
>>> from experiment_value.core.distributions import NormalPrior
>>> from experiment_value.decision.net_value import calculate_net_value
>>> from experiment_value.types import NetValueInputs
>>>
>>> result = calculate_net_value(NetValueInputs(
...     K=5_000_000,
...     baseline_conversion_rate=0.05,
...     threshold_L=0.0,
...     prior=NormalPrior(mu_L=0.01, sigma_L=0.05),
...     n_control=35_000,
...     n_variant=35_000,
...     test_duration_days=14,
...     variant_fraction=0.5,
...     decision_latency_days=7,
... ), SimulationConfig(random_state=7))
>>> worth_it = result.net_value_dollars > 0
"""

from typing import Dict, Optional

import numpy as np

from experiment_value.config import DAYS_PER_YEAR, SimulationConfig
from experiment_value.core.truncation import effective_prior
from experiment_value.decision.evsi import (
    collect_warnings,
    high_rejection_warning,
    simulate_decisions,
)
from experiment_value.logging_utils import get_logger
from experiment_value.types import (
    SHIP,
    NetValueInputs,
    NetValueResult,
    determine_default_decision,
)


logger = get_logger(__name__)


def year_fractions(test_duration_days: float, decision_latency_days: float) -> Dict[str, float]:
    """
    Split one year into test, latency and post-decision windows.

    Windows longer than a year are capped so the three fractions sum to 1.
    """
    test = min(test_duration_days / DAYS_PER_YEAR, 1.0)
    latency = min(decision_latency_days / DAYS_PER_YEAR, 1.0 - test)
    return {
        'test': test,
        'latency': latency,
        'remaining': 1.0 - test - latency,
    }


def calculate_net_value(
    inputs: NetValueInputs,
    config: Optional[SimulationConfig] = None,
) -> NetValueResult:
    """
    Net dollar value of running the experiment versus deciding now.

    Parameters
    ----------
    inputs : NetValueInputs
        EVSI inputs plus test duration, variant fraction and decision latency
    config : SimulationConfig, optional
        Simulation settings (same seed gives the same draws as EVSI)

    Returns
    -------
    NetValueResult
        net_value_dollars = mean(value with test) - mean(value without test),
        not clamped: a negative value means the test costs more than it
        is worth

    Notes
    -----
    - With zero test and latency windows the result equals the unclamped
      Monte Carlo EVSI for the same seed
    - An experiment without information (empty arm, baseline rate 0 or 1)
      keeps the default decision, so its net value is minus the cost of
      running it
    - K == 0 or a point-mass prior give 0 when the default is don't ship
    - A Student-t prior with df <= 1 has no mean, so every dollar figure is
      NaN and the ``undefined_mean`` warning is attached
    """
    config = config or SimulationConfig()
    eff = effective_prior(inputs.prior, config.truncation_tolerance)
    warnings = collect_warnings(inputs)
    T = inputs.threshold_L
    K = inputs.K
    f = inputs.variant_fraction
    windows = year_fractions(inputs.test_duration_days, inputs.decision_latency_days)

    if not eff.mean_defined and eff.point_mass is None:
        logger.warning("Net value undefined: prior %r has no finite mean", inputs.prior)
        nan = float('nan')
        return NetValueResult(
            net_value_dollars=nan,
            num_samples=0,
            default_decision=determine_default_decision(eff.mean(), T),
            probability_test_changes_decision=nan,
            value_with_test=nan,
            value_without_test=nan,
            truncation_applied=eff.truncated,
            warnings=tuple(warnings),
        )

    draws = simulate_decisions(inputs.evsi_inputs(), config, eff)
    default_ship = draws.default_decision == SHIP
    annual_value = K * (draws.l_true - T)

    value_without_test = annual_value if default_ship else np.zeros_like(annual_value)

    value_with_test = (
        f * annual_value * windows['test']
        + value_without_test * windows['latency']
        + np.where(draws.ship_with_test, annual_value, 0.0) * windows['remaining']
    )

    mean_with = float(value_with_test.mean())
    mean_without = float(value_without_test.mean())
    net_value = mean_with - mean_without

    logger.debug(
        "Net value %.2f (with test %.2f, without %.2f, %d samples)",
        net_value, mean_with, mean_without, draws.num_samples,
    )

    rejection = high_rejection_warning(draws.num_rejected, draws.num_samples)
    if rejection is not None:
        warnings.append(rejection)

    return NetValueResult(
        net_value_dollars=net_value,
        num_samples=draws.num_samples,
        default_decision=draws.default_decision,
        probability_test_changes_decision=float(draws.changes_decision.mean()),
        num_rejected=draws.num_rejected,
        value_with_test=mean_with,
        value_without_test=mean_without,
        truncation_applied=eff.truncated,
        warnings=tuple(warnings),
    )
