"""
Expected Value of Perfect Information
=====================================

EVPI is the expected opportunity loss of acting on the prior alone: the most
any experiment on this decision could be worth.

    Ship default:      EVPI = K * E[(T - L)+]
    Don't-ship default: EVPI = K * E[(L - T)+]

For an untruncated Normal prior this has the closed form

    Ship:       K * [(T - mu) Phi(z) + sigma phi(z)]
    Don't ship: K * [(mu - T) (1 - Phi(z)) + sigma phi(z)],   z = (T - mu) / sigma

Example Usage:
--------------
>>> from experiment_value.core.distributions import NormalPrior
>>> from experiment_value.decision.evpi import calculate_evpi
>>> from experiment_value.types import EVPIInputs
>>>
>>> result = calculate_evpi(EVPIInputs(
...     K=5_000_000,
...     prior=NormalPrior(mu_L=0.0, sigma_L=0.05),
...     threshold_L=0.0,
... ))
>>> print(f"EVPI: ${result.evpi_dollars:,.0f} ({result.default_decision})")
EVPI: $99,736 (ship)
"""

import numpy as np

from experiment_value.config import (
    NEAR_ZERO_SIGMA,
    ONE_SIDED_PROBABILITY,
    TRUNCATION_TOLERANCE,
)
from experiment_value.core import distributions, statistics
from experiment_value.core.distributions import NormalPrior
from experiment_value.core.truncation import effective_prior
from experiment_value.logging_utils import get_logger
from experiment_value.types import (
    SHIP,
    EVPIInputs,
    EVPIResult,
    determine_default_decision,
)


logger = get_logger(__name__)


def normal_evpi(K: float, mu: float, sigma: float, threshold: float) -> float:
    """
    Closed-form EVPI for a Normal(mu, sigma) prior, sigma > 0.

    Parameters
    ----------
    K : float
        Dollars per unit lift
    mu, sigma : float
        Prior mean and standard deviation
    threshold : float
        Shipping threshold in lift units

    Returns
    -------
    float
        EVPI in dollars, clamped at 0
    """
    if sigma <= 0:
        raise ValueError("sigma must be positive; point-mass priors have EVPI 0")

    z = (threshold - mu) / sigma
    phi = statistics.standard_normal_pdf(z)
    Phi = statistics.standard_normal_cdf(z)

    if mu >= threshold:
        loss = (threshold - mu) * Phi + sigma * phi
    else:
        loss = (mu - threshold) * (1 - Phi) + sigma * phi
    return max(K * loss, 0.0)


def _edge_flags(sigma: float, Phi: float):
    near_zero_sigma = sigma < NEAR_ZERO_SIGMA
    prior_one_sided = Phi > 1 - ONE_SIDED_PROBABILITY or Phi < ONE_SIDED_PROBABILITY
    return near_zero_sigma, prior_one_sided


def calculate_evpi(
    inputs: EVPIInputs,
    tolerance: float = TRUNCATION_TOLERANCE,
) -> EVPIResult:
    """
    Expected value of perfect information for a ship / don't-ship decision.

    Parameters
    ----------
    inputs : EVPIInputs
        K, prior and threshold
    tolerance : float, default=0.001
        Prior mass below L = -1 that triggers truncation

    Returns
    -------
    EVPIResult
        EVPI plus the default decision, z, phi(z), Phi(z), the probability
        that the lift clears the threshold, edge-case flags and warnings

    Notes
    -----
    - Ties ship: the default is 'ship' when E[L] >= T
    - A point-mass prior (sigma_L == 0) returns EVPI 0 exactly, with
      z = +/-inf (0 when mu == T) and phi = 0
    - K == 0 returns EVPI 0: nothing is at stake
    - When P(L < -1) > tolerance, every quantity (mean, sigma, Phi, EVPI)
      comes from the prior truncated at -1
    - Non-Normal priors use E[(T-L)+] / E[(L-T)+] of the effective prior;
      z and phi are then reported against its mean and standard deviation
    - A Student-t prior with df <= 1 has no finite EVPI: evpi_dollars is NaN
      and an ``undefined_mean`` warning is attached
    """
    prior = inputs.prior
    K = inputs.K
    T = inputs.threshold_L

    warnings = tuple(distributions.validate_prior(prior))
    eff = effective_prior(prior, tolerance)
    threshold_dollars = K * T

    if eff.truncated:
        logger.debug(
            "Prior %r truncated at %.1f (retained mass %.6f)", prior, eff.lower, eff.mass,
        )

    point = eff.point_mass
    if point is not None:
        default = determine_default_decision(point, T)
        if point == T:
            z = 0.0
        else:
            z = float('inf') if T > point else float('-inf')
        Phi = 0.0 if point >= T else 1.0
        return EVPIResult(
            evpi_dollars=0.0,
            default_decision=default,
            probability_clears_threshold=1.0 - Phi,
            z=z,
            phi=0.0,
            Phi=Phi,
            truncation_applied=eff.truncated,
            degenerate=True,
            chance_of_being_wrong=0.0,
            effective_mean=float(point),
            effective_sigma=0.0,
            threshold_dollars=threshold_dollars,
            near_zero_sigma=True,
            prior_one_sided=True,
            warnings=warnings,
        )

    mean_eff = eff.mean()
    sigma_eff = eff.std()
    default = determine_default_decision(mean_eff, T)

    if isinstance(prior, NormalPrior) and not eff.truncated:
        z = (T - prior.mu_L) / prior.sigma_L
        phi = statistics.standard_normal_pdf(z)
        Phi = statistics.standard_normal_cdf(z)
        evpi = normal_evpi(K, prior.mu_L, prior.sigma_L, T)
    else:
        z = (T - mean_eff) / sigma_eff if np.isfinite(sigma_eff) else 0.0
        phi = statistics.standard_normal_pdf(z)
        Phi = float(eff.cdf(T))
        if default == SHIP:
            loss = eff.expected_shortfall(T)
        else:
            loss = eff.expected_excess(T)
        evpi = K * loss
        if not np.isnan(evpi):
            evpi = max(evpi, 0.0)

    if K == 0:
        evpi = 0.0

    chance_of_being_wrong = Phi if default == SHIP else 1.0 - Phi
    near_zero_sigma, prior_one_sided = _edge_flags(sigma_eff, Phi)

    return EVPIResult(
        evpi_dollars=float(evpi),
        default_decision=default,
        probability_clears_threshold=eff.probability_clears(T),
        z=float(z),
        phi=float(phi),
        Phi=float(Phi),
        truncation_applied=eff.truncated,
        degenerate=False,
        chance_of_being_wrong=float(chance_of_being_wrong),
        effective_mean=float(mean_eff),
        effective_sigma=float(sigma_eff),
        threshold_dollars=threshold_dollars,
        near_zero_sigma=near_zero_sigma,
        prior_one_sided=prior_one_sided,
        warnings=warnings,
    )
