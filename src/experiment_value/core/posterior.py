"""
Posterior Mean of the Lift
==========================

Bayesian update of a prior over relative lift after observing a noisy lift
estimate ``L_hat ~ Normal(L_true, SE)``. The posterior mean is the decision
statistic for the pre-posterior (EVSI) simulation: ship iff the posterior
mean clears the threshold.

- Normal prior: conjugate shrinkage toward the prior mean
- Normal prior truncated at -1: mean of the truncated normal posterior
- Uniform prior: mean of N(L_hat, SE) truncated to the prior support
- Student-t prior: numerical posterior on a grid (log-space weights)

Example Usage:
--------------
>>> import numpy as np
>>> from experiment_value.core.distributions import NormalPrior
>>> from experiment_value.core.posterior import posterior_mean
>>>
>>> prior = NormalPrior(mu_L=0.0, sigma_L=0.05)
>>> posterior_mean(np.array([0.02, -0.01]), se=0.05, prior=prior)
array([ 0.01 , -0.005])
"""

from typing import Optional

import numpy as np
from scipy import stats

from experiment_value.config import (
    DEFAULT_GRID_SIZE,
    GRID_LIKELIHOOD_WIDTH,
    GRID_PRIOR_TAIL,
)
from experiment_value.core.distributions import (
    NormalPrior,
    PriorDistribution,
    StudentTPrior,
    UniformPrior,
    check_prior,
)
from experiment_value.core.truncation import (
    EffectivePrior,
    effective_prior,
    truncated_normal_mean,
)


GRID_CHUNK_ROWS = 2048


def shrinkage_weight(sigma: float, se: float) -> float:
    """Weight on the observation: sigma^2 / (sigma^2 + SE^2)."""
    return sigma ** 2 / (sigma ** 2 + se ** 2)


def normal_posterior(l_hat, se: float, mu: float, sigma: float):
    """
    Conjugate Normal-Normal update.

    Parameters
    ----------
    l_hat : float or np.ndarray
        Observed lift estimate(s)
    se : float
        Standard error of the estimate
    mu, sigma : float
        Prior mean and standard deviation

    Returns
    -------
    tuple
        (posterior_mean, posterior_std)
    """
    w = shrinkage_weight(sigma, se)
    post_mean = w * np.asarray(l_hat, dtype=float) + (1 - w) * mu
    post_std = sigma * se / np.sqrt(sigma ** 2 + se ** 2)
    return post_mean, post_std


def grid_posterior_mean(
    l_hat: np.ndarray,
    se: float,
    effective: EffectivePrior,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> np.ndarray:
    """
    Posterior mean by numerical integration on a per-observation grid.

    For each observation the grid spans the likelihood window
    ``L_hat +/- 10 SE`` intersected with the prior window between its
    1e-6 and 1 - 1e-6 quantiles (which already respects the -1 bound for a
    truncated prior). Weights are ``log prior + log likelihood``, shifted
    by their maximum before exponentiation.

    When an observation lies so far out that the two windows do not overlap,
    the grid is the likelihood window alone, clipped at the support bound.
    A heavy-tailed prior then lets the posterior follow the data. Only a
    truncated prior with the whole likelihood window below -1 returns the
    bound itself.
    """
    l_hat = np.atleast_1d(np.asarray(l_hat, dtype=float))
    prior_low = float(effective.quantile(GRID_PRIOR_TAIL))
    prior_high = float(effective.quantile(1 - GRID_PRIOR_TAIL))

    like_lo = np.maximum(l_hat - GRID_LIKELIHOOD_WIDTH * se, effective.lower)
    like_hi = l_hat + GRID_LIKELIHOOD_WIDTH * se
    lo = np.maximum(like_lo, prior_low)
    hi = np.minimum(like_hi, prior_high)
    outside = lo >= hi
    lo = np.where(outside, like_lo, lo)
    hi = np.where(outside, like_hi, hi)
    result = np.full_like(l_hat, effective.lower)

    valid = np.flatnonzero(lo < hi)
    steps = np.linspace(0.0, 1.0, grid_size)
    for start in range(0, valid.size, GRID_CHUNK_ROWS):
        rows = valid[start:start + GRID_CHUNK_ROWS]
        grid = lo[rows, None] + (hi[rows] - lo[rows])[:, None] * steps[None, :]
        log_prior = _log_prior_density(effective.prior, grid)
        log_like = -0.5 * ((grid - l_hat[rows, None]) / se) ** 2
        log_w = log_prior + log_like
        log_w -= log_w.max(axis=1, keepdims=True)
        weights = np.exp(log_w)
        result[rows] = (weights * grid).sum(axis=1) / weights.sum(axis=1)

    return result


def _log_prior_density(prior: PriorDistribution, grid: np.ndarray) -> np.ndarray:
    if isinstance(prior, StudentTPrior):
        return stats.t.logpdf(grid, prior.df, loc=prior.mu_L, scale=prior.sigma_L)
    if isinstance(prior, NormalPrior):
        return stats.norm.logpdf(grid, loc=prior.mu_L, scale=prior.sigma_L)
    if isinstance(prior, UniformPrior):
        return np.zeros_like(grid)
    raise TypeError(f"Unsupported prior distribution: {type(prior).__name__}")


def posterior_mean(
    l_hat,
    se: float,
    prior: PriorDistribution,
    effective: Optional[EffectivePrior] = None,
    grid_size: int = DEFAULT_GRID_SIZE,
):
    """
    Posterior mean of the true lift given observed estimate(s).

    Parameters
    ----------
    l_hat : float or np.ndarray
        Observed lift estimate(s)
    se : float
        Standard error of the lift estimate
    prior : PriorDistribution
        Prior over relative lift
    effective : EffectivePrior, optional
        Pre-computed effective prior (computed from ``prior`` when omitted)
    grid_size : int, default=400
        Grid points for the Student-t numerical posterior

    Returns
    -------
    float or np.ndarray
        Posterior mean(s), same shape as ``l_hat``

    Notes
    -----
    - The decision rule is "ship iff posterior mean >= threshold"; using
      ``l_hat`` directly ignores the prior and is not the Bayes rule
    - A point-mass prior returns its location regardless of the data
    - SE == 0 returns the observation itself (perfect information)
    """
    check_prior(prior)
    if effective is None:
        effective = effective_prior(prior)

    l_arr = np.asarray(l_hat, dtype=float)
    point = effective.point_mass

    if point is not None:
        result = np.full_like(l_arr, point)
    elif se <= 0:
        result = l_arr.copy()
    elif isinstance(prior, NormalPrior):
        post_mean, post_std = normal_posterior(l_arr, se, prior.mu_L, prior.sigma_L)
        if effective.truncated:
            result = truncated_normal_mean(post_mean, post_std, effective.lower, np.inf)
        else:
            result = post_mean
    elif isinstance(prior, UniformPrior):
        low = max(prior.low_L, effective.lower)
        result = truncated_normal_mean(l_arr, se, low, prior.high_L)
    elif isinstance(prior, StudentTPrior):
        result = grid_posterior_mean(l_arr, se, effective, grid_size).reshape(l_arr.shape)
    else:
        raise TypeError(f"Unsupported prior distribution: {type(prior).__name__}")

    if np.ndim(l_hat) == 0:
        return float(result)
    return np.asarray(result)
