"""
Feasibility-Bound Truncation
============================

A relative lift below -100% is impossible. When a prior puts more than a
small tolerance of its mass below L = -1, every downstream statistic (mean,
probabilities, EVPI, EVSI, net value, sampling) must use the prior truncated
at -1 and renormalised. ``effective_prior`` makes that decision once and
returns an ``EffectivePrior`` that all calculators share.

Example Usage:
--------------
>>> from experiment_value.core.distributions import NormalPrior
>>> from experiment_value.core.truncation import effective_prior
>>>
>>> eff = effective_prior(NormalPrior(mu_L=-0.9, sigma_L=0.2))
>>> eff.truncated
True
>>> eff.mean() > -0.9
True
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy import special, stats

from experiment_value.config import (
    LIFT_LOWER_BOUND,
    MAX_REDRAWS,
    MIN_TRUNCATED_MASS,
    TRUNCATION_TOLERANCE,
)
from experiment_value.core import distributions, statistics
from experiment_value.core.distributions import (
    NormalPrior,
    PriorDistribution,
    StudentTPrior,
    UniformPrior,
)


def _log_normal_pdf(z):
    return -0.5 * z * z - 0.5 * np.log(2 * np.pi)


def _upper_tail_ratio(a, b):
    # (phi(a) - phi(b)) / (Phi(b) - Phi(a)) for 0 <= a < b, in log space
    log_sf_a = special.log_ndtr(-a)
    log_sf_b = special.log_ndtr(-b)
    mills = np.exp(_log_normal_pdf(a) - log_sf_a)
    with np.errstate(over='ignore', invalid='ignore'):
        shrink = -np.expm1(0.5 * (a * a - b * b))
    return mills * shrink / -np.expm1(log_sf_b - log_sf_a)


def truncated_normal_mean(mu, sigma, lower, upper):
    """
    Mean of Normal(mu, sigma) truncated to [lower, upper].

    Vectorised over ``mu``; ``lower``/``upper`` may be infinite. Tail ratios
    are evaluated in log space so that intervals many standard deviations
    from ``mu`` still give a finite mean inside [lower, upper].

    Parameters
    ----------
    mu : float or np.ndarray
        Untruncated mean(s)
    sigma : float
        Untruncated standard deviation (> 0)
    lower, upper : float
        Truncation bounds, lower < upper

    Returns
    -------
    float or np.ndarray
        mu + sigma * (phi(alpha) - phi(beta)) / (Phi(beta) - Phi(alpha))
    """
    mu_arr = np.asarray(mu, dtype=float)
    alpha = (lower - mu_arr) / sigma
    beta = (upper - mu_arr) / sigma

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        upper_side = alpha >= 0
        lower_side = beta <= 0
        straddle = ~(upper_side | lower_side)

        ratio = np.zeros_like(alpha)
        ratio = np.where(upper_side, _upper_tail_ratio(np.abs(alpha), np.abs(beta)), ratio)
        ratio = np.where(lower_side, -_upper_tail_ratio(np.abs(beta), np.abs(alpha)), ratio)
        direct = (
            (statistics.standard_normal_pdf(alpha) - statistics.standard_normal_pdf(beta))
            / (statistics.standard_normal_cdf(beta) - statistics.standard_normal_cdf(alpha))
        )
        ratio = np.where(straddle, direct, ratio)

    result = np.clip(mu_arr + sigma * ratio, lower, upper)
    if np.ndim(mu) == 0:
        return float(result)
    return result


def _standard_parts(prior: PriorDistribution):
    """Standardised cdf, pdf and partial-mean antiderivative for a location-scale prior."""
    if isinstance(prior, NormalPrior):
        F = statistics.standard_normal_cdf
        f = statistics.standard_normal_pdf

        def G(s):
            # integral of s * phi(s) from s to +inf
            return statistics.standard_normal_pdf(s)

        return F, f, G

    df = prior.df

    def F(s):
        return stats.t.cdf(s, df)

    def f(s):
        return stats.t.pdf(s, df)

    def G(s):
        # integral of s * t_df(s) from s to +inf; finite for df > 1
        if np.isinf(s):
            return 0.0
        return (df + s * s) * stats.t.pdf(s, df) / (df - 1)

    return F, f, G


@dataclass(frozen=True)
class EffectivePrior:
    """
    The prior as every calculator must see it.

    Attributes
    ----------
    prior : PriorDistribution
        The untruncated prior as specified
    truncated : bool
        Whether the -1 feasibility bound was applied
    lower : float
        Lower support bound (-1 when truncated, -inf otherwise)
    mass : float
        Untruncated prior mass at or above ``lower``
    """
    prior: PriorDistribution
    truncated: bool
    lower: float
    mass: float

    @property
    def point_mass(self) -> Optional[float]:
        """Location of the prior if it is a point mass, else None."""
        if distributions.is_degenerate(self.prior):
            return max(distributions.location(self.prior), self.lower)
        if self.truncated and self.mass < MIN_TRUNCATED_MASS:
            return self.lower
        return None

    @property
    def mean_defined(self) -> bool:
        return not (isinstance(self.prior, StudentTPrior) and self.prior.df <= 1)

    def _support(self) -> Tuple[float, float]:
        # Uniform only
        return max(self.prior.low_L, self.lower), self.prior.high_L

    def cdf(self, x):
        point = self.point_mass
        x_arr = np.asarray(x, dtype=float)
        if point is not None:
            values = np.where(x_arr >= point, 1.0, 0.0)
        elif not self.truncated:
            values = distributions.cdf(self.prior, x_arr)
        else:
            values = np.where(
                x_arr < self.lower,
                0.0,
                np.clip(1.0 - distributions.survival(self.prior, x_arr) / self.mass, 0.0, 1.0),
            )
        return float(values) if np.ndim(x) == 0 else values

    def survival(self, x):
        point = self.point_mass
        x_arr = np.asarray(x, dtype=float)
        if point is not None:
            values = np.where(x_arr >= point, 0.0, 1.0)
        elif not self.truncated:
            values = distributions.survival(self.prior, x_arr)
        else:
            values = np.where(
                x_arr < self.lower,
                1.0,
                np.clip(distributions.survival(self.prior, x_arr) / self.mass, 0.0, 1.0),
            )
        return float(values) if np.ndim(x) == 0 else values

    def pdf(self, x):
        x_arr = np.asarray(x, dtype=float)
        values = distributions.pdf(self.prior, x_arr)
        if self.truncated:
            values = np.where(x_arr < self.lower, 0.0, values / max(self.mass, MIN_TRUNCATED_MASS))
        return float(values) if np.ndim(x) == 0 else values

    def probability_clears(self, threshold: float) -> float:
        """P(L >= threshold) under the effective prior."""
        point = self.point_mass
        if point is not None:
            return 1.0 if point >= threshold else 0.0
        return float(self.survival(threshold))

    def quantile(self, p):
        """Inverse of ``cdf``."""
        point = self.point_mass
        if point is not None:
            p_arr = np.asarray(p, dtype=float)
            values = np.full_like(p_arr, point)
            return float(values) if np.ndim(p) == 0 else values
        if not self.truncated:
            return distributions.quantile(self.prior, p)
        q = (1.0 - np.asarray(p, dtype=float)) * self.mass
        values = np.maximum(distributions.inverse_survival(self.prior, q), self.lower)
        return float(values) if np.ndim(p) == 0 else values

    def mean(self) -> float:
        """
        Mean of the effective prior.

        A Student-t prior with df <= 1 has no mean; its location (clipped to
        the support) is returned so that a default decision can still be
        formed.
        """
        point = self.point_mass
        if point is not None:
            return float(point)
        prior = self.prior
        if not self.truncated:
            return distributions.mean(prior)
        if isinstance(prior, UniformPrior):
            low, high = self._support()
            return 0.5 * (low + high)
        if isinstance(prior, NormalPrior):
            return truncated_normal_mean(prior.mu_L, prior.sigma_L, self.lower, np.inf)
        if not self.mean_defined:
            return max(prior.mu_L, self.lower)
        _, _, G = _standard_parts(prior)
        alpha = (self.lower - prior.mu_L) / prior.sigma_L
        return float(prior.mu_L + prior.sigma_L * G(alpha) / self.mass)

    def std(self) -> float:
        """Standard deviation of the effective prior (+inf where undefined)."""
        point = self.point_mass
        if point is not None:
            return 0.0
        prior = self.prior
        if not self.truncated:
            return float(np.sqrt(distributions.variance(prior)))
        if isinstance(prior, UniformPrior):
            low, high = self._support()
            return (high - low) / np.sqrt(12.0)
        if isinstance(prior, NormalPrior):
            alpha = (self.lower - prior.mu_L) / prior.sigma_L
            lam = np.exp(_log_normal_pdf(alpha) - special.log_ndtr(-alpha))
            factor = max(1.0 + alpha * lam - lam * lam, 0.0)
            return float(prior.sigma_L * np.sqrt(factor))
        if prior.df <= 2:
            return float('inf')
        alpha = (self.lower - prior.mu_L) / prior.sigma_L
        second = stats.t.expect(lambda s: s * s, args=(prior.df,), lb=alpha, conditional=True)
        first = stats.t.expect(lambda s: s, args=(prior.df,), lb=alpha, conditional=True)
        return float(prior.sigma_L * np.sqrt(max(second - first * first, 0.0)))

    def expected_shortfall(self, threshold: float) -> float:
        """
        E[(threshold - L)+] under the effective prior.

        This is the expected loss per unit of K from shipping when the true
        lift falls short of the threshold. NaN for a Student-t prior with
        df <= 1, whose tails make it infinite.
        """
        point = self.point_mass
        if point is not None:
            return max(threshold - point, 0.0)

        prior = self.prior
        if isinstance(prior, UniformPrior):
            low, high = self._support()
            if threshold <= low:
                return 0.0
            if threshold >= high:
                return threshold - 0.5 * (low + high)
            return (threshold - low) ** 2 / (2.0 * (high - low))

        if not self.mean_defined:
            return float('nan')

        if threshold <= self.lower:
            return 0.0
        F, _, G = _standard_parts(prior)
        alpha = (self.lower - prior.mu_L) / prior.sigma_L
        beta = (threshold - prior.mu_L) / prior.sigma_L
        F_alpha = 0.0 if np.isneginf(alpha) else F(alpha)
        G_alpha = 0.0 if np.isneginf(alpha) else G(alpha)
        partial = beta * (F(beta) - F_alpha) - (G_alpha - G(beta))
        return float(max(prior.sigma_L * partial / self.mass, 0.0))

    def expected_excess(self, threshold: float) -> float:
        """E[(L - threshold)+] under the effective prior."""
        shortfall = self.expected_shortfall(threshold)
        if np.isnan(shortfall):
            return float('nan')
        return float(max(self.mean() - threshold + shortfall, 0.0))

    def _transform(self, u: np.ndarray) -> np.ndarray:
        if self.truncated:
            return np.asarray(distributions.inverse_survival(self.prior, u * self.mass), dtype=float)
        return np.asarray(distributions.quantile(self.prior, u), dtype=float)

    def sample(
        self,
        rng: np.random.Generator,
        size: int,
        max_redraws: int = MAX_REDRAWS,
        stratified: bool = False,
    ) -> Tuple[np.ndarray, int]:
        """
        Draw ``size`` lifts from the effective prior.

        Truncated priors are sampled exactly through the inverse survival
        function of ``v ~ Uniform(0, mass)``, so no draw lands below -1 and
        no rejection loop is needed.

        Returns
        -------
        tuple
            (samples, num_fallbacks)
        """
        point = self.point_mass
        if point is not None:
            return np.full(size, point), 0
        if not self.truncated and not stratified:
            return distributions.sample_with_diagnostics(self.prior, rng, size, max_redraws)

        if stratified:
            u = statistics.stratified_uniforms(rng, size)
        else:
            u = rng.random(size)
        values = self._transform(u)
        fallback = self.mean() if self.mean_defined else max(distributions.location(self.prior), self.lower)
        return distributions.redraw_non_finite(
            values,
            lambda k: self._transform(rng.random(k)),
            fallback=fallback,
            max_redraws=max_redraws,
        )


def effective_prior(
    prior: PriorDistribution,
    tolerance: float = TRUNCATION_TOLERANCE,
) -> EffectivePrior:
    """
    Apply the L >= -1 feasibility bound when the prior needs it.

    Parameters
    ----------
    prior : PriorDistribution
        Prior over relative lift
    tolerance : float, default=0.001
        Truncate when P(L < -1) exceeds this mass

    Returns
    -------
    EffectivePrior
        Prior as seen by every downstream calculation
    """
    distributions.check_prior(prior)
    if distributions.is_degenerate(prior):
        below = 1.0 if distributions.location(prior) < LIFT_LOWER_BOUND else 0.0
    else:
        below = distributions.cdf(prior, LIFT_LOWER_BOUND)

    if below > tolerance:
        mass = float(distributions.survival(prior, LIFT_LOWER_BOUND))
        return EffectivePrior(prior=prior, truncated=True, lower=LIFT_LOWER_BOUND, mass=mass)
    return EffectivePrior(prior=prior, truncated=False, lower=-np.inf, mass=1.0)
