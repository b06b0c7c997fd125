"""
Prior Distributions over Relative Lift
======================================

Normal, Student-t and Uniform priors over the relative lift L, exposed as a
closed set of frozen dataclasses plus module-level functions that dispatch
on the variant (``pdf``, ``cdf``, ``mean``, ``quantile``, ``sample``...).

Example Usage:
--------------
>>> import numpy as np
>>> from experiment_value.core import distributions
>>>
>>> prior = distributions.NormalPrior(mu_L=0.0, sigma_L=0.05)
>>> distributions.cdf(prior, 0.0)
0.5
>>> heavy = distributions.StudentTPrior(mu_L=0.02, sigma_L=0.03, df=3)
>>> draws, fallbacks = distributions.sample_with_diagnostics(
...     heavy, np.random.default_rng(0), size=10_000
... )
"""

from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Tuple, Union

import numpy as np
from scipy import stats

from experiment_value.config import MAX_REDRAWS, NEAR_ZERO_SIGMA
from experiment_value.core import statistics
from experiment_value.logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class CalculationWarning:
    """A non-fatal condition the caller should surface to the user."""
    code: str
    message: str


def _require_finite(**values: float):
    for name, value in values.items():
        if not np.isfinite(value):
            raise ValueError(f"{name} must be finite")


@dataclass(frozen=True)
class NormalPrior:
    """Normal(mu_L, sigma_L) prior; sigma_L == 0 is a point mass."""
    mu_L: float
    sigma_L: float

    kind: ClassVar[str] = 'normal'

    def __post_init__(self):
        _require_finite(mu_L=self.mu_L, sigma_L=self.sigma_L)
        if self.sigma_L < 0:
            raise ValueError("sigma_L must be non-negative")


@dataclass(frozen=True)
class StudentTPrior:
    """Location-scale Student-t prior: mu_L + sigma_L * T(df)."""
    mu_L: float
    sigma_L: float
    df: float

    kind: ClassVar[str] = 'student-t'

    def __post_init__(self):
        _require_finite(mu_L=self.mu_L, sigma_L=self.sigma_L, df=self.df)
        if self.sigma_L < 0:
            raise ValueError("sigma_L must be non-negative")
        if self.df <= 0:
            raise ValueError("df must be positive")


@dataclass(frozen=True)
class UniformPrior:
    """Uniform prior on [low_L, high_L]."""
    low_L: float
    high_L: float

    kind: ClassVar[str] = 'uniform'

    def __post_init__(self):
        _require_finite(low_L=self.low_L, high_L=self.high_L)
        if not self.low_L < self.high_L:
            raise ValueError("low_L must be less than high_L")


PriorDistribution = Union[NormalPrior, StudentTPrior, UniformPrior]

PRIOR_TYPES = (NormalPrior, StudentTPrior, UniformPrior)


def check_prior(prior) -> PriorDistribution:
    """Raise TypeError unless ``prior`` is one of the supported variants."""
    if not isinstance(prior, PRIOR_TYPES):
        raise TypeError(
            f"Unsupported prior distribution: {type(prior).__name__}. "
            "Expected NormalPrior, StudentTPrior or UniformPrior"
        )
    return prior


def _unsupported(prior) -> TypeError:
    return TypeError(f"Unsupported prior distribution: {type(prior).__name__}")


def _as_output(values, original):
    if np.ndim(original) == 0:
        return float(values)
    return values


def is_degenerate(prior: PriorDistribution) -> bool:
    """True for a point-mass prior (sigma_L == 0)."""
    if isinstance(prior, (NormalPrior, StudentTPrior)):
        return prior.sigma_L == 0
    if isinstance(prior, UniformPrior):
        return False
    raise _unsupported(prior)


def location(prior: PriorDistribution) -> float:
    """Centre of the prior: mu_L, or the midpoint for a Uniform."""
    if isinstance(prior, (NormalPrior, StudentTPrior)):
        return prior.mu_L
    if isinstance(prior, UniformPrior):
        return 0.5 * (prior.low_L + prior.high_L)
    raise _unsupported(prior)


def pdf(prior: PriorDistribution, x):
    """
    Prior density at lift value(s) ``x``.

    A point-mass prior has no density; it returns +inf at mu_L and 0
    elsewhere.
    """
    x_arr = np.asarray(x, dtype=float)
    if isinstance(prior, (NormalPrior, StudentTPrior)) and prior.sigma_L == 0:
        values = np.where(x_arr == prior.mu_L, np.inf, 0.0)
    elif isinstance(prior, NormalPrior):
        values = statistics.normal_pdf(x_arr, prior.mu_L, prior.sigma_L)
    elif isinstance(prior, StudentTPrior):
        values = stats.t.pdf(x_arr, prior.df, loc=prior.mu_L, scale=prior.sigma_L)
    elif isinstance(prior, UniformPrior):
        inside = (x_arr >= prior.low_L) & (x_arr <= prior.high_L)
        values = np.where(inside, 1.0 / (prior.high_L - prior.low_L), 0.0)
    else:
        raise _unsupported(prior)
    return _as_output(values, x)


def cdf(prior: PriorDistribution, x):
    """P(L <= x) under the prior."""
    x_arr = np.asarray(x, dtype=float)
    if isinstance(prior, (NormalPrior, StudentTPrior)) and prior.sigma_L == 0:
        values = np.where(x_arr >= prior.mu_L, 1.0, 0.0)
    elif isinstance(prior, NormalPrior):
        values = statistics.standard_normal_cdf((x_arr - prior.mu_L) / prior.sigma_L)
    elif isinstance(prior, StudentTPrior):
        values = stats.t.cdf(x_arr, prior.df, loc=prior.mu_L, scale=prior.sigma_L)
    elif isinstance(prior, UniformPrior):
        values = np.clip((x_arr - prior.low_L) / (prior.high_L - prior.low_L), 0.0, 1.0)
    else:
        raise _unsupported(prior)
    return _as_output(values, x)


def survival(prior: PriorDistribution, x):
    """P(L > x) under the prior, evaluated without 1 - cdf cancellation."""
    x_arr = np.asarray(x, dtype=float)
    if isinstance(prior, (NormalPrior, StudentTPrior)) and prior.sigma_L == 0:
        values = np.where(x_arr >= prior.mu_L, 0.0, 1.0)
    elif isinstance(prior, NormalPrior):
        values = statistics.standard_normal_cdf((prior.mu_L - x_arr) / prior.sigma_L)
    elif isinstance(prior, StudentTPrior):
        values = stats.t.sf(x_arr, prior.df, loc=prior.mu_L, scale=prior.sigma_L)
    elif isinstance(prior, UniformPrior):
        values = np.clip((prior.high_L - x_arr) / (prior.high_L - prior.low_L), 0.0, 1.0)
    else:
        raise _unsupported(prior)
    return _as_output(values, x)


def mean(prior: PriorDistribution) -> float:
    """
    Prior mean of L.

    The Student-t mean does not exist for df <= 1; the location mu_L is
    returned instead and ``validate_prior`` reports ``undefined_mean``.
    """
    if isinstance(prior, (NormalPrior, StudentTPrior)):
        return float(prior.mu_L)
    if isinstance(prior, UniformPrior):
        return 0.5 * (prior.low_L + prior.high_L)
    raise _unsupported(prior)


def variance(prior: PriorDistribution) -> float:
    """Prior variance of L; +inf for a Student-t with df <= 2."""
    if isinstance(prior, NormalPrior):
        return prior.sigma_L ** 2
    if isinstance(prior, StudentTPrior):
        if prior.df <= 2:
            return float('inf')
        return prior.sigma_L ** 2 * prior.df / (prior.df - 2)
    if isinstance(prior, UniformPrior):
        return (prior.high_L - prior.low_L) ** 2 / 12.0
    raise _unsupported(prior)


def quantile(prior: PriorDistribution, p):
    """Inverse CDF: the lift value below which a fraction ``p`` of mass lies."""
    p_arr = np.asarray(p, dtype=float)
    if isinstance(prior, (NormalPrior, StudentTPrior)) and prior.sigma_L == 0:
        values = np.full_like(p_arr, prior.mu_L)
    elif isinstance(prior, NormalPrior):
        values = prior.mu_L + prior.sigma_L * statistics.standard_normal_ppf(p_arr)
    elif isinstance(prior, StudentTPrior):
        values = stats.t.ppf(p_arr, prior.df, loc=prior.mu_L, scale=prior.sigma_L)
    elif isinstance(prior, UniformPrior):
        values = prior.low_L + p_arr * (prior.high_L - prior.low_L)
    else:
        raise _unsupported(prior)
    return _as_output(values, p)


def inverse_survival(prior: PriorDistribution, q):
    """Lift value above which a fraction ``q`` of mass lies (accurate for small q)."""
    q_arr = np.asarray(q, dtype=float)
    if isinstance(prior, (NormalPrior, StudentTPrior)) and prior.sigma_L == 0:
        values = np.full_like(q_arr, prior.mu_L)
    elif isinstance(prior, NormalPrior):
        values = prior.mu_L - prior.sigma_L * statistics.standard_normal_ppf(q_arr)
    elif isinstance(prior, StudentTPrior):
        values = stats.t.isf(q_arr, prior.df, loc=prior.mu_L, scale=prior.sigma_L)
    elif isinstance(prior, UniformPrior):
        values = prior.high_L - q_arr * (prior.high_L - prior.low_L)
    else:
        raise _unsupported(prior)
    return _as_output(values, q)


def redraw_non_finite(
    values: np.ndarray,
    draw: Callable[[int], np.ndarray],
    fallback: float,
    max_redraws: int = MAX_REDRAWS,
) -> Tuple[np.ndarray, int]:
    """
    Replace non-finite samples by fresh draws, then by ``fallback``.

    Parameters
    ----------
    values : np.ndarray
        Candidate samples (modified in place)
    draw : callable
        ``draw(k)`` returns ``k`` fresh candidate samples
    fallback : float
        Value used for samples still non-finite after ``max_redraws`` attempts
    max_redraws : int, default=10
        Re-draw attempts per sample

    Returns
    -------
    tuple
        (values, num_fallbacks)
    """
    bad = np.flatnonzero(~np.isfinite(values))
    attempts = 0
    while bad.size and attempts < max_redraws:
        values[bad] = draw(bad.size)
        bad = bad[~np.isfinite(values[bad])]
        attempts += 1

    if bad.size:
        logger.warning(
            "%d samples still non-finite after %d re-draws; using fallback %.6g",
            bad.size, max_redraws, fallback,
        )
        values[bad] = fallback
    return values, int(bad.size)


def _draw_once(prior: PriorDistribution, rng: np.random.Generator, size: int) -> np.ndarray:
    if isinstance(prior, NormalPrior):
        return prior.mu_L + prior.sigma_L * statistics.sample_standard_normal(rng, size)
    if isinstance(prior, StudentTPrior):
        standardized = stats.t.ppf(rng.random(size), prior.df)
        return prior.mu_L + prior.sigma_L * standardized
    if isinstance(prior, UniformPrior):
        return prior.low_L + rng.random(size) * (prior.high_L - prior.low_L)
    raise _unsupported(prior)


def sample_with_diagnostics(
    prior: PriorDistribution,
    rng: np.random.Generator,
    size: int,
    max_redraws: int = MAX_REDRAWS,
) -> Tuple[np.ndarray, int]:
    """
    Draw ``size`` samples from the prior and count fallback events.

    Normal draws use Box-Muller, Student-t draws invert the standard t CDF
    (``t.ppf`` of a uniform, which is -inf when the uniform is exactly 0),
    Uniform draws are affine in a uniform. Non-finite draws are re-drawn up
    to ``max_redraws`` times, then replaced by the prior location.

    Returns
    -------
    tuple
        (samples, num_fallbacks)
    """
    check_prior(prior)
    if is_degenerate(prior):
        return np.full(size, location(prior)), 0

    values = np.asarray(_draw_once(prior, rng, size), dtype=float)
    return redraw_non_finite(
        values,
        lambda k: _draw_once(prior, rng, k),
        fallback=location(prior),
        max_redraws=max_redraws,
    )


def sample(prior: PriorDistribution, rng: np.random.Generator, size=None):
    """Draw from the prior; a float when ``size`` is omitted."""
    values, _ = sample_with_diagnostics(prior, rng, 1 if size is None else size)
    if size is None:
        return float(values[0])
    return values


def validate_prior(prior: PriorDistribution) -> List[CalculationWarning]:
    """
    Statistical caveats for a well-formed prior.

    Returns
    -------
    list of CalculationWarning
        ``undefined_mean`` (Student-t, df <= 1), ``undefined_variance``
        (Student-t, df <= 2) and ``near_zero_sigma`` (0 < sigma_L < 0.001)
    """
    check_prior(prior)
    warnings: List[CalculationWarning] = []

    if isinstance(prior, StudentTPrior):
        if prior.df <= 1:
            warnings.append(CalculationWarning(
                code='undefined_mean',
                message=(
                    f"Student-t prior with df={prior.df:g} has no finite mean; "
                    "value-of-information figures are undefined. Use df > 1."
                ),
            ))
        if prior.df <= 2:
            warnings.append(CalculationWarning(
                code='undefined_variance',
                message=(
                    f"Student-t prior with df={prior.df:g} has infinite variance; "
                    "Monte Carlo estimates may be unstable. Use df > 2."
                ),
            ))

    if isinstance(prior, (NormalPrior, StudentTPrior)) and 0 < prior.sigma_L < NEAR_ZERO_SIGMA:
        warnings.append(CalculationWarning(
            code='near_zero_sigma',
            message="Prior standard deviation is below 0.1%; the prior is nearly certain.",
        ))

    return warnings


def prior_from_dict(params: Dict) -> PriorDistribution:
    """
    Build a prior from a plain mapping such as ``{'type': 'normal', 'mu_L': 0,
    'sigma_L': 0.05}``. Unknown types raise TypeError.
    """
    kind = params.get('type')
    if kind == NormalPrior.kind:
        return NormalPrior(mu_L=float(params['mu_L']), sigma_L=float(params['sigma_L']))
    if kind == StudentTPrior.kind:
        return StudentTPrior(
            mu_L=float(params['mu_L']),
            sigma_L=float(params['sigma_L']),
            df=float(params['df']),
        )
    if kind == UniformPrior.kind:
        return UniformPrior(low_L=float(params['low_L']), high_L=float(params['high_L']))
    raise TypeError(f"Unknown prior type: {kind!r}")
