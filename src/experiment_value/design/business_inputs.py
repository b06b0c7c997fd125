"""
Business Inputs to Decision Values
==================================

Translate the numbers a product team knows (traffic, conversion rate, value
per conversion, a shipping bar, a gut-feel interval for the lift) into the
canonical quantities the calculators take: the dollar scale ``K``, the
threshold in lift units, and a prior over the lift.

Example Usage:
--------------
>>> from experiment_value.design import business_inputs
>>>
>>> K = business_inputs.derive_k(
...     annual_visitors=1_000_000,
...     baseline_conversion_rate=0.05,
...     value_per_conversion=100,
... )
>>> print(f"K = ${K:,.0f} per unit lift")
K = $5,000,000 per unit lift
>>> threshold_L = business_inputs.normalize_threshold_to_lift(
...     scenario='minimum-lift', value=2, unit='lift', K=K
... )
>>> prior = business_inputs.prior_from_interval(-5, 15)
"""

from typing import Literal, Optional

from experiment_value.config import (
    DEFAULT_INTERVAL_PERCENT,
    DEFAULT_PRIOR_MU,
    DEFAULT_PRIOR_SIGMA,
    Z_95,
)
from experiment_value.core.distributions import (
    NormalPrior,
    PriorDistribution,
    StudentTPrior,
    UniformPrior,
)


ThresholdScenario = Literal['any-positive', 'minimum-lift', 'accept-loss']
ThresholdUnit = Literal['dollars', 'lift']

DEFAULT_PRIOR = NormalPrior(mu_L=DEFAULT_PRIOR_MU, sigma_L=DEFAULT_PRIOR_SIGMA)

INTERVAL_MATCH_TOLERANCE = 0.01


def derive_k(
    annual_visitors: float,
    baseline_conversion_rate: float,
    value_per_conversion: float,
) -> float:
    """
    Annual dollars per unit of relative lift.

    K = N_year * CR0 * V, so a lift L is worth K * L dollars per year.

    Parameters
    ----------
    annual_visitors : float
        Visitors per year exposed to the decision
    baseline_conversion_rate : float
        Baseline conversion rate (decimal, e.g. 0.032)
    value_per_conversion : float
        Dollar value of one conversion

    Returns
    -------
    float
        K in dollars per unit lift
    """
    if annual_visitors < 0:
        raise ValueError("annual_visitors must be non-negative")
    if not (0 <= baseline_conversion_rate <= 1):
        raise ValueError("baseline_conversion_rate must be between 0 and 1")
    if value_per_conversion < 0:
        raise ValueError("value_per_conversion must be non-negative")

    return float(annual_visitors * baseline_conversion_rate * value_per_conversion)


def normalize_threshold_to_lift(
    scenario: ThresholdScenario,
    value: Optional[float] = None,
    unit: Optional[ThresholdUnit] = None,
    K: float = 0.0,
) -> float:
    """
    Shipping threshold expressed as a decimal lift.

    Parameters
    ----------
    scenario : {'any-positive', 'minimum-lift', 'accept-loss'}
        'any-positive' ships anything above zero (threshold 0). The other
        two take ``value``/``unit``; 'accept-loss' values are negative by
        convention.
    value : float, optional
        Threshold in ``unit`` (percent for 'lift', annual dollars for 'dollars')
    unit : {'dollars', 'lift'}, optional
        Unit of ``value``
    K : float, default=0.0
        Dollars per unit lift, used to convert a dollar threshold

    Returns
    -------
    float
        T_L: 5 (percent) -> 0.05; dollars -> value / K, or 0 when K is 0
    """
    if scenario == 'any-positive':
        return 0.0
    if scenario not in ('minimum-lift', 'accept-loss'):
        raise ValueError(f"Unknown threshold scenario: {scenario!r}")
    if value is None or unit is None:
        raise ValueError(f"Scenario {scenario!r} requires a threshold value and unit")

    if unit == 'dollars':
        return float(value) / K if K > 0 else 0.0
    if unit == 'lift':
        return float(value) / 100.0
    raise ValueError(f"Unknown threshold unit: {unit!r}")


def prior_from_interval(low_percent: float, high_percent: float) -> NormalPrior:
    """
    Normal prior whose central 90% interval is [low_percent, high_percent].

    mu_L = (L_low + L_high) / 2, sigma_L = (L_high - L_low) / (2 z_0.95)

    An interval matching the default (-8.22%, +8.22%) within 0.01 points
    returns the default prior N(0, 0.05) exactly.

    Example
    -------
    >>> prior = prior_from_interval(-5, 15)
    >>> round(prior.mu_L, 4), round(prior.sigma_L, 4)
    (0.05, 0.0608)
    """
    if not low_percent < high_percent:
        raise ValueError("Interval lower bound must be below the upper bound")

    default_low, default_high = DEFAULT_INTERVAL_PERCENT
    if (abs(low_percent - default_low) < INTERVAL_MATCH_TOLERANCE
            and abs(high_percent - default_high) < INTERVAL_MATCH_TOLERANCE):
        return DEFAULT_PRIOR

    low_L = low_percent / 100.0
    high_L = high_percent / 100.0
    return NormalPrior(
        mu_L=(low_L + high_L) / 2.0,
        sigma_L=(high_L - low_L) / (2.0 * Z_95),
    )


def build_prior(
    shape: Literal['normal', 'student-t', 'uniform'],
    mu_L: Optional[float] = None,
    sigma_L: Optional[float] = None,
    df: Optional[float] = None,
    low_L: Optional[float] = None,
    high_L: Optional[float] = None,
) -> PriorDistribution:
    """
    Construct a prior by shape name.

    Normal and Student-t need ``mu_L`` and ``sigma_L`` (Student-t also
    ``df``); Uniform needs ``low_L`` and ``high_L``.
    """
    if shape == 'normal':
        if mu_L is None or sigma_L is None:
            raise ValueError("Normal prior requires mu_L and sigma_L")
        return NormalPrior(mu_L=mu_L, sigma_L=sigma_L)
    if shape == 'student-t':
        if mu_L is None or sigma_L is None or df is None:
            raise ValueError("Student-t prior requires mu_L, sigma_L and df")
        return StudentTPrior(mu_L=mu_L, sigma_L=sigma_L, df=df)
    if shape == 'uniform':
        if low_L is None or high_L is None:
            raise ValueError("Uniform prior requires low_L and high_L")
        return UniformPrior(low_L=low_L, high_L=high_L)
    raise ValueError(f"Unknown prior shape: {shape!r}")
