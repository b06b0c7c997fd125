"""
Experiment Sample Sizes and Measurement Precision
=================================================

Translate an experiment design (traffic, duration, eligibility, split) into
per-arm sample sizes, the standard error of the measured relative lift, and
classical power at the shipping threshold.

Example Usage:
--------------
>>> from experiment_value.design import sample_size
>>>
>>> sizes = sample_size.derive_sample_sizes(
...     daily_traffic=5000,
...     test_duration_days=14,
...     eligibility_fraction=1.0,
...     variant_fraction=0.5,
... )
>>> print(sizes['n_control'], sizes['n_variant'])
35000 35000
>>> se = sample_size.standard_error_of_lift(0.05, 35000, 35000)
>>> print(f"SE of lift: {se:.2%}")
SE of lift: 3.30%
"""

from typing import Dict, Optional

import numpy as np
from statsmodels.stats.power import zt_ind_solve_power
from statsmodels.stats.proportion import proportion_effectsize

from experiment_value.config import RARE_EVENT_CONVERSIONS
from experiment_value.core.distributions import CalculationWarning


def derive_sample_sizes(
    daily_traffic: float,
    test_duration_days: float,
    eligibility_fraction: float = 1.0,
    variant_fraction: float = 0.5,
) -> Dict[str, int]:
    """
    Number of units each arm will see over the test.

    Parameters
    ----------
    daily_traffic : float
        Visitors (or sessions) per day
    test_duration_days : float
        Test length in days
    eligibility_fraction : float, default=1.0
        Fraction of traffic that enters the experiment
    variant_fraction : float, default=0.5
        Fraction of eligible traffic assigned to the variant

    Returns
    -------
    dict
        Dictionary with keys:
        - n_total: Units in the experiment (floored)
        - n_variant: Units in the variant arm (floored)
        - n_control: n_total - n_variant, so the arms always sum to n_total
    """
    if daily_traffic < 0:
        raise ValueError("daily_traffic must be non-negative")
    if test_duration_days < 0:
        raise ValueError("test_duration_days must be non-negative")
    if not (0 <= eligibility_fraction <= 1):
        raise ValueError("eligibility_fraction must be between 0 and 1")
    if not (0 <= variant_fraction <= 1):
        raise ValueError("variant_fraction must be between 0 and 1")

    n_total = int(np.floor(daily_traffic * test_duration_days * eligibility_fraction))
    n_variant = int(np.floor(n_total * variant_fraction))
    n_control = n_total - n_variant

    return {
        'n_total': n_total,
        'n_control': n_control,
        'n_variant': n_variant,
    }


def standard_error_of_lift(
    baseline_conversion_rate: float,
    n_control: int,
    n_variant: int,
) -> float:
    """
    Standard error of the measured relative lift.

    SE = sqrt(p(1-p)/n_control + p(1-p)/n_variant) / p

    The numerator is the standard error of the difference in conversion
    rates under the baseline rate; dividing by p puts it on the relative
    lift scale (delta method).

    Parameters
    ----------
    baseline_conversion_rate : float
        Baseline conversion rate p, strictly between 0 and 1
    n_control, n_variant : int
        Units per arm, both positive

    Returns
    -------
    float
        Standard error of L_hat

    Notes
    -----
    - This is a fixed-variance Normal approximation to the binomial: both
      arms use the baseline variance p(1-p), and L_hat is simulated as
      Normal(L_true, SE). It is not an exact binomial simulation and is
      least reliable when expected conversions per arm are small.
    """
    p = baseline_conversion_rate
    if not (0 < p < 1):
        raise ValueError("baseline_conversion_rate must be strictly between 0 and 1")
    if n_control <= 0 or n_variant <= 0:
        raise ValueError("Sample sizes must be positive")

    variance_of_difference = p * (1 - p) * (1.0 / n_control + 1.0 / n_variant)
    return float(np.sqrt(variance_of_difference) / p)


def min_expected_conversions(
    baseline_conversion_rate: float,
    n_control: int,
    n_variant: int,
) -> float:
    """Expected conversions in the smaller arm at the baseline rate."""
    return baseline_conversion_rate * min(n_control, n_variant)


def rare_events_warning(
    baseline_conversion_rate: float,
    n_control: int,
    n_variant: int,
) -> Optional[CalculationWarning]:
    """``rare_events`` warning when an arm expects fewer than 20 conversions."""
    if min_expected_conversions(baseline_conversion_rate, n_control, n_variant) < RARE_EVENT_CONVERSIONS:
        return CalculationWarning(
            code='rare_events',
            message=(
                f"Expected conversions per group are low (<{RARE_EVENT_CONVERSIONS}). "
                "The normal approximation for lift may be less accurate. "
                "Consider increasing test duration or traffic."
            ),
        )
    return None


def power_at_threshold(
    baseline_conversion_rate: float,
    lift: float,
    n_control: int,
    n_variant: int,
    alpha: float = 0.05,
) -> float:
    """
    Power of a one-sided two-proportion z-test to detect ``lift``.

    Classical companion number for an experiment design: the probability
    that a frequentist test with these arm sizes declares the variant better
    when the true relative lift equals ``lift``.

    Parameters
    ----------
    baseline_conversion_rate : float
        Baseline conversion rate, strictly between 0 and 1
    lift : float
        Relative lift to detect (e.g., 0.05 for +5%)
    n_control, n_variant : int
        Units per arm, both positive
    alpha : float, default=0.05
        Significance level

    Returns
    -------
    float
        Statistical power (between 0 and 1)

    Notes
    -----
    Uses Cohen's h (``proportion_effectsize``) and statsmodels'
    ``zt_ind_solve_power`` with ``ratio = n_variant / n_control``.
    """
    p = baseline_conversion_rate
    if not (0 < p < 1):
        raise ValueError("baseline_conversion_rate must be strictly between 0 and 1")
    if n_control <= 0 or n_variant <= 0:
        raise ValueError("Sample sizes must be positive")
    if not (0 < alpha < 1):
        raise ValueError("alpha must be between 0 and 1")

    p_variant = p * (1 + lift)
    if not (0 <= p_variant <= 1):
        raise ValueError(
            f"Variant conversion rate {p_variant:.3f} is outside [0, 1]. "
            f"Reduce lift or baseline."
        )

    effect_size = proportion_effectsize(p_variant, p)
    power = zt_ind_solve_power(
        effect_size=effect_size,
        nobs1=n_control,
        alpha=alpha,
        ratio=n_variant / n_control,
        alternative='larger',
    )
    return float(power)


def required_samples_per_arm(
    baseline_conversion_rate: float,
    lift: float,
    alpha: float = 0.05,
    power: float = 0.80,
) -> int:
    """
    Units per arm (equal split) for a one-sided test to reach ``power``.

    Example
    -------
    >>> n = required_samples_per_arm(0.05, lift=0.10)
    >>> print(f"Need {n:,} users per group")
    """
    p = baseline_conversion_rate
    if not (0 < p < 1):
        raise ValueError("baseline_conversion_rate must be strictly between 0 and 1")
    if lift <= 0:
        raise ValueError("lift must be positive")
    if not (0 < alpha < 1):
        raise ValueError("alpha must be between 0 and 1")
    if not (0 < power < 1):
        raise ValueError("power must be between 0 and 1")

    p_variant = p * (1 + lift)
    if p_variant > 1:
        raise ValueError(
            f"Variant conversion rate {p_variant:.3f} > 1. Reduce lift or baseline."
        )

    effect_size = proportion_effectsize(p_variant, p)
    n_per_group = zt_ind_solve_power(
        effect_size=effect_size,
        alpha=alpha,
        power=power,
        alternative='larger',
    )
    return int(np.ceil(n_per_group))
