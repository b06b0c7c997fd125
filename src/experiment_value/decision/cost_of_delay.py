"""
Cost of Delay
=============

Value foregone by holding a ship decision while an experiment runs and
while its result propagates into a decision. Only a ship default carries a
cost: during the test only the variant arm receives the expected gain over
the threshold.

    daily_opportunity_cost = K * (mu_L - threshold_L) * variant_fraction / 365
    cost_of_delay          = daily_opportunity_cost * (test_days + latency_days)

With the usual zero threshold this is ``K * mu_L * variant_fraction / 365``.

Example Usage:
--------------
>>> from experiment_value.decision.cost_of_delay import calculate_cost_of_delay
>>> from experiment_value.types import CoDInputs
>>>
>>> cod = calculate_cost_of_delay(CoDInputs(
...     K=5_000_000,
...     mu_L=0.02,
...     threshold_L=0.0,
...     test_duration_days=14,
...     variant_fraction=0.5,
...     decision_latency_days=7,
... ))
>>> print(f"Cost of delay: ${cod.cod_dollars:,.0f}")
Cost of delay: $2,877
"""

from experiment_value.config import DAYS_PER_YEAR
from experiment_value.types import (
    DONT_SHIP,
    CoDInputs,
    CoDResult,
    determine_default_decision,
)


def calculate_cost_of_delay(inputs: CoDInputs) -> CoDResult:
    """
    Cost of delaying the default decision for the test and latency windows.

    Parameters
    ----------
    inputs : CoDInputs
        K, post-truncation prior mean, threshold, test duration, variant
        fraction and decision latency

    Returns
    -------
    CoDResult
        cod_dollars, daily_opportunity_cost and whether the cost applies

    Notes
    -----
    - Don't-ship default or K == 0: no cost, ``cod_applies=False``
    - The daily rate is the expected gain over the threshold, so a ship
      default with an accept-loss threshold (T < mu_L < 0) still has a
      positive cost
    - mu_L == threshold_L ships but gains nothing: ``cod_applies=False``
    - ``mu_L`` must already reflect truncation at -1; pass
      ``EVPIResult.effective_mean``
    """
    default = determine_default_decision(inputs.mu_L, inputs.threshold_L)
    gain = inputs.mu_L - inputs.threshold_L
    if default == DONT_SHIP or inputs.K == 0 or gain <= 0:
        return CoDResult(cod_dollars=0.0, daily_opportunity_cost=0.0, cod_applies=False)

    daily = inputs.K * gain * inputs.variant_fraction / DAYS_PER_YEAR
    delay_days = inputs.test_duration_days + inputs.decision_latency_days
    return CoDResult(
        cod_dollars=float(daily * delay_days),
        daily_opportunity_cost=float(daily),
        cod_applies=True,
    )
