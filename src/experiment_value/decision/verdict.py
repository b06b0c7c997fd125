"""
Test / Ship / Don't-Ship Recommendation
=======================================

Turn value-of-information results into a structured recommendation.

Decision Matrix:
- **RUN-TEST**: the test is worth more than it costs (net value, or EVPI as
  an optimistic ceiling when no design is given)
- **SHIP**: testing is not worth it and the prior favours shipping
- **DONT-SHIP**: testing is not worth it and the prior is below the bar

Example Usage:
--------------
>>> from experiment_value.decision import verdict
>>>
>>> rec = verdict.make_recommendation(evpi_result, net_value=net_result)
>>> print(rec['decision'])  # 'run-test'
>>> print(rec['rationale'])
"""

from typing import Dict, List, Optional

import numpy as np

from experiment_value.types import (
    SHIP,
    CoDResult,
    EVPIResult,
    EVSIResult,
    NetValueResult,
)


RUN_TEST = 'run-test'


def _default_steps(default_decision: str) -> List[str]:
    if default_decision == SHIP:
        return [
            "Ship to 100% of users without testing",
            "Monitor the primary metric after launch",
            "Revisit if new evidence changes the prior",
        ]
    return [
        "Do not ship; shelve the idea",
        "Look for cheaper evidence that could move the prior",
        "Revisit if the threshold or expected lift changes",
    ]


def make_recommendation(
    evpi: EVPIResult,
    net_value: Optional[NetValueResult] = None,
    evsi: Optional[EVSIResult] = None,
    cod: Optional[CoDResult] = None,
    test_cost: float = 0.0,
) -> Dict[str, object]:
    """
    Recommend running the test, shipping, or not shipping.

    Parameters
    ----------
    evpi : EVPIResult
        Value of perfect information and the default decision
    net_value : NetValueResult, optional
        Integrated net value of a concrete design; preferred when given
    evsi : EVSIResult, optional
        EVSI of the design, reported for decomposition
    cod : CoDResult, optional
        Cost of Delay of the design, reported for decomposition
    test_cost : float, default=0.0
        Direct cost of running the test (engineering, tooling)

    Returns
    -------
    dict
        Dictionary with:
        - decision: 'run-test', 'ship' or 'dont-ship'
        - max_test_budget: most worth spending on the test (>= 0, NaN if undefined)
        - basis: 'net-value' or 'evpi'
        - rationale: Explanation of decision
        - confidence: 'high', 'medium', or 'low'
        - next_steps: Recommended actions
        - evsi_dollars / cod_dollars: decomposition (when supplied)

    Notes
    -----
    The headline budget comes from the integrated net value, never from
    EVSI - CoD; the two are returned only so a report can show them.
    """
    if test_cost < 0:
        raise ValueError("test_cost must be non-negative")

    default = evpi.default_decision
    undefined = np.isnan(evpi.evpi_dollars) or (
        net_value is not None and np.isnan(net_value.net_value_dollars)
    )

    if undefined:
        basis = 'evpi' if net_value is None else 'net-value'
        budget = float('nan')
        decision = default
        confidence = 'low'
        rationale = (
            "The prior has no finite mean, so the value of information is undefined. "
            "Use a prior with more degrees of freedom."
        )
        next_steps = ["Revise the prior before deciding"]
    elif net_value is not None:
        basis = 'net-value'
        budget = max(net_value.net_value_dollars, 0.0)
        if budget > test_cost:
            decision = RUN_TEST
            confidence = 'high' if net_value.warnings == () else 'medium'
            rationale = (
                f"Running this test is worth up to ${budget:,.0f} after accounting for "
                "test-period exposure and decision latency. Test it if it costs less."
            )
            next_steps = [
                "Run the experiment as designed",
                "Decide on the posterior mean, not the raw observed lift",
                "Ship promptly once results are in to limit latency cost",
            ]
        else:
            decision = default
            confidence = 'medium'
            rationale = (
                "The cost of waiting for this test outweighs what it can teach you. "
                f"Act on the prior: {default}."
            )
            next_steps = _default_steps(default)
    else:
        basis = 'evpi'
        budget = evpi.evpi_dollars
        if budget > test_cost and not evpi.degenerate:
            decision = RUN_TEST
            confidence = 'low'
            rationale = (
                f"If you can A/B test this idea for less than ${budget:,.0f}, it's worth "
                "testing. This is the value of perfect information, an optimistic ceiling."
            )
            next_steps = [
                "Specify an experiment design to estimate realistic net value",
                "Compare the net value with the cost of running the test",
            ]
        else:
            decision = default
            confidence = 'high' if evpi.degenerate or evpi.prior_one_sided else 'medium'
            rationale = (
                "Even perfect information is worth less than the test would cost. "
                f"Act on the prior: {default}."
            )
            next_steps = _default_steps(default)

    result = {
        'decision': decision,
        'max_test_budget': budget,
        'basis': basis,
        'rationale': rationale,
        'confidence': confidence,
        'next_steps': next_steps,
    }
    if evsi is not None:
        result['evsi_dollars'] = evsi.evsi_dollars
    if cod is not None:
        result['cod_dollars'] = cod.cod_dollars
    return result
