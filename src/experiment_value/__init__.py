"""
Experiment Value - Value-of-Information Engine for A/B Tests
============================================================

Quantify, before running it, what an A/B experiment is worth in dollars.

Modules:
--------
- core: Priors over relative lift, truncation at -100%, posterior means
- design: Business inputs (K, thresholds, priors) and sample sizes
- decision: EVPI, EVSI, Cost of Delay, net value and the recommendation
- workers: Cancellable background execution of Monte Carlo runs
- pipelines: End-to-end scenario analysis

Example Usage:
--------------
>>> from experiment_value import EVPIInputs, NormalPrior, calculate_evpi
>>>
>>> result = calculate_evpi(EVPIInputs(
...     K=5_000_000, prior=NormalPrior(0.0, 0.05), threshold_L=0.0,
... ))
>>> print(f"EVPI: ${result.evpi_dollars:,.0f}")
EVPI: $99,736

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Expose key functions at package level for convenience
from experiment_value.config import SimulationConfig
from experiment_value.core.distributions import (
    CalculationWarning,
    NormalPrior,
    StudentTPrior,
    UniformPrior,
)
from experiment_value.types import (
    CoDInputs,
    CoDResult,
    EVPIInputs,
    EVPIResult,
    EVSIInputs,
    EVSIResult,
    NetValueInputs,
    NetValueResult,
)
from experiment_value.decision.evpi import calculate_evpi
from experiment_value.decision.evsi import calculate_evsi
from experiment_value.decision.cost_of_delay import calculate_cost_of_delay
from experiment_value.decision.net_value import calculate_net_value

__all__ = [
    "SimulationConfig",
    "CalculationWarning",
    "NormalPrior",
    "StudentTPrior",
    "UniformPrior",
    "EVPIInputs",
    "EVPIResult",
    "EVSIInputs",
    "EVSIResult",
    "CoDInputs",
    "CoDResult",
    "NetValueInputs",
    "NetValueResult",
    "calculate_evpi",
    "calculate_evsi",
    "calculate_cost_of_delay",
    "calculate_net_value",
]
