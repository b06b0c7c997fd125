"""
Input and Result Records
========================

Immutable containers exchanged between the calculators and their callers.
Every calculator builds a fresh result from its inputs and never mutates
either side.

Lift values are decimals (0.05 = +5%). ``K`` is annual dollars per unit of
lift (``N_year * CR0 * V``).
"""

from dataclasses import dataclass, field
from typing import Literal, Tuple

from experiment_value.core.distributions import (
    CalculationWarning,
    PriorDistribution,
    check_prior,
)


Decision = Literal['ship', 'dont-ship']

SHIP: Decision = 'ship'
DONT_SHIP: Decision = 'dont-ship'


def determine_default_decision(mean_L: float, threshold_L: float) -> Decision:
    """Ship if the expected lift meets the threshold (ties ship)."""
    return SHIP if mean_L >= threshold_L else DONT_SHIP


def _check_finite(name: str, value: float):
    if value != value or value in (float('inf'), float('-inf')):
        raise ValueError(f"{name} must be finite")


@dataclass(frozen=True)
class EVPIInputs:
    """Inputs to the EVPI calculator."""
    K: float
    prior: PriorDistribution
    threshold_L: float

    def __post_init__(self):
        _check_finite("K", self.K)
        _check_finite("threshold_L", self.threshold_L)
        if self.K < 0:
            raise ValueError("K must be non-negative")
        check_prior(self.prior)


@dataclass(frozen=True)
class EVPIResult:
    """EVPI and supporting metrics."""
    evpi_dollars: float
    default_decision: Decision
    probability_clears_threshold: float
    z: float
    phi: float
    Phi: float
    truncation_applied: bool
    degenerate: bool
    chance_of_being_wrong: float = 0.0
    effective_mean: float = 0.0
    effective_sigma: float = 0.0
    threshold_dollars: float = 0.0
    near_zero_sigma: bool = False
    prior_one_sided: bool = False
    warnings: Tuple[CalculationWarning, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EVSIInputs:
    """Inputs to the EVSI engine."""
    K: float
    baseline_conversion_rate: float
    threshold_L: float
    prior: PriorDistribution
    n_control: int
    n_variant: int

    def __post_init__(self):
        _check_finite("K", self.K)
        _check_finite("threshold_L", self.threshold_L)
        if self.K < 0:
            raise ValueError("K must be non-negative")
        if not (0 <= self.baseline_conversion_rate <= 1):
            raise ValueError("baseline_conversion_rate must be between 0 and 1")
        if self.n_control < 0 or self.n_variant < 0:
            raise ValueError("Sample sizes must be non-negative")
        check_prior(self.prior)


@dataclass(frozen=True)
class EVSIResult:
    """EVSI and supporting metrics."""
    evsi_dollars: float
    default_decision: Decision
    probability_clears_threshold: float
    probability_test_changes_decision: float
    num_samples: int
    num_rejected: int
    method: Literal['closed-form', 'monte-carlo', 'degenerate', 'undefined'] = 'monte-carlo'
    truncation_applied: bool = False
    warnings: Tuple[CalculationWarning, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CoDInputs:
    """Inputs to the Cost of Delay calculator."""
    K: float
    mu_L: float
    threshold_L: float
    test_duration_days: float
    variant_fraction: float
    decision_latency_days: float = 0.0

    def __post_init__(self):
        _check_finite("K", self.K)
        _check_finite("mu_L", self.mu_L)
        if self.test_duration_days < 0 or self.decision_latency_days < 0:
            raise ValueError("Durations must be non-negative")
        if not (0 <= self.variant_fraction <= 1):
            raise ValueError("variant_fraction must be between 0 and 1")


@dataclass(frozen=True)
class CoDResult:
    """Cost of Delay and its daily rate."""
    cod_dollars: float
    daily_opportunity_cost: float
    cod_applies: bool


@dataclass(frozen=True)
class NetValueInputs(EVSIInputs):
    """EVSI inputs plus the timing of the experiment."""
    test_duration_days: float = 0.0
    variant_fraction: float = 0.5
    decision_latency_days: float = 0.0

    def __post_init__(self):
        super().__post_init__()
        if self.test_duration_days < 0 or self.decision_latency_days < 0:
            raise ValueError("Durations must be non-negative")
        if not (0 <= self.variant_fraction <= 1):
            raise ValueError("variant_fraction must be between 0 and 1")

    def evsi_inputs(self) -> EVSIInputs:
        return EVSIInputs(
            K=self.K,
            baseline_conversion_rate=self.baseline_conversion_rate,
            threshold_L=self.threshold_L,
            prior=self.prior,
            n_control=self.n_control,
            n_variant=self.n_variant,
        )


@dataclass(frozen=True)
class NetValueResult:
    """Net value of testing from the integrated simulation."""
    net_value_dollars: float
    num_samples: int
    default_decision: Decision = SHIP
    probability_test_changes_decision: float = 0.0
    num_rejected: int = 0
    value_with_test: float = 0.0
    value_without_test: float = 0.0
    truncation_applied: bool = False
    warnings: Tuple[CalculationWarning, ...] = field(default_factory=tuple)
