"""
Engine Configuration
====================

Constants shared by the EVPI, EVSI, Cost-of-Delay and net-value calculators,
plus the ``SimulationConfig`` record that controls Monte Carlo runs.

Example Usage:
--------------
>>> from experiment_value.config import SimulationConfig
>>>
>>> config = SimulationConfig(num_samples=10_000, random_state=42)
>>> quick = config.replace(num_samples=1_000)
"""

from dataclasses import dataclass, replace
from typing import Optional


# Calendar
DAYS_PER_YEAR = 365

# Feasibility bound: a relative lift below -100% is impossible
LIFT_LOWER_BOUND = -1.0

# Truncate the prior when P(L < -1) exceeds this mass
TRUNCATION_TOLERANCE = 0.001

# Survival mass below which a truncated prior collapses onto its bound
MIN_TRUNCATED_MASS = 1e-10

# Box-Muller floor for the first uniform draw (log(0) guard)
UNIFORM_FLOOR = 1e-16

# Non-finite sample handling
MAX_REDRAWS = 10

# Monte Carlo defaults
DEFAULT_NUM_SAMPLES = 5000
DEFAULT_GRID_SIZE = 400

# Grid posterior window half-widths (in SE units and prior quantiles)
GRID_LIKELIHOOD_WIDTH = 10.0
GRID_PRIOR_TAIL = 1e-6

# Edge-case flags
NEAR_ZERO_SIGMA = 0.001
ONE_SIDED_PROBABILITY = 0.0001

# Warnings
RARE_EVENT_CONVERSIONS = 20
HIGH_REJECTION_RATE = 0.10

# Prior elicitation: 90% central interval -> Normal(mu, sigma)
Z_95 = 1.6448536269514722
DEFAULT_PRIOR_MU = 0.0
DEFAULT_PRIOR_SIGMA = 0.05
DEFAULT_INTERVAL_PERCENT = (-8.22, 8.22)


@dataclass(frozen=True)
class SimulationConfig:
    """
    Settings for one Monte Carlo run.

    Parameters
    ----------
    num_samples : int, default=5000
        Number of simulated experiments
    grid_size : int, default=400
        Grid points for the numerical posterior mean (Student-t priors)
    max_redraws : int, default=10
        Re-draw attempts for non-finite samples before falling back to the
        prior location
    truncation_tolerance : float, default=0.001
        Prior mass below L = -1 that triggers truncation
    stratified : bool, default=True
        Use Latin hypercube (stratified) uniforms for the prior and noise draws
    random_state : int, optional
        Random seed for reproducibility
    """
    num_samples: int = DEFAULT_NUM_SAMPLES
    grid_size: int = DEFAULT_GRID_SIZE
    max_redraws: int = MAX_REDRAWS
    truncation_tolerance: float = TRUNCATION_TOLERANCE
    stratified: bool = True
    random_state: Optional[int] = None

    def __post_init__(self):
        if self.num_samples <= 0:
            raise ValueError("num_samples must be positive")
        if self.grid_size < 10:
            raise ValueError("grid_size must be at least 10")
        if self.max_redraws < 0:
            raise ValueError("max_redraws must be non-negative")
        if not (0 <= self.truncation_tolerance < 1):
            raise ValueError("truncation_tolerance must be in [0, 1)")

    def replace(self, **changes) -> "SimulationConfig":
        """Return a copy with some fields changed."""
        return replace(self, **changes)
