"""
Report Frames
=============

Tabular views of the engine's results for charts and summaries. The engine
does no rendering; these frames are the hand-off to whatever draws them.

Example Usage:
--------------
>>> from experiment_value import reporting
>>> from experiment_value.core.distributions import NormalPrior
>>>
>>> density = reporting.prior_density_frame(NormalPrior(0.0, 0.05))
>>> density.head()
"""

from typing import Optional

import numpy as np
import pandas as pd

from experiment_value.config import NEAR_ZERO_SIGMA
from experiment_value.core.distributions import (
    NormalPrior,
    PriorDistribution,
    StudentTPrior,
    UniformPrior,
)
from experiment_value.core.truncation import effective_prior
from experiment_value.types import CoDResult, EVPIResult, EVSIResult, NetValueResult


SPIKE_HALF_WIDTH_PERCENT = 0.1
UNIFORM_PADDING = 0.05


def prior_density_frame(prior: PriorDistribution, num_points: int = 100) -> pd.DataFrame:
    """
    Density of the effective prior over a plotting range.

    Parameters
    ----------
    prior : PriorDistribution
        Prior over relative lift
    num_points : int, default=100
        Number of points on the curve

    Returns
    -------
    pd.DataFrame
        Columns ``lift_percent`` (lift x 100) and ``density``.
        Normal / Student-t cover mu +/- 4 sigma (clipped at -100% when
        truncated); Uniform is drawn as a rectangle with zero-density
        shoulders; a near-point-mass prior is a three-point spike.
    """
    if num_points < 3:
        raise ValueError("num_points must be at least 3")

    eff = effective_prior(prior)

    if isinstance(prior, UniformPrior):
        low = max(prior.low_L, eff.lower)
        high = prior.high_L
        pad = (high - low) * UNIFORM_PADDING
        interior = np.linspace(low, high, max(num_points - 2, 2))
        lifts = np.concatenate([[low - pad], interior, [high + pad]])
        density = np.concatenate([[0.0], np.full(interior.size, eff.pdf(low)), [0.0]])
    elif isinstance(prior, (NormalPrior, StudentTPrior)):
        if prior.sigma_L < NEAR_ZERO_SIGMA / 10:
            centre = eff.mean() * 100
            return pd.DataFrame({
                'lift_percent': [centre - SPIKE_HALF_WIDTH_PERCENT, centre, centre + SPIKE_HALF_WIDTH_PERCENT],
                'density': [0.0, 1.0, 0.0],
            })
        low = max(prior.mu_L - 4 * prior.sigma_L, eff.lower)
        high = max(prior.mu_L + 4 * prior.sigma_L, low + prior.sigma_L)
        lifts = np.linspace(low, high, num_points)
        density = eff.pdf(lifts)
    else:
        raise TypeError(f"Unsupported prior distribution: {type(prior).__name__}")

    return pd.DataFrame({'lift_percent': lifts * 100, 'density': density})


def value_breakdown_frame(
    evpi: EVPIResult,
    evsi: Optional[EVSIResult] = None,
    cod: Optional[CoDResult] = None,
    net_value: Optional[NetValueResult] = None,
) -> pd.DataFrame:
    """
    One row per value component, in dollars.

    Returns
    -------
    pd.DataFrame
        Columns ``component``, ``dollars`` and ``description``
    """
    rows = [{
        'component': 'EVPI',
        'dollars': evpi.evpi_dollars,
        'description': 'Value of perfect information (ceiling)',
    }]
    if evsi is not None:
        rows.append({
            'component': 'EVSI',
            'dollars': evsi.evsi_dollars,
            'description': f'Value of this experiment ({evsi.method})',
        })
    if cod is not None:
        rows.append({
            'component': 'Cost of Delay',
            'dollars': cod.cod_dollars,
            'description': 'Value foregone while the decision waits',
        })
    if net_value is not None:
        rows.append({
            'component': 'Net value',
            'dollars': net_value.net_value_dollars,
            'description': 'Integrated value of testing (headline)',
        })
    return pd.DataFrame(rows, columns=['component', 'dollars', 'description'])
