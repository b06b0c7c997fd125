"""
Standard Normal Primitives
==========================

Density, distribution and sampling helpers for the standard normal, shared
by the Normal and Student-t priors and by the EVPI/EVSI formulas.

Example Usage:
--------------
>>> import numpy as np
>>> from experiment_value.core import statistics
>>>
>>> statistics.standard_normal_cdf(0.0)
0.5
>>> rng = np.random.default_rng(42)
>>> z = statistics.sample_standard_normal(rng, size=1000)
"""

from typing import Optional, Union

import numpy as np
from scipy import special

from experiment_value.config import UNIFORM_FLOOR


ArrayLike = Union[float, np.ndarray]

SQRT_2_PI = np.sqrt(2 * np.pi)


def _scalar_or_array(values: np.ndarray, original) -> ArrayLike:
    if np.ndim(original) == 0:
        return float(values)
    return values


def standard_normal_pdf(z: ArrayLike) -> ArrayLike:
    """
    Standard normal probability density phi(z).

    Parameters
    ----------
    z : float or np.ndarray
        Standard normal z-score(s)

    Returns
    -------
    float or np.ndarray
        exp(-z^2 / 2) / sqrt(2 pi); 0 at +/-inf, NaN for NaN
    """
    z_arr = np.asarray(z, dtype=float)
    return _scalar_or_array(np.exp(-0.5 * z_arr * z_arr) / SQRT_2_PI, z)


def standard_normal_cdf(z: ArrayLike) -> ArrayLike:
    """
    Standard normal cumulative distribution Phi(z).

    Evaluated with the Cephes rational approximations of erf/erfc behind
    ``scipy.special.ndtr`` (absolute error well below 1e-7 over the whole
    real line).

    Parameters
    ----------
    z : float or np.ndarray
        Standard normal z-score(s)

    Returns
    -------
    float or np.ndarray
        P(Z <= z)

    Notes
    -----
    - Phi(-inf) == 0 and Phi(+inf) == 1 exactly
    - NaN propagates: Phi(NaN) is NaN, never 1
    """
    z_arr = np.asarray(z, dtype=float)
    result = np.where(np.isnan(z_arr), np.nan, special.ndtr(z_arr))
    result = np.where(np.isposinf(z_arr), 1.0, result)
    result = np.where(np.isneginf(z_arr), 0.0, result)
    return _scalar_or_array(result, z)


def standard_normal_ppf(p: ArrayLike) -> ArrayLike:
    """Inverse of Phi; -inf at 0, +inf at 1, NaN outside [0, 1]."""
    p_arr = np.asarray(p, dtype=float)
    return _scalar_or_array(special.ndtri(p_arr), p)


def normal_pdf(x: ArrayLike, mean: ArrayLike, sd: float) -> ArrayLike:
    """Normal density for arbitrary mean and (positive) standard deviation."""
    x_arr = np.asarray(x, dtype=float)
    z = (x_arr - mean) / sd
    return _scalar_or_array(np.exp(-0.5 * z * z) / (SQRT_2_PI * sd), x)


def sample_standard_normal(
    rng: np.random.Generator,
    size: Optional[int] = None,
) -> ArrayLike:
    """
    Draw from N(0, 1) with the Box-Muller transform.

    z = sqrt(-2 ln U1) * cos(2 pi U2), U1, U2 ~ Uniform(0, 1)

    Parameters
    ----------
    rng : np.random.Generator
        Source of uniforms (anything with a ``random(size)`` method)
    size : int, optional
        Number of draws; a float is returned when omitted

    Returns
    -------
    float or np.ndarray
        Standard normal draw(s)

    Notes
    -----
    U1 is clamped to ``max(U1, 1e-16)`` before the logarithm, so a generator
    that returns exactly 0 still produces a finite value (|z| <= 8.6).
    """
    n = 1 if size is None else size
    u1 = np.maximum(np.asarray(rng.random(n), dtype=float), UNIFORM_FLOOR)
    u2 = np.asarray(rng.random(n), dtype=float)
    z = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
    if size is None:
        return float(z[0])
    return z


def stratified_uniforms(rng: np.random.Generator, size: int) -> np.ndarray:
    """
    One uniform per equal-width stratum of (0, 1), in random order.

    Pairing two independent calls gives a Latin hypercube design. Values
    are clamped into [1e-16, 1 - 1e-16] so inverse CDFs stay finite.
    """
    u = (np.arange(size) + np.asarray(rng.random(size), dtype=float)) / size
    u = rng.permutation(u)
    return np.clip(u, UNIFORM_FLOOR, 1.0 - UNIFORM_FLOOR)
