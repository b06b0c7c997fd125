"""Priors over relative lift and the statistics built on them."""

from experiment_value.core import statistics, distributions, truncation, posterior

__all__ = ["statistics", "distributions", "truncation", "posterior"]
