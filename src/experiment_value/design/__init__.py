"""Business inputs and experiment design."""

from experiment_value.design import business_inputs, sample_size

__all__ = ["business_inputs", "sample_size"]
