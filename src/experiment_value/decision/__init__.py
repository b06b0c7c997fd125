"""Value-of-information calculators and the test / ship recommendation."""

from experiment_value.decision import evpi, evsi, cost_of_delay, net_value, verdict

__all__ = ["evpi", "evsi", "cost_of_delay", "net_value", "verdict"]
