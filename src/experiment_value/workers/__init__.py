"""Background execution of Monte Carlo calculations."""

from experiment_value.workers.dispatcher import ComputationDispatcher, TaskHandle, WorkerError

__all__ = ["ComputationDispatcher", "TaskHandle", "WorkerError"]
