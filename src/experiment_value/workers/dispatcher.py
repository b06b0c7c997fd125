"""
Cancellable Background Computation
==================================

Monte Carlo EVSI and the net-value simulation are CPU-bound, so an
interactive caller hands them to a ``ComputationDispatcher``. The dispatcher
owns a single task handle:

- every submission takes the next sequence number and atomically replaces
  the current handle, terminating the superseded worker process
- untruncated Normal EVSI has a closed form and is computed on the calling
  thread; everything else runs in its own ``multiprocessing.Process``
- completions carry their sequence number and are dropped unless they
  belong to the most recent request
- ``cancel()`` terminates the running process immediately

Each request ships an immutable input snapshot to its worker, so no state is
shared between requests.

Example Usage:
--------------
>>> from experiment_value.workers import ComputationDispatcher
>>>
>>> with ComputationDispatcher() as dispatcher:
...     dispatcher.submit_net_value(inputs)
...     sequence, result = dispatcher.latest(timeout=30)
"""

import multiprocessing
import threading
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from experiment_value.config import SimulationConfig
from experiment_value.decision.evsi import calculate_evsi, uses_fast_path
from experiment_value.decision.net_value import calculate_net_value
from experiment_value.logging_utils import get_logger
from experiment_value.types import EVSIInputs, EVSIResult, NetValueInputs, NetValueResult


logger = get_logger(__name__)

Result = Union[EVSIResult, NetValueResult]

TERMINATE_JOIN_TIMEOUT = 5.0


class WorkerError(RuntimeError):
    """A background computation failed."""


def _run_task(connection, sequence: int, kind: str, inputs, config: SimulationConfig):
    try:
        if kind == 'evsi':
            result = calculate_evsi(inputs, config)
        elif kind == 'net-value':
            result = calculate_net_value(inputs, config)
        else:
            raise ValueError(f"Unknown task kind: {kind!r}")
        connection.send((sequence, 'ok', result))
    except Exception as exc:
        connection.send((sequence, 'error', f"{type(exc).__name__}: {exc}"))
    finally:
        connection.close()


@dataclass
class TaskHandle:
    """The dispatcher's view of one request."""
    sequence: int
    kind: str
    process: Optional[multiprocessing.Process] = None
    connection: Optional[object] = None
    result: Optional[Result] = None

    @property
    def done(self) -> bool:
        return self.result is not None

    def is_alive(self) -> bool:
        return self.process is not None and self.process.is_alive()

    def finish(self):
        if self.process is not None:
            self.process.join(TERMINATE_JOIN_TIMEOUT)
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def terminate(self):
        if self.process is not None and self.process.is_alive():
            self.process.terminate()
            self.process.join(TERMINATE_JOIN_TIMEOUT)
        if self.connection is not None:
            self.connection.close()
            self.connection = None


class ComputationDispatcher:
    """
    Runs value-of-information calculations, keeping only the latest request.

    Parameters
    ----------
    config : SimulationConfig, optional
        Default simulation settings for submissions that do not pass one
    start_method : str, optional
        multiprocessing start method ('fork', 'spawn', 'forkserver');
        the platform default when omitted
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        start_method: Optional[str] = None,
    ):
        self.config = config or SimulationConfig()
        self._context = multiprocessing.get_context(start_method)
        self._lock = threading.Lock()
        self._sequence = 0
        self._handle: Optional[TaskHandle] = None

    @property
    def sequence(self) -> int:
        """Sequence number of the most recent request (0 before any)."""
        return self._sequence

    @property
    def current_handle(self) -> Optional[TaskHandle]:
        return self._handle

    def submit_evsi(self, inputs: EVSIInputs, config: Optional[SimulationConfig] = None) -> int:
        """
        Request EVSI; returns the request's sequence number.

        Untruncated Normal priors are answered synchronously (the result is
        available from ``latest()`` at once); other priors start a worker.
        """
        config = config or self.config
        if uses_fast_path(inputs, config):
            result = calculate_evsi(inputs, config)
            with self._lock:
                sequence = self._next_sequence()
                self._replace(TaskHandle(sequence=sequence, kind='evsi', result=result))
            return sequence
        return self._start('evsi', inputs, config)

    def submit_net_value(
        self,
        inputs: NetValueInputs,
        config: Optional[SimulationConfig] = None,
    ) -> int:
        """Request the integrated net value in a worker; returns its sequence number."""
        return self._start('net-value', inputs, config or self.config)

    def latest(self, timeout: Optional[float] = None) -> Optional[Tuple[int, Result]]:
        """
        Result of the most recent request.

        Parameters
        ----------
        timeout : float, optional
            Seconds to wait for a running worker; None waits until it finishes

        Returns
        -------
        tuple or None
            (sequence, result), or None when nothing has been requested, the
            request was cancelled, or the worker is still running at timeout

        Raises
        ------
        WorkerError
            If the worker raised or died without reporting
        """
        with self._lock:
            handle = self._handle
        if handle is None:
            return None
        if handle.done:
            return handle.sequence, handle.result

        connection = handle.connection
        if connection is None:
            return None
        try:
            if not connection.poll(timeout):
                return None
            sequence, status, payload = connection.recv()
        except (EOFError, OSError):
            with self._lock:
                superseded = self._handle is not handle
            if superseded:
                return None
            exitcode = handle.process.exitcode if handle.process is not None else None
            raise WorkerError(f"Worker for request {handle.sequence} exited with code {exitcode}")

        with self._lock:
            if sequence != self._sequence or self._handle is not handle:
                logger.info("Dropping stale completion %d (current %d)", sequence, self._sequence)
                return None
            handle.finish()
            if status == 'error':
                raise WorkerError(payload)
            handle.result = payload
        return sequence, payload

    def cancel(self):
        """Terminate the running request; its result will never be reported."""
        with self._lock:
            self._next_sequence()
            self._replace(None)

    def close(self):
        self.cancel()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def _replace(self, handle: Optional[TaskHandle]):
        # caller holds self._lock
        previous = self._handle
        self._handle = handle
        if previous is not None and previous.is_alive():
            logger.debug("Terminating superseded request %d", previous.sequence)
        if previous is not None:
            previous.terminate()

    def _start(self, kind: str, inputs, config: SimulationConfig) -> int:
        with self._lock:
            sequence = self._next_sequence()
            receiver, sender = self._context.Pipe(duplex=False)
            process = self._context.Process(
                target=_run_task,
                args=(sender, sequence, kind, inputs, config),
                daemon=True,
            )
            self._replace(TaskHandle(sequence=sequence, kind=kind, process=process, connection=receiver))
            process.start()
            sender.close()
        logger.debug("Started %s request %d (pid %s)", kind, sequence, process.pid)
        return sequence
