"""
Load engine: lifecycle controller around the rate scheduler.

A ``LoadEngine`` is built from a validated ``LoadTestConfig`` and owns the
run's metrics store, running state and stop signal.  It holds no global
state, so any number of engines can coexist (one per test, for example);
deciding which engine is "the current run" is the job of
``engine_app.registry.RunRegistry``.

Lifecycle::

    IDLE --start()--> RUNNING --(duration elapsed | stop())--> STOPPED

``start()`` blocks its caller until the run terminates, so callers run it
on a separate thread.  ``stop()`` is idempotent and does not wait for
in-flight requests: outcomes of requests dispatched before the stop may
still be recorded after it returns.

Key Concepts Demonstrated:
- Lock-guarded state machine with a one-shot ``threading.Event``
- Composition of metrics store, worker, dispatcher and scheduler
- Releasing an owned ``requests.Session`` once the last worker is done
"""

from __future__ import annotations

import logging
import threading
import time

import requests

from .errors import EngineAlreadyStartedError
from .metrics import MetricsStore
from .models import EngineState, LoadTestConfig, Metrics
from .scheduler import RateScheduler, make_dispatcher
from .worker import RequestWorker

logger = logging.getLogger(__name__)

# How often wait_idle() re-checks the in-flight counter.
IDLE_POLL_INTERVAL = 0.01


class LoadEngine:
    """
    One load-test run against a single target.

    Args:
        config: Validated run configuration.
        session: Optional HTTP session to use for every request.  When
            omitted the engine creates its own and closes it after the
            run; an injected session is left open for its owner.
        name: Label used in log lines and worker thread names.
    """

    def __init__(
        self,
        config: LoadTestConfig,
        session: requests.Session | None = None,
        name: str = "loadgen",
    ) -> None:
        self.config = config
        self.name = name
        self.metrics = MetricsStore()

        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        self._session_closed = False

        self._state = EngineState.IDLE
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()

        self._worker = RequestWorker(config.target, config.timeout, self.metrics, self._session)
        self._dispatcher = make_dispatcher(
            self._run_worker, self.metrics, config.max_in_flight, name
        )

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def start(self) -> None:
        """
        Run the load test, blocking until it terminates.

        Raises:
            EngineAlreadyStartedError: If the engine is not idle (already
                running, finished, or stopped before it was started).
        """
        with self._state_lock:
            if self._state is not EngineState.IDLE:
                raise EngineAlreadyStartedError(
                    f"Engine '{self.name}' cannot start from state '{self._state.value}'"
                )
            self._state = EngineState.RUNNING
            self.metrics.mark_started()

        logger.info(
            "Starting run '%s': GET %s at %s req/s for %.3fs (timeout %.3fs)",
            self.name,
            self.config.target,
            self.config.rate,
            self.config.duration,
            self.config.timeout,
        )

        scheduler = RateScheduler(
            period=self.config.period,
            duration=self.config.duration,
            dispatch=self._dispatcher,
            stop_event=self._stop_event,
            on_deadline=self.stop,
        )
        try:
            ticks = scheduler.run()
        finally:
            # A scheduler failure must not leave the engine marked running.
            self.stop()
            self._release_session_if_idle()

        snapshot = self.metrics.snapshot()
        logger.info(
            "Run '%s' finished after %s ticks: requests=%s success=%s errors=%s in_flight=%s",
            self.name,
            ticks,
            snapshot.requests,
            snapshot.successes,
            snapshot.errors,
            snapshot.in_flight,
        )

    def stop(self) -> None:
        """
        Request termination; safe to call any number of times from any thread.

        Only the first call changes anything: it marks the engine stopped,
        records the end timestamp and raises the stop signal.
        """
        with self._state_lock:
            if self._state is EngineState.STOPPED:
                return
            previous = self._state
            self._state = EngineState.STOPPED
            self.metrics.mark_finished()
            self._stop_event.set()

        if previous is EngineState.IDLE:
            logger.info("Run '%s' stopped before it started", self.name)
            self._release_session_if_idle()
        else:
            logger.info("Run '%s' stopped", self.name)

    @property
    def state(self) -> EngineState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is EngineState.RUNNING

    def get_metrics(self) -> Metrics:
        """Return a consistent snapshot of the run's metrics."""
        return self.metrics.snapshot()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Wait until no dispatched request is still in flight.

        This only observes; it does not change ``stop()`` semantics.

        Args:
            timeout: Maximum seconds to wait, or ``None`` to wait forever.

        Returns:
            ``True`` if the in-flight count reached zero in time.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.metrics.in_flight:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(IDLE_POLL_INTERVAL)
        return True

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _run_worker(self) -> None:
        try:
            self._worker()
        finally:
            if self._stop_event.is_set():
                self._release_session_if_idle()

    def _release_session_if_idle(self) -> None:
        if not self._owns_session:
            return
        with self._state_lock:
            if (
                self._session_closed
                or self._state is not EngineState.STOPPED
                or self.metrics.in_flight
            ):
                return
            self._session_closed = True
        self._session.close()
        logger.debug("Closed HTTP session of run '%s'", self.name)
