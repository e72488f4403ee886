"""
Rate scheduler and dispatch policies.

The scheduler turns a requests-per-second rate into a fixed grid of ticks
(``period = 1 / rate``) and hands each tick to a dispatcher without waiting
for the dispatched work to finish.  Each loop iteration is one three-way
wait on:

1. **the next tick**: dispatch one worker and keep going;
2. **the duration deadline**: invoke the deadline callback and return;
3. **the stop signal**: return immediately, leaving the end time to
   whoever raised the signal.

Key Concepts Demonstrated:
- ``threading.Event.wait`` with a computed timeout as a select-style wait
- Fire-and-forget fan-out on daemon threads
- Optional semaphore-based concurrency cap that skips ticks when saturated
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable

from .metrics import MetricsStore

logger = logging.getLogger(__name__)


class UnboundedDispatcher:
    """
    Start one daemon thread per tick with no limit on concurrency.

    Under high latency or a high rate the number of in-flight requests
    grows without bound; this mirrors the established behaviour and is the
    default policy.
    """

    def __init__(self, task: Callable[[], object], store: MetricsStore, name: str = "loadgen") -> None:
        self.task = task
        self.store = store
        self.name = name
        self._counter = itertools.count(1)

    def _spawn(self, target: Callable[[], object]) -> None:
        thread = threading.Thread(
            target=target,
            name=f"{self.name}-worker-{next(self._counter)}",
            daemon=True,
        )
        thread.start()

    def __call__(self) -> bool:
        self.store.mark_dispatched()
        self._spawn(self.task)
        return True


class BoundedDispatcher(UnboundedDispatcher):
    """
    Cap the number of concurrently in-flight workers.

    A tick that arrives while all slots are taken is not queued: it is
    skipped and counted in the ``skipped`` metric so the scheduler never
    blocks on slow workers.
    """

    def __init__(
        self,
        task: Callable[[], object],
        store: MetricsStore,
        limit: int,
        name: str = "loadgen",
    ) -> None:
        super().__init__(task, store, name)
        self.limit = limit
        self._slots = threading.BoundedSemaphore(limit)

    def _run_and_release(self) -> None:
        try:
            self.task()
        finally:
            self._slots.release()

    def __call__(self) -> bool:
        if not self._slots.acquire(blocking=False):
            self.store.mark_skipped()
            return False
        self.store.mark_dispatched()
        self._spawn(self._run_and_release)
        return True


def make_dispatcher(
    task: Callable[[], object],
    store: MetricsStore,
    max_in_flight: int | None = None,
    name: str = "loadgen",
) -> UnboundedDispatcher:
    """Pick the dispatch policy: bounded when ``max_in_flight`` is set."""
    if max_in_flight is None:
        return UnboundedDispatcher(task, store, name)
    return BoundedDispatcher(task, store, max_in_flight, name)


class RateScheduler:
    """
    Periodic tick source bounded by a duration and a stop signal.

    Args:
        period: Seconds between ticks.
        duration: Total seconds to run before the deadline fires.
        dispatch: Called once per tick; must not block.
        stop_event: Set by the lifecycle controller to halt dispatch.
        on_deadline: Called once when the duration elapses.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        period: float,
        duration: float,
        dispatch: Callable[[], object],
        stop_event: threading.Event,
        on_deadline: Callable[[], object],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self.period = period
        self.duration = duration
        self.dispatch = dispatch
        self.stop_event = stop_event
        self.on_deadline = on_deadline
        self.clock = clock

    def run(self) -> int:
        """
        Drive ticks until the deadline or the stop signal.

        Returns:
            The number of ticks handed to the dispatcher.
        """
        started = self.clock()
        deadline = started + self.duration
        ticks = 0
        # Index of the next grid point: tick n fires at started + n * period.
        next_index = 1

        while True:
            next_tick = started + next_index * self.period
            wait_for = min(next_tick, deadline) - self.clock()
            if self.stop_event.wait(max(0.0, wait_for)):
                logger.debug("Scheduler halted by stop signal after %s ticks", ticks)
                return ticks

            now = self.clock()
            if now >= deadline:
                logger.info("Run duration of %.3fs elapsed after %s ticks", self.duration, ticks)
                self.on_deadline()
                return ticks

            if now >= next_tick:
                self.dispatch()
                ticks += 1
                next_index += 1
                # Drop grid points that already passed, as a ticker does
                # when its receiver falls behind.
                behind = int((now - started) / self.period)
                if behind >= next_index:
                    next_index = behind + 1
